"""Tests for PgBouncerClient."""

import pytest
from unittest.mock import MagicMock, patch

import psycopg2

from pgbouncer_exporter.exceptions import NamespaceQueryError, ServiceUnavailableError
from pgbouncer_exporter.services.pgbouncer_client import PROBE_COMMAND, PgBouncerClient


DSN = "postgres://stats@localhost:6432/pgbouncer?sslmode=disable"


@pytest.fixture
def mock_psycopg2():
    """Patch psycopg2.connect, returning (connect, connection, cursor) mocks."""
    with patch('pgbouncer_exporter.services.pgbouncer_client.psycopg2.connect') as mock_connect:
        mock_conn = MagicMock()
        mock_conn.closed = 0
        mock_cursor = MagicMock()
        mock_conn.cursor.return_value.__enter__.return_value = mock_cursor
        mock_connect.return_value = mock_conn
        yield mock_connect, mock_conn, mock_cursor


@pytest.fixture
def client(logger):
    return PgBouncerClient(DSN, logger, connect_timeout=5)


class TestPing:
    """Liveness probe."""

    def test_ping_success(self, client, mock_psycopg2):
        mock_connect, mock_conn, mock_cursor = mock_psycopg2

        client.ping()

        mock_connect.assert_called_once_with(DSN, connect_timeout=5)
        mock_cursor.execute.assert_called_once_with(PROBE_COMMAND)
        assert mock_conn.autocommit is True

    def test_connection_reused(self, client, mock_psycopg2):
        mock_connect, _, _ = mock_psycopg2

        client.ping()
        client.ping()

        assert mock_connect.call_count == 1

    def test_connection_refused(self, client, mock_psycopg2):
        mock_connect, _, _ = mock_psycopg2
        mock_connect.side_effect = psycopg2.OperationalError("connection refused")

        with pytest.raises(ServiceUnavailableError) as exc_info:
            client.ping()

        assert "connection refused" in str(exc_info.value)

    def test_broken_connection_discarded(self, client, mock_psycopg2):
        mock_connect, mock_conn, mock_cursor = mock_psycopg2
        mock_cursor.execute.side_effect = [psycopg2.OperationalError("server closed the connection"), None]

        with pytest.raises(ServiceUnavailableError):
            client.ping()
        mock_conn.close.assert_called_once()

        client.ping()
        assert mock_connect.call_count == 2

    def test_closed_connection_reopened(self, client, mock_psycopg2):
        mock_connect, mock_conn, _ = mock_psycopg2

        client.ping()
        mock_conn.closed = 1
        client.ping()

        assert mock_connect.call_count == 2


class TestQuery:
    """Status commands."""

    def test_query_returns_columns_and_rows(self, client, mock_psycopg2):
        _, _, mock_cursor = mock_psycopg2
        mock_cursor.description = [("database", None), ("cl_active", None)]
        mock_cursor.fetchall.return_value = [("db1", 3), ("db2", 0)]

        result = client.query("SHOW pools;", "pools")

        mock_cursor.execute.assert_called_once_with("SHOW pools;")
        assert result.column_names == ["database", "cl_active"]
        assert result.rows == [("db1", 3), ("db2", 0)]

    def test_no_result_set(self, client, mock_psycopg2):
        _, _, mock_cursor = mock_psycopg2
        mock_cursor.description = None

        with pytest.raises(NamespaceQueryError) as exc_info:
            client.query("SHOW pools;", "pools")

        assert exc_info.value.namespace == "pools"
        assert "column list" in str(exc_info.value)

    def test_command_error_keeps_connection(self, client, mock_psycopg2):
        _, mock_conn, mock_cursor = mock_psycopg2
        mock_cursor.execute.side_effect = psycopg2.ProgrammingError("unknown command")

        with pytest.raises(NamespaceQueryError) as exc_info:
            client.query("SHOW nonsense;", "nonsense")

        assert exc_info.value.namespace == "nonsense"
        mock_conn.close.assert_not_called()

    def test_connection_error_discards_connection(self, client, mock_psycopg2):
        _, mock_conn, mock_cursor = mock_psycopg2
        mock_cursor.execute.side_effect = psycopg2.InterfaceError("connection already closed")

        with pytest.raises(NamespaceQueryError):
            client.query("SHOW stats;", "stats")

        mock_conn.close.assert_called_once()

    def test_namespace_defaults_to_command(self, client, mock_psycopg2):
        _, _, mock_cursor = mock_psycopg2
        mock_cursor.description = None

        with pytest.raises(NamespaceQueryError) as exc_info:
            client.query("SHOW lists;")

        assert exc_info.value.namespace == "SHOW lists;"


class TestClose:
    """Connection shutdown."""

    def test_close_without_connection(self, client, mock_psycopg2):
        client.close()

    def test_close_open_connection(self, client, mock_psycopg2):
        mock_connect, mock_conn, _ = mock_psycopg2
        client.ping()

        client.close()
        client.ping()

        mock_conn.close.assert_called_once()
        assert mock_connect.call_count == 2
