"""PgBouncer admin console client."""

import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional, Tuple

import psycopg2

from ..exceptions import NamespaceQueryError, ServiceUnavailableError


PROBE_COMMAND = "SHOW VERSION;"


@dataclass
class QueryResult:
    """Column names and rows returned by one status command."""

    column_names: List[str]
    rows: List[Tuple[Any, ...]] = field(default_factory=list)


class PgBouncerClient:
    """
    Single connection to the PgBouncer admin console.

    The connection is opened lazily, kept open between polls and discarded
    after a connection-level error so the next call reconnects. Polls are
    serialized by the collector, so one connection is all that is needed.
    """

    def __init__(
        self,
        connection_string: str,
        logger: logging.Logger,
        connect_timeout: int = 10
    ):
        """
        Initialize PgBouncer client.

        Args:
            connection_string: libpq DSN or URI of the pgbouncer admin database
            logger: Logger instance
            connect_timeout: Connection timeout in seconds
        """
        self.connection_string = connection_string
        self.connect_timeout = connect_timeout
        self.logger = logger.getChild(self.__class__.__name__)
        self._conn = None

    def ping(self) -> None:
        """
        Run the liveness probe.

        Raises:
            ServiceUnavailableError: If pgbouncer cannot be reached or the probe fails
        """
        try:
            with self._connection().cursor() as cursor:
                cursor.execute(PROBE_COMMAND)
        except psycopg2.Error as e:
            self._discard_on_connection_error(e)
            raise ServiceUnavailableError(f"Error pinging pgbouncer: {e}") from e

    def query(self, command: str, namespace: Optional[str] = None) -> QueryResult:
        """
        Run a status command and fetch all of its rows.

        Args:
            command: Admin console command, e.g. "SHOW POOLS;"
            namespace: Namespace name used in error messages

        Returns:
            QueryResult: Column names and rows

        Raises:
            NamespaceQueryError: If the command fails or returns no result set
        """
        namespace = namespace or command
        try:
            with self._connection().cursor() as cursor:
                cursor.execute(command)
                if cursor.description is None:
                    raise NamespaceQueryError(
                        f"Error retrieving column list for: {namespace}", namespace
                    )
                column_names = [column[0] for column in cursor.description]
                rows = cursor.fetchall()
        except psycopg2.Error as e:
            self._discard_on_connection_error(e)
            raise NamespaceQueryError(
                f"Error running query on database: {namespace} {e}", namespace
            ) from e

        return QueryResult(column_names=column_names, rows=rows)

    def close(self) -> None:
        """Close the connection if it is open."""
        if self._conn is not None:
            try:
                self._conn.close()
            except psycopg2.Error as e:
                self.logger.warning(f"Error closing pgbouncer connection: {e}")
            self._conn = None

    def _connection(self):
        if self._conn is None or self._conn.closed:
            self.logger.debug("Connecting to pgbouncer")
            conn = psycopg2.connect(
                self.connection_string,
                connect_timeout=self.connect_timeout
            )
            # The admin console does not support transactions
            conn.autocommit = True
            self._conn = conn
        return self._conn

    def _discard_on_connection_error(self, error: Exception) -> None:
        if isinstance(error, (psycopg2.OperationalError, psycopg2.InterfaceError)):
            self.logger.warning(f"Dropping pgbouncer connection after error: {error}")
            self.close()
