"""Shared pytest configuration and fixtures."""

import pytest
from types import MappingProxyType

from pgbouncer_exporter.collectors.metric_map import build_metric_maps
from pgbouncer_exporter.collectors.schema import ColumnSpec, ColumnUsage
from pgbouncer_exporter.utils.logger import setup_logger


@pytest.fixture
def logger():
    """Create logger for tests."""
    return setup_logger("test", level="DEBUG")


@pytest.fixture
def row_schemas():
    """Small row-group schema with two labels, a gauge and a scaled gauge."""
    return MappingProxyType({
        "pools": (
            ColumnSpec("name", ColumnUsage.LABEL),
            ColumnSpec("pool_mode", ColumnUsage.LABEL),
            ColumnSpec("cl_active", ColumnUsage.GAUGE, description="Active clients"),
            ColumnSpec("avg_wait", ColumnUsage.SCALED_GAUGE, "avg_wait_seconds", "Average wait"),
        ),
    })


@pytest.fixture
def kv_schemas():
    """Small key/value schema with one gauge and one counter."""
    return MappingProxyType({
        "config": (
            ColumnSpec("max_client_conn", ColumnUsage.GAUGE, description="Maximum client connections"),
            ColumnSpec("listen_backlog", ColumnUsage.COUNTER, description="Listen backlog"),
        ),
    })


@pytest.fixture
def metric_maps(row_schemas, kv_schemas):
    """Metric maps compiled from the small test schemas."""
    return build_metric_maps("pgbouncer", row_schemas, kv_schemas)


@pytest.fixture
def pools_map(metric_maps):
    """Compiled map for the test "pools" namespace."""
    return next(m for m in metric_maps if m.namespace == "pools")


@pytest.fixture
def config_map(metric_maps):
    """Compiled map for the test "config" namespace."""
    return next(m for m in metric_maps if m.namespace == "config")
