"""Tests for the metric map builder and the built-in schema."""

from types import MappingProxyType

import pytest

from pgbouncer_exporter.collectors.metric_map import MICROSECONDS, RowStrategy, build_metric_maps
from pgbouncer_exporter.collectors.schema import KV_SCHEMAS, ROW_SCHEMAS, ColumnSpec, ColumnUsage
from pgbouncer_exporter.exceptions import SchemaError
from pgbouncer_exporter.utils.metrics import ValueKind


class TestBuildMetricMaps:
    """Compilation of test schemas."""

    def test_row_groups_come_first(self, metric_maps):
        assert [m.namespace for m in metric_maps] == ["pools", "config"]
        assert [m.strategy for m in metric_maps] == [RowStrategy.ROWS, RowStrategy.KEY_VALUE]

    def test_labels_in_declaration_order(self, pools_map):
        assert pools_map.label_column_names == ("name", "pool_mode")

    def test_labels_have_no_metric(self, pools_map):
        assert set(pools_map.metrics_by_column) == {"cl_active", "avg_wait"}

    def test_descriptor_name_and_labels(self, pools_map):
        descriptor = pools_map.metrics_by_column["cl_active"].descriptor
        assert descriptor.name == "pgbouncer_pools_cl_active"
        assert descriptor.documentation == "Active clients"
        assert descriptor.label_names == ("name", "pool_mode")

    def test_exported_name_override(self, pools_map):
        descriptor = pools_map.metrics_by_column["avg_wait"].descriptor
        assert descriptor.name == "pgbouncer_pools_avg_wait_seconds"

    def test_scaled_gauge(self, pools_map):
        metric = pools_map.metrics_by_column["avg_wait"]
        assert metric.value_kind is ValueKind.GAUGE
        assert metric.scale_factor == MICROSECONDS

    def test_gauge_and_counter(self, config_map):
        assert config_map.metrics_by_column["max_client_conn"].value_kind is ValueKind.GAUGE
        assert config_map.metrics_by_column["max_client_conn"].scale_factor == 1.0
        assert config_map.metrics_by_column["listen_backlog"].value_kind is ValueKind.COUNTER
        assert config_map.metrics_by_column["listen_backlog"].scale_factor == 1.0

    def test_key_value_metrics_are_unlabeled(self, config_map):
        assert config_map.label_column_names == ()
        assert config_map.metrics_by_column["max_client_conn"].descriptor.label_names == ()

    def test_prefix(self, row_schemas, kv_schemas):
        maps = build_metric_maps("bouncer", row_schemas, kv_schemas)
        assert maps[0].metrics_by_column["cl_active"].descriptor.name == "bouncer_pools_cl_active"

    def test_command(self, pools_map):
        assert pools_map.command == "SHOW pools;"

    def test_maps_are_read_only(self, pools_map):
        with pytest.raises(TypeError):
            pools_map.metrics_by_column["new"] = None

    def test_duplicate_column_rejected(self):
        schema = MappingProxyType({
            "pools": (
                ColumnSpec("cl_active", ColumnUsage.GAUGE),
                ColumnSpec("cl_active", ColumnUsage.COUNTER),
            ),
        })
        with pytest.raises(SchemaError) as exc_info:
            build_metric_maps("pgbouncer", schema, {})
        assert exc_info.value.namespace == "pools"

    def test_namespace_in_both_tables_rejected(self, row_schemas):
        with pytest.raises(SchemaError):
            build_metric_maps("pgbouncer", row_schemas, row_schemas)


class TestBuiltinSchema:
    """The built-in schema compiles and keeps the published metric names."""

    @pytest.fixture
    def maps(self):
        return {m.namespace: m for m in build_metric_maps("pgbouncer")}

    def test_namespaces(self, maps):
        assert list(maps) == ["databases", "lists", "pools", "stats", "config"]
        assert set(ROW_SCHEMAS) == {"databases", "lists", "pools", "stats"}
        assert set(KV_SCHEMAS) == {"config"}

    def test_descriptor_names_unique(self, maps):
        names = [
            metric.descriptor.name
            for mapping in maps.values()
            for metric in mapping.metrics_by_column.values()
        ]
        assert len(names) == len(set(names))

    def test_pools_labels(self, maps):
        assert maps["pools"].label_column_names == ("database", "user", "pool_mode")

    def test_databases_labels(self, maps):
        assert maps["databases"].label_column_names == (
            "name", "host", "port", "database", "force_user", "pool_mode"
        )

    @pytest.mark.parametrize("namespace, column, name", [
        ("stats", "total_query_time", "pgbouncer_stats_query_time_microseconds_total"),
        ("stats", "avg_query_count", "pgbouncer_stats_avg_queries_per_second"),
        ("pools", "maxwait", "pgbouncer_pools_maxwait_seconds"),
        ("pools", "cl_active", "pgbouncer_pools_cl_active"),
        ("databases", "reserve_pool", "pgbouncer_databases_reserve_pool_size"),
        ("config", "max_client_conn", "pgbouncer_config_max_client_conn"),
        ("config", "pkt_buf", "pgbouncer_config_pkt_buf_bytes"),
    ])
    def test_published_names(self, maps, namespace, column, name):
        assert maps[namespace].metrics_by_column[column].descriptor.name == name

    def test_stats_durations_are_scaled(self, maps):
        stats = maps["stats"].metrics_by_column
        for column in ("avg_query", "avg_query_time", "avg_wait_time", "avg_xact_time",
                       "total_query_time", "total_wait_time", "total_xact_time"):
            assert stats[column].scale_factor == MICROSECONDS
        assert stats["total_requests"].scale_factor == 1.0

    def test_config_counters(self, maps):
        config = maps["config"].metrics_by_column
        counters = {k for k, m in config.items() if m.value_kind is ValueKind.COUNTER}
        assert counters == {"listen_backlog", "disable_pqexec", "pkt_buf"}
