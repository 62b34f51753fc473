"""Compile the column schema into per-namespace metric maps."""

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import List, Mapping, Tuple

from ..exceptions import SchemaError
from ..utils.metrics import MetricDescriptor, ValueKind
from .schema import KV_SCHEMAS, ROW_SCHEMAS, ColumnSpec, ColumnUsage, Schema


# PgBouncer reports durations in microseconds; Prometheus wants seconds.
MICROSECONDS = 1e-6


class RowStrategy(Enum):
    """Shape of the rows returned by a namespace's status command."""

    ROWS = "rows"
    KEY_VALUE = "key_value"


@dataclass(frozen=True)
class CompiledMetric:
    """Output descriptor and conversion rule for one status column."""

    descriptor: MetricDescriptor
    value_kind: ValueKind
    scale_factor: float = 1.0


@dataclass(frozen=True)
class NamespaceMap:
    """Everything needed to turn the rows of one status command into metrics."""

    namespace: str
    label_column_names: Tuple[str, ...]
    metrics_by_column: Mapping[str, CompiledMetric]
    strategy: RowStrategy

    @property
    def command(self) -> str:
        return f"SHOW {self.namespace};"


_VALUE_KINDS = {
    ColumnUsage.COUNTER: (ValueKind.COUNTER, 1.0),
    ColumnUsage.GAUGE: (ValueKind.GAUGE, 1.0),
    ColumnUsage.SCALED_GAUGE: (ValueKind.GAUGE, MICROSECONDS),
}


def build_metric_maps(
    prefix: str,
    row_schemas: Schema = ROW_SCHEMAS,
    kv_schemas: Schema = KV_SCHEMAS,
) -> List[NamespaceMap]:
    """
    Build the metric maps for every namespace, row groups first.

    Args:
        prefix: Metric name prefix, e.g. "pgbouncer"
        row_schemas: Namespaces returning one row per entity
        kv_schemas: Namespaces returning (key, value, ...) rows

    Returns:
        List[NamespaceMap]: One map per namespace, in declaration order

    Raises:
        SchemaError: If a column is declared twice in a namespace or a
            namespace appears in both schema tables
    """
    overlap = set(row_schemas) & set(kv_schemas)
    if overlap:
        name = sorted(overlap)[0]
        raise SchemaError(f"Namespace {name} declared as both row and key/value group", name)

    maps = [
        _compile_namespace(prefix, namespace, columns, RowStrategy.ROWS)
        for namespace, columns in row_schemas.items()
    ]
    maps.extend(
        _compile_namespace(prefix, namespace, columns, RowStrategy.KEY_VALUE)
        for namespace, columns in kv_schemas.items()
    )
    return maps


def _compile_namespace(
    prefix: str,
    namespace: str,
    columns: Tuple[ColumnSpec, ...],
    strategy: RowStrategy,
) -> NamespaceMap:
    seen = set()
    for column in columns:
        if column.name in seen:
            raise SchemaError(f"Duplicate column {column.name} in namespace {namespace}", namespace)
        seen.add(column.name)

    labels = tuple(c.name for c in columns if c.usage is ColumnUsage.LABEL)

    metrics = {}
    for column in columns:
        if column.usage is ColumnUsage.LABEL:
            continue
        value_kind, scale_factor = _VALUE_KINDS[column.usage]
        descriptor = MetricDescriptor(
            name=f"{prefix}_{namespace}_{column.exported_name or column.name}",
            documentation=column.description,
            label_names=labels,
        )
        metrics[column.name] = CompiledMetric(descriptor, value_kind, scale_factor)

    return NamespaceMap(
        namespace=namespace,
        label_column_names=labels,
        metrics_by_column=MappingProxyType(metrics),
        strategy=strategy,
    )
