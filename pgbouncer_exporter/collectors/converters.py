"""Row converters turning one status row into observations.

Both converters are pure: they take a compiled NamespaceMap and one row and
return the observations plus any errors, without touching shared state.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..exceptions import RowShapeError, ValueCoercionError
from ..utils.metrics import Observation
from .coercion import to_float
from .metric_map import NamespaceMap, RowStrategy


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RowResult:
    """A single row of a status command result."""

    column_names: Tuple[str, ...]
    column_index: Dict[str, int]
    values: Tuple[Any, ...]

    @classmethod
    def from_values(cls, column_names: Sequence[str], values: Sequence[Any]) -> "RowResult":
        names = tuple(column_names)
        return cls(names, {name: i for i, name in enumerate(names)}, tuple(values))


@dataclass
class ConversionResult:
    """Observations and errors produced from one row."""

    observations: List[Observation] = field(default_factory=list)
    errors: List[Exception] = field(default_factory=list)  # non-fatal
    fatal: Optional[Exception] = None


def convert_row(namespace_map: NamespaceMap, row: RowResult) -> ConversionResult:
    """
    Convert a row of a row-group namespace (databases, pools, stats, ...).

    Label columns are resolved first, in the order the metric descriptors
    declare them. Every other known column becomes one observation. Unknown
    columns are ignored and unparseable values are reported as non-fatal
    errors without aborting the rest of the row.
    """
    result = ConversionResult()
    labels = tuple(_label_value(row, name) for name in namespace_map.label_column_names)

    for idx, column in enumerate(row.column_names):
        metric = namespace_map.metrics_by_column.get(column)
        if metric is None:
            logger.debug(f"Ignoring column for metric conversion: {namespace_map.namespace} {column}")
            continue

        raw = row.values[idx]
        value, ok = to_float(raw)
        if not ok:
            result.errors.append(ValueCoercionError(namespace_map.namespace, column, raw))
            continue

        logger.debug(f"Successfully parsed column: {namespace_map.namespace} {column} {raw!r}")
        result.observations.append(Observation(
            descriptor=metric.descriptor,
            value_kind=metric.value_kind,
            value=value * metric.scale_factor,
            label_values=labels,
        ))

    return result


def convert_key_value(namespace_map: NamespaceMap, row: RowResult) -> ConversionResult:
    """
    Convert a ``(key, value, ...)`` row of a key/value namespace such as config.

    A row with fewer than two columns or a non-text key is a fatal error for
    the namespace. Keys without a metric are ignored.
    """
    result = ConversionResult()

    if len(row.values) < 2:
        result.fatal = RowShapeError(
            f"Received row results for KV parsing, but not enough columns: {namespace_map.namespace} {row.values!r}",
            namespace_map.namespace,
            row.values,
        )
        return result

    key, raw = row.values[0], row.values[1]
    if not isinstance(key, str):
        result.fatal = RowShapeError(
            f"Received row results for KV parsing, but key field isn't string: {namespace_map.namespace} {row.values!r}",
            namespace_map.namespace,
            row.values,
        )
        return result

    metric = namespace_map.metrics_by_column.get(key)
    if metric is None:
        logger.debug(f"Ignoring key for KV conversion: {namespace_map.namespace} {key}")
        return result

    value, ok = to_float(raw)
    if not ok:
        result.errors.append(ValueCoercionError(namespace_map.namespace, key, raw))
        return result

    logger.debug(f"Successfully parsed key: {namespace_map.namespace} {key} {raw!r}")
    result.observations.append(Observation(
        descriptor=metric.descriptor,
        value_kind=metric.value_kind,
        value=value * metric.scale_factor,
    ))
    return result


CONVERTERS = {
    RowStrategy.ROWS: convert_row,
    RowStrategy.KEY_VALUE: convert_key_value,
}


def convert(namespace_map: NamespaceMap, row: RowResult) -> ConversionResult:
    """Convert a row with the strategy declared by its namespace map."""
    return CONVERTERS[namespace_map.strategy](namespace_map, row)


def _label_value(row: RowResult, name: str) -> str:
    idx = row.column_index.get(name)
    if idx is None:
        return ""

    value = row.values[idx]
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return str(int(value))
    if isinstance(value, (int, float, Decimal)):
        return str(value)
    return ""
