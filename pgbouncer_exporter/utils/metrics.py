"""Metric data structures shared by the metric maps, converters and collector."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple


class ValueKind(Enum):
    """Prometheus value type of an exported metric."""

    COUNTER = "counter"
    GAUGE = "gauge"


@dataclass(frozen=True)
class MetricDescriptor:
    """Name, help text and ordered label names of one exported metric."""

    name: str
    documentation: str
    label_names: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Observation:
    """One sample produced from a status row."""

    descriptor: MetricDescriptor
    value_kind: ValueKind
    value: float
    label_values: Tuple[str, ...] = ()


@dataclass
class ScrapeOutcome:
    """Result of a single poll of PgBouncer."""

    up: bool = False
    observations: List[Observation] = field(default_factory=list)
    errors: List[Exception] = field(default_factory=list)  # non-fatal
    fatal_error: Optional[Exception] = None
    duration_seconds: float = 0.0

    @property
    def error_count(self) -> int:
        """Non-fatal errors plus the fatal error, if any."""
        return len(self.errors) + (1 if self.fatal_error is not None else 0)
