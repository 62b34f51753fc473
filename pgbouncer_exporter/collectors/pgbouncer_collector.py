"""PgBouncer scrape orchestrator and Prometheus collector."""

import logging
import threading
from typing import Iterator, List, Optional, Sequence

from prometheus_client.core import CounterMetricFamily, GaugeMetricFamily, Metric

from ..exceptions import ServiceUnavailableError
from ..utils.metrics import ScrapeOutcome
from .base import BaseCollector, safe_scrape
from .converters import RowResult, convert
from .metric_map import NamespaceMap, build_metric_maps


# (name suffix, family class, help text)
HEALTH_METRICS = (
    ("up", GaugeMetricFamily, "Was the PgBouncer instance query successful?"),
    ("last_scrape_duration_seconds", GaugeMetricFamily, "Duration of the last scrape of metrics from PgBouncer."),
    ("scrapes_total", CounterMetricFamily, "Total number of times PgBouncer has been scraped for metrics."),
    ("last_scrape_error", GaugeMetricFamily,
     "Number of errors encountered during the last scrape of metrics from PgBouncer (0 for success)."),
)


class PgBouncerCollector(BaseCollector):
    """
    Collector polling the PgBouncer admin console on every Prometheus scrape.

    Each call to collect() runs one poll: a liveness probe, then one
    ``SHOW <namespace>;`` per compiled namespace map. Polls are serialized by
    an exclusive lock, which also guards the health metrics (up, last scrape
    duration, scrape count and last scrape error count) so a caller never sees
    a half-finished poll.
    """

    def __init__(
        self,
        client,
        logger: logging.Logger,
        namespace: str = "pgbouncer",
        metric_maps: Optional[List[NamespaceMap]] = None
    ):
        """
        Initialize PgBouncer collector.

        Args:
            client: PgBouncerClient (or any object with ping() and query())
            logger: Logger instance
            namespace: Metric name prefix
            metric_maps: Compiled namespace maps, built from the built-in schema if omitted
        """
        super().__init__(client, logger)
        self.namespace = namespace
        self.metric_maps = metric_maps if metric_maps is not None else build_metric_maps(namespace)

        self._lock = threading.Lock()
        self._up = 0
        self._last_scrape_duration = 0.0
        self._total_scrapes = 0
        self._last_scrape_error = 0

    def describe(self) -> Iterator[Metric]:
        """Describe all namespace metrics and health metrics without querying pgbouncer."""
        for mapping in self.metric_maps:
            for metric in mapping.metrics_by_column.values():
                yield self._metric_family(metric.descriptor, metric.value_kind)
        yield from self._health_families()

    def collect(self) -> Iterator[Metric]:
        """Run one poll and return its metric families plus the health metrics."""
        with self._lock:
            outcome = self._poll_locked()
            families = self._outcome_families(outcome)
        yield from families

    def poll(self) -> ScrapeOutcome:
        """Run one poll under the collector lock and return its outcome."""
        with self._lock:
            return self._poll_locked()

    def _poll_locked(self) -> ScrapeOutcome:
        outcome = self.scrape()
        self._record(outcome)
        return outcome

    @safe_scrape
    def scrape(self, outcome: ScrapeOutcome) -> None:
        """
        Poll pgbouncer, filling in the given outcome.

        Must be called with the collector lock held.

        Args:
            outcome: Fresh outcome supplied by @safe_scrape
        """
        self.logger.info("Starting scrape")
        self._total_scrapes += 1
        self._last_scrape_error = 0

        try:
            self.client.ping()
        except ServiceUnavailableError as e:
            self.logger.error(str(e))
            outcome.up = False
            outcome.fatal_error = e
            return

        self.logger.debug("Backend is up, proceeding with scrape")
        outcome.up = True

        for mapping in self.metric_maps:
            self._scrape_namespace(mapping, outcome)

    def _scrape_namespace(self, mapping: NamespaceMap, outcome: ScrapeOutcome) -> None:
        """
        Query one namespace and convert its rows.

        Query errors propagate and end the poll. Conversion errors are
        recorded on the outcome; a fatal conversion error stops this
        namespace only.
        """
        result = self.client.query(mapping.command, mapping.namespace)

        column_names = tuple(result.column_names)
        column_index = {name: i for i, name in enumerate(column_names)}

        errors = []
        for values in result.rows:
            converted = convert(mapping, RowResult(column_names, column_index, tuple(values)))
            outcome.observations.extend(converted.observations)
            errors.extend(converted.errors)
            if converted.fatal is not None:
                errors.append(converted.fatal)
                break

        for error in errors:
            self.logger.error(str(error))
        outcome.errors.extend(errors)

    def _record(self, outcome: ScrapeOutcome) -> None:
        self._up = 1 if outcome.up else 0
        self._last_scrape_duration = outcome.duration_seconds
        self._last_scrape_error = outcome.error_count
        self.logger.info(
            "Ending scrape",
            extra={
                "up": self._up,
                "duration_seconds": round(outcome.duration_seconds, 6),
                "observations": len(outcome.observations),
                "errors": self._last_scrape_error
            }
        )

    def _outcome_families(self, outcome: ScrapeOutcome) -> List[Metric]:
        families = {}
        for observation in outcome.observations:
            name = observation.descriptor.name
            family = families.get(name)
            if family is None:
                family = self._metric_family(observation.descriptor, observation.value_kind)
                families[name] = family
            family.add_metric(list(observation.label_values), observation.value)

        health = (self._up, self._last_scrape_duration, self._total_scrapes, self._last_scrape_error)
        return list(families.values()) + self._health_families(health)

    def _health_families(self, values: Optional[Sequence[float]] = None) -> List[Metric]:
        """
        Build the health metric families.

        Args:
            values: Samples in HEALTH_METRICS order; empty families if omitted

        Returns:
            List[Metric]: up, last scrape duration, scrape count, last scrape error
        """
        families = []
        for index, (suffix, family_class, documentation) in enumerate(HEALTH_METRICS):
            family = family_class(f"{self.namespace}_{suffix}", documentation, labels=[])
            if values is not None:
                family.add_metric([], values[index])
            families.append(family)
        return families
