"""Base collector abstract class for Prometheus collectors."""

from abc import ABC, abstractmethod
from typing import Iterable
import logging
import time
from functools import wraps

from prometheus_client.core import CounterMetricFamily, GaugeMetricFamily, Metric

from ..utils.metrics import MetricDescriptor, ScrapeOutcome, ValueKind


class BaseCollector(ABC):
    """Abstract base class for collectors registered with a prometheus_client registry."""

    def __init__(self, client, logger: logging.Logger):
        """
        Initialize base collector.

        Args:
            client: Client used to query the monitored service
            logger: Logger instance
        """
        self.client = client
        self.logger = logger.getChild(self.__class__.__name__)

    @abstractmethod
    def describe(self) -> Iterable[Metric]:
        """
        Describe every metric family the collector can emit.

        Returns:
            Iterable[Metric]: Metric families without samples
        """
        pass

    @abstractmethod
    def collect(self) -> Iterable[Metric]:
        """
        Poll the monitored service and return metric families.

        Returns:
            Iterable[Metric]: Metric families with samples

        Note:
            Implementations should poll through a @safe_scrape method so a
            failed poll never escapes into the HTTP handler.
        """
        pass

    @staticmethod
    def _metric_family(descriptor: MetricDescriptor, value_kind: ValueKind) -> Metric:
        """
        Create an empty metric family for a descriptor.

        Args:
            descriptor: Metric name, help text and label names
            value_kind: Counter or gauge

        Returns:
            Metric: CounterMetricFamily or GaugeMetricFamily
        """
        family_class = CounterMetricFamily if value_kind is ValueKind.COUNTER else GaugeMetricFamily
        return family_class(
            descriptor.name,
            descriptor.documentation,
            labels=list(descriptor.label_names)
        )


def safe_scrape(func):
    """
    Decorator to turn poll-fatal exceptions into a failed ScrapeOutcome.

    The wrapped method receives a fresh ScrapeOutcome to fill in. Whatever it
    managed to collect before failing is kept; the exception is logged and
    stored as the outcome's fatal error, and the poll duration is always
    recorded.

    Args:
        func: Scrape method taking (self, outcome)

    Returns:
        Wrapped function returning the ScrapeOutcome
    """
    @wraps(func)
    def wrapper(self, *args, **kwargs) -> ScrapeOutcome:
        outcome = ScrapeOutcome()
        start_time = time.monotonic()
        try:
            func(self, outcome, *args, **kwargs)
        except Exception as e:
            self.logger.error(f"Scrape failed: {e}", exc_info=True)
            outcome.fatal_error = e
        finally:
            outcome.duration_seconds = time.monotonic() - start_time
        return outcome
    return wrapper
