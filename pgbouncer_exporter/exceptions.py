"""Exporter exceptions."""
from typing import Any, Optional


class ExporterError(Exception):
    """Base exception for all exporter errors."""
    pass


class ConfigError(ExporterError):
    """Raised when the exporter configuration is invalid."""
    pass


class SchemaError(ExporterError):
    """Raised at startup when the built-in column schema is inconsistent."""

    def __init__(self, message: str, namespace: str):
        super().__init__(message)
        self.namespace = namespace


class ValueCoercionError(ExporterError):
    """A single cell could not be converted to a number. Non-fatal."""

    def __init__(self, namespace: str, column: str, value: Any):
        super().__init__(
            f"Unexpected error parsing column: namespace={namespace} column={column} value={value!r}"
        )
        self.namespace = namespace
        self.column = column
        self.value = value


class RowShapeError(ExporterError):
    """A key/value row does not have the expected shape. Fatal for its namespace."""

    def __init__(self, message: str, namespace: str, values: Optional[tuple] = None):
        super().__init__(message)
        self.namespace = namespace
        self.values = values


class NamespaceQueryError(ExporterError):
    """A status command could not be run or its columns could not be read. Fatal for the poll."""

    def __init__(self, message: str, namespace: str):
        super().__init__(message)
        self.namespace = namespace


class ServiceUnavailableError(ExporterError):
    """PgBouncer did not answer the liveness probe."""
    pass
