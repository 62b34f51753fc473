"""Pydantic configuration models for the exporter."""

from pydantic import BaseModel, Field, field_validator
from typing import Tuple
import re


DEFAULT_CONNECTION_STRING = "postgres://postgres:@localhost:6543/pgbouncer?sslmode=disable"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class PgBouncerConfig(BaseModel):
    """Connection to the PgBouncer admin console."""
    connection_string: str = DEFAULT_CONNECTION_STRING
    connect_timeout: int = Field(default=10, ge=1, le=300)  # seconds

    @field_validator('connection_string')
    @classmethod
    def validate_connection_string(cls, v: str) -> str:
        """Reject empty connection strings."""
        if not v.strip():
            raise ValueError('Connection string must not be empty')
        return v


class WebConfig(BaseModel):
    """HTTP exposition settings."""
    listen_address: str = ":9127"
    telemetry_path: str = "/metrics"

    @field_validator('listen_address')
    @classmethod
    def validate_listen_address(cls, v: str) -> str:
        """Listen address must be [host]:port."""
        if not re.match(r'^(\[[0-9a-fA-F:.]+\]|[^:\s]*):\d{1,5}$', v):
            raise ValueError('Listen address must have the form [host]:port')
        port = int(v.rsplit(':', 1)[1])
        if not 0 < port < 65536:
            raise ValueError('Listen port must be between 1 and 65535')
        return v

    @field_validator('telemetry_path')
    @classmethod
    def validate_telemetry_path(cls, v: str) -> str:
        """Telemetry path must be absolute and must not shadow the landing page."""
        if not v.startswith('/') or v == '/':
            raise ValueError('Telemetry path must start with / and must not be /')
        return v

    def bind_address(self) -> Tuple[str, int]:
        """
        Split the listen address into host and port.

        Returns:
            Tuple[str, int]: Host ("" for all interfaces) and port
        """
        host, port = self.listen_address.rsplit(':', 1)
        return host.strip('[]'), int(port)


class LoggingConfig(BaseModel):
    """Logging settings."""
    level: str = "INFO"

    @field_validator('level')
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Normalize and validate log level."""
        level = v.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"Log level must be one of {', '.join(LOG_LEVELS)}")
        return level


class ExporterConfig(BaseModel):
    """Root configuration model for the exporter."""
    namespace: str = "pgbouncer"  # Metric name prefix
    pgbouncer: PgBouncerConfig = Field(default_factory=PgBouncerConfig)
    web: WebConfig = Field(default_factory=WebConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator('namespace')
    @classmethod
    def validate_namespace(cls, v: str) -> str:
        """Namespace must be a valid Prometheus metric name prefix."""
        if not re.match(r'^[a-zA-Z_][a-zA-Z0-9_]*$', v):
            raise ValueError('Namespace must be a valid Prometheus metric name prefix')
        return v
