"""Main application entry point for the PgBouncer Prometheus exporter."""

import argparse
import logging
import signal
import socket
import sys
from socketserver import ThreadingMixIn
from typing import Optional
from wsgiref.simple_server import WSGIRequestHandler, WSGIServer, make_server

from prometheus_client import CollectorRegistry, PlatformCollector, ProcessCollector, make_wsgi_app

from .collectors.pgbouncer_collector import PgBouncerCollector
from .config.loader import ConfigLoader
from .config.models import ExporterConfig
from .exceptions import ConfigError
from .services.pgbouncer_client import PgBouncerClient
from .utils.logger import setup_logger


__version__ = "0.1.0"

INDEX_HTML = """<html>
<head><title>PgBouncer Exporter</title></head>
<body>
<h1>PgBouncer Exporter</h1>
<p><a href="{metrics_path}">Metrics</a></p>
</body>
</html>
"""


class _ThreadingWSGIServer(ThreadingMixIn, WSGIServer):
    """WSGI server handling each request in its own thread."""
    daemon_threads = True


class _ThreadingWSGIServerV6(_ThreadingWSGIServer):
    """IPv6 variant, used when the listen host is an IPv6 address."""
    address_family = socket.AF_INET6


def server_class_for(host: str):
    """
    Pick the server class matching the address family of *host*.

    Args:
        host: Host part of the listen address, without brackets

    Returns:
        type: _ThreadingWSGIServerV6 for IPv6 literals, _ThreadingWSGIServer otherwise
    """
    return _ThreadingWSGIServerV6 if ":" in host else _ThreadingWSGIServer


class _QuietHandler(WSGIRequestHandler):
    """Request handler logging through the exporter logger instead of stderr."""

    logger = logging.getLogger("pgbouncer_exporter.http")

    def log_message(self, format, *args):
        self.logger.debug(format % args)


class ExporterApp:
    """
    PgBouncer exporter application.

    Wires the PgBouncer client, the collector and a prometheus_client
    registry together and serves them over HTTP. Every request to the
    telemetry path runs one poll of PgBouncer.
    """

    def __init__(self, config: ExporterConfig, logger: Optional[logging.Logger] = None):
        """
        Initialize exporter application.

        Args:
            config: Validated exporter configuration
            logger: Logger instance (a JSON logger is created if omitted)
        """
        self.config = config
        self.logger = logger or setup_logger(level=config.logging.level)
        self.server = None

        self.client = PgBouncerClient(
            config.pgbouncer.connection_string,
            self.logger,
            connect_timeout=config.pgbouncer.connect_timeout
        )
        self.collector = PgBouncerCollector(self.client, self.logger, namespace=config.namespace)

        self.registry = CollectorRegistry(auto_describe=True)
        ProcessCollector(registry=self.registry)
        PlatformCollector(registry=self.registry)
        self.registry.register(self.collector)

        self._metrics_app = make_wsgi_app(self.registry)

    def wsgi_app(self, environ, start_response):
        """
        Route requests to the metrics endpoint or the landing page.

        Args:
            environ: WSGI environment
            start_response: WSGI start_response callable

        Returns:
            Iterable[bytes]: Response body
        """
        path = environ.get('PATH_INFO') or '/'

        if path == self.config.web.telemetry_path:
            return self._metrics_app(environ, start_response)

        if path == '/':
            body = INDEX_HTML.format(metrics_path=self.config.web.telemetry_path).encode('utf-8')
            start_response('200 OK', [('Content-Type', 'text/html; charset=utf-8')])
            return [body]

        start_response('404 Not Found', [('Content-Type', 'text/plain; charset=utf-8')])
        return [b'Not Found\n']

    def serve_forever(self) -> None:
        """
        Serve HTTP until interrupted (SIGTERM/SIGINT).
        """
        host, port = self.config.web.bind_address()

        signal.signal(signal.SIGTERM, self._signal_handler)
        signal.signal(signal.SIGINT, self._signal_handler)

        self.server = make_server(
            host,
            port,
            self.wsgi_app,
            server_class=server_class_for(host),
            handler_class=_QuietHandler
        )
        self.logger.info(
            f"Starting pgbouncer exporter version {__version__}",
            extra={
                "listen_address": self.config.web.listen_address,
                "telemetry_path": self.config.web.telemetry_path
            }
        )

        try:
            self.server.serve_forever()
        finally:
            self.shutdown()

    def shutdown(self) -> None:
        """Close the HTTP server and the PgBouncer connection."""
        if self.server is not None:
            self.server.server_close()
            self.server = None
        self.client.close()
        self.logger.info("Exporter stopped")

    def _signal_handler(self, signum, frame):
        """
        Handle shutdown signals.

        Args:
            signum: Signal number
            frame: Current stack frame
        """
        signal_name = signal.Signals(signum).name
        self.logger.info(f"Received {signal_name}, shutting down...")
        sys.exit(0)


def build_parser() -> argparse.ArgumentParser:
    """
    Build the command line parser.

    Returns:
        argparse.ArgumentParser: Parser for the exporter flags
    """
    parser = argparse.ArgumentParser(
        description='Prometheus exporter for PgBouncer',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Scrape the local admin console on the default port
  pgbouncer-exporter

  # Custom connection string and listen address
  pgbouncer-exporter --pgBouncer.connectionString postgres://stats@db:6432/pgbouncer \\
      --web.listen-address :9127

  # Use a YAML configuration file
  pgbouncer-exporter --config /etc/pgbouncer-exporter/config.yaml

The connection string can also be set with the DATA_SOURCE_NAME environment
variable. Flags take precedence over the environment, which takes precedence
over the configuration file.

Counter metrics are exposed with a _total suffix, so the config counters appear
as pgbouncer_config_listen_backlog_total, pgbouncer_config_disable_pqexec_total
and pgbouncer_config_pkt_buf_bytes_total.
        """
    )

    parser.add_argument(
        '--config',
        default=None,
        help='Path to YAML configuration file'
    )

    parser.add_argument(
        '--web.listen-address',
        dest='listen_address',
        default=None,
        help='Address on which to expose metrics and web interface (default: :9127)'
    )

    parser.add_argument(
        '--web.telemetry-path',
        dest='telemetry_path',
        default=None,
        help='Path under which to expose metrics (default: /metrics)'
    )

    parser.add_argument(
        '--pgBouncer.connectionString',
        dest='connection_string',
        default=None,
        help='Connection string for accessing pgBouncer (or DATA_SOURCE_NAME env var)'
    )

    parser.add_argument(
        '--log-level',
        default=None,
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        help='Logging level (default: INFO or LOG_LEVEL env var)'
    )

    parser.add_argument(
        '--version',
        action='store_true',
        help='Print version information and exit'
    )

    return parser


def load_config(args: argparse.Namespace) -> ExporterConfig:
    """
    Load configuration, applying command line flags on top.

    Args:
        args: Parsed command line arguments

    Returns:
        ExporterConfig: Validated configuration

    Raises:
        ConfigError: If the configuration is invalid
    """
    return ConfigLoader.load(
        args.config,
        overrides={
            "pgbouncer": {"connection_string": args.connection_string},
            "web": {
                "listen_address": args.listen_address,
                "telemetry_path": args.telemetry_path
            },
            "logging": {"level": args.log_level}
        }
    )


def main(argv=None):
    """
    CLI entry point.

    Parses command-line arguments and starts the exporter.
    """
    args = build_parser().parse_args(argv)

    if args.version:
        print(f"pgbouncer_exporter, version {__version__}")
        sys.exit(0)

    try:
        config = load_config(args)
    except ConfigError as e:
        logging.error(f"Application startup failed: {e}")
        sys.exit(1)

    logger = setup_logger(level=config.logging.level)

    try:
        app = ExporterApp(config, logger)
        app.serve_forever()
    except Exception as e:
        logger.error(f"Application startup failed: {e}", exc_info=True)
        sys.exit(1)


if __name__ == '__main__':
    main()
