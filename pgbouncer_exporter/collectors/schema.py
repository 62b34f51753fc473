"""Built-in column schema for PgBouncer admin console status commands.

Each namespace corresponds to one ``SHOW <namespace>;`` command. Row-group
namespaces return one row per entity (database, pool, ...) with some columns
acting as labels. Key/value namespaces return ``(key, value, ...)`` rows where
the key selects the metric.

Column names, exported names and help texts are the public metric contract;
do not rename them.
"""

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional, Tuple


class ColumnUsage(Enum):
    """How a status column is turned into a metric."""

    LABEL = "label"
    COUNTER = "counter"
    GAUGE = "gauge"
    SCALED_GAUGE = "scaled_gauge"  # microsecond values exported as seconds


@dataclass(frozen=True)
class ColumnSpec:
    """One known column of a status namespace."""

    name: str
    usage: ColumnUsage
    exported_name: Optional[str] = None
    description: str = ""


def _label(name: str) -> ColumnSpec:
    return ColumnSpec(name, ColumnUsage.LABEL)


def _counter(name: str, description: str, exported_name: Optional[str] = None) -> ColumnSpec:
    return ColumnSpec(name, ColumnUsage.COUNTER, exported_name, description)


def _gauge(name: str, description: str, exported_name: Optional[str] = None) -> ColumnSpec:
    return ColumnSpec(name, ColumnUsage.GAUGE, exported_name, description)


def _scaled(name: str, description: str, exported_name: Optional[str] = None) -> ColumnSpec:
    return ColumnSpec(name, ColumnUsage.SCALED_GAUGE, exported_name, description)


Schema = Mapping[str, Tuple[ColumnSpec, ...]]


ROW_SCHEMAS: Schema = MappingProxyType({
    "databases": (
        _label("name"),
        _label("host"),
        _label("port"),
        _label("database"),
        _label("force_user"),
        _gauge("pool_size", "Maximum number of connection per pool for backend connections"),
        _gauge("reserve_pool", "Number of extra connections by which the pool_size can be exceeded temporarily", "reserve_pool_size"),
        ColumnSpec("pool_mode", ColumnUsage.LABEL, description="Nature of connection pooling"),
        _gauge("max_connections", "Maximum number of client connections allowed"),
        _gauge("current_connections", "Current number of client connections"),
        _gauge("paused", "Boolean indicating whether a pgbouncer PAUSE is currently active for this database"),
        _gauge("disabled", "Boolean indicating whether a pgbouncer DISABLE is currently active for this database"),
    ),
    "lists": (
        _gauge("databases", "Count of databases"),
        _gauge("users", "Count of users"),
        _gauge("pools", "Count of pools"),
        _gauge("free_clients", "Count of free clients"),
        _gauge("used_clients", "Count of used clients"),
        _gauge("login_clients", "Count of clients in login state"),
        _gauge("free_servers", "Count of free servers"),
        _gauge("used_servers", "Count of used servers"),
    ),
    "pools": (
        _label("database"),
        _label("user"),
        _gauge("cl_active", "Client connections linked to server connection and able to process queries, shown as connection"),
        _gauge("cl_waiting", "Client connections waiting on a server connection, shown as connection"),
        _gauge("sv_active", "Server connections linked to a client connection, shown as connection"),
        _gauge("sv_idle", "Server connections idle and ready for a client query, shown as connection"),
        _gauge("sv_used", "Server connections idle more than server_check_delay, needing server_check_query, shown as connection"),
        _gauge("sv_tested", "Server connections currently running either server_reset_query or server_check_query, shown as connection"),
        _gauge("sv_login", "Server connections currently in the process of logging in, shown as connection"),
        _gauge("maxwait", "Age of oldest unserved client connection, shown as second", "maxwait_seconds"),
        _label("pool_mode"),
    ),
    "stats": (
        _label("database"),
        _gauge("avg_query_count", "Average queries per second in last stat period", "avg_queries_per_second"),
        _scaled("avg_query", "The average query duration, shown as microsecond", "avg_query_duration_microseconds"),
        _scaled("avg_query_time", "Average query time in microseconds", "avg_query_time_microseconds"),
        _gauge("avg_recv", "Average received (from clients) bytes per second", "avg_data_recv_bytes_per_second"),
        _gauge("avg_req", "The average number of requests per second in last stat period, shown as request/second"),
        _gauge("avg_sent", "Average sent (to clients) bytes per second"),
        _scaled("avg_wait_time", "Time spent by clients waiting for a server in microseconds (average per second)", "avg_wait_time_microseconds"),
        _gauge("avg_xact_count", "Average transactions per second in last stat period"),
        _scaled("avg_xact_time", "Average transaction duration in microseconds", "avg_xact_time_microseconds"),
        _gauge("bytes_received_per_second", "The total network traffic received, shown as byte/second", "bytes_received_per_second_total"),
        _gauge("bytes_sent_per_second", "The total network traffic sent, shown as byte/second", "bytes_sent_per_second_total"),
        _gauge("total_query_count", "Total number of SQL queries pooled", "query_count_total"),
        _scaled("total_query_time", "Total number of microseconds spent by pgbouncer when actively connected to PostgreSQL, executing queries", "query_time_microseconds_total"),
        _gauge("total_received", "Total volume in bytes of network traffic received by pgbouncer, shown as bytes", "received_bytes_total"),
        _gauge("total_requests", "Total number of SQL requests pooled by pgbouncer, shown as requests", "requests_total"),
        _gauge("total_sent", "Total volume in bytes of network traffic sent by pgbouncer, shown as bytes", "sent_bytes_total"),
        _scaled("total_wait_time", "Time spent by clients waiting for a server in microseconds", "wait_time_microseconds_total"),
        _gauge("total_xact_count", "Total number of SQL transactions pooled", "xact_count_total"),
        _scaled("total_xact_time", "Total number of microseconds spent by pgbouncer when connected to PostgreSQL in a transaction, either idle in transaction or executing queries", "xact_time_microseconds_total"),
    ),
})


KV_SCHEMAS: Schema = MappingProxyType({
    "config": (
        _counter("listen_backlog", "Maximum number of backlogged listen connections before further connection attempts are dropped"),
        _gauge("max_client_conn", "Maximum number of client connections allowed"),
        _gauge("default_pool_size", "The default for how many server connections to allow per user/database pair"),
        _gauge("min_pool_size", "Mininum number of backends a pool will always retain."),
        _gauge("reserve_pool_size", "How many additional connections to allow to a pool once it's crossed it's maximum"),
        _gauge("reserve_pool_timeout", "If a client has not been serviced in this many seconds, pgbouncer enables use of additional connections from reserve pool.", "reserve_pool_timeout_seconds"),
        _gauge("max_db_connections", "Server level maximum connections enforced for a given db, irregardless of pool limits"),
        _gauge("max_user_connections", "Maximum number of connections a user can open irregardless of pool limits"),
        _gauge("autodb_idle_timeout", "Unused pools created via '*' are reclaimed after this interval", "autodb_idle_timeout_seconds"),
        _gauge("server_reset_query_always", "Boolean indicating whether or not server_reset_query is enforced for all pooling modes, or just session"),
        _gauge("server_check_delay", "How long to keep released connections available for immediate re-use, without running sanity-check queries on it. If 0 then the query is ran always.", "server_check_delay_seconds"),
        _gauge("query_timeout", "Maximum time that a query can run for before being cancelled.", "query_timeout_seconds"),
        _gauge("query_wait_timeout", "Maximum time that a query can wait to be executed before being cancelled.", "query_wait_timeout_seconds"),
        _gauge("client_idle_timeout", "Client connections idling longer than this many seconds are closed", "client_idle_timeout_seconds"),
        _gauge("client_login_timeout", "Maximum time in seconds for a client to either login, or be disconnected", "client_login_timeout_seconds"),
        _gauge("idle_transaction_timeout", "If client has been in 'idle in transaction' state longer than this amount in seconds, it will be disconnected.", "idle_transaction_timeout_seconds"),
        _gauge("server_lifetime", "The pooler will close an unused server connection that has been connected longer than this many seconds", "server_lifetime_seconds"),
        _gauge("server_idle_timeout", "If a server connection has been idle more than this many seconds it will be dropped", "server_idle_timeout_seconds"),
        _gauge("server_connect_timeout", "Maximum time allowed for connecting and logging into a backend server", "server_connect_timeout_seconds"),
        _gauge("server_login_retry", "If connecting to a backend failed, this is the wait interval in seconds before retrying", "server_login_retry_seconds"),
        _gauge("server_round_robin", "Boolean; if 1, pgbouncer uses backends in a round robin fashion.  If 0, it uses LIFO to minimize connectivity to backends"),
        _gauge("suspend_timeout", "Timeout for how long pgbouncer waits for buffer flushes before killing connections during pgbouncer admin SHUTDOWN and SUSPEND invocations.", "suspend_timeout_seconds"),
        _counter("disable_pqexec", "Boolean; 1 means pgbouncer enforce Simple Query Protocol; 0 means it allows multiple queries in a single packet"),
        _gauge("dns_max_ttl", "Irregardless of DNS TTL, this is the TTL that pgbouncer enforces for dns lookups it does for backends"),
        _gauge("dns_nxdomain_ttl", "Irregardless of DNS TTL, this is the period enforced for negative DNS answers"),
        _gauge("dns_zone_check_period", "Period to check if zone serial has changed.", "dns_zone_check_period_seconds"),
        _gauge("max_packet_size", "Maximum packet size for postgresql packets that pgbouncer will relay to backends", "max_packet_size_bytes"),
        _counter("pkt_buf", "Internal buffer size for packets.  See docs", "pkt_buf_bytes"),
        _gauge("sbuf_loopcnt", "How many results to process for a given connection's packet results before switching to others to ensure fairness.  See docs.", "sbuf_loopcnt"),
        _gauge("tcp_defer_accept", "Configurable for TCP_DEFER_ACCEPT"),
        _gauge("tcp_socket_buffer", "Configurable for tcp socket buffering; 0 is kernel managed", "tcp_socket_buffer_bytes"),
        _gauge("tcpkeepalive", "Boolean; if 1, tcp keepalive is enabled w/ OS defaults.  If 0, disabled."),
        _gauge("tcp_keepcnt", "See TCP documentation for this field"),
        _gauge("tcp_keepidle", "See TCP documentation for this field"),
        _gauge("tcp_keepintvl", "See TCP documentation for this field"),
        _gauge("verbose", "If log verbosity is increased.  Only relevant as a metric if log volume begins exceeding log consumption"),
        _gauge("stats_period", "Periodicity in seconds of pgbouncer recalculating internal stats.", "stats_period_seconds"),
        _gauge("log_connections", "Whether connections are logged or not."),
        _gauge("log_disconnections", "Whether connection disconnects are logged."),
        _gauge("log_pooler_errors", "Whether pooler errors are logged or not"),
        _gauge("application_name_add_host", "Whether pgbouncer add the client host address and port to the application name setting set on connection start or not"),
    ),
})
