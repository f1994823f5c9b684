"""Central registry for Prometheus metrics used across the backend."""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

REQUEST_COUNTER = Counter(
	"connectsphere_http_requests_total",
	"Total HTTP requests processed",
	["route", "method", "status"],
)

REQUEST_LATENCY = Histogram(
	"connectsphere_http_request_duration_seconds",
	"HTTP request latency in seconds",
	["route", "method"],
	buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0),
)

MOD_REPORTS_SUBMITTED = Counter(
	"connectsphere_mod_reports_submitted_total",
	"User reports submitted",
	["category"],
)

MOD_REPORTS_RATE_LIMITED = Counter(
	"connectsphere_mod_reports_rate_limited_total",
	"Report submissions rejected by the per-reporter limit",
)

MOD_REPORT_TRANSITIONS = Counter(
	"connectsphere_mod_report_transitions_total",
	"Report status transitions applied by moderators",
	["status"],
)

MOD_BANS_ISSUED = Counter(
	"connectsphere_mod_bans_issued_total",
	"Bans issued by moderators",
	["kind"],
)

MOD_BANS_SUPERSEDED = Counter(
	"connectsphere_mod_bans_superseded_total",
	"Unlifted bans closed out by a newer ban",
)

MOD_BANS_LIFTED = Counter(
	"connectsphere_mod_bans_lifted_total",
	"Ban lift requests",
	["result"],
)

MOD_BAN_ENFORCEMENT = Counter(
	"connectsphere_mod_ban_enforcement_total",
	"Enforcement middleware decisions for banned users",
	["outcome"],
)

MOD_STORE_ERRORS = Counter(
	"connectsphere_mod_store_errors_total",
	"Moderation store failures",
	["operation"],
)

POSTGRES_UP = Gauge("connectsphere_postgres_up", "Postgres readiness (1 healthy, 0 unhealthy)")
REDIS_UP = Gauge("connectsphere_redis_up", "Redis readiness (1 healthy, 0 unhealthy)")


def observe_request(route: str, method: str, status: int, elapsed_seconds: float) -> None:
	REQUEST_COUNTER.labels(route=route, method=method, status=str(status)).inc()
	REQUEST_LATENCY.labels(route=route, method=method).observe(max(0.0, elapsed_seconds))


def mark_postgres(ok: bool) -> None:
	POSTGRES_UP.set(1 if ok else 0)


def mark_redis(ok: bool) -> None:
	REDIS_UP.set(1 if ok else 0)


def record_report_submitted(category: str) -> None:
	MOD_REPORTS_SUBMITTED.labels(category=category).inc()


def record_report_transition(status: str) -> None:
	MOD_REPORT_TRANSITIONS.labels(status=status).inc()


def record_ban_issued(*, indefinite: bool, superseded: int) -> None:
	MOD_BANS_ISSUED.labels(kind="indefinite" if indefinite else "timed").inc()
	if superseded:
		MOD_BANS_SUPERSEDED.inc(superseded)


def record_ban_lift(lifted: bool) -> None:
	MOD_BANS_LIFTED.labels(result="lifted" if lifted else "noop").inc()


def record_enforcement(outcome: str) -> None:
	MOD_BAN_ENFORCEMENT.labels(outcome=outcome).inc()


def record_store_error(operation: str) -> None:
	MOD_STORE_ERRORS.labels(operation=operation).inc()
