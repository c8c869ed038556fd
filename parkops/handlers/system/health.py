"""Health endpoint reporting PostgreSQL and Redis reachability.

``GET /health`` answers 200 when at least one dependency is reachable and
503 when none is.
"""

import asyncio
import json
import time
from dataclasses import dataclass, field
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import Any

import redis.asyncio as redis
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from parkops import __version__
from parkops.logging import get_logger, redact_credentials
from parkops.time_utils import to_utc_z, utcnow

logger = get_logger(__name__)

HEALTHY = "healthy"
DEGRADED = "degraded"
UNHEALTHY = "unhealthy"

_start_time: float = time.monotonic()


def _uptime_seconds() -> int:
    return int(time.monotonic() - _start_time)


def reset_start_time() -> None:
    """Restart the uptime clock."""
    global _start_time
    _start_time = time.monotonic()


@dataclass
class DependencyHealth:
    """Reachability of one backing service."""

    status: str
    response_time_ms: int | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"status": self.status}
        if self.response_time_ms is not None:
            data["response_time_ms"] = self.response_time_ms
        if self.error:
            data["error"] = self.error
        return data


@dataclass
class HealthCheckResult:
    """Aggregated health report."""

    status: str
    version: str = __version__
    uptime_seconds: int = 0
    timestamp: str = ""
    dependencies: dict[str, DependencyHealth] = field(default_factory=dict)
    errors: list[str] = field(default_factory=list)

    @classmethod
    def failure(cls, message: str) -> "HealthCheckResult":
        return cls(
            status=UNHEALTHY,
            uptime_seconds=_uptime_seconds(),
            timestamp=to_utc_z(utcnow()),
            errors=[message],
        )

    @property
    def http_status(self) -> int:
        return 503 if self.status == UNHEALTHY else 200

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "status": self.status,
            "version": self.version,
            "uptime_seconds": self.uptime_seconds,
            "timestamp": self.timestamp,
            "dependencies": {
                name: dep.to_dict() for name, dep in self.dependencies.items()
            },
        }
        if self.errors:
            data["errors"] = self.errors
        return data


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


def _failure_detail(e: Exception) -> str:
    return redact_credentials(f"Connection failed: {e}")[:120]


async def check_postgres_health(session: AsyncSession) -> DependencyHealth:
    """Run ``SELECT 1`` on the given session."""
    started = time.perf_counter()
    try:
        await session.execute(text("SELECT 1"))
    except Exception as e:
        logger.error("postgres_health_check_failed", error=str(e))
        return DependencyHealth(status=UNHEALTHY, error=_failure_detail(e))
    return DependencyHealth(status=HEALTHY, response_time_ms=_elapsed_ms(started))


async def check_redis_health(redis_url: str) -> DependencyHealth:
    """PING the Redis server behind ``redis_url``."""
    started = time.perf_counter()
    client = redis.from_url(redis_url, socket_timeout=5.0)
    try:
        await client.ping()
    except Exception as e:
        logger.error("redis_health_check_failed", error=str(e))
        return DependencyHealth(status=UNHEALTHY, error=_failure_detail(e))
    finally:
        await client.aclose()
    return DependencyHealth(status=HEALTHY, response_time_ms=_elapsed_ms(started))


async def perform_health_check(
    db_session: AsyncSession | None = None,
    redis_url: str | None = None,
) -> HealthCheckResult:
    """
    Check every dependency and derive the overall status.

    Args:
        db_session: Session for the PostgreSQL check, if a database is wired
        redis_url: Redis URL, if Redis is configured

    Returns:
        HEALTHY when all dependencies answer, DEGRADED when some do,
        UNHEALTHY when none do
    """
    result = HealthCheckResult(
        status=HEALTHY,
        uptime_seconds=_uptime_seconds(),
        timestamp=to_utc_z(utcnow()),
    )

    if db_session is not None:
        result.dependencies["postgres"] = await check_postgres_health(db_session)
    else:
        result.dependencies["postgres"] = DependencyHealth(
            status=UNHEALTHY, error="Database not configured"
        )

    if redis_url:
        result.dependencies["redis"] = await check_redis_health(redis_url)
    else:
        result.dependencies["redis"] = DependencyHealth(
            status=UNHEALTHY, error="Redis not configured"
        )

    down = [name for name, dep in result.dependencies.items() if dep.status == UNHEALTHY]
    if len(down) == len(result.dependencies):
        result.status = UNHEALTHY
        result.errors = [f"{name} unreachable" for name in down]
    elif down:
        result.status = DEGRADED
        result.errors = [f"{name} unreachable" for name in down]

    return result


class HealthCheckHandler(BaseHTTPRequestHandler):
    """Serves ``/health`` from a background thread."""

    db: Any = None
    redis_url: str | None = None
    loop: asyncio.AbstractEventLoop | None = None

    def log_message(self, format: str, *args: Any) -> None:
        logger.debug("health_http_request", message=format % args)

    async def _run_check(self) -> HealthCheckResult:
        if self.db is None:
            return await perform_health_check(None, self.redis_url)
        async with self.db.session() as session:
            return await perform_health_check(session, self.redis_url)

    def _collect(self) -> HealthCheckResult:
        loop = self.loop
        if loop is None or loop.is_closed():
            logger.error("health_check_error", error="event loop unavailable")
            return HealthCheckResult.failure("Health check loop unavailable")

        # Checks run on the application loop, which owns the connection pools
        future = asyncio.run_coroutine_threadsafe(self._run_check(), loop)
        try:
            return future.result(timeout=10)
        except Exception as e:
            future.cancel()
            logger.error("health_check_error", error=str(e))
            return HealthCheckResult.failure(f"Health check failed: {e}")

    def _send_json(self, status_code: int, body: dict[str, Any]) -> None:
        self.send_response(status_code)
        self.send_header("Content-Type", "application/json")
        self.send_header("Cache-Control", "no-cache")
        self.end_headers()
        self.wfile.write(json.dumps(body).encode("utf-8"))

    def do_GET(self) -> None:
        if self.path != "/health":
            self._send_json(404, {"error": "Not Found"})
            return

        result = self._collect()
        self._send_json(result.http_status, result.to_dict())


def start_health_server(
    host: str = "127.0.0.1",
    port: int = 8000,
    db: Any = None,
    redis_url: str | None = None,
    loop: asyncio.AbstractEventLoop | None = None,
) -> HTTPServer:
    """
    Bind the health HTTP server. The caller runs ``serve_forever``.

    Args:
        host: Bind address
        port: Bind port
        db: ``Database`` used for the PostgreSQL check
        redis_url: Redis URL used for the Redis check
        loop: Application event loop the checks are scheduled on
    """
    HealthCheckHandler.db = db
    HealthCheckHandler.redis_url = redis_url
    HealthCheckHandler.loop = loop or asyncio.get_running_loop()

    server = HTTPServer((host, port), HealthCheckHandler)
    logger.info("health_server_started", host=host, port=port)
    return server
