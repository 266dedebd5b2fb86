"""HTTP API price-window рушія поверх asyncio.start_server.

Маршрути:
- GET  /health                  → {status, schema, uptimeSeconds, statsReady}
- GET  /api/profit/minmax       → {min, max} (перший/останній запис)
- GET  /api/profit/stats-ready  → {ready}
- GET  /api/profit/stats        → статистика або 503, поки warm-up не завершився
- GET  /api/profit/chart?startTime=..&endTime=..[&maxPoints=N]
- POST /api/profit              → {startTime, endTime, funds} → 201 + результат

Усі `/api/*` маршрути вимагають заголовок `X-API-Key`, якщо ключ задано.
Сканування файлу блокуюче, тому виконується у default executor-і.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from http import HTTPStatus
from time import monotonic, perf_counter
from typing import Any, TypeVar
from urllib.parse import parse_qs, urlsplit

from prometheus_client import Counter, Histogram

from core.contracts.profit import PROFIT_SCHEMA_VERSION, ErrorPayload
from core.errors import (
    DataNotFound,
    EmptyRangeError,
    InvalidFunds,
    InvalidRange,
    NoProfitableTrade,
    PriceEngineError,
    StatsNotReady,
)
from core.serialization import json_dumps, json_loads, to_jsonable
from profit_core.service import PriceEngineService

logger = logging.getLogger("api.profit_http")

T = TypeVar("T")

MAX_BODY_BYTES = 64 * 1024

PRICE_WINDOW_HTTP_REQUESTS_TOTAL = Counter(
    "price_window_http_requests_total",
    "Кількість HTTP-запитів до price-window API",
    labelnames=("path", "status"),
)
PRICE_WINDOW_HTTP_LATENCY_MS = Histogram(
    "price_window_http_latency_ms",
    "Час обробки HTTP-запитів price-window API (ms)",
    labelnames=("path",),
    buckets=(1, 5, 10, 25, 50, 100, 250, 500, 1000, 2500, 5000, 10000),
)

_CLIENT_ERRORS = (InvalidRange, InvalidFunds, EmptyRangeError, NoProfitableTrade)

_KNOWN_PATHS = {
    "/health",
    "/api/profit",
    "/api/profit/minmax",
    "/api/profit/stats",
    "/api/profit/stats-ready",
    "/api/profit/chart",
}


@dataclass
class ProfitHttpServer:
    """Мінімальний HTTP/1.1-сервер для фронтенду калькулятора угод."""

    service: PriceEngineService
    host: str = "127.0.0.1"
    port: int = 3000
    api_key: str | None = None
    _server: asyncio.base_events.Server | None = None
    _started_at: float = field(default_factory=monotonic)

    async def start(self) -> None:
        """Стартує сервер (для тестів/інтеграції) без serve_forever."""

        if self._server is not None:
            return

        self._server = await asyncio.start_server(
            self._handle_client, self.host, self.port
        )
        addr = ", ".join(str(sock.getsockname()) for sock in self._server.sockets or [])
        logger.info("[ProfitHTTP] Server listening on %s", addr)

    async def stop(self) -> None:
        if self._server is None:
            return

        self._server.close()
        try:
            await self._server.wait_closed()
        finally:
            self._server = None

    def get_listen_url(self) -> str | None:
        """Повертає базовий URL сервера після start() або None."""

        if self._server is None or not self._server.sockets:
            return None

        sock = self._server.sockets[0]
        host, port = sock.getsockname()[:2]
        return f"http://{host}:{port}"

    async def run(self) -> None:
        """Стартує HTTP-сервер і тримає його вічно."""

        await self.start()
        assert self._server is not None
        async with self._server:
            await self._server.serve_forever()

    # ── TCP ─────────────────────────────────────────────────────────────────

    async def _handle_client(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
    ) -> None:
        """Обробляє один HTTP-запит поверх TCP-з'єднання."""

        path_for_metrics = "unknown"
        status_code = 500
        start = perf_counter()
        try:
            request_head = await reader.readuntil(b"\r\n\r\n")
            length = _content_length(request_head)
            if length is not None and length > MAX_BODY_BYTES:
                response_bytes = self._build_response(
                    status_code=413, body={"error": "payload_too_large"}
                )
                status_code = 413
            else:
                body = await reader.readexactly(length) if length else b""
                response_bytes, status_code, path_for_metrics = (
                    await self._process_http_request(request_head, body)
                )
        except (asyncio.IncompleteReadError, asyncio.LimitOverrunError):
            writer.close()
            await writer.wait_closed()
            return
        except Exception:
            logger.exception("[ProfitHTTP] Internal error while handling request")
            response_bytes = self._build_response(
                status_code=500, body={"error": "internal_error"}
            )
            status_code = 500

        writer.write(response_bytes)
        try:
            await writer.drain()
        except ConnectionError:
            logger.debug("[ProfitHTTP] Клієнт закрив з'єднання до відповіді")
        writer.close()
        try:
            await writer.wait_closed()
        except ConnectionError:
            pass

        duration_ms = (perf_counter() - start) * 1000.0
        PRICE_WINDOW_HTTP_REQUESTS_TOTAL.labels(
            path=path_for_metrics,
            status=str(status_code),
        ).inc()
        PRICE_WINDOW_HTTP_LATENCY_MS.labels(path=path_for_metrics).observe(duration_ms)

    async def _process_http_request(
        self, request_head: bytes, body: bytes = b""
    ) -> tuple[bytes, int, str]:
        """Розбирає запит і повертає відповідь, статус і шлях для метрик."""

        path_for_metrics = "unknown"
        try:
            text = request_head.decode("utf-8", errors="replace")
            lines = text.split("\r\n")
            method, target, _ = lines[0].split(" ", 2)
        except ValueError:
            return self._reply(400, {"error": "bad_request"}, path_for_metrics)

        headers = _parse_headers(lines[1:])
        parsed = urlsplit(target)
        path = parsed.path.rstrip("/") or "/"
        if path in _KNOWN_PATHS:
            path_for_metrics = path
        query = {k: v[0] for k, v in parse_qs(parsed.query).items() if v}
        method_upper = method.upper()

        if method_upper == "OPTIONS":
            return self._reply(200, None, path_for_metrics)

        if path == "/health" and method_upper == "GET":
            return self._reply(200, self._health_payload(), path_for_metrics)

        if path not in _KNOWN_PATHS:
            return self._reply(404, {"error": "not_found"}, path_for_metrics)

        if (
            self.api_key
            and path.startswith("/api/")
            and headers.get("x-api-key") != self.api_key
        ):
            return self._reply(
                401,
                {"error": "unauthorized", "message": "Invalid or missing API key"},
                path_for_metrics,
            )

        allowed = "POST" if path == "/api/profit" else "GET"
        if method_upper != allowed:
            return self._reply(405, {"error": "method_not_allowed"}, path_for_metrics)

        try:
            if path == "/api/profit":
                status, payload = await self._handle_profit(body)
            elif path == "/api/profit/minmax":
                minmax = await self._run_blocking(self.service.get_min_max)
                status, payload = 200, minmax.to_payload()
            elif path == "/api/profit/stats-ready":
                status, payload = 200, {"ready": self.service.is_stats_ready()}
            elif path == "/api/profit/stats":
                status, payload = 200, self.service.get_stats().to_payload()
            else:
                status, payload = await self._handle_chart(query)
        except PriceEngineError as exc:
            error: ErrorPayload = {"error": exc.code, "message": exc.message}
            status, payload = self._error_status(exc), error

        return self._reply(status, payload, path_for_metrics)

    # ── Маршрути ────────────────────────────────────────────────────────────

    async def _handle_profit(self, body: bytes) -> tuple[int, Any]:
        try:
            request = json_loads(body) if body else None
        except ValueError:
            return 400, {"error": "invalid_json", "message": "Request body must be JSON"}
        if not isinstance(request, dict):
            return 400, {"error": "invalid_json", "message": "Request body must be a JSON object"}

        result = await self._run_blocking(
            self.service.compute_profit,
            request.get("startTime"),
            request.get("endTime"),
            request.get("funds"),
        )
        return 201, result.to_payload()

    async def _handle_chart(self, query: Mapping[str, str]) -> tuple[int, Any]:
        max_points: int | None = None
        raw_points = (query.get("maxPoints") or "").strip()
        if raw_points:
            try:
                max_points = int(raw_points)
            except ValueError:
                return 400, {"error": "invalid_max_points"}

        points = await self._run_blocking(
            self.service.get_chart_data,
            query.get("startTime"),
            query.get("endTime"),
            max_points,
        )
        return 200, [p.to_payload() for p in points]

    def _health_payload(self) -> dict[str, Any]:
        return {
            "status": "ok",
            "schema": PROFIT_SCHEMA_VERSION,
            "uptimeSeconds": int(monotonic() - self._started_at),
            "statsReady": self.service.is_stats_ready(),
        }

    # ── Допоміжне ───────────────────────────────────────────────────────────

    @staticmethod
    async def _run_blocking(fn: Callable[..., T], *args: Any) -> T:
        return await asyncio.to_thread(fn, *args)

    @staticmethod
    def _error_status(exc: PriceEngineError) -> int:
        if isinstance(exc, _CLIENT_ERRORS):
            return 400
        if isinstance(exc, StatsNotReady):
            return 503
        if isinstance(exc, DataNotFound):
            return 404
        logger.error("[ProfitHTTP] %s: %s", type(exc).__name__, exc.message)
        return 500

    def _reply(self, status: int, body: Any | None, path: str) -> tuple[bytes, int, str]:
        return self._build_response(status_code=status, body=body), status, path

    @staticmethod
    def _build_response(*, status_code: int, body: Any | None) -> bytes:
        """Будує просту HTTP/1.1-відповідь з JSON-тілом."""

        if body is None:
            body_bytes = b""
        else:
            body_bytes = json_dumps(to_jsonable(body)).encode("utf-8")

        headers = [
            f"HTTP/1.1 {status_code} {HTTPStatus(status_code).phrase}",
            "Content-Type: application/json; charset=utf-8",
            f"Content-Length: {len(body_bytes)}",
            "Connection: close",
            "Access-Control-Allow-Origin: *",
            "Access-Control-Allow-Headers: Content-Type, X-API-Key",
            "Access-Control-Allow-Methods: GET, POST, OPTIONS",
            "Cache-Control: no-store",
            "",
            "",
        ]
        head_bytes = "\r\n".join(headers).encode("ascii", errors="replace")
        return head_bytes + body_bytes


def _parse_headers(lines: list[str]) -> dict[str, str]:
    headers: dict[str, str] = {}
    for line in lines:
        if not line or ":" not in line:
            continue
        name, value = line.split(":", 1)
        headers[name.strip().lower()] = value.strip()
    return headers


def _content_length(request_head: bytes) -> int | None:
    text = request_head.decode("latin-1")
    headers = _parse_headers(text.split("\r\n")[1:])
    raw = headers.get("content-length")
    if raw is None:
        return None
    try:
        value = int(raw)
    except ValueError:
        return None
    return max(0, value)


__all__ = ["ProfitHttpServer", "MAX_BODY_BYTES"]
