"""Тести для api.profit_http_server.ProfitHttpServer.

Запити ганяємо через `_process_http_request`, без реального TCP.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from api.profit_http_server import ProfitHttpServer
from core.serialization import iso_to_ms
from profit_core.config import ProfitEngineConfig
from profit_core.service import PriceEngineService
from price_fixtures import ts_at

API_KEY = "test-key"


def _server(path: Path) -> ProfitHttpServer:
    service = PriceEngineService.from_path(path, config=ProfitEngineConfig(index_stride=2))
    return ProfitHttpServer(service=service, api_key=API_KEY)


def _request(method: str, target: str, body: bytes = b"", *, key: str | None = API_KEY) -> bytes:
    lines = [f"{method} {target} HTTP/1.1", "Host: test"]
    if key is not None:
        lines.append(f"X-API-Key: {key}")
    if body:
        lines.append("Content-Type: application/json")
        lines.append(f"Content-Length: {len(body)}")
    return ("\r\n".join(lines) + "\r\n\r\n").encode("ascii")


def _body(response: bytes) -> Any:
    raw = response.split(b"\r\n\r\n", 1)[1]
    return json.loads(raw) if raw else None


@pytest.fixture
def server(ndjson_file: Callable[..., Path]) -> ProfitHttpServer:
    return _server(ndjson_file([100.0, 90.0, 95.0, 120.0, 110.0]))


@pytest.mark.asyncio
async def test_post_profit_returns_201_with_payload(server: ProfitHttpServer) -> None:
    body = json.dumps({"startTime": ts_at(0), "endTime": ts_at(4), "funds": 1000}).encode()

    response, status, path = await server._process_http_request(_request("POST", "/api/profit", body), body)

    assert status == 201
    assert path == "/api/profit"
    assert b"HTTP/1.1 201 Created" in response
    payload = _body(response)
    assert payload["buyTime"] == ts_at(1)
    assert payload["sellTime"] == ts_at(3)
    assert payload["profit"] == 333.33
    assert len(payload["chartData"]) == 5


@pytest.mark.asyncio
async def test_post_profit_validation_errors_are_400(server: ProfitHttpServer) -> None:
    reversed_range = json.dumps({"startTime": ts_at(4), "endTime": ts_at(0), "funds": 10}).encode()
    bad_funds = json.dumps({"startTime": ts_at(0), "endTime": ts_at(4), "funds": -1}).encode()

    response, status, _ = await server._process_http_request(
        _request("POST", "/api/profit", reversed_range), reversed_range
    )
    assert status == 400
    assert _body(response)["error"] == "invalid_range"

    response, status, _ = await server._process_http_request(
        _request("POST", "/api/profit", bad_funds), bad_funds
    )
    assert status == 400
    assert _body(response) == {"error": "invalid_funds", "message": "funds must be a positive number"}


@pytest.mark.asyncio
async def test_post_profit_invalid_json(server: ProfitHttpServer) -> None:
    body = b"{not json"

    response, status, _ = await server._process_http_request(_request("POST", "/api/profit", body), body)

    assert status == 400
    assert _body(response)["error"] == "invalid_json"


@pytest.mark.asyncio
async def test_api_key_required_for_api_routes_only(server: ProfitHttpServer) -> None:
    _, status, _ = await server._process_http_request(_request("GET", "/api/profit/minmax", key=None))
    assert status == 401
    _, status, _ = await server._process_http_request(_request("GET", "/api/profit/minmax", key="wrong"))
    assert status == 401

    response, status, _ = await server._process_http_request(_request("GET", "/health", key=None))
    assert status == 200
    assert _body(response)["status"] == "ok"
    assert _body(response)["schema"] == "price_window_v1"


@pytest.mark.asyncio
async def test_minmax_and_stats_ready(server: ProfitHttpServer) -> None:
    response, status, _ = await server._process_http_request(_request("GET", "/api/profit/minmax"))
    assert status == 200
    assert _body(response) == {"min": ts_at(0), "max": ts_at(4)}

    response, status, _ = await server._process_http_request(_request("GET", "/api/profit/stats-ready"))
    assert status == 200
    assert _body(response) == {"ready": False}


@pytest.mark.asyncio
async def test_stats_503_before_warm_up_and_200_after(server: ProfitHttpServer) -> None:
    response, status, _ = await server._process_http_request(_request("GET", "/api/profit/stats"))
    assert status == 503
    assert _body(response)["error"] == "stats_not_ready"

    await server.service.warm_up()

    response, status, _ = await server._process_http_request(_request("GET", "/api/profit/stats"))
    assert status == 200
    assert _body(response)["totalPoints"] == 5


@pytest.mark.asyncio
async def test_chart_route_with_max_points(server: ProfitHttpServer) -> None:
    target = f"/api/profit/chart?startTime={ts_at(0)}&endTime={ts_at(4)}&maxPoints=2"

    response, status, _ = await server._process_http_request(_request("GET", target))

    assert status == 200
    points = _body(response)
    assert len(points) == 2
    assert points[0] == {"timestamp": ts_at(0), "price": 100.0}

    _, status, _ = await server._process_http_request(
        _request("GET", f"/api/profit/chart?startTime={ts_at(0)}&endTime={ts_at(4)}&maxPoints=x")
    )
    assert status == 400


@pytest.mark.asyncio
async def test_unknown_path_wrong_method_and_options(server: ProfitHttpServer) -> None:
    _, status, path = await server._process_http_request(_request("GET", "/nope"))
    assert status == 404
    assert path == "unknown"

    _, status, _ = await server._process_http_request(_request("GET", "/api/profit"))
    assert status == 405

    response, status, _ = await server._process_http_request(_request("OPTIONS", "/api/profit", key=None))
    assert status == 200
    text = response.decode("utf-8", errors="replace")
    assert "Access-Control-Allow-Origin: *" in text
    assert "Access-Control-Allow-Headers: Content-Type, X-API-Key" in text


@pytest.mark.asyncio
async def test_malformed_request_line_is_400(server: ProfitHttpServer) -> None:
    _, status, _ = await server._process_http_request(b"GARBAGE\r\n\r\n")

    assert status == 400


@pytest.mark.asyncio
async def test_server_without_api_key_accepts_any_request(ndjson_file: Callable[..., Path]) -> None:
    service = PriceEngineService.from_path(ndjson_file([1.0, 2.0]))
    server = ProfitHttpServer(service=service, api_key=None)

    _, status, _ = await server._process_http_request(_request("GET", "/api/profit/minmax", key=None))

    assert status == 200


@pytest.mark.asyncio
async def test_start_stop_binds_ephemeral_port(server: ProfitHttpServer) -> None:
    server.port = 0
    await server.start()
    try:
        url = server.get_listen_url()
        assert url is not None and url.startswith("http://127.0.0.1:")
    finally:
        await server.stop()
    assert server.get_listen_url() is None


@pytest.mark.asyncio
async def test_chart_route_accepts_epoch_ms_query(server: ProfitHttpServer) -> None:
    target = f"/api/profit/chart?startTime={iso_to_ms(ts_at(0))}&endTime={iso_to_ms(ts_at(4))}"

    response, status, _ = await server._process_http_request(_request("GET", target))

    assert status == 200
    assert [p["price"] for p in _body(response)] == [100.0, 90.0, 95.0, 120.0, 110.0]
