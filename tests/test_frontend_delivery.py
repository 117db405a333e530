from __future__ import annotations

import asyncio

import httpx
import pytest
from fastapi.testclient import TestClient

from skill_backend.config import FRONTEND_BUILD_DIR, FRONTEND_DEV_URL, Settings
from skill_backend.frontend import ProxyDelivery, StaticDelivery, select_frontend
from skill_backend.main import create_app


@pytest.fixture()
def upstream_calls() -> list[httpx.Request]:
    return []


@pytest.fixture()
def proxy_client(engine, upstream_calls):
    def handler(request: httpx.Request) -> httpx.Response:
        upstream_calls.append(request)
        return httpx.Response(
            200,
            text=f"dev server saw {request.method} {request.url.path}",
            headers={"X-Dev-Server": "yes", "Content-Type": "text/javascript"},
        )

    delivery = ProxyDelivery("http://frontend.test", transport=httpx.MockTransport(handler))
    with TestClient(create_app(engine=engine, frontend=delivery)) as c:
        yield c


def test_static_delivery_serves_index(client) -> None:
    r = client.get("/")
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/html")
    assert "skills frontend" in r.text


def test_proxy_forwards_unmatched_requests(proxy_client, upstream_calls) -> None:
    r = proxy_client.get("/static/js/main.js?v=3", headers={"X-Trace": "abc"})

    assert r.status_code == 200
    assert r.text == "dev server saw GET /static/js/main.js"
    assert r.headers["x-dev-server"] == "yes"

    assert len(upstream_calls) == 1
    forwarded = upstream_calls[0]
    assert forwarded.url.host == "frontend.test"
    assert forwarded.url.query == b"v=3"
    assert forwarded.headers["x-trace"] == "abc"


def test_proxy_leaves_api_routes_alone(proxy_client, upstream_calls) -> None:
    r = proxy_client.get("/api/skill")
    assert r.status_code == 200
    assert r.json() == {"skills": []}
    assert upstream_calls == []


def test_proxy_reports_unreachable_dev_server(engine) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    delivery = ProxyDelivery("http://frontend.test", transport=httpx.MockTransport(handler))
    with TestClient(create_app(engine=engine, frontend=delivery)) as c:
        r = c.get("/")
    assert r.status_code == 502
    assert "connection refused" in r.text


def test_select_frontend_uses_proxy_in_dev(monkeypatch) -> None:
    monkeypatch.setenv("DEV", "true")
    delivery = select_frontend(Settings())
    try:
        assert isinstance(delivery, ProxyDelivery)
        assert delivery.target_url == FRONTEND_DEV_URL
    finally:
        asyncio.run(delivery.aclose())


def test_select_frontend_serves_static_files_otherwise(monkeypatch) -> None:
    monkeypatch.setenv("DEV", "false")
    delivery = select_frontend(Settings())
    assert isinstance(delivery, StaticDelivery)
    assert str(delivery.directory) == str(FRONTEND_BUILD_DIR).rstrip("/")


def test_select_frontend_logs_the_chosen_mode(monkeypatch, caplog) -> None:
    caplog.set_level("INFO", logger="skill_backend.frontend")
    monkeypatch.setenv("DEV", "false")

    delivery = select_frontend(Settings())

    assert delivery.mode == "static"
    assert "Front-end delivery mode: static" in caplog.text
