"""Shared test fixtures."""

from __future__ import annotations

import os

import pytest
from fastapi import Request
from fastapi.testclient import TestClient

from stack_csp.main import create_app
from stack_csp.policy.config import Config


@pytest.fixture(autouse=True)
def _mock_settings(monkeypatch):
    """Provide default settings for all tests."""
    for key in list(os.environ):
        if key.startswith("CSP_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("CSP_LOG_JSON", "false")
    monkeypatch.setenv("CSP_LOG_LEVEL", "debug")

    # Reset cached settings
    import stack_csp.config.loader as loader
    loader._settings = None
    yield
    loader._settings = None


@pytest.fixture
def template_config() -> Config:
    """Template policies shared by the app tests."""
    return Config({
        "enforce": {"default-src": ["self"], "img-src": ["self", "data:"]},
        "report": {"script-src": ["self"]},
    })


@pytest.fixture
def csp_app(template_config):
    """App with a couple of routes that declare per-request overrides."""
    from stack_csp.middleware.csp_headers import set_csp_overrides

    app = create_app(template_config)

    @app.get("/plain")
    async def plain():
        return {"ok": True}

    @app.get("/with-cdn")
    async def with_cdn(request: Request):
        set_csp_overrides(request, add={"enforce": {"img-src": ["cdn.example.com"]}})
        return {"ok": True}

    @app.get("/no-report")
    async def no_report(request: Request):
        set_csp_overrides(request, reset="report")
        return {"ok": True}

    @app.get("/reset-all")
    async def reset_all(request: Request):
        set_csp_overrides(request, reset="all")
        return {"ok": True}

    @app.get("/broken")
    async def broken(request: Request):
        set_csp_overrides(request, add={"enforce": {"default-src": ["none"]}})
        return {"ok": True}

    @app.get("/bad-role")
    async def bad_role(request: Request):
        set_csp_overrides(request, add={"everything": {"img-src": ["cdn.example.com"]}})
        return {"ok": True}

    return app


@pytest.fixture
def client(csp_app):
    """Create a FastAPI test client."""
    with TestClient(csp_app, raise_server_exceptions=False) as c:
        yield c
