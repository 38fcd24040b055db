"""Unit tests for shared FastAPI/uvicorn server helpers."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from packages.relaygate_shared.http import create_app, run_app


def test_create_app_applies_title_and_version() -> None:
    app = create_app(title="Relaygate Gateway", version="9.9.9")

    assert isinstance(app, FastAPI)
    assert app.title == "Relaygate Gateway"
    assert app.version == "9.9.9"


def test_create_app_runs_lifespan_hooks() -> None:
    events: list[str] = []

    @asynccontextmanager
    async def _lifespan(_: FastAPI) -> AsyncIterator[None]:
        events.append("startup")
        yield
        events.append("shutdown")

    app = create_app(lifespan=_lifespan)

    with TestClient(app):
        assert events == ["startup"]
    assert events == ["startup", "shutdown"]


def test_run_app_forwards_arguments_to_uvicorn(monkeypatch: pytest.MonkeyPatch) -> None:
    """run_app should delegate execution to uvicorn.run with provided options."""
    app = create_app()
    called: dict[str, Any] = {}

    def _fake_run(target: Any, **kwargs: Any) -> None:
        called["target"] = target
        called["kwargs"] = kwargs

    monkeypatch.setattr("packages.relaygate_shared.http.server.uvicorn.run", _fake_run)

    run_app(app, host="0.0.0.0", port=9999, log_level="debug")

    assert called["target"] is app
    assert called["kwargs"] == {
        "host": "0.0.0.0",
        "port": 9999,
        "log_level": "debug",
    }
