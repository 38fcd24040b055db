"""Minimal FastAPI and uvicorn helpers."""

from __future__ import annotations

from collections.abc import Callable
from contextlib import AbstractAsyncContextManager

import uvicorn
from fastapi import FastAPI


def create_app(
    *,
    title: str = "relaygate",
    version: str = "0.1.0",
    lifespan: Callable[[FastAPI], AbstractAsyncContextManager[None]] | None = None,
) -> FastAPI:
    """Create a FastAPI app with project defaults."""
    return FastAPI(title=title, version=version, lifespan=lifespan)


def run_app(
    app: FastAPI,
    *,
    host: str = "127.0.0.1",
    port: int = 8787,
    log_level: str = "info",
) -> None:
    """Run one FastAPI app through uvicorn until interrupted."""
    uvicorn.run(app, host=host, port=port, log_level=log_level)
