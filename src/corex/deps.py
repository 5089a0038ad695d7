"""FastAPI dependencies for Corex routes."""

from __future__ import annotations

import httpx
from fastapi import Request

from corex.config import CorexConfig
from corex.store import MappingStore

COREX_PREFIX = "/corex"


def get_store(request: Request) -> MappingStore:
    """Get the mapping store from app state."""
    return request.app.state.store


def get_http_client(request: Request) -> httpx.AsyncClient:
    """Get the shared upstream HTTP client from app state."""
    return request.app.state.http_client


def get_config(request: Request) -> CorexConfig:
    return request.app.state.config


def get_base_url(request: Request) -> str:
    """Base for masked URLs: configured public URL, else this request's origin."""
    config: CorexConfig = request.app.state.config
    if config.public_base_url:
        return config.public_base_url.rstrip("/")
    return str(request.base_url).rstrip("/") + COREX_PREFIX
