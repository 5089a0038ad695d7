"""Write endpoints — register a URL, or mask every URL inside a JSON document.

Both produce new mappings. Neither touches existing ones.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import urlsplit

import httpx
from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from corex.classifier import looks_like_http_url
from corex.deps import COREX_PREFIX, get_base_url, get_store
from corex.errors import ValidationError
from corex.masking import mask_json, register_url
from corex.store import MappingStore

router = APIRouter(prefix=COREX_PREFIX, tags=["register"])

ALLOWED_SCHEMES = ("http", "https")


class RegisterRequest(BaseModel):
    url: str | None = None


class ProxyJsonRequest(BaseModel):
    payload: Any = Field(default=None, alias="json")


def validate_registration_url(url: str | None) -> str:
    """Reject anything that is not a non-empty absolute http(s) URL."""
    if not url:
        raise ValidationError(
            "Invalid Request",
            "A valid URL string is required in the request body",
        )
    try:
        parsed = urlsplit(url)
    except ValueError as exc:
        raise ValidationError(
            "Invalid URL Format", "Please provide a valid HTTP(S) URL", message=str(exc)
        ) from exc
    if not parsed.scheme:
        raise ValidationError("Invalid URL Format", "Please provide a valid HTTP(S) URL")
    if parsed.scheme.lower() not in ALLOWED_SCHEMES:
        raise ValidationError(
            "Invalid Protocol",
            "Only HTTP and HTTPS protocols are supported",
            provided=f"{parsed.scheme}:",
        )
    if not looks_like_http_url(url):
        raise ValidationError("Invalid URL Format", "Please provide a valid HTTP(S) URL")
    try:
        host = httpx.URL(url).host
    except httpx.InvalidURL as exc:
        raise ValidationError(
            "Invalid URL Format", "Please provide a valid HTTP(S) URL", message=str(exc)
        ) from exc
    if not host:
        raise ValidationError("Invalid URL Format", "Please provide a valid HTTP(S) URL")
    return url


@router.post("/register")
async def register(
    body: RegisterRequest,
    base_url: str = Depends(get_base_url),
    store: MappingStore = Depends(get_store),
):
    url = validate_registration_url(body.url)
    masked = await register_url(store, url, base_url)
    return {
        "success": True,
        "corexId": masked.corex_id,
        "corexUrl": masked.corex_url,
        "message": "URL successfully masked",
    }


@router.post("/proxy-json")
async def proxy_json(
    body: ProxyJsonRequest,
    base_url: str = Depends(get_base_url),
    store: MappingStore = Depends(get_store),
):
    if not isinstance(body.payload, (dict, list)):
        raise ValidationError(
            "Invalid or missing JSON",
            "Please provide a valid JSON object in the request body",
        )
    wrapped = await mask_json(store, body.payload, base_url)
    return {
        "success": True,
        "wrappedJson": wrapped,
        "message": "All URLs successfully masked",
    }
