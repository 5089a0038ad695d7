"""Streaming relay — the read path.

Resolves a Corex identifier to its origin URL and relays the origin's bytes
without buffering. Range requests are forwarded verbatim so players can
seek, and partial-content answers stay partial.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Awaitable, Callable, Iterable
from dataclasses import dataclass
from urllib.parse import urlencode, urlsplit, urlunsplit

import httpx

from corex.errors import NotFoundError, UpstreamFailure
from corex.ids import strip_extension
from corex.store import MappingStore

logger = logging.getLogger("corex.relay")

PASSTHROUGH_HEADERS = (
    "content-type",
    "content-length",
    "accept-ranges",
    "content-range",
    "content-disposition",
)

RESPONSE_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "Cache-Control": "public, max-age=31536000, immutable",
    "X-Frame-Options": "SAMEORIGIN",
}

# Relay bytes exactly as the origin sent them.
_UPSTREAM_HEADERS = {"Accept-Encoding": "identity"}


@dataclass
class RelayedResponse:
    status_code: int
    headers: dict[str, str]
    body: AsyncIterator[bytes]
    close: Callable[[], Awaitable[None]]


def append_query(url: str, params: Iterable[tuple[str, str]]) -> str:
    """Add ``params`` after the query already on ``url``.

    The existing query string is kept byte-for-byte, since signed origin
    URLs break when their parameters are re-encoded.
    """
    extra = urlencode(list(params))
    if not extra:
        return url
    parts = urlsplit(url)
    query = f"{parts.query}&{extra}" if parts.query else extra
    return urlunsplit(parts._replace(query=query))


async def _relay_body(response: httpx.Response, corex_id: str) -> AsyncIterator[bytes]:
    try:
        async for chunk in response.aiter_raw():
            yield chunk
    except httpx.HTTPError as exc:
        # Headers are already on the wire; all we can do is stop.
        logger.warning("Upstream stream for %s broke off: %s", corex_id, exc)
    finally:
        await response.aclose()


async def resolve_and_stream(
    store: MappingStore,
    client: httpx.AsyncClient,
    raw_id: str,
    query: Iterable[tuple[str, str]] = (),
    range_header: str | None = None,
) -> RelayedResponse:
    """Look up ``raw_id`` and open a streaming fetch of its origin.

    Raises NotFoundError for unknown identifiers and UpstreamFailure when the
    origin cannot be reached, answers with a non-success status, or sends a
    content-encoding it was not asked for. The returned body closes the
    upstream response when exhausted or closed.
    """
    corex_id = strip_extension(raw_id)
    original_url = await store.get(corex_id)
    if not original_url:
        raise NotFoundError(corex_id)

    target = append_query(original_url, query)
    headers = dict(_UPSTREAM_HEADERS)
    if range_header:
        headers["Range"] = range_header

    try:
        request = client.build_request("GET", target, headers=headers)
        response = await client.send(request, stream=True, follow_redirects=True)
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        logger.warning("Upstream fetch for %s failed: %s", corex_id, exc)
        raise UpstreamFailure(f"Failed to fetch upstream resource: {exc}") from exc

    if not response.is_success:
        await response.aclose()
        logger.warning("Upstream for %s answered %d", corex_id, response.status_code)
        raise UpstreamFailure(f"Upstream answered {response.status_code}")

    encoding = response.headers.get("content-encoding", "").strip().lower()
    if encoding not in ("", "identity"):
        # Raw bytes would reach the client without a header saying how to decode them.
        await response.aclose()
        logger.warning("Upstream for %s sent %s despite identity request", corex_id, encoding)
        raise UpstreamFailure(f"Upstream sent unrequested content-encoding {encoding!r}")

    out_headers: dict[str, str] = {}
    for name in PASSTHROUGH_HEADERS:
        value = response.headers.get(name)
        if value:
            out_headers[name] = value
    out_headers.update(RESPONSE_HEADERS)

    status_code = 206 if "content-range" in out_headers else response.status_code
    return RelayedResponse(
        status_code=status_code,
        headers=out_headers,
        body=_relay_body(response, corex_id),
        close=response.aclose,
    )
