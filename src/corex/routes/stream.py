"""Read endpoint — stream the origin behind a masked URL."""

from __future__ import annotations

import httpx
from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask

from corex.deps import COREX_PREFIX, get_http_client, get_store
from corex.relay import resolve_and_stream
from corex.store import MappingStore

router = APIRouter(prefix=COREX_PREFIX, tags=["stream"])


@router.get("/{corex_id}")
async def stream_media(
    corex_id: str,
    request: Request,
    store: MappingStore = Depends(get_store),
    client: httpx.AsyncClient = Depends(get_http_client),
):
    relayed = await resolve_and_stream(
        store,
        client,
        corex_id,
        query=request.query_params.multi_items(),
        range_header=request.headers.get("range"),
    )
    return StreamingResponse(
        relayed.body,
        status_code=relayed.status_code,
        headers=relayed.headers,
        background=BackgroundTask(relayed.close),
    )
