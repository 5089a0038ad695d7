"""Shared test doubles.

FakeOrigin stands in for the upstream media server: it records every
request it receives and answers plain or ranged GETs over a fixed body.
"""

from __future__ import annotations

import re

import httpx
import pytest
from fastapi.testclient import TestClient

from corex.app import create_app
from corex.config import CorexConfig
from corex.store import InMemoryStore

_RANGE = re.compile(r"bytes=(\d+)-(\d*)")


class FakeOrigin:
    def __init__(self, body: bytes = bytes(range(200))):
        self.body = body
        self.status_code = 200
        self.content_type = "video/mp4"
        self.extra_headers: dict[str, str] = {}
        self.redirects: dict[str, str] = {}
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)

        if request.url.path in self.redirects:
            return httpx.Response(302, headers={"location": self.redirects[request.url.path]})

        headers = {
            "content-type": self.content_type,
            "accept-ranges": "bytes",
            **self.extra_headers,
        }
        match = _RANGE.fullmatch(request.headers.get("range", ""))
        if match and self.status_code == 200:
            start = int(match.group(1))
            end = int(match.group(2)) if match.group(2) else len(self.body) - 1
            chunk = self.body[start : end + 1]
            headers["content-range"] = f"bytes {start}-{end}/{len(self.body)}"
            headers["content-length"] = str(len(chunk))
            return httpx.Response(206, headers=headers, stream=httpx.ByteStream(chunk))

        headers["content-length"] = str(len(self.body))
        return httpx.Response(
            self.status_code, headers=headers, stream=httpx.ByteStream(self.body)
        )

    @property
    def last_request(self) -> httpx.Request:
        return self.requests[-1]


def make_test_app(
    store=None,
    origin: FakeOrigin | None = None,
    config: CorexConfig | None = None,
):
    """App wired to an in-memory store and a mocked upstream transport."""
    http_client = httpx.AsyncClient(
        transport=httpx.MockTransport(origin or FakeOrigin()),
        follow_redirects=True,
    )
    return create_app(
        config or CorexConfig(),
        store=store if store is not None else InMemoryStore(),
        http_client=http_client,
    )


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def origin():
    return FakeOrigin()


@pytest.fixture
def client(store, origin):
    return TestClient(make_test_app(store=store, origin=origin))
