"""Identifier, registration, and JSON masking tests."""

from __future__ import annotations

import asyncio
import re

import pytest

from corex.errors import StoreError
from corex.ids import COREX_ID_PREFIX, generate_corex_id, strip_extension
from corex.masking import build_masked_url, mask_json, register_url
from corex.store import InMemoryStore

BASE = "https://proxy.example.org/corex"

_ID = re.compile(r"^cx_[A-Za-z0-9_-]{22}$")


class RefusingStore(InMemoryStore):
    async def _put(self, corex_id, url):
        raise StoreError("SET failed: backend unavailable")


class TestIds:
    def test_format(self):
        corex_id = generate_corex_id()
        assert corex_id.startswith(COREX_ID_PREFIX)
        assert _ID.match(corex_id)
        assert "." not in corex_id

    def test_unique(self):
        ids = {generate_corex_id() for _ in range(5000)}
        assert len(ids) == 5000

    @pytest.mark.parametrize(
        "raw, bare",
        [
            ("cx_abc", "cx_abc"),
            ("cx_abc.mp4", "cx_abc"),
            ("cx_abc.tar.gz", "cx_abc"),
            ("cx_abc.", "cx_abc"),
        ],
    )
    def test_strip_extension(self, raw, bare):
        assert strip_extension(raw) == bare


class TestRegister:
    def test_register(self):
        store = InMemoryStore()
        masked = asyncio.run(register_url(store, "https://cdn.example.com/a/b.mp3?x=1", BASE))
        assert masked.corex_url == f"{BASE}/{masked.corex_id}.mp3"
        assert masked.original_url == "https://cdn.example.com/a/b.mp3?x=1"
        assert asyncio.run(store.get(masked.corex_id)) == "https://cdn.example.com/a/b.mp3?x=1"

    def test_no_extension(self):
        masked = asyncio.run(register_url(InMemoryStore(), "https://example.com/about", BASE))
        assert masked.corex_url == f"{BASE}/{masked.corex_id}"

    def test_store_failure_propagates(self):
        with pytest.raises(StoreError):
            asyncio.run(register_url(RefusingStore(), "https://cdn.example.com/a.mp4", BASE))

    def test_build_masked_url_trims_slash(self):
        assert build_masked_url(BASE + "/", "cx_a", ".mp4") == f"{BASE}/cx_a.mp4"


class TestMaskJson:
    def test_example_document(self):
        store = InMemoryStore()
        doc = {"a": "https://cdn.example.com/clip.mp4", "b": ["https://site.com/index.html", 42]}
        out = asyncio.run(mask_json(store, doc, BASE))

        assert list(out) == ["a", "b"]
        assert out["a"].startswith(f"{BASE}/cx_")
        assert out["a"].endswith(".mp4")
        assert out["b"] == ["https://site.com/index.html", 42]
        assert len(store) == 1

        corex_id = strip_extension(out["a"].rsplit("/", 1)[1])
        assert asyncio.run(store.get(corex_id)) == "https://cdn.example.com/clip.mp4"

    def test_input_is_not_mutated(self):
        doc = {"a": ["https://cdn.example.com/clip.mp4"]}
        asyncio.run(mask_json(InMemoryStore(), doc, BASE))
        assert doc == {"a": ["https://cdn.example.com/clip.mp4"]}

    def test_scalars_pass_through(self):
        doc = {"n": None, "t": True, "f": False, "i": 7, "x": 1.5, "s": "hello", "e": [], "o": {}}
        assert asyncio.run(mask_json(InMemoryStore(), doc, BASE)) == doc

    def test_keys_are_never_masked(self):
        doc = {"https://cdn.example.com/k.mp4": "plain"}
        assert asyncio.run(mask_json(InMemoryStore(), doc, BASE)) == doc

    def test_deep_nesting_keeps_shape(self):
        doc = {"l1": [{"l2": {"l3": ["https://cdn.example.com/deep.png", {"l4": "ok"}]}}]}
        out = asyncio.run(mask_json(InMemoryStore(), doc, BASE))
        inner = out["l1"][0]["l2"]["l3"]
        assert len(inner) == 2
        assert inner[0].endswith(".png")
        assert inner[1] == {"l4": "ok"}

    def test_repeated_url_gets_separate_ids(self):
        store = InMemoryStore()
        url = "https://cdn.example.com/clip.mp4"
        out = asyncio.run(mask_json(store, [url, url], BASE))
        assert out[0] != out[1]
        assert len(store) == 2

    def test_same_input_same_scaffold(self):
        doc = {"a": ["https://cdn.example.com/1.mp4", {"b": "https://cdn.example.com/2.mp3"}], "c": 3}

        def shape(value):
            if isinstance(value, dict):
                return {k: shape(v) for k, v in value.items()}
            if isinstance(value, list):
                return [shape(v) for v in value]
            return type(value).__name__

        first = asyncio.run(mask_json(InMemoryStore(), doc, BASE))
        second = asyncio.run(mask_json(InMemoryStore(), doc, BASE))
        assert shape(first) == shape(second) == shape(doc)
        assert first != second

    def test_store_failure_propagates(self):
        with pytest.raises(StoreError):
            asyncio.run(mask_json(RefusingStore(), {"a": "https://cdn.example.com/a.mp4"}, BASE))

    def test_very_deep_document(self):
        store = InMemoryStore()
        depth = 5000
        doc = "https://cdn.example.com/bottom.mp4"
        for level in range(depth):
            doc = [doc] if level % 2 else {"next": doc, "n": level}

        out = asyncio.run(mask_json(store, doc, BASE))

        node = out
        for level in reversed(range(depth)):
            if level % 2:
                assert isinstance(node, list) and len(node) == 1
                node = node[0]
            else:
                assert list(node) == ["next", "n"]
                assert node["n"] == level
                node = node["next"]
        assert node.startswith(f"{BASE}/cx_")
        assert node.endswith(".mp4")
        assert len(store) == 1

    def test_sibling_order_is_kept(self):
        urls = [f"https://cdn.example.com/{i}.mp4" for i in range(5)]
        store = InMemoryStore()
        out = asyncio.run(mask_json(store, {"x": urls, "y": [[urls[0]], "plain"]}, BASE))

        ids = [strip_extension(u.rsplit("/", 1)[1]) for u in out["x"]]
        assert [asyncio.run(store.get(i)) for i in ids] == urls
        assert out["y"][1] == "plain"
