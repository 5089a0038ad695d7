"""Registration and JSON masking — the write path.

register_url() stores any URL it is given. mask_json() walks a JSON value
and registers only the strings the classifier accepts.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from corex.classifier import detect_extension, is_maskable
from corex.ids import generate_corex_id
from corex.store import MappingStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MaskedUrl:
    corex_id: str
    corex_url: str
    original_url: str


def build_masked_url(base_url: str, corex_id: str, extension: str = "") -> str:
    return f"{base_url.rstrip('/')}/{corex_id}{extension}"


def _allocate(url: str, base_url: str) -> MaskedUrl:
    corex_id = generate_corex_id()
    return MaskedUrl(
        corex_id=corex_id,
        corex_url=build_masked_url(base_url, corex_id, detect_extension(url)),
        original_url=url,
    )


async def register_url(store: MappingStore, url: str, base_url: str) -> MaskedUrl:
    """Allocate an identifier for ``url`` and persist the mapping.

    Not gated on the classifier. StoreError propagates, and nothing is
    returned for a mapping that was not written.
    """
    masked = _allocate(url, base_url)
    await store.put(masked.corex_id, url)
    logger.debug("Registered %s", masked.corex_id)
    return masked


def _shallow_mask(value, base_url: str, pending: list[MaskedUrl]):
    # Containers come back empty; the walk in mask_json fills them.
    if isinstance(value, str):
        if is_maskable(value):
            masked = _allocate(value, base_url)
            pending.append(masked)
            return masked.corex_url
        return value
    if isinstance(value, list):
        return []
    if isinstance(value, dict):
        return {}
    return value


async def mask_json(store: MappingStore, value, base_url: str):
    """Return a copy of ``value`` with every maskable URL string replaced.

    Lists map element-wise, objects map value-wise in key order, keys are
    left alone, and non-string scalars pass through. Each occurrence of a
    URL gets its own identifier.

    The document is walked with an explicit stack, so nesting depth is
    bounded only by memory. Mappings are written once the copy is built,
    and a StoreError from any write propagates without returning it.
    """
    pending: list[MaskedUrl] = []
    result = _shallow_mask(value, base_url, pending)
    stack = [(value, result)] if isinstance(value, (list, dict)) else []
    while stack:
        source, target = stack.pop()
        if isinstance(source, dict):
            for key, item in source.items():
                target[key] = copied = _shallow_mask(item, base_url, pending)
                if isinstance(item, (list, dict)):
                    stack.append((item, copied))
        else:
            for item in source:
                copied = _shallow_mask(item, base_url, pending)
                target.append(copied)
                if isinstance(item, (list, dict)):
                    stack.append((item, copied))

    for masked in pending:
        await store.put(masked.corex_id, masked.original_url)
        logger.debug("Registered %s", masked.corex_id)
    return result
