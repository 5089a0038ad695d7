"""URL classifier — which strings get masked, and what extension they wear.

Both questions are answered by ordered decision tables. Rules run on the
lower-cased URL and the first match wins. The tables lean towards recall:
CDN links without a clean file extension should still be masked, while
ordinary web pages and API endpoints should not.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable
from urllib.parse import urlsplit

_HTTP_URL = re.compile(r"^https?://\S+$", re.IGNORECASE)

WEB_EXTENSIONS = frozenset(
    {".html", ".htm", ".php", ".aspx", ".jsp", ".js", ".css", ".json"}
)

# Substrings that mark a URL as media wherever they appear, query included.
MASKABLE_MEDIA_MARKERS = (
    ".mp4", ".mp3", ".mkv", ".avi", ".mov", ".srt",
    ".vtt", ".ts", ".m3u8", ".webp", ".jpg", ".png",
)

# Checked in order when picking an extension; first hit is returned.
EXTENSION_MEDIA_MARKERS = (
    ".mp4", ".mp3", ".srt", ".vtt", ".jpg", ".jpeg",
    ".png", ".webp", ".gif", ".ts", ".m3u8",
)

MEDIA_KEYWORDS = (
    "/video/", "/audio/", "/media/", "/storage/",
    "/resource/", "/source/", "cdn", "cloudfront",
)

MIME_TYPE_EXTENSIONS = (
    ("mime_type=video", ".mp4"),
    ("mime_type=audio", ".mp3"),
    ("mime_type=image", ".jpg"),
)

PATH_KEYWORD_EXTENSIONS = (
    ("/video/", ".mp4"),
    ("/resource/", ".mp4"),
    ("/audio/", ".mp3"),
    ("/subtitle/", ".srt"),
)


@dataclass(frozen=True)
class MaskRule:
    name: str
    matches: Callable[[str], bool]


@dataclass(frozen=True)
class ExtensionRule:
    name: str
    extract: Callable[[str], str | None]


def _path(url: str) -> str:
    """Path component only: no host, no query, no fragment."""
    try:
        return urlsplit(url).path
    except ValueError:
        return ""


def _path_suffix(url: str) -> str | None:
    """Substring of the path from its last dot, or None without one."""
    path = _path(url)
    dot = path.rfind(".")
    if dot == -1:
        return None
    return path[dot:]


# ── is_maskable ──────────────────────────────────────────────


def has_file_extension(url: str) -> bool:
    last_segment = _path(url).rsplit("/", 1)[-1]
    if "." not in last_segment:
        return False
    ext = last_segment[last_segment.rfind("."):]
    return 3 <= len(ext) <= 6 and ext not in WEB_EXTENSIONS


def has_media_marker(url: str) -> bool:
    return any(marker in url for marker in MASKABLE_MEDIA_MARKERS)


def has_media_keyword(url: str) -> bool:
    return "mime_type=" in url or any(k in url for k in MEDIA_KEYWORDS)


MASK_RULES: tuple[MaskRule, ...] = (
    MaskRule("path-extension", has_file_extension),
    MaskRule("media-marker", has_media_marker),
    MaskRule("media-keyword", has_media_keyword),
)


def looks_like_http_url(value) -> bool:
    return isinstance(value, str) and _HTTP_URL.match(value) is not None


def matching_mask_rule(value) -> str | None:
    """Name of the rule that makes ``value`` maskable, or None."""
    if not looks_like_http_url(value):
        return None
    lowered = value.lower()
    for rule in MASK_RULES:
        if rule.matches(lowered):
            return rule.name
    return None


def is_maskable(value) -> bool:
    """True if ``value`` is an http(s) URL that looks like a media/file resource."""
    return matching_mask_rule(value) is not None


# ── detect_extension ─────────────────────────────────────────


def extension_from_path(url: str) -> str | None:
    ext = _path_suffix(url)
    if ext and 3 <= len(ext) <= 6 and ext[1:].isalnum() and ext[1:].isascii():
        return ext
    return None


def extension_from_marker(url: str) -> str | None:
    for marker in EXTENSION_MEDIA_MARKERS:
        if marker in url:
            return marker
    return None


def extension_from_mime_type(url: str) -> str | None:
    for needle, ext in MIME_TYPE_EXTENSIONS:
        if needle in url:
            return ext
    return None


def extension_from_path_keyword(url: str) -> str | None:
    for keyword, ext in PATH_KEYWORD_EXTENSIONS:
        if keyword in url:
            return ext
    return None


EXTENSION_RULES: tuple[ExtensionRule, ...] = (
    ExtensionRule("path-suffix", extension_from_path),
    ExtensionRule("media-marker", extension_from_marker),
    ExtensionRule("mime-type", extension_from_mime_type),
    ExtensionRule("path-keyword", extension_from_path_keyword),
)


def detect_extension(value: str) -> str:
    """Dot-prefixed lower-case extension for a masked URL, or ""."""
    lowered = value.lower()
    for rule in EXTENSION_RULES:
        ext = rule.extract(lowered)
        if ext:
            return ext
    return ""
