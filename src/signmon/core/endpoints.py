"""Collapse concrete request paths into endpoint patterns for metric keys."""

from __future__ import annotations

import re

_UUID_RE = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE
)
_NUMERIC_RE = re.compile(r"^\d+$")
# Device pairing codes and similar opaque tokens: 8+ alphanumerics mixing
# letters and digits, so plain words like "playlists" stay intact.
_CODE_RE = re.compile(r"^(?=[a-z0-9]*\d)(?=[a-z0-9]*[a-z])[a-z0-9]{8,}$", re.IGNORECASE)
# Generated device codes are upper-cased base36 and may be letters only.
_UPPER_CODE_RE = re.compile(r"^[A-Z0-9]{8,}$")

UNKNOWN_ENDPOINT = "unknown"


def _normalize_segment(segment: str) -> str:
    if _UUID_RE.match(segment) or _NUMERIC_RE.match(segment):
        return ":id"
    if _CODE_RE.match(segment) or _UPPER_CODE_RE.match(segment):
        return ":code"
    return segment


def normalize_endpoint(path: str | None) -> str:
    """Return the lower-cased endpoint pattern for a request path.

    ``/screens/3fa85f64-5717-4562-b3fc-2c963f66afa6`` -> ``/screens/:id``,
    ``/media/42`` -> ``/media/:id``, ``/player/ABCD1234`` -> ``/player/:code``.
    Applying it to its own output returns the same pattern.
    """
    if not path:
        return UNKNOWN_ENDPOINT
    path = path.split("?", 1)[0]
    if not path:
        return UNKNOWN_ENDPOINT
    segments = [_normalize_segment(s) for s in path.split("/")]
    return "/".join(segments).lower()


def endpoint_key(method: str, endpoint: str) -> str:
    """Store key for a request log, e.g. ``GET:/screens/:id``."""
    return f"{method.upper()}:{normalize_endpoint(endpoint)}"
