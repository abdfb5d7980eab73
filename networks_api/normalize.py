# ============================================================================
# CLAUDE CONTEXT - FIELD NORMALIZATION
# ============================================================================
# STATUS: Standalone Module - Best-effort coercion of Airtable field values
# PURPOSE: Turn loosely shaped upstream values into clean URL lists / text
# EXPORTS: parse_geometry, normalize_url, pick_attachment_url, collect_photo_urls,
#          normalize_leaders, normalize_text_field, is_attachment_array
# DEPENDENCIES: json, re (stdlib)
# VALIDATION: None - every function here is total and never raises
# ============================================================================

"""
Field Normalization

Airtable hands back attachment objects, lookup/rollup arrays, JSON encoded
strings, comma joined strings and record references for what is logically
the same field. The helpers here coerce any of those into one of two
canonical shapes:

- an ordered, de-duplicated list of clean URLs (collect_photo_urls)
- an ordered, de-duplicated ", " joined string (normalize_leaders,
  normalize_text_field)

Dispatch is done on a closed set of shapes (see ValueShape) so the fallback
order stays explicit. Nothing in this module raises: unrecognised shapes
contribute nothing, or are treated as opaque text.
"""

import json
import re
from enum import Enum
from typing import Any, Dict, List, Optional


class ValueShape(str, Enum):
    """Runtime shape categories of a raw field value."""
    ABSENT = "absent"
    LIST = "list"
    TEXT = "text"
    STRUCTURED = "structured"
    SCALAR = "scalar"


def classify(value: Any) -> ValueShape:
    """Map a decoded JSON value onto its ValueShape."""
    if value is None:
        return ValueShape.ABSENT
    if isinstance(value, (list, tuple)):
        return ValueShape.LIST
    if isinstance(value, str):
        return ValueShape.TEXT
    if isinstance(value, dict):
        return ValueShape.STRUCTURED
    return ValueShape.SCALAR


# Airtable record IDs: "rec" + alphanumeric suffix (14 chars on real bases,
# shorter suffixes show up in fixtures and exports)
RECORD_ID_PATTERN = re.compile(r"^rec[a-zA-Z0-9]{12,14}$")

HTTP_URL_PATTERN = re.compile(r"^https?://", re.IGNORECASE)

_LEADING_ENCODED_SPACE = re.compile(r"^(%20)+", re.IGNORECASE)
_PROTOCOL_SLASHES = re.compile(r"^(https?:)/{2,}", re.IGNORECASE)
_INNER_SLASHES = re.compile(r"([^:])/{2,}")

_EDGE_QUOTES = re.compile(r"^[\[\]\"']+|[\[\]\"']+$")
_WHITESPACE = re.compile(r"\s+")
_TEXT_SEPARATORS = re.compile(r"[;,]")

# Object keys tried in order by normalize_text_field
TEXT_FIELD_PREFERRED_KEYS = ("email", "text", "name", "value")


# ============================================================================
# GEOMETRY
# ============================================================================

def parse_geometry(raw: Any) -> Optional[Dict[str, Any]]:
    """
    Parse a GeoJSON geometry from a string or object.

    Returns the geometry unchanged when it is an object carrying a truthy
    "type", otherwise None. Coordinates are not validated.
    """
    if not raw:
        return None

    geometry = raw
    if isinstance(raw, str):
        try:
            geometry = json.loads(raw)
        except (ValueError, RecursionError):
            return None

    if isinstance(geometry, dict) and geometry.get("type"):
        return geometry
    return None


# ============================================================================
# URLS
# ============================================================================

def normalize_url(url: Any) -> str:
    """
    Clean up a URL string.

    Strips leading whitespace and leading ``%20`` runs, collapses the slashes
    after ``http:``/``https:`` to exactly two, and collapses any other run of
    slashes to one.
    """
    s = str(url if url is not None else "").strip()
    s = _LEADING_ENCODED_SPACE.sub("", s).lstrip()
    s = _PROTOCOL_SLASHES.sub(lambda m: f"{m.group(1)}//", s)
    s = _INNER_SLASHES.sub(r"\1/", s)
    return s


def _nested_url(obj: Dict[str, Any], *path: str) -> Optional[str]:
    current: Any = obj
    for key in path:
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current or None


def pick_attachment_url(attachment: Any) -> Optional[str]:
    """
    Pick the best URL for one attachment-like value.

    Objects: large thumbnail, then full thumbnail, then the primary url.
    Strings: returned only when they start with http:// or https://, so
    plain names are never mistaken for photos.
    """
    if not attachment:
        return None

    if isinstance(attachment, str):
        return attachment if HTTP_URL_PATTERN.match(attachment) else None

    if isinstance(attachment, dict):
        return (
            _nested_url(attachment, "thumbnails", "large", "url")
            or _nested_url(attachment, "thumbnails", "full", "url")
            or _nested_url(attachment, "url")
        )

    return None


def is_attachment_like(value: Any) -> bool:
    """True for an object exposing a url or a thumbnail set."""
    return isinstance(value, dict) and bool(value.get("url") or value.get("thumbnails"))


def is_attachment_array(value: Any) -> bool:
    """True when the field is a non-empty list whose first item is an attachment object."""
    return isinstance(value, list) and len(value) > 0 and is_attachment_like(value[0])


def _looks_like_json_container(text: str) -> bool:
    return (text.startswith("[") and text.endswith("]")) or (
        text.startswith("{") and text.endswith("}")
    )


def collect_photo_urls(value: Any) -> List[str]:
    """
    Flatten an attachment / lookup field into a list of clean URLs.

    Walks lists, JSON encoded strings, comma joined strings, attachment
    objects and opaque wrapper objects depth first. Order is discovery
    order; duplicates are dropped.
    """
    urls: Dict[str, None] = {}

    def add(candidate: Optional[str]) -> None:
        if candidate:
            urls.setdefault(normalize_url(candidate), None)

    def walk(v: Any) -> None:
        shape = classify(v)

        if shape is ValueShape.LIST:
            for item in v:
                walk(item)

        elif shape is ValueShape.TEXT:
            s = v.strip()
            if _looks_like_json_container(s):
                try:
                    parsed = json.loads(s)
                except (ValueError, RecursionError):
                    pass
                else:
                    walk(parsed)
                    return
            parts = s.split(",") if "," in s else [s]
            for part in parts:
                add(pick_attachment_url(part))

        elif shape is ValueShape.STRUCTURED:
            if is_attachment_like(v):
                add(pick_attachment_url(v))
                return
            for nested in v.values():
                walk(nested)

        # ABSENT and SCALAR contribute nothing

    walk(value)
    return list(urls)


# ============================================================================
# TEXT
# ============================================================================

def _stringify(value: Any) -> str:
    """Render a scalar the way it reads in the Airtable UI."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (list, tuple)):
        return ",".join("" if item is None else _stringify(item) for item in value)
    if isinstance(value, dict):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


def clean_token(value: Any) -> Optional[str]:
    """
    Clean one text token.

    Trims, strips bracket/quote runs from both ends, collapses whitespace and
    drops Airtable record IDs. Returns None when nothing is left.
    """
    if value is None:
        return None
    token = _stringify(value).strip()
    token = _EDGE_QUOTES.sub("", token)
    token = _WHITESPACE.sub(" ", token).strip()
    if not token or RECORD_ID_PATTERN.match(token):
        return None
    return token


class _TokenSet:
    """Ordered unique tokens joined with ", "."""

    def __init__(self):
        self._tokens: Dict[str, None] = {}

    def push(self, value: Any) -> None:
        token = clean_token(value)
        if token:
            self._tokens.setdefault(token, None)

    def joined(self) -> str:
        return ", ".join(self._tokens)


def normalize_leaders(value: Any) -> str:
    """
    Normalize a leaders style lookup into "A, B, C".

    Lists: objects contribute their "name", strings carrying a flattened JSON
    array artifact (``a","b``) are split, anything else is one token.
    Strings: JSON arrays are parsed, otherwise split on ``;`` or ``,``.
    """
    tokens = _TokenSet()

    def push_items(items) -> None:
        for item in items:
            if isinstance(item, dict) and "name" in item:
                tokens.push(item["name"])
            elif isinstance(item, str) and '","' in item:
                for piece in item.split('","'):
                    tokens.push(piece.strip('"'))
            else:
                tokens.push(item)

    shape = classify(value)

    if shape is ValueShape.LIST:
        push_items(value)

    elif shape is ValueShape.TEXT:
        text = value.strip()
        if text.startswith("[") and text.endswith("]"):
            try:
                parsed = json.loads(text)
            except (ValueError, RecursionError):
                pass
            else:
                if isinstance(parsed, list):
                    push_items(parsed)
                else:
                    tokens.push(parsed)
                return tokens.joined()

        for piece in _TEXT_SEPARATORS.split(text):
            tokens.push(piece)

    elif shape is not ValueShape.ABSENT:
        tokens.push(value)

    return tokens.joined()


def normalize_text_field(value: Any) -> str:
    """
    Normalize a plain text / lookup field (email, status, county, tags).

    Objects contribute their first non-null email, text, name or value key;
    objects without any of those are searched recursively.
    """
    tokens = _TokenSet()

    def walk(v: Any) -> None:
        shape = classify(v)

        if shape is ValueShape.ABSENT:
            return
        if shape is ValueShape.LIST:
            for item in v:
                walk(item)
            return
        if shape is ValueShape.STRUCTURED:
            candidate = next(
                (v[key] for key in TEXT_FIELD_PREFERRED_KEYS if v.get(key) is not None),
                None
            )
            if candidate is None:
                for nested in v.values():
                    walk(nested)
            elif isinstance(candidate, (list, dict)):
                walk(candidate)
            else:
                tokens.push(candidate)
            return

        tokens.push(v)

    walk(value)
    return tokens.joined()


def first_present(fields: Dict[str, Any], names) -> Any:
    """Return the first field value that is not None, trying names in order."""
    for name in names:
        value = fields.get(name)
        if value is not None:
            return value
    return None
