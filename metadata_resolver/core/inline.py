from __future__ import annotations

import base64
import binascii
import json
import re
from typing import Any
from urllib.parse import unquote

from metadata_resolver.core.references import is_inline_json

_DATA_URL_RE = re.compile(
    r"^data:application/json(?:;charset=[^;,]+)?(?:;(base64))?,(.*)$",
    re.IGNORECASE | re.DOTALL,
)


def is_data_url(reference: str) -> bool:
    return reference[:5].lower() == "data:"


def is_self_contained(reference: str) -> bool:
    """True when the reference carries its payload and must never hit the network."""
    return is_inline_json(reference) or is_data_url(reference)


def decode_inline_reference(reference: str) -> dict[str, Any] | None:
    if is_data_url(reference):
        return parse_data_url_json(reference)
    if is_inline_json(reference):
        return _parse_object(reference)
    return None


def parse_data_url_json(reference: str) -> dict[str, Any] | None:
    match = _DATA_URL_RE.match(reference)
    if match is None:
        return None
    is_base64, payload = match.group(1), match.group(2).strip()
    try:
        if is_base64:
            padded = payload + "=" * (-len(payload) % 4)
            decoded = base64.b64decode(padded).decode("utf-8")
        else:
            decoded = unquote(payload, errors="strict")
    except (binascii.Error, ValueError):
        return None
    return _parse_object(decoded)


def _parse_object(text: str) -> dict[str, Any] | None:
    try:
        parsed = json.loads(text)
    except (ValueError, RecursionError):
        return None
    return parsed if isinstance(parsed, dict) else None
