from __future__ import annotations

import re
from typing import Any

_HEX_LITERAL_RE = re.compile(r"^0x(?:[0-9a-fA-F]{2})+$")
_HTTP_RE = re.compile(r"^https?://", re.IGNORECASE)
_IPFS_SCHEME_RE = re.compile(r"^ipfs://(?:ipfs/)?", re.IGNORECASE)
_IPFS_PATH_RE = re.compile(r"^/?ipfs/", re.IGNORECASE)
_GATEWAY_PATH_RE = re.compile(r"/ipfs/(.+)$", re.IGNORECASE)
_BARE_CID_RE = re.compile(r"^[a-z0-9]{46,}(?:/.*)?$", re.IGNORECASE)

IPFS_SCHEME = "ipfs://"
ARWEAVE_SCHEME = "ar://"
DEFAULT_GATEWAY = "https://ipfs.io/ipfs"
DEFAULT_ARWEAVE_GATEWAY = "https://arweave.net"


def normalize_reference(raw: Any, *, arweave_gateway: str = DEFAULT_ARWEAVE_GATEWAY) -> str | None:
    """Canonicalize a raw on-chain metadata field.

    The result is an https URL, inline JSON text, an ``ipfs://<cid>[/path]``
    content path, or the trimmed input when no rewrite applies (bare CID, data
    URL, plain text). Empty input yields None. Never raises.
    """
    if raw is None:
        return None
    if isinstance(raw, (bytes, bytearray)):
        raw = "0x" + bytes(raw).hex()

    reference = strip_nulls(str(raw).strip())
    reference = _unquote(reference).strip()
    reference = decode_hex_reference(reference)

    if is_inline_json(reference):
        return reference

    if reference.startswith(ARWEAVE_SCHEME):
        return f"{arweave_gateway.rstrip('/')}/{reference[len(ARWEAVE_SCHEME):]}"

    content_path = _shorthand_content_path(reference)
    if content_path:
        return f"{IPFS_SCHEME}{content_path}"

    return reference or None


def strip_nulls(value: str) -> str:
    return value.rstrip("\x00")


def decode_hex_reference(value: str) -> str:
    if not _HEX_LITERAL_RE.match(value):
        return value
    try:
        decoded = bytes.fromhex(value[2:]).decode("utf-8")
    except ValueError:
        return value
    return strip_nulls(decoded).strip()


def is_inline_json(reference: str) -> bool:
    return reference.startswith("{") or reference.startswith("[")


def is_http_url(reference: str) -> bool:
    return bool(_HTTP_RE.match(reference))


def is_bare_cid(reference: str) -> bool:
    return bool(_BARE_CID_RE.match(reference))


def extract_content_path(reference: str) -> str | None:
    """Return the ``<cid>[/path]`` portion of any IPFS-style reference.

    Handles ``ipfs://``, ``/ipfs/`` and ``ipfs/`` prefixes, gateway URLs with
    an ``/ipfs/`` segment and bare CIDs. Anything else yields None.
    """
    candidate = reference.strip()
    if is_http_url(candidate):
        match = _GATEWAY_PATH_RE.search(candidate)
        return match.group(1) if match else None
    path = _shorthand_content_path(candidate)
    if path:
        return path
    if is_bare_cid(candidate):
        return candidate
    return None


def normalize_gateway_base(base: str) -> str:
    """Return ``base`` ending in an ``/ipfs`` segment, without a trailing slash."""
    stripped = base.strip().rstrip("/")
    if not re.search(r"/ipfs(?:/|$)", stripped):
        stripped = f"{stripped}/ipfs"
    return stripped


def to_gateway_url(uri: str | None, *, gateway: str = DEFAULT_GATEWAY) -> str | None:
    """Render an IPFS-style reference as a browsable gateway link.

    http(s) URLs pass through untouched; unrecognized strings are returned as-is.
    """
    if not uri:
        return None
    candidate = uri.strip()
    if is_http_url(candidate):
        return candidate
    content_path = extract_content_path(candidate)
    if content_path:
        return f"{normalize_gateway_base(gateway)}/{content_path}"
    return candidate


def _shorthand_content_path(reference: str) -> str | None:
    if _IPFS_SCHEME_RE.match(reference):
        return _IPFS_SCHEME_RE.sub("", reference, count=1) or None
    if _IPFS_PATH_RE.match(reference):
        return _IPFS_PATH_RE.sub("", reference, count=1) or None
    return None


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in {'"', "'"}:
        return value[1:-1]
    return value
