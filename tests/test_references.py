from metadata_resolver.core.references import (
    decode_hex_reference,
    extract_content_path,
    normalize_reference,
    to_gateway_url,
)

CID = "QmYwAPJzv5CZsnAzt8auVZRn5W9oVGkZt1u6Z8XyH4kS9X"


def test_normalize_reference_decodes_hex_encoded_utf8() -> None:
    raw = "0x" + "ipfs://abc".encode("utf-8").hex()
    assert normalize_reference(raw) == "ipfs://abc"


def test_normalize_reference_keeps_hex_that_is_not_utf8() -> None:
    assert normalize_reference("0xfffe") == "0xfffe"
    assert decode_hex_reference("0xabc") == "0xabc"


def test_normalize_reference_strips_nulls_and_quotes() -> None:
    assert normalize_reference('  "ipfs://abc"\x00\x00') == "ipfs://abc"
    assert normalize_reference("'https://example.org/meta.json'") == "https://example.org/meta.json"


def test_normalize_reference_decodes_bytes_with_null_padding() -> None:
    raw = b"ipfs://abc" + b"\x00" * 6
    assert normalize_reference(raw) == "ipfs://abc"


def test_normalize_reference_returns_inline_json_untouched() -> None:
    assert normalize_reference('{"title": "Logo"}') == '{"title": "Logo"}'
    assert normalize_reference("[1, 2]") == "[1, 2]"


def test_normalize_reference_rewrites_shorthand_prefixes() -> None:
    assert normalize_reference("ar://tx-123") == "https://arweave.net/tx-123"
    assert normalize_reference("ar://tx-123", arweave_gateway="https://ar.example/") == "https://ar.example/tx-123"
    assert normalize_reference("ipfs://ipfs/abc/meta.json") == "ipfs://abc/meta.json"
    assert normalize_reference("/ipfs/abc") == "ipfs://abc"


def test_normalize_reference_leaves_other_forms_alone() -> None:
    assert normalize_reference(CID) == CID
    assert normalize_reference("data:application/json,%7B%7D") == "data:application/json,%7B%7D"
    assert normalize_reference("https://example.org/a") == "https://example.org/a"


def test_normalize_reference_treats_empty_input_as_no_reference() -> None:
    assert normalize_reference(None) is None
    assert normalize_reference("") is None
    assert normalize_reference("  \x00") is None
    assert normalize_reference('""') is None


def test_extract_content_path_handles_prefix_variants() -> None:
    assert extract_content_path("ipfs://abc/x.json") == "abc/x.json"
    assert extract_content_path("ipfs/abc") == "abc"
    assert extract_content_path("https://gateway.pinata.cloud/ipfs/abc/x.json") == "abc/x.json"
    assert extract_content_path(CID) == CID
    assert extract_content_path("https://example.org/meta.json") is None
    assert extract_content_path("hello world") is None


def test_to_gateway_url_renders_links() -> None:
    assert to_gateway_url("ipfs://abc") == "https://ipfs.io/ipfs/abc"
    assert to_gateway_url("/ipfs/abc", gateway="https://gw.example/") == "https://gw.example/ipfs/abc"
    assert to_gateway_url(CID) == f"https://ipfs.io/ipfs/{CID}"
    assert to_gateway_url("https://example.org/a.png") == "https://example.org/a.png"
    assert to_gateway_url("not a cid") == "not a cid"
    assert to_gateway_url(None) is None
