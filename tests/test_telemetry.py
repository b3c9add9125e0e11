import asyncio
import logging
from types import SimpleNamespace
from typing import Any

import httpx

from metadata_resolver.core.config import Settings
from metadata_resolver.core.telemetry import (
    DIRECT_SOURCE,
    build_gateway_hooks,
    configure_logging,
    gateway_for_url,
    parse_headers,
    setup_telemetry,
    shutdown_telemetry,
)

GATEWAYS = ("https://gw.example.org/ipfs", "https://ipfs.io/ipfs")


class RecordingSpan:
    def __init__(self, recording: bool = True) -> None:
        self.recording = recording
        self.attributes: dict[str, Any] = {}

    def is_recording(self) -> bool:
        return self.recording

    def set_attribute(self, key: str, value: Any) -> None:
        self.attributes[key] = value


def test_parse_headers_skips_malformed_items() -> None:
    assert parse_headers("authorization=Bearer abc, x-team = core ,broken,=empty") == {
        "authorization": "Bearer abc",
        "x-team": "core",
    }
    assert parse_headers(None) == {}


def test_disabled_telemetry_is_a_no_op() -> None:
    runtime = setup_telemetry(Settings(otel_enabled=False))
    assert runtime.enabled is False
    assert runtime.provider is None
    assert runtime.gateway_bases == ()
    shutdown_telemetry(runtime)


def test_log_records_carry_empty_trace_context_outside_spans() -> None:
    configure_logging()
    record = logging.getLogRecordFactory()("test", logging.INFO, __file__, 1, "message", (), None)
    assert record.trace_id == "0" * 32
    assert record.span_id == "0" * 16


def test_gateway_for_url_matches_configured_bases() -> None:
    assert gateway_for_url("https://ipfs.io/ipfs/QmTest123", GATEWAYS) == "https://ipfs.io/ipfs"
    assert gateway_for_url("https://gw.example.org/ipfs/Qm/meta.json", GATEWAYS) == "https://gw.example.org/ipfs"
    assert gateway_for_url("https://example.org/meta.json", GATEWAYS) == DIRECT_SOURCE
    assert gateway_for_url("https://ipfs.io/ipfsx/Qm", GATEWAYS) == DIRECT_SOURCE


def test_gateway_hooks_tag_request_spans() -> None:
    on_request, on_response = build_gateway_hooks(GATEWAYS)
    request = SimpleNamespace(url=httpx.URL("https://ipfs.io/ipfs/QmTest123"))
    failed_span = RecordingSpan()
    ok_span = RecordingSpan()
    idle_span = RecordingSpan(recording=False)

    async def scenario() -> None:
        await on_request(failed_span, request)
        await on_response(failed_span, request, SimpleNamespace(status_code=502))
        await on_request(ok_span, request)
        await on_response(ok_span, request, SimpleNamespace(status_code=200))
        await on_request(idle_span, request)

    asyncio.run(scenario())
    assert failed_span.attributes == {"gateway.base": "https://ipfs.io/ipfs", "gateway.failed": True}
    assert ok_span.attributes == {"gateway.base": "https://ipfs.io/ipfs"}
    assert idle_span.attributes == {}
