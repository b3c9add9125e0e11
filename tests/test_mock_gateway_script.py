from __future__ import annotations

import importlib.util
from http import HTTPStatus
from pathlib import Path
from types import ModuleType

import pytest

SCRIPT_PATH = Path(__file__).resolve().parents[1] / "scripts" / "mock_ipfs_gateway.py"


def _load_script() -> ModuleType:
    spec = importlib.util.spec_from_file_location("mock_ipfs_gateway", SCRIPT_PATH)
    assert spec is not None and spec.loader is not None
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_route_serves_known_documents_with_content_type() -> None:
    script = _load_script()
    documents = {"QmJson": b'{"title": "Logo"}', "QmText": b"plain words"}

    assert script.route("/ipfs/QmJson", documents, None) == (HTTPStatus.OK, b'{"title": "Logo"}', "application/json")
    status, body, content_type = script.route("/ipfs/QmText", documents, None)
    assert (status, body) == (HTTPStatus.OK, b"plain words")
    assert content_type.startswith("text/plain")
    assert script.route("/ipfs/QmUnknown", documents, None)[0] == HTTPStatus.NOT_FOUND


def test_route_simulates_failing_gateway() -> None:
    script = _load_script()
    status, _, _ = script.route("/ipfs/QmJson", {"QmJson": b"{}"}, 503)
    assert status == HTTPStatus.SERVICE_UNAVAILABLE
    assert script.route("/healthz", {}, 503)[0] == HTTPStatus.OK


def test_load_documents_reads_files(tmp_path: Path) -> None:
    script = _load_script()
    document = tmp_path / "meta.json"
    document.write_text('{"title": "From disk"}', encoding="utf-8")

    assert script.load_documents([f"QmDisk={document}"]) == {"QmDisk": b'{"title": "From disk"}'}
    with pytest.raises(SystemExit):
        script.load_documents(["missing-separator"])
