#!/usr/bin/env python3
from __future__ import annotations

import argparse
import json
import time
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path


def load_documents(pairs: list[str]) -> dict[str, bytes]:
    documents: dict[str, bytes] = {}
    for pair in pairs:
        cid, separator, path = pair.partition("=")
        if not separator or not cid.strip():
            raise SystemExit(f"--document expects CID=path, got {pair!r}")
        documents[cid.strip()] = Path(path).read_bytes()
    return documents


def route(path: str, documents: dict[str, bytes], fail_status: int | None) -> tuple[HTTPStatus, bytes, str]:
    if path == "/healthz":
        return HTTPStatus.OK, b'{"status": "ok"}', "application/json"
    if fail_status is not None:
        return HTTPStatus(fail_status), json.dumps({"detail": "simulated failure"}).encode("utf-8"), "application/json"
    if not path.startswith("/ipfs/"):
        return HTTPStatus.NOT_FOUND, b'{"detail": "not found"}', "application/json"

    cid = path[len("/ipfs/") :].split("?", maxsplit=1)[0]
    body = documents.get(cid)
    if body is None:
        return HTTPStatus.NOT_FOUND, b'{"detail": "unknown cid"}', "application/json"
    try:
        json.loads(body)
    except ValueError:
        return HTTPStatus.OK, body, "text/plain; charset=utf-8"
    return HTTPStatus.OK, body, "application/json"


def build_handler(documents: dict[str, bytes], *, fail_status: int | None, delay_ms: int) -> type[BaseHTTPRequestHandler]:
    class MockGatewayHandler(BaseHTTPRequestHandler):
        server_version = "MockIPFSGateway/1.0"

        def do_GET(self) -> None:  # noqa: N802 - stdlib handler signature
            if delay_ms > 0:
                time.sleep(delay_ms / 1000.0)
            status, body, content_type = route(self.path, documents, fail_status)
            self.send_response(status.value)
            self.send_header("Content-Type", content_type)
            self.send_header("Content-Length", str(len(body)))
            self.end_headers()
            self.wfile.write(body)

        def log_message(self, _: str, *args: object) -> None:
            if args:
                print("mock-gateway:", *args)

    return MockGatewayHandler


def main() -> None:
    parser = argparse.ArgumentParser(description="Mock IPFS gateway serving /ipfs/<cid> documents.")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8089)
    parser.add_argument("--document", action="append", default=[], help="CID=path of a file to serve")
    parser.add_argument("--fail-status", type=int, default=None, help="answer every /ipfs request with this status")
    parser.add_argument("--delay-ms", type=int, default=0, help="sleep before answering each request")
    args = parser.parse_args()

    handler = build_handler(load_documents(args.document), fail_status=args.fail_status, delay_ms=args.delay_ms)
    server = ThreadingHTTPServer((args.host, args.port), handler)
    print(f"mock-gateway listening on http://{args.host}:{args.port}", flush=True)
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        pass
    finally:
        server.server_close()


if __name__ == "__main__":
    main()
