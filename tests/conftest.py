import json
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path

import pytest

from apirunner import definitions

FIXTURES = Path(__file__).parent / "fixtures"


class EchoHandler(BaseHTTPRequestHandler):
    """echo request method, path, headers and body back as JSON"""

    def log_message(self, format, *args):
        pass

    def _send(self, status, payload: bytes, content_type: str, cookies=()):
        self.send_response(status)
        if payload:
            self.send_header("Content-Type", content_type)
        for cookie in cookies:
            self.send_header("Set-Cookie", cookie)
        self.send_header("Content-Length", str(len(payload)))
        self.end_headers()
        if payload:
            self.wfile.write(payload)

    def _echo(self):
        length = int(self.headers.get("Content-Length") or 0)
        raw_body = self.rfile.read(length) if length else b""

        if self.path.startswith("/empty"):
            self._send(204, b"", "")
            return

        if self.path.startswith("/text"):
            self._send(200, "plain 文本".encode("utf-8"), "text/plain")
            return

        status = 404 if self.path.startswith("/missing") else 200
        payload = {
            "code": 0 if status == 200 else 404,
            "message": "success" if status == 200 else "not found",
            "data": {
                "method": self.command,
                "path": self.path,
                "headers": dict(self.headers),
                "body": raw_body.decode("utf-8", errors="replace"),
            },
        }
        self._send(
            status,
            json.dumps(payload, ensure_ascii=False).encode("utf-8"),
            "application/json;charset=UTF-8",
            cookies=("session=abc123; Path=/", "theme=dark; Path=/"),
        )

    do_GET = _echo
    do_POST = _echo
    do_PUT = _echo
    do_PATCH = _echo
    do_DELETE = _echo


@pytest.fixture(scope="session")
def http_server():
    server = ThreadingHTTPServer(("127.0.0.1", 0), EchoHandler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield f"http://127.0.0.1:{server.server_address[1]}"
    server.shutdown()
    server.server_close()


@pytest.fixture(autouse=True)
def clear_definitions_cache():
    definitions.clear_cache()
    yield
    definitions.clear_cache()
