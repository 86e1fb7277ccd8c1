"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import json
import threading
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import pytest
import structlog

_PROXY_VARS = ("http_proxy", "HTTP_PROXY", "https_proxy", "HTTPS_PROXY", "all_proxy", "ALL_PROXY")


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Keep requests to the local fake server off any proxy and reset globals."""
    from mail_index.config import get_settings

    for name in _PROXY_VARS:
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()

    yield

    get_settings.cache_clear()
    structlog.reset_defaults()


@dataclass
class RecordedRequest:
    """A request received by :class:`FakeZincServer`."""

    path: str
    headers: dict[str, str]
    body: bytes

    def documents(self) -> list[dict]:
        """Document lines of an NDJSON bulk body."""
        lines = self.body.decode("utf-8").splitlines()
        return [json.loads(line) for line in lines[1::2]]

    def actions(self) -> list[dict]:
        """Action lines of an NDJSON bulk body."""
        lines = self.body.decode("utf-8").splitlines()
        return [json.loads(line) for line in lines[0::2]]


class FakeZincServer:
    """Minimal stand-in for the ZincSearch HTTP API."""

    def __init__(self) -> None:
        self.requests: list[RecordedRequest] = []
        self._responses: dict[str, tuple[int, bytes]] = {}
        self._lock = threading.Lock()
        self._httpd = ThreadingHTTPServer(("127.0.0.1", 0), self._make_handler())
        self.url = f"http://127.0.0.1:{self._httpd.server_address[1]}"
        self._thread = threading.Thread(target=self._httpd.serve_forever, daemon=True)

    def respond(self, path: str, status: int, body: bytes | dict) -> None:
        payload = body if isinstance(body, bytes) else json.dumps(body).encode("utf-8")
        with self._lock:
            self._responses[path] = (status, payload)

    def requests_to(self, path: str) -> list[RecordedRequest]:
        with self._lock:
            return [r for r in self.requests if r.path == path]

    def bulk_requests(self) -> list[RecordedRequest]:
        return self.requests_to("/api/_bulk")

    def start(self) -> None:
        self._thread.start()

    def stop(self) -> None:
        self._httpd.shutdown()
        self._httpd.server_close()
        self._thread.join()

    def _make_handler(self) -> type[BaseHTTPRequestHandler]:
        server = self

        class Handler(BaseHTTPRequestHandler):
            def do_POST(self) -> None:  # noqa: N802
                length = int(self.headers.get("Content-Length", "0"))
                body = self.rfile.read(length)
                with server._lock:
                    server.requests.append(
                        RecordedRequest(
                            path=self.path,
                            headers={k.lower(): v for k, v in self.headers.items()},
                            body=body,
                        )
                    )
                    status, payload = server._responses.get(self.path, (200, b'{"ok": true}'))

                self.send_response(status)
                self.send_header("Content-Type", "application/json")
                self.send_header("Content-Length", str(len(payload)))
                self.end_headers()
                self.wfile.write(payload)

            def log_message(self, format: str, *args: object) -> None:
                pass

        return Handler


@pytest.fixture
def zinc_server() -> Iterator[FakeZincServer]:
    """Provide a running fake ZincSearch server."""
    server = FakeZincServer()
    server.start()
    yield server
    server.stop()


@pytest.fixture
def make_settings(zinc_server: FakeZincServer) -> Callable[..., object]:
    """Build Settings pointed at the fake server."""
    from mail_index.config import Settings

    def _make(**overrides: object):
        values = {
            "zinc_url": zinc_server.url,
            "zinc_username": "admin",
            "zinc_password": "secret",
            "index_name": "enron",
            "batch_size": 3,
            "http_timeout": 5.0,
            "max_retries": 0,
            "log_level": "DEBUG",
        }
        values.update(overrides)
        return Settings(**values)

    return _make


@pytest.fixture
def email_factory() -> Callable[..., bytes]:
    """Build raw email file contents in the maildir style."""

    def _build(
        *,
        message_id: str | None = "<18782981.1075855378110.JavaMail.evans@thyme>",
        date: str | None = "Mon, 14 May 2001 16:39:00 -0700 (PDT)",
        sender: str | None = "phillip.allen@enron.com",
        to: str | None = "tim.belden@enron.com",
        subject: str | None = "Re: forecast",
        body: str = "Here is our forecast\n",
        newline: str = "\n",
        separator: bool = True,
    ) -> bytes:
        headers = [
            ("Message-ID", message_id),
            ("Date", date),
            ("From", sender),
            ("To", to),
            ("Subject", subject),
            ("Mime-Version", "1.0"),
            ("Content-Type", "text/plain; charset=us-ascii"),
            ("X-From", "Phillip K Allen"),
            ("X-FileName", "pallen (Non-Privileged).pst"),
        ]
        lines = [f"{name}: {value}" for name, value in headers if value is not None]
        text = newline.join(lines) + newline
        if separator:
            text += newline + body
        return text.encode("utf-8")

    return _build


@pytest.fixture
def sample_email_bytes(email_factory: Callable[..., bytes]) -> bytes:
    """Provide a well-formed email file."""
    return email_factory()
