import socket
from typing import Any, Dict, List, Optional

import pytest

from sniffer.core.parser import PageParser
from sniffer.core.size_resolver import SizeResolver
from sniffer.models.page import MediaElement, PageSnapshot, ResourceEntry


class FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None, headers: Optional[Dict[str, str]] = None):
        self.status_code = status_code
        self._payload = payload
        self.headers = headers or {}

    @property
    def ok(self) -> bool:
        return self.status_code < 400

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON object could be decoded")
        return self._payload


class FakeSession:
    """Records calls and replays canned responses keyed by (method, url)."""

    def __init__(self, responses: Optional[Dict[tuple, Any]] = None):
        self.responses = responses or {}
        self.calls: List[Dict[str, Any]] = []
        self.closed = False

    def _reply(self, method: str, url: str, **kwargs):
        self.calls.append({"method": method, "url": url, **kwargs})
        reply = self.responses.get((method, url))
        if isinstance(reply, Exception):
            raise reply
        if reply is None:
            return FakeResponse(404)
        return reply

    def get(self, url, **kwargs):
        return self._reply("GET", url, **kwargs)

    def head(self, url, **kwargs):
        return self._reply("HEAD", url, **kwargs)

    def post(self, url, **kwargs):
        return self._reply("POST", url, **kwargs)

    def close(self):
        self.closed = True


class FakeFetcher:
    """Stands in for AdvancedFetcher.probe_content_length."""

    def __init__(self, sizes: Optional[Dict[str, Any]] = None):
        self.sizes = sizes or {}
        self.probed: List[str] = []

    def probe_content_length(self, url: str, timeout: Optional[float] = None):
        self.probed.append(url)
        value = self.sizes.get(url)
        if isinstance(value, Exception):
            raise value
        return value

    def close(self):
        pass


class FakeSource:
    def __init__(self, url: str, snapshot: Optional[PageSnapshot] = None, error: Optional[Exception] = None):
        self.url = url
        self._snapshot = snapshot
        self._error = error
        self.calls = 0

    def snapshot(self) -> PageSnapshot:
        self.calls += 1
        if self._error is not None:
            raise self._error
        return self._snapshot


class FakeRenderer:
    """Frame renderer double; ``results`` maps video URL to a data URI or an exception."""

    def __init__(self, results: Optional[Dict[str, Any]] = None, default: Optional[str] = "data:image/jpeg;base64,AAAA"):
        self.results = results or {}
        self.default = default
        self.rendered: List[str] = []
        self.entered = 0
        self.exited = 0

    def __enter__(self):
        self.entered += 1
        return self

    def __exit__(self, exc_type, exc, tb):
        self.exited += 1

    def render(self, video_url: str, timeout: float):
        self.rendered.append(video_url)
        value = self.results.get(video_url, self.default)
        if isinstance(value, Exception):
            raise value
        return value


@pytest.fixture
def page_url() -> str:
    return "https://example.com/post/1"


@pytest.fixture
def snapshot_factory(page_url):
    def make(**kwargs) -> PageSnapshot:
        kwargs.setdefault("url", page_url)
        return PageSnapshot(**kwargs)

    return make


@pytest.fixture
def html_snapshot(page_url):
    def make(html: str, url: Optional[str] = None) -> PageSnapshot:
        return PageParser().snapshot_from_html(html, url or page_url)

    return make


@pytest.fixture
def video():
    def make(src: str = "", **kwargs) -> MediaElement:
        return MediaElement(tag="video", src=src, **kwargs)

    return make


@pytest.fixture
def entry():
    def make(name: str, transfer_size: int = 0, encoded_body_size: int = 0, initiator_type: str = "") -> ResourceEntry:
        return ResourceEntry(name, transfer_size, encoded_body_size, initiator_type)

    return make


@pytest.fixture
def offline_resolver():
    def make(sizes: Optional[Dict[str, Any]] = None) -> SizeResolver:
        return SizeResolver(FakeFetcher(sizes), timeout=1.0, max_workers=4)

    return make


@pytest.fixture
def silent_server(monkeypatch):
    """Base URL of a TCP listener that completes handshakes and never replies."""
    for var in ("HTTP_PROXY", "HTTPS_PROXY", "ALL_PROXY", "http_proxy", "https_proxy", "all_proxy"):
        monkeypatch.delenv(var, raising=False)
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    sock.listen(16)
    try:
        yield f"http://127.0.0.1:{sock.getsockname()[1]}"
    finally:
        sock.close()
