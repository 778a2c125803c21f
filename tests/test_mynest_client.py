import pytest
import requests

from conftest import FakeResponse, FakeSession
from sniffer.core.mynest_client import MyNestClient
from sniffer.models.exceptions import ConfigurationException, MyNestAPIException

API = "https://nest.local"
DOWNLOAD = ("POST", API + "/api/v1/download")
HEALTH = ("GET", API + "/health")


def _client(responses, **kwargs):
    return MyNestClient(API + "/", "secret-token", session=FakeSession(responses), **kwargs)


def test_submit_download_payload_and_headers():
    client = _client({DOWNLOAD: FakeResponse(200, {"success": True, "task": {"id": 1}})})

    result = client.submit_download("https://x/v.mp4")

    assert result == {"success": True, "task": {"id": 1}}
    call = client.session.calls[0]
    assert call["url"] == API + "/api/v1/download"
    assert call["json"] == {"url": "https://x/v.mp4", "plugin_name": "chrome-extension", "category": "browser"}
    assert call["headers"]["Authorization"] == "Bearer secret-token"
    assert call["headers"]["Content-Type"] == "application/json"


def test_submit_download_with_filename_and_category():
    client = _client({DOWNLOAD: FakeResponse(200, {"success": True})}, category="music")

    client.submit_download("https://x/s.mp3", filename="song.mp3")
    client.submit_download("https://x/s.mp3", category="podcasts")

    first, second = (c["json"] for c in client.session.calls)
    assert first["category"] == "music"
    assert first["filename"] == "song.mp3"
    assert second["category"] == "podcasts"
    assert "filename" not in second


def test_submit_download_rejected_by_service():
    client = _client({DOWNLOAD: FakeResponse(200, {"success": False, "message": "duplicate task"})})

    with pytest.raises(MyNestAPIException) as excinfo:
        client.submit_download("https://x/v.mp4")

    assert excinfo.value.message == "Download rejected: duplicate task"


def test_submit_download_non_json_error():
    client = _client({DOWNLOAD: FakeResponse(502)})

    with pytest.raises(MyNestAPIException) as excinfo:
        client.submit_download("https://x/v.mp4")

    assert excinfo.value.message == "Download rejected: HTTP 502"
    assert excinfo.value.context["status_code"] == 502


def test_submit_download_transport_error():
    client = _client({DOWNLOAD: requests.exceptions.ConnectionError("refused")})

    with pytest.raises(MyNestAPIException, match="Could not reach MyNest"):
        client.submit_download("https://x/v.mp4")


def test_health_and_test_connection():
    client = _client({HEALTH: FakeResponse(200, {"name": "MyNest Home", "status": "ok"})})

    assert client.health()["status"] == "ok"
    assert client.test_connection() == {"success": True, "message": "Connected to MyNest Home"}


def test_test_connection_failure():
    client = _client({HEALTH: FakeResponse(401, {"error": "bad token"})})

    with pytest.raises(MyNestAPIException):
        client.health()
    assert client.test_connection() == {"success": False, "error": "Service returned error: 401"}


def test_test_connection_without_name():
    client = _client({HEALTH: FakeResponse(200)})

    assert client.test_connection()["message"] == "Connected to MyNest"


@pytest.mark.parametrize("url,token", [("", "tok"), (API, ""), (None, None)])
def test_missing_credentials(url, token):
    with pytest.raises(ConfigurationException):
        MyNestClient(url, token, session=FakeSession())


def test_close_closes_session():
    client = _client({})
    client.close()
    assert client.session.closed
