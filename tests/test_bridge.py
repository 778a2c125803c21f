import pytest

from conftest import FakeRenderer, FakeResponse, FakeSession, FakeSource
from sniffer.core.bridge import BackgroundController, ContentBridge, ResourceCache
from sniffer.core.mynest_client import MyNestClient
from sniffer.core.parser import StaticPageSource
from sniffer.core.thumbnail import ThumbnailCapturer
from sniffer.models.config import SniffConfig
from sniffer.models.exceptions import (
    ConfigurationException,
    PageUnreachableException,
    URLValidationException,
)
from sniffer.models.resource import MediaResource, MediaType

JPEG = "data:image/jpeg;base64,/9j/4AAQ"
API = "https://nest.local"
MEDIA_PAGE = '<img src="https://x/a.jpg"><video src="https://x/v.mp4"></video>'
SIZES = {"https://x/a.jpg": 10, "https://x/v.mp4": 5000}


@pytest.fixture
def bridge(page_url, html_snapshot, offline_resolver):
    def make(html=MEDIA_PAGE, error=None, renderer=None):
        source = FakeSource(page_url, html_snapshot(html), error=error)
        thumbnailer = ThumbnailCapturer(renderer) if renderer is not None else None
        return ContentBridge(source, size_resolver=offline_resolver(SIZES), thumbnailer=thumbnailer)

    return make


def _client(responses):
    return MyNestClient(API, "tok", session=FakeSession(responses))


def test_handle_message_returns_size_sorted_resources(bridge):
    response = bridge().handle_message({"action": "sniffMediaResources"})

    assert "error" not in response
    assert [(r["url"], r["type"], r["size"]) for r in response["resources"]] == [
        ("https://x/v.mp4", "video", 5000),
        ("https://x/a.jpg", "image", 10),
    ]


@pytest.mark.parametrize("request_", [{"action": "ping"}, {}, None, "sniffMediaResources"])
def test_handle_message_ignores_other_actions(bridge, request_):
    b = bridge()
    assert b.handle_message(request_) is None
    assert b.source.calls == 0


def test_unreachable_page_is_not_an_error_response(bridge):
    b = bridge(error=PageUnreachableException("Cannot sniff this page", error_code="RESTRICTED_PAGE"))

    with pytest.raises(PageUnreachableException):
        b.handle_message({"action": "sniffMediaResources"})


def test_pipeline_failure_becomes_error_response(bridge):
    b = bridge(error=RuntimeError("DOM went away"))

    assert b.handle_message({"action": "sniffMediaResources"}) == {"resources": [], "error": "DOM went away"}


def test_thumbnails_are_pushed_after_the_response(bridge):
    b = bridge(renderer=FakeRenderer(default=JPEG))
    pushed = []
    b.subscribe(pushed.append)

    response = b.handle_message({"action": "sniffMediaResources"})
    b.last_thumbnail_thread.join(timeout=5)

    assert all("thumbnail" not in r for r in response["resources"])
    assert pushed == [{"action": "thumbnailUpdated", "url": "https://x/v.mp4", "thumbnail": JPEG}]


def test_sniff_page_ok_caches_and_patches_thumbnails(bridge, page_url):
    b = bridge(renderer=FakeRenderer(default=JPEG))
    controller = BackgroundController()

    report = controller.sniff_page(b)
    b.last_thumbnail_thread.join(timeout=5)

    assert report.ok
    assert report.counts == {"image": 1, "video": 1, "audio": 0}
    assert report.message == "Found 2 resources: 1 images, 1 videos"
    cached = controller.cache.get(page_url)
    assert [r.url for r in cached] == ["https://x/v.mp4", "https://x/a.jpg"]
    assert cached[0].thumbnail == JPEG


def test_sniff_page_unreachable(bridge):
    error = PageUnreachableException(
        "Cannot sniff this page", error_code="RESTRICTED_PAGE", hint="Only http(s) pages can be sniffed"
    )
    report = BackgroundController().sniff_page(bridge(error=error))

    assert report.status == "unreachable"
    assert not report.ok
    assert report.error_code == "RESTRICTED_PAGE"
    assert "cannot be sniffed" in report.message
    assert report.to_dict()["hint"] == "Only http(s) pages can be sniffed"


def test_sniff_page_empty_and_error(bridge):
    controller = BackgroundController()

    empty = controller.sniff_page(bridge(html="<p>nothing here</p>"))
    failed = controller.sniff_page(bridge(error=ValueError("bad snapshot")))

    assert empty.status == "empty"
    assert empty.resources == []
    assert failed.status == "error"
    assert failed.error == "bad snapshot"


def test_cache_holds_thumbnail_that_arrives_first():
    cache = ResourceCache()
    assert not cache.update_thumbnail("p", "https://x/v.mp4", JPEG)

    cache.put("p", [MediaResource(url="https://x/v.mp4", type=MediaType.VIDEO)])

    assert cache.get("p")[0].thumbnail == JPEG
    cache.clear()
    assert len(cache) == 0


def test_cache_drops_thumbnails_for_unknown_urls_of_a_stored_page():
    cache = ResourceCache()
    cache.put("p", [MediaResource(url="https://x/v.mp4", type=MediaType.VIDEO)])

    for i in range(50):
        assert not cache.update_thumbnail("p", f"https://x/other{i}.mp4", JPEG)

    assert cache._pending == {}
    assert cache.get("p")[0].thumbnail is None


def test_repeated_sniffs_keep_one_thumbnail_subscription(bridge, page_url):
    b = bridge(renderer=FakeRenderer(default=JPEG))
    controller = BackgroundController()

    for _ in range(3):
        assert controller.sniff_page(b).ok
        b.last_thumbnail_thread.join(timeout=5)

    assert b.channel.subscriber_count == 1
    assert controller.cache.get(page_url)[0].thumbnail == JPEG

    controller.release()
    assert b.channel.subscriber_count == 0
    assert controller.cache.get(page_url) == []


def test_failed_sniff_releases_its_subscription(bridge):
    b = bridge(error=ValueError("bad snapshot"))
    controller = BackgroundController()

    assert controller.sniff_page(b).status == "error"
    assert b.channel.subscriber_count == 0


def test_download_submits_to_mynest():
    client = _client({
        ("POST", API + "/api/v1/download"): FakeResponse(200, {"success": True, "task": {"id": 7}}),
    })
    controller = BackgroundController(client=client)

    result = controller.download("  https://x/v.mp4 ", category="movies")

    assert result["task"] == {"id": 7}
    assert client.session.calls[0]["json"]["url"] == "https://x/v.mp4"
    assert client.session.calls[0]["json"]["category"] == "movies"


@pytest.mark.parametrize("url", ["", "not a link", "blob:https://x/1", "data:image/png;base64,AA"])
def test_download_rejects_invalid_links(url):
    controller = BackgroundController(client=_client({}))

    with pytest.raises(URLValidationException):
        controller.download(url)
    assert controller.client.session.calls == []


def test_download_without_credentials():
    with pytest.raises(ConfigurationException):
        BackgroundController(SniffConfig()).download("https://x/v.mp4")


def test_download_resources_filters_and_reports_failures():
    client = _client({
        ("POST", API + "/api/v1/download"): FakeResponse(500, {"success": False, "error": "disk full"}),
    })
    resources = [
        MediaResource(url="https://x/a.jpg", type=MediaType.IMAGE),
        MediaResource(url="https://x/v.mp4", type=MediaType.VIDEO),
    ]

    outcomes = BackgroundController(client=client).download_resources(resources, types=["video"])

    assert outcomes == [
        {"url": "https://x/v.mp4", "success": False, "error": "Download rejected: disk full"}
    ]


def test_extract_urls():
    text = "first https://x/a.mp4 then http://y/b.jpg\nand ftp://z/c.mp3 or nothing"

    assert BackgroundController().extract_urls(text) == ["https://x/a.mp4", "http://y/b.jpg"]
    assert BackgroundController().extract_urls("") == []


def test_test_connection_without_credentials():
    result = BackgroundController().test_connection()

    assert result["success"] is False
    assert "MyNest API URL and token" in result["error"]


def test_for_url_static_defaults():
    b = ContentBridge.for_url("https://example.com/watch", SniffConfig(allow_blob=True))

    assert isinstance(b.source, StaticPageSource)
    assert b.page_url == "https://example.com/watch"
    assert b.thumbnailer is None
    assert b.sniffer.validator.allow_blob is True
    b.size_resolver.fetcher.close()


def test_controller_keeps_a_supplied_empty_cache():
    cache = ResourceCache()

    assert BackgroundController(cache=cache).cache is cache
