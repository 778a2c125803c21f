from __future__ import annotations

import re
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional

from config.constants import SNIFF_ACTION, THUMBNAIL_ACTION
from ..models.config import SniffConfig
from ..models.exceptions import (
    ConfigurationException,
    PageUnreachableException,
    SnifferException,
    URLValidationException,
)
from ..models.resource import MediaResource, count_by_type
from ..utils.logger import get_logger
from ..utils.validator import URLValidator
from .fetcher import AdvancedFetcher
from .mynest_client import MyNestClient
from .orchestrator import MediaSniffer
from .parser import StaticPageSource
from .size_resolver import SizeResolver
from .thumbnail import ThumbnailCapturer, ThumbnailChannel

logger = get_logger("bridge")

_TEXT_URL_RE = re.compile(r"(https?://[^\s]+)", re.IGNORECASE)


class ContentBridge:
    """Page-side end of the messaging boundary.

    Answers ``sniffMediaResources`` with the size-sorted resource list. A
    PageUnreachableException from the page source is not a pipeline failure
    and is left for the caller; anything else becomes an ``error`` response.
    """

    def __init__(
        self,
        source,
        sniffer: Optional[MediaSniffer] = None,
        size_resolver: Optional[SizeResolver] = None,
        thumbnailer: Optional[ThumbnailCapturer] = None,
        channel: Optional[ThumbnailChannel] = None,
    ):
        self.source = source
        self.sniffer = sniffer or MediaSniffer()
        self.size_resolver = size_resolver or SizeResolver()
        self.thumbnailer = thumbnailer
        self.channel = channel or ThumbnailChannel()
        self.last_thumbnail_thread: Optional[threading.Thread] = None

    @classmethod
    def for_url(cls, url: str, config: Optional[SniffConfig] = None) -> "ContentBridge":
        cfg = config or SniffConfig()
        fetcher = AdvancedFetcher(
            timeout=cfg.timeout,
            max_retries=cfg.max_retries,
            user_agent=cfg.user_agent,
            proxy=cfg.proxy_url,
            headers=cfg.headers,
            cookies=cfg.cookies,
        )

        if cfg.headless:
            from .headless import HeadlessPageSource
            source = HeadlessPageSource(url, cfg)
        else:
            source = StaticPageSource(url, fetcher=fetcher, max_bytes=cfg.max_html_bytes)

        thumbnailer = None
        if cfg.thumbnails and cfg.max_thumbnails > 0:
            from .headless import PlaywrightFrameRenderer
            thumbnailer = ThumbnailCapturer(
                PlaywrightFrameRenderer(url, cfg),
                max_videos=cfg.max_thumbnails,
                timeout=cfg.thumbnail_timeout,
            )

        return cls(
            source,
            sniffer=MediaSniffer(validator=URLValidator(allow_blob=cfg.allow_blob)),
            size_resolver=SizeResolver(fetcher, timeout=cfg.size_probe_timeout, max_workers=cfg.size_workers),
            thumbnailer=thumbnailer,
        )

    @property
    def page_url(self) -> str:
        return getattr(self.source, "url", "")

    def subscribe(self, callback: Callable[[Dict[str, Any]], None]) -> Callable[[], None]:
        return self.channel.subscribe(callback)

    def sniff(self) -> List[MediaResource]:
        snapshot = self.source.snapshot()
        resources = self.sniffer.sniff(snapshot)
        return self.size_resolver.resolve_all(resources, snapshot)

    def handle_message(self, request: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        if not isinstance(request, dict) or request.get("action") != SNIFF_ACTION:
            return None

        try:
            resources = self.sniff()
        except PageUnreachableException:
            raise
        except Exception as e:
            logger.error(f"Sniff failed for {self.page_url}: {e}")
            return {"resources": [], "error": str(e)}

        response = {"resources": [r.to_dict() for r in resources]}

        if self.thumbnailer is not None:
            self.last_thumbnail_thread = self.thumbnailer.start_backfill(resources, self.channel.publish)

        return response


class ResourceCache:
    """Last sniff result per page URL.

    Thumbnails can arrive before the result they belong to is stored; those
    are held back and applied by the next ``put`` for that page. Once a page
    has a stored result, thumbnails for URLs it does not contain are dropped.
    """

    def __init__(self):
        self._data: Dict[str, List[MediaResource]] = {}
        self._pending: Dict[str, Dict[str, str]] = {}
        self._lock = threading.Lock()

    def put(self, page_url: str, resources: List[MediaResource]):
        with self._lock:
            self._data[page_url] = list(resources)
            pending = self._pending.pop(page_url, {})
            for resource in self._data[page_url]:
                if resource.url in pending:
                    resource.thumbnail = pending[resource.url]

    def get(self, page_url: str) -> List[MediaResource]:
        with self._lock:
            return list(self._data.get(page_url, []))

    def update_thumbnail(self, page_url: str, resource_url: str, thumbnail: str) -> bool:
        with self._lock:
            for resource in self._data.get(page_url, []):
                if resource.url == resource_url:
                    resource.thumbnail = thumbnail
                    return True
            if page_url not in self._data:
                self._pending.setdefault(page_url, {})[resource_url] = thumbnail
        return False

    def clear(self, page_url: Optional[str] = None):
        with self._lock:
            if page_url is None:
                self._data.clear()
                self._pending.clear()
            else:
                self._data.pop(page_url, None)
                self._pending.pop(page_url, None)

    def __len__(self) -> int:
        return len(self._data)


@dataclass
class SniffReport:
    status: str
    page_url: str
    resources: List[MediaResource] = field(default_factory=list)
    counts: Dict[str, int] = field(default_factory=dict)
    message: str = ""
    error: Optional[str] = None
    error_code: Optional[str] = None
    hint: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "status": self.status,
            "page_url": self.page_url,
            "counts": dict(self.counts),
            "message": self.message,
            "resources": [r.to_dict() for r in self.resources],
        }
        for key in ("error", "error_code", "hint"):
            value = getattr(self, key)
            if value:
                data[key] = value
        return data


class BackgroundController:
    """Caller side: runs sniffs, keeps their results and talks to MyNest."""

    def __init__(
        self,
        config: Optional[SniffConfig] = None,
        client: Optional[MyNestClient] = None,
        cache: Optional[ResourceCache] = None,
    ):
        self.config = config or SniffConfig()
        self._client = client
        self.cache = cache if cache is not None else ResourceCache()
        self.validator = URLValidator()
        # one live thumbnail subscription per page; a new sniff replaces it
        self._subscriptions: Dict[str, Callable[[], None]] = {}

    @property
    def client(self) -> MyNestClient:
        if self._client is None:
            if not self.config.has_api_credentials:
                raise ConfigurationException(
                    "Configure the MyNest API URL and token first",
                    config_key="api_url" if not self.config.api_url else "api_token",
                )
            self._client = MyNestClient(
                self.config.api_url,
                self.config.api_token,
                category=self.config.default_category,
                timeout=self.config.timeout,
            )
        return self._client

    def sniff_page(self, bridge: ContentBridge) -> SniffReport:
        page_url = bridge.page_url

        def on_thumbnail(message: Dict[str, Any]):
            if message.get("action") == THUMBNAIL_ACTION:
                self.cache.update_thumbnail(page_url, message.get("url"), message.get("thumbnail"))

        self.release(page_url)
        self._subscriptions[page_url] = bridge.subscribe(on_thumbnail)

        try:
            response = bridge.handle_message({"action": SNIFF_ACTION})
        except PageUnreachableException as e:
            self.release(page_url)
            logger.warning(f"Cannot sniff {page_url}: {e.message}")
            return SniffReport(
                status="unreachable",
                page_url=page_url,
                message="This page cannot be sniffed (it may be a restricted page); reload and try again",
                error=e.message,
                error_code=e.error_code,
                hint=e.hint,
            )

        if not response or not isinstance(response.get("resources"), list):
            self.release(page_url)
            return SniffReport(status="error", page_url=page_url, message="No valid response received",
                               error="invalid response")

        if response.get("error"):
            self.release(page_url)
            return SniffReport(status="error", page_url=page_url, message="Sniffing failed",
                               error=str(response["error"]))

        resources = [MediaResource.from_dict(d) for d in response["resources"]]
        counts = count_by_type(resources)

        if not resources:
            self.release(page_url)
            return SniffReport(status="empty", page_url=page_url, counts=counts,
                               message="No media resources detected on this page")

        self.cache.put(page_url, resources)
        return SniffReport(
            status="ok",
            page_url=page_url,
            resources=resources,
            counts=counts,
            message=self._summary(len(resources), counts),
        )

    def release(self, page_url: Optional[str] = None):
        """Drop the cached result and thumbnail subscription for one page, or all."""
        pages = list(self._subscriptions) if page_url is None else [page_url]
        for page in pages:
            unsubscribe = self._subscriptions.pop(page, None)
            if unsubscribe:
                unsubscribe()
        self.cache.clear(page_url)

    @staticmethod
    def _summary(total: int, counts: Dict[str, int]) -> str:
        parts = [f"Found {total} resources"]
        labels = (("image", "images"), ("video", "videos"), ("audio", "audios"))
        details = [f"{counts[k]} {label}" for k, label in labels if counts.get(k)]
        if details:
            parts.append(", ".join(details))
        return ": ".join(parts)

    def download(self, url: str, category: Optional[str] = None, filename: Optional[str] = None) -> Dict[str, Any]:
        url = (url or "").strip()
        ok, reason = self.validator.check(url)
        if not ok:
            raise URLValidationException(f"Invalid link: {reason}", field="url", value=url)
        return self.client.submit_download(url, category=category, filename=filename)

    def download_resources(
        self,
        resources: Iterable[MediaResource],
        types: Optional[Iterable[str]] = None,
        category: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        wanted = {t.lower() for t in types} if types else None
        outcomes: List[Dict[str, Any]] = []

        for resource in resources:
            if wanted and resource.type.value not in wanted:
                continue
            try:
                result = self.download(resource.url, category=category)
                outcomes.append({"url": resource.url, "success": True, "task": result.get("task")})
            except ConfigurationException:
                raise
            except SnifferException as e:
                logger.warning(f"Download failed for {resource.url}: {e.message}")
                outcomes.append({"url": resource.url, "success": False, "error": e.message})

        return outcomes

    def extract_urls(self, text: str) -> List[str]:
        if not text:
            return []
        return [u for u in _TEXT_URL_RE.findall(text) if self.validator.is_valid_resource_url(u)]

    def test_connection(self) -> Dict[str, Any]:
        try:
            return self.client.test_connection()
        except ConfigurationException as e:
            return {"success": False, "error": e.message}
