from __future__ import annotations

from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

from playwright.sync_api import sync_playwright

from config.constants import SNIFF_LIMITS, THUMBNAIL_CONFIG
from config.patterns import CUSTOM_VIDEO_ATTRIBUTES
from ..models.config import SniffConfig
from ..models.exceptions import PageUnreachableException
from ..models.page import PageSnapshot
from ..utils.logger import get_logger

logger = get_logger("headless")

INSTALL_HINT = "Playwright browser is missing. Run: python -m playwright install chromium"

# Returns a plain object shaped like PageSnapshot.from_dict expects.
COLLECT_JS = """
(opts) => {
  const attrs = (el) => {
    const out = {};
    for (const a of el.attributes) out[a.name] = a.value;
    return out;
  };
  const media = (el) => ({
    tag: el.tagName.toLowerCase(),
    src: el.src || '',
    current_src: el.currentSrc || '',
    attrs: attrs(el),
    natural_width: el.naturalWidth || el.videoWidth || 0,
    natural_height: el.naturalHeight || el.videoHeight || 0,
    width: el.width || el.clientWidth || 0,
    height: el.height || el.clientHeight || 0,
    title: el.title || '',
    alt: el.alt || '',
    poster: el.poster || '',
    sources: Array.from(el.querySelectorAll('source')).map((s) => ({ src: s.src || '', attrs: attrs(s) })),
  });
  const limit = opts.maxElements;
  const all = Array.from(document.querySelectorAll('*')).slice(0, limit);
  const backgrounds = [];
  for (const el of all) {
    const bg = getComputedStyle(el).backgroundImage;
    if (bg && bg !== 'none') backgrounds.push(bg);
  }
  const selector = opts.customAttributes.map((a) => '[' + a + ']').join(',');
  return {
    url: document.baseURI || location.href,
    title: document.title || '',
    images: Array.from(document.images).slice(0, limit).map(media),
    videos: Array.from(document.querySelectorAll('video')).slice(0, limit).map(media),
    audios: Array.from(document.querySelectorAll('audio')).slice(0, limit).map(media),
    backgrounds: backgrounds,
    attributed: selector ? Array.from(document.querySelectorAll(selector)).slice(0, limit).map(attrs) : [],
    scripts: Array.from(document.querySelectorAll('script')).map((s) => s.textContent || '').filter((t) => t.trim()),
    resource_entries: performance.getEntriesByType('resource').map((e) => ({
      name: e.name,
      transfer_size: e.transferSize || 0,
      encoded_body_size: e.encodedBodySize || 0,
      initiator_type: e.initiatorType || '',
    })),
  };
}
"""

# Resolves to a JPEG data URI or null; never rejects.
CAPTURE_JS = """
(opts) => new Promise((resolve) => {
  let done = false;
  const finish = (value) => {
    if (done) return;
    done = true;
    clearTimeout(timer);
    try { video.removeAttribute('src'); video.load(); } catch (e) {}
    resolve(value);
  };
  const timer = setTimeout(() => finish(null), opts.timeoutMs);
  const video = document.createElement('video');
  video.crossOrigin = 'anonymous';
  video.muted = true;
  video.preload = 'metadata';
  video.onerror = () => finish(null);
  video.onloadedmetadata = () => {
    const duration = isFinite(video.duration) ? video.duration : 0;
    video.currentTime = Math.min(opts.seekSeconds, duration * opts.seekRatio);
  };
  video.onseeked = () => {
    try {
      const w = video.videoWidth, h = video.videoHeight;
      if (!w || !h) return finish(null);
      const scale = Math.min(opts.maxWidth / w, opts.maxHeight / h, 1);
      const canvas = document.createElement('canvas');
      canvas.width = Math.round(w * scale);
      canvas.height = Math.round(h * scale);
      canvas.getContext('2d').drawImage(video, 0, 0, canvas.width, canvas.height);
      finish(canvas.toDataURL(opts.mimeType, opts.quality));
    } catch (e) {
      finish(null);
    }
  };
  video.src = opts.url;
})
"""


def _cookie_list(raw: Optional[str], url: str) -> List[Dict[str, Any]]:
    cookies: List[Dict[str, Any]] = []
    for part in (raw or "").split(";"):
        if "=" not in part:
            continue
        name, value = part.split("=", 1)
        if name.strip():
            cookies.append({"name": name.strip(), "value": value.strip(), "url": url})
    return cookies


def _failure(url: str, e: Exception, stage: str) -> PageUnreachableException:
    msg = str(e)
    if "Executable doesn't exist" in msg:
        return PageUnreachableException(
            "Cannot sniff this page", url=url, error_code="HEADLESS_MISSING_BROWSER", hint=INSTALL_HINT
        )
    code = "HEADLESS_LAUNCH_FAILED" if stage == "launch" else "HEADLESS_NAVIGATION_FAILED"
    return PageUnreachableException("Cannot sniff this page", url=url, error_code=code, hint=msg[:300])


class _BrowserSession:
    """Owns one playwright driver, browser and context."""

    def __init__(self, url: str, config: SniffConfig):
        self.url = url
        self.cfg = config
        self._pw = None
        self.browser = None
        self.context = None

    def open(self):
        if urlparse(self.url).scheme not in ("http", "https"):
            raise PageUnreachableException(
                "Cannot sniff this page",
                url=self.url,
                error_code="RESTRICTED_PAGE",
                hint="Only http(s) pages can be sniffed",
            )

        extra_headers = dict(self.cfg.headers or {})
        user_agent = extra_headers.pop("User-Agent", None) or self.cfg.user_agent

        try:
            self._pw = sync_playwright().start()
            launch_kwargs: Dict[str, Any] = {"headless": True}
            if self.cfg.proxy_url:
                launch_kwargs["proxy"] = {"server": self.cfg.proxy_url}

            self.browser = self._pw.chromium.launch(**launch_kwargs)
            self.context = self.browser.new_context(
                ignore_https_errors=True,
                user_agent=user_agent,
                extra_http_headers=extra_headers or None,
                viewport={"width": 1366, "height": 768},
            )
            cookies = _cookie_list(self.cfg.cookies, self.url)
            if cookies:
                self.context.add_cookies(cookies)
        except Exception as e:
            self.close()
            raise _failure(self.url, e, "launch")

    def new_page(self):
        page = self.context.new_page()
        try:
            page.goto(self.url, wait_until="domcontentloaded", timeout=self.cfg.headless_timeout_ms)
        except Exception as e:
            self.close()
            raise _failure(self.url, e, "navigate")
        return page

    def close(self):
        for obj in (self.context, self.browser):
            if obj is None:
                continue
            try:
                obj.close()
            except Exception as e:
                logger.debug(f"[headless] close failed: {e}")
        if self._pw is not None:
            try:
                self._pw.stop()
            except Exception as e:
                logger.debug(f"[headless] driver stop failed: {e}")
        self.context = self.browser = self._pw = None


class HeadlessPageSource:
    """Renders the page in Chromium and reads the live document.

    Unlike the static source, this one sees script-inserted elements,
    computed background images and the resource-timing log.
    """

    def __init__(self, url: str, config: Optional[SniffConfig] = None, max_elements: int = SNIFF_LIMITS["max_elements"]):
        self.url = url
        self.cfg = config or SniffConfig()
        self.max_elements = max_elements

    def snapshot(self) -> PageSnapshot:
        session = _BrowserSession(self.url, self.cfg)
        session.open()
        try:
            page = session.new_page()
            self._settle(page)
            data = page.evaluate(
                COLLECT_JS,
                {"maxElements": self.max_elements, "customAttributes": list(CUSTOM_VIDEO_ATTRIBUTES)},
            )
        except PageUnreachableException:
            raise
        except Exception as e:
            raise _failure(self.url, e, "navigate")
        finally:
            session.close()

        snapshot = PageSnapshot.from_dict(data or {})
        if not snapshot.url:
            snapshot.url = self.url
        logger.debug(f"[headless] collected {snapshot.to_summary()}")
        return snapshot

    def _settle(self, page):
        # lazy loaders usually key off scroll position
        try:
            page.evaluate("() => window.scrollTo(0, document.body ? document.body.scrollHeight : 0)")
            if self.cfg.settle_ms:
                page.wait_for_timeout(self.cfg.settle_ms)
            page.evaluate("() => window.scrollTo(0, 0)")
        except Exception as e:
            logger.debug(f"[headless] settle step failed: {e}")


class PlaywrightFrameRenderer:
    """Grabs a still frame of a video from inside the page's origin.

    Used as a context manager; the browser stays open across ``render`` calls
    so several thumbnails share one navigation.
    """

    def __init__(self, page_url: str, config: Optional[SniffConfig] = None):
        self.page_url = page_url
        self.cfg = config or SniffConfig()
        self._session: Optional[_BrowserSession] = None
        self._page = None

    def __enter__(self) -> "PlaywrightFrameRenderer":
        self._session = _BrowserSession(self.page_url, self.cfg)
        self._session.open()
        self._page = self._session.new_page()
        return self

    def __exit__(self, exc_type, exc, tb):
        if self._session is not None:
            self._session.close()
        self._session = None
        self._page = None

    def render(self, video_url: str, timeout: float) -> Optional[str]:
        if self._page is None:
            raise RuntimeError("renderer used outside of its context")
        return self._page.evaluate(
            CAPTURE_JS,
            {
                "url": video_url,
                "timeoutMs": int(timeout * 1000),
                "seekSeconds": THUMBNAIL_CONFIG["seek_seconds"],
                "seekRatio": THUMBNAIL_CONFIG["seek_ratio"],
                "maxWidth": THUMBNAIL_CONFIG["max_width"],
                "maxHeight": THUMBNAIL_CONFIG["max_height"],
                "mimeType": THUMBNAIL_CONFIG["mime_type"],
                "quality": THUMBNAIL_CONFIG["quality"],
            },
        )
