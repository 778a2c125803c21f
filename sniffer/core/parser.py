import logging
from typing import Any, Dict, List, Optional
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup

from config.constants import SNIFF_LIMITS
from config.patterns import CSS_BACKGROUND_DECLARATION_COMPILED, CUSTOM_VIDEO_ATTRIBUTES
from ..models.exceptions import NetworkException, PageUnreachableException, SecurityException
from ..models.page import MediaElement, PageSnapshot
from .fetcher import AdvancedFetcher

logger = logging.getLogger("mynest.parser")


def _html_to_soup(html: str) -> BeautifulSoup:
    return BeautifulSoup(html or "", "lxml")


def _abs(value: Optional[str], base_url: str) -> str:
    value = (value or "").strip()
    if not value:
        return ""
    try:
        return urljoin(base_url, value)
    except ValueError:
        return value


class PageParser:
    """Builds a PageSnapshot out of static HTML.

    Mirrors what a live document exposes: ``src``/``poster`` are resolved the
    way DOM properties are, raw attributes stay untouched, and background
    images come from inline styles plus <style> blocks since there is no
    computed style without a renderer.
    """

    def __init__(self, max_elements: int = SNIFF_LIMITS["max_elements"]):
        self.max_elements = max_elements

    def snapshot_from_html(self, html: str, base_url: str) -> PageSnapshot:
        soup = _html_to_soup(html)
        base_url = self._document_base(soup, base_url)

        title = soup.title.get_text(strip=True) if soup.title else ""

        snapshot = PageSnapshot(
            url=base_url,
            title=title,
            images=[self._element(tag, base_url) for tag in soup.find_all("img", limit=self.max_elements)],
            videos=[self._element(tag, base_url) for tag in soup.find_all("video", limit=self.max_elements)],
            audios=[self._element(tag, base_url) for tag in soup.find_all("audio", limit=self.max_elements)],
            backgrounds=self._backgrounds(soup),
            attributed=self._attributed(soup),
            scripts=[s.get_text() for s in soup.find_all("script") if s.get_text().strip()],
        )

        logger.debug(f"Parsed {base_url}: {snapshot.to_summary()}")
        return snapshot

    def _document_base(self, soup: BeautifulSoup, page_url: str) -> str:
        # <base href> changes what relative src attributes resolve against
        base = soup.find("base", href=True)
        if base:
            return _abs(str(base.get("href")), page_url) or page_url
        return page_url

    def _element(self, tag, base_url: str) -> MediaElement:
        attrs = dict(tag.attrs)
        data: Dict[str, Any] = {
            "tag": tag.name,
            "src": _abs(tag.get("src"), base_url),
            "attrs": attrs,
            "width": attrs.get("width"),
            "height": attrs.get("height"),
            "title": tag.get("title") or "",
            "alt": tag.get("alt") or "",
            "poster": _abs(tag.get("poster"), base_url),
            "sources": [
                {"src": _abs(s.get("src"), base_url), "attrs": dict(s.attrs)}
                for s in tag.find_all("source")
            ],
        }
        return MediaElement.from_dict(data)

    def _attributed(self, soup: BeautifulSoup) -> List[Dict[str, str]]:
        found = soup.find_all(
            lambda t: any(t.has_attr(a) for a in CUSTOM_VIDEO_ATTRIBUTES),
            limit=self.max_elements,
        )
        return [
            {k: " ".join(v) if isinstance(v, list) else str(v) for k, v in t.attrs.items()}
            for t in found
        ]

    def _backgrounds(self, soup: BeautifulSoup) -> List[str]:
        values: List[str] = []

        for tag in soup.find_all(style=True, limit=self.max_elements):
            values.extend(self._declarations(str(tag.get("style") or "")))

        for style in soup.find_all("style"):
            values.extend(self._declarations(style.get_text()))

        return values

    @staticmethod
    def _declarations(css: str) -> List[str]:
        return [
            m.group(1).strip()
            for m in CSS_BACKGROUND_DECLARATION_COMPILED.finditer(css or "")
            if "url(" in m.group(1).lower()
        ]


class StaticPageSource:
    """Fetches a page over HTTP and parses it without running scripts."""

    def __init__(
        self,
        url: str,
        fetcher: Optional[AdvancedFetcher] = None,
        parser: Optional[PageParser] = None,
        max_bytes: Optional[int] = None,
    ):
        self.url = url
        self.fetcher = fetcher or AdvancedFetcher()
        self.parser = parser or PageParser()
        self.max_bytes = max_bytes

    def snapshot(self) -> PageSnapshot:
        if urlparse(self.url).scheme not in ("http", "https"):
            raise PageUnreachableException(
                "Cannot sniff this page",
                url=self.url,
                error_code="RESTRICTED_PAGE",
                hint="Only http(s) pages can be sniffed",
            )

        try:
            if self.max_bytes:
                html, headers, status = self.fetcher.fetch_url(self.url, max_bytes=self.max_bytes)
            else:
                html, headers, status = self.fetcher.fetch_url(self.url)
        except SecurityException as e:
            raise PageUnreachableException(
                "Cannot sniff this page", url=self.url, error_code="CONTENT_TOO_LARGE", hint=e.message
            )
        except NetworkException as e:
            raise PageUnreachableException(
                "Cannot sniff this page", url=self.url, error_code="NETWORK_ERROR", hint=e.message
            )

        if status >= 400:
            reason = headers.get("x-mynest-block-reason") or f"HTTP_{status}"
            raise PageUnreachableException(
                "Cannot sniff this page",
                url=self.url,
                error_code=reason,
                hint=f"Server answered {status}",
            )

        return self.parser.snapshot_from_html(html, self.url)
