import logging
import time
import random
from typing import Optional, Dict, Tuple

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry
import urllib3
import http.client

from config.constants import DEFAULT_CONFIG, HTTP_CONFIG, get_default_headers, get_user_agent
from ..models.exceptions import NetworkException, ContentSizeException

logger = logging.getLogger("mynest.fetcher")


def _classify_block(status: int, headers: Dict[str, str], body_snippet: str) -> Optional[str]:
    h = {k.lower(): v for k, v in (headers or {}).items()}

    if status in (401, 403):
        if 'cf-ray' in h or 'cloudflare' in h.get('server', '').lower():
            return "WAF_CLOUDFLARE_403"
        if any(k.startswith('x-akam') for k in h) or 'akamai' in h.get('server', '').lower():
            return "WAF_AKAMAI_403"
        return "ACCESS_DENIED_403"

    if status == 404:
        return "NOT_FOUND_404"

    if status == 429:
        return "RATE_LIMIT_429"

    if status in (500, 502, 503, 504):
        if 'cf-ray' in h:
            return "CDN_CLOUDFLARE_5XX"
        return "UPSTREAM_5XX"

    snippet = (body_snippet or "")[:512].lower()
    if "attention required!" in snippet and "cloudflare" in snippet:
        return "WAF_CLOUDFLARE_JS_CHALLENGE"

    return None


def _retry_after_sleep(headers: Dict[str, str]) -> Optional[float]:
    ra = None
    for k, v in (headers or {}).items():
        if k.lower() == "retry-after":
            ra = v.strip()
            break
    if not ra:
        return None
    if ra.isdigit():
        return max(0, min(30.0, float(ra)))
    return 5.0


def _jitter(base: float = 0.9, spread: float = 0.4) -> float:
    return max(0.05, base + random.uniform(0, spread))


def parse_content_length(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    try:
        size = int(str(value).strip())
    except ValueError:
        return None
    return size if size >= 0 else None


class AdvancedFetcher:
    """Shared HTTP session for page fetches and media size probes."""

    def __init__(
        self,
        timeout: int = DEFAULT_CONFIG['request_timeout'],
        max_retries: int = DEFAULT_CONFIG['max_retries'],
        user_agent: Optional[str] = None,
        proxy: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
        cookies: Optional[str] = None,
    ):
        self.timeout = timeout
        self.max_retries = max_retries
        self.user_agent = user_agent or get_user_agent()
        self.proxy = proxy
        self.extra_headers = dict(headers or {})
        self.cookies = cookies

        self.session = self._create_session()
        # HEAD size lookups get exactly one attempt so their timeout is a hard bound
        self.head_session = self._create_session(retry=Retry(total=0, read=False, raise_on_status=False))

    def _create_session(self, retry: Optional[Retry] = None) -> requests.Session:
        session = requests.Session()
        session.trust_env = True

        session.headers.update(get_default_headers())
        session.headers["User-Agent"] = self.user_agent
        session.headers.update(self.extra_headers)
        if self.cookies:
            session.headers["Cookie"] = self.cookies

        if retry is None:
            retry = Retry(
                total=self.max_retries + 1,
                connect=self.max_retries + 1,
                read=self.max_retries + 1,
                backoff_factor=HTTP_CONFIG['retry_backoff_factor'],
                status_forcelist=tuple(HTTP_CONFIG['retry_status_codes']),
                allowed_methods=frozenset(["GET", "HEAD"]),
                raise_on_status=False,
                respect_retry_after_header=True,
            )
        adapter = HTTPAdapter(
            max_retries=retry,
            pool_maxsize=HTTP_CONFIG['pool_maxsize'],
            pool_connections=HTTP_CONFIG['pool_connections'],
        )
        session.mount("http://", adapter)
        session.mount("https://", adapter)

        if self.proxy:
            session.proxies.update({
                "http": self.proxy,
                "https": self.proxy,
            })

        return session

    def fetch_url(
        self,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        max_bytes: int = DEFAULT_CONFIG['max_html_bytes'],
    ) -> Tuple[str, Dict[str, str], int]:
        """GET ``url`` and return ``(text, headers, status)``.

        Non-2xx statuses are returned, not raised; transport failures raise
        NetworkException once the retries are spent.
        """
        last_exc = None
        for attempt in range(self.max_retries + 1):
            try:
                request_headers = self.session.headers.copy()
                if headers:
                    request_headers.update(headers)

                logger.debug(f"Fetching URL: {url} (attempt {attempt + 1})")

                try:
                    r = self.session.get(
                        url,
                        headers=request_headers,
                        timeout=self.timeout,
                        allow_redirects=True,
                    )
                except (http.client.RemoteDisconnected, urllib3.exceptions.ProtocolError) as e:
                    logger.warning(f"Remote closed early for {url}: {e}, retrying with Connection: close")
                    request_headers["Connection"] = "close"
                    r = self.session.get(
                        url,
                        headers=request_headers,
                        timeout=self.timeout,
                        allow_redirects=True,
                    )

                status = int(r.status_code)
                raw = r.content or b""

                if len(raw) > max_bytes:
                    raise ContentSizeException(
                        f"Response exceeded size limit: {max_bytes} bytes",
                        security_control="max_html_bytes",
                    )

                if status in (429, 503) and attempt < self.max_retries:
                    delay = _retry_after_sleep(dict(r.headers)) or (1.2 * (attempt + 1))
                    delay *= _jitter(0.8, 0.6)
                    logger.debug(f"Server said {status}; sleeping {delay:.2f}s then retrying {url}")
                    time.sleep(delay)
                    continue

                encoding = r.encoding or "utf-8"
                try:
                    text = raw.decode(encoding, errors="replace")
                except LookupError:
                    text = raw.decode("utf-8", errors="replace")

                headers_out = dict(r.headers)
                block_reason = _classify_block(status, headers_out, text)
                if block_reason:
                    headers_out["x-mynest-block-reason"] = block_reason

                logger.debug(f"Fetched {url} - {status}")
                return text, headers_out, status

            except requests.exceptions.Timeout as e:
                last_exc = e
                logger.warning(f"Timeout fetching {url} (attempt {attempt + 1})")
                if attempt == self.max_retries:
                    raise NetworkException(f"Timeout after {self.max_retries} retries", url=url)
                time.sleep(_jitter(0.9, 0.6))

            except requests.exceptions.ConnectionError as e:
                last_exc = e
                logger.warning(f"Connection error fetching {url}: {e}")
                if attempt == self.max_retries:
                    raise NetworkException(f"Connection failed after {self.max_retries} retries", url=url)
                time.sleep(_jitter(0.9, 0.6))

            except requests.exceptions.RequestException as e:
                last_exc = e
                logger.error(f"Request exception fetching {url}: {e}")
                if attempt == self.max_retries:
                    raise NetworkException(f"Request failed: {e}", url=url)
                time.sleep(_jitter(0.9, 0.6))

        raise NetworkException(f"Fetch failed: {last_exc!r}", url=url)

    def probe_content_length(self, url: str, timeout: Optional[float] = None) -> Optional[int]:
        """HEAD ``url`` and read Content-Length.

        Returns None when the server answers non-2xx, omits the header, or the
        value does not parse. Transport errors propagate to the caller.
        """
        r = self.head_session.head(
            url,
            timeout=timeout if timeout is not None else self.timeout,
            allow_redirects=True,
        )
        status = int(r.status_code)
        if not (200 <= status < 300):
            logger.debug(f"HEAD {url} - {status}")
            return None
        return parse_content_length(r.headers.get("Content-Length"))

    def close(self):
        for session in (self.session, self.head_session):
            if session:
                session.close()

    def __enter__(self) -> "AdvancedFetcher":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
