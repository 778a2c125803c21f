import re
from urllib.parse import urljoin, urlparse
from typing import Optional, Dict, Any, Tuple

from config.constants import SNIFF_LIMITS
from ..models.exceptions import URLValidationException, ValidationException


class URLValidator:
    """Decides which candidate strings are downloadable resource URLs.

    ``blob:`` references are page-local object URLs that nothing outside the
    page can fetch, so they are rejected unless ``allow_blob`` is set. The
    video-tag strategy recovers an original URL from data attributes instead.
    """

    ALLOWED_SCHEMES = ("http", "https")

    def __init__(self, allow_blob: bool = False, max_url_length: int = SNIFF_LIMITS["max_url_length"]):
        self.allow_blob = allow_blob
        self.max_url_length = max_url_length

    @staticmethod
    def is_blob(candidate: Optional[str]) -> bool:
        return bool(candidate) and candidate.strip().lower().startswith("blob:")

    def check(self, candidate: Optional[str], base_url: Optional[str] = None) -> Tuple[bool, str]:
        if not candidate or not isinstance(candidate, str) or not candidate.strip():
            return False, "URL must be a non-empty string"

        candidate = candidate.strip()
        lowered = candidate.lower()

        if lowered.startswith("data:"):
            return False, "data: URIs are not resources"

        if lowered.startswith("blob:"):
            if self.allow_blob:
                return True, ""
            return False, "blob: URLs are page-local"

        if len(candidate) > self.max_url_length:
            return False, "URL too long"

        try:
            resolved = urljoin(base_url, candidate) if base_url else candidate
            parsed = urlparse(resolved)
            # accessing .port validates the netloc
            parsed.port
        except ValueError as e:
            return False, f"URL parsing error: {e}"

        if parsed.scheme.lower() not in self.ALLOWED_SCHEMES:
            return False, f"Invalid scheme: {parsed.scheme or '-'}"

        if not parsed.netloc:
            return False, "Missing network location"

        return True, ""

    def is_valid_resource_url(self, candidate: Optional[str], base_url: Optional[str] = None) -> bool:
        ok, _ = self.check(candidate, base_url)
        return ok

    def resolve(self, candidate: Optional[str], base_url: Optional[str] = None) -> Optional[str]:
        """Absolute form of ``candidate``, or None when it is not eligible."""
        ok, _ = self.check(candidate, base_url)
        if not ok:
            return None
        candidate = candidate.strip()
        if self.is_blob(candidate):
            return candidate
        return urljoin(base_url, candidate) if base_url else candidate

    def require(self, candidate: Optional[str], base_url: Optional[str] = None) -> str:
        ok, err = self.check(candidate, base_url)
        if not ok:
            raise URLValidationException(f"URL validation failed: {err}", field="url", value=candidate)
        return self.resolve(candidate, base_url)


class InputSanitizer:
    def __init__(self):
        self.control_chars = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")

    def sanitize_string(self, input_str: str, max_length: int = 4096) -> str:
        if not input_str:
            return ""
        s = self.control_chars.sub("", input_str[:max_length])
        return " ".join(s.split())

    def parse_header(self, raw: str) -> Tuple[str, str]:
        if ":" not in (raw or ""):
            raise ValidationException(f"Invalid header (expected 'K: V'): {raw}", field="header", value=raw)
        k, v = raw.split(":", 1)
        k, v = self.sanitize_string(k.strip(), 256), self.sanitize_string(v.strip(), 2048)
        if not k or not v:
            raise ValidationException(f"Invalid header (expected 'K: V'): {raw}", field="header", value=raw)
        return k, v

    def sanitize_headers(self, headers: Dict[str, Any]) -> Dict[str, str]:
        out: Dict[str, str] = {}
        for k, v in headers.items():
            if not k or v is None:
                continue
            ck = self.sanitize_string(str(k).strip(), 256)
            cv = self.sanitize_string(str(v).strip(), 2048)
            if ck and cv:
                out[ck] = cv
        return out

url_validator = URLValidator()
input_sanitizer = InputSanitizer()


def is_valid_resource_url(candidate: Optional[str], page_base_url: Optional[str] = None) -> bool:
    return url_validator.is_valid_resource_url(candidate, page_base_url)
