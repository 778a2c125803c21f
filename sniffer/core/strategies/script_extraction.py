from typing import Dict, Iterator, List, Optional, Pattern

from config.constants import SNIFF_LIMITS
from config.patterns import SCRIPT_URL_PATTERNS_COMPILED
from ...models.resource import MediaResource, MediaType
from .base import SniffContext, SniffStrategy, logger

_ESCAPES = (
    ("\\/", "/"),
    ("\\u002F", "/"),
    ("\\u002f", "/"),
    ("\\u0026", "&"),
    ("&amp;", "&"),
)


class ScriptExtractionStrategy(SniffStrategy):
    """Video URLs embedded in inline script text (player configs, JSON state)."""

    name = "ScriptExtraction"
    priority = 7

    def __init__(
        self,
        patterns: Optional[Dict[str, Pattern]] = None,
        max_script_bytes: int = SNIFF_LIMITS["max_script_bytes"],
        max_matches_per_pattern: int = SNIFF_LIMITS["max_matches_per_pattern"],
    ):
        self.patterns = dict(SCRIPT_URL_PATTERNS_COMPILED if patterns is None else patterns)
        self.max_script_bytes = max_script_bytes
        self.max_matches_per_pattern = max_matches_per_pattern

    def detect(self, context: SniffContext) -> List[MediaResource]:
        resources: List[MediaResource] = []

        for script in context.page.scripts:
            if not script:
                continue
            content = script[: self.max_script_bytes]

            for name, pattern in self.patterns.items():
                for candidate in self._iter_matches(pattern, content):
                    url = context.resolve(clean_script_url(candidate))
                    if not url or context.is_seen(url) or not context.classifier.is_video_url(url):
                        continue
                    context.claim(url)
                    logger.debug(f"[Strategy:{self.name}] {name} matched {url}")
                    resources.append(self._resource(url, MediaType.VIDEO))

        return resources

    def _iter_matches(self, pattern: Pattern, content: str) -> Iterator[str]:
        for i, match in enumerate(pattern.finditer(content)):
            if i >= self.max_matches_per_pattern:
                break
            value = match.group(1) if pattern.groups else match.group(0)
            if value:
                yield value


def clean_script_url(raw: str) -> str:
    """Undo the JSON/HTML escaping that embedded URLs usually carry."""
    value = raw.strip().strip("\"'")
    for escaped, plain in _ESCAPES:
        value = value.replace(escaped, plain)
    return value
