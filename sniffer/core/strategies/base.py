from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Set

from ...models.page import PageSnapshot
from ...models.resource import MediaResource, MediaType
from ...utils.logger import get_logger
from ...utils.validator import URLValidator
from ..classifier import MediaTypeClassifier, default_classifier

logger = get_logger("strategies")


@dataclass
class SniffContext:
    """State shared by the strategies of one sniff run.

    ``seen_urls`` is the dedup set. Strategies run one after another, so the
    set is never touched concurrently.
    """

    page: PageSnapshot
    validator: URLValidator = field(default_factory=URLValidator)
    classifier: MediaTypeClassifier = default_classifier
    seen_urls: Set[str] = field(default_factory=set)

    @property
    def base_url(self) -> str:
        return self.page.url

    def resolve(self, candidate: Optional[str]) -> Optional[str]:
        return self.validator.resolve(candidate, self.base_url)

    def first_valid(self, candidates: Iterable[Optional[str]]) -> Optional[str]:
        for candidate in candidates:
            resolved = self.resolve(candidate)
            if resolved:
                return resolved
        return None

    def is_seen(self, url: str) -> bool:
        return url in self.seen_urls

    def claim(self, url: Optional[str]) -> bool:
        """Record ``url`` as found; False when an earlier strategy already has it."""
        if not url or url in self.seen_urls:
            return False
        self.seen_urls.add(url)
        return True


class SniffStrategy(ABC):
    name: str = "Strategy"
    priority: int = 100

    @abstractmethod
    def detect(self, context: SniffContext) -> List[MediaResource]:
        raise NotImplementedError

    def detect_safely(self, context: SniffContext) -> List[MediaResource]:
        try:
            return self.detect(context)
        except Exception as e:
            logger.debug(f"[Strategy:{self.name}] detection error: {e}")
            return []

    def _resource(self, url: str, media_type: MediaType, **kwargs) -> MediaResource:
        return MediaResource(url=url, type=media_type, discovered_by=self.name, **kwargs)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r}, priority={self.priority})"
