from typing import Dict, Iterable, List, Mapping, Optional, Pattern

from config.patterns import (
    AUDIO_URL_PATTERNS_COMPILED,
    IMAGE_URL_PATTERNS_COMPILED,
    INITIATOR_TYPE_HINTS,
    STRICT_VIDEO_URL_PATTERNS_COMPILED,
    VIDEO_PLATFORM_HOST_PATTERNS_COMPILED,
    VIDEO_URL_PATTERNS_COMPILED,
)
from ..models.resource import MediaType


class MediaTypeClassifier:
    """Infers a media type from a URL and an optional initiator hint.

    Pattern groups are tried video, audio, image; the first group with a
    matching pattern wins. Host allow-lists are injected so they can be
    maintained as configuration.
    """

    def __init__(
        self,
        video_patterns: Optional[Mapping[str, Pattern]] = None,
        audio_patterns: Optional[Mapping[str, Pattern]] = None,
        image_patterns: Optional[Mapping[str, Pattern]] = None,
        platform_hosts: Optional[Mapping[str, Pattern]] = None,
        strict_video_patterns: Optional[Mapping[str, Pattern]] = None,
        hints: Optional[Mapping[str, str]] = None,
    ):
        video = dict(VIDEO_URL_PATTERNS_COMPILED if video_patterns is None else video_patterns)
        video.update(VIDEO_PLATFORM_HOST_PATTERNS_COMPILED if platform_hosts is None else platform_hosts)
        self.groups: List[tuple] = [
            (MediaType.VIDEO, list(video.values())),
            (MediaType.AUDIO, list((AUDIO_URL_PATTERNS_COMPILED if audio_patterns is None else audio_patterns).values())),
            (MediaType.IMAGE, list((IMAGE_URL_PATTERNS_COMPILED if image_patterns is None else image_patterns).values())),
        ]
        self.strict_video = list(
            (STRICT_VIDEO_URL_PATTERNS_COMPILED if strict_video_patterns is None else strict_video_patterns).values()
        )
        self.hints: Dict[str, MediaType] = {
            k.lower(): MediaType(v) for k, v in (INITIATOR_TYPE_HINTS if hints is None else hints).items()
        }

    def classify(self, url: str, hint: Optional[str] = None) -> Optional[MediaType]:
        if hint:
            hinted = self.hints.get(hint.lower())
            if hinted:
                return hinted

        if not url:
            return None

        for media_type, patterns in self.groups:
            if _any_match(patterns, url):
                return media_type
        return None

    def is_video_url(self, url: str) -> bool:
        return bool(url) and _any_match(self.strict_video, url)


def _any_match(patterns: Iterable[Pattern], text: str) -> bool:
    return any(p.search(text) for p in patterns)


default_classifier = MediaTypeClassifier()
