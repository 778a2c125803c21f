from typing import List, Optional

from config.patterns import BLOB_RECOVERY_ATTRIBUTES, MEDIA_SOURCE_ATTRIBUTES
from ...models.page import MediaElement
from ...models.resource import MediaResource, MediaType
from .base import SniffContext, SniffStrategy, logger


class VideoTagStrategy(SniffStrategy):
    """<video> elements and their <source> children.

    A blob: source is only kept when the element also carries the original
    URL in one of the recovery attributes.
    """

    name = "VideoTag"
    priority = 3

    def detect(self, context: SniffContext) -> List[MediaResource]:
        resources: List[MediaResource] = []

        for video in context.page.videos:
            dims = video.intrinsic_or_rendered
            url = self._element_url(context, video)

            if context.claim(url):
                poster = context.resolve(video.poster or video.attr("poster"))
                resources.append(self._resource(
                    url,
                    MediaType.VIDEO,
                    width=dims["width"],
                    height=dims["height"],
                    alt=video.title or "",
                    thumbnail=poster,
                ))

            for source in video.sources:
                source_url = context.first_valid(
                    [source.src] + [source.attrs.get(a) for a in MEDIA_SOURCE_ATTRIBUTES]
                )
                if context.claim(source_url):
                    resources.append(self._resource(
                        source_url,
                        MediaType.VIDEO,
                        width=dims["width"],
                        height=dims["height"],
                    ))

        return resources

    def _element_url(self, context: SniffContext, video: MediaElement) -> Optional[str]:
        candidates = [video.src, video.current_src] + [video.attr(a) for a in MEDIA_SOURCE_ATTRIBUTES]
        raw = next((c for c in candidates if c), "")

        if not context.validator.is_blob(raw):
            return context.first_valid(candidates)

        recovered = context.first_valid(video.attr(a) for a in BLOB_RECOVERY_ATTRIBUTES)
        if recovered:
            return recovered

        logger.debug(f"[Strategy:{self.name}] blob source without original URL: {raw}")
        return context.resolve(raw)
