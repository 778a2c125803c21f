from typing import List

from config.patterns import IMAGE_SOURCE_ATTRIBUTES
from ...models.resource import MediaResource, MediaType
from .base import SniffContext, SniffStrategy


class ImageTagStrategy(SniffStrategy):
    """<img> elements, including lazy-load data attributes."""

    name = "ImageTag"
    priority = 1

    def detect(self, context: SniffContext) -> List[MediaResource]:
        resources: List[MediaResource] = []

        for img in context.page.images:
            candidates = [img.src] + [img.attr(a) for a in IMAGE_SOURCE_ATTRIBUTES]
            url = context.first_valid(candidates)
            if not context.claim(url):
                continue

            dims = img.intrinsic_or_rendered
            resources.append(self._resource(
                url,
                MediaType.IMAGE,
                width=dims["width"],
                height=dims["height"],
                alt=img.alt or img.title or "",
            ))

        return resources
