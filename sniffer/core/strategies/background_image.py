from typing import List

from config.patterns import CSS_URL_PATTERN_COMPILED
from ...models.resource import MediaResource, MediaType
from .base import SniffContext, SniffStrategy


class BackgroundImageStrategy(SniffStrategy):
    """url(...) references in computed background-image values."""

    name = "BackgroundImage"
    priority = 2

    def detect(self, context: SniffContext) -> List[MediaResource]:
        resources: List[MediaResource] = []

        for value in context.page.backgrounds:
            if not value or value.strip().lower() == "none":
                continue
            for match in CSS_URL_PATTERN_COMPILED.finditer(value):
                url = context.resolve(match.group(1))
                if context.claim(url):
                    resources.append(self._resource(url, MediaType.IMAGE))

        return resources
