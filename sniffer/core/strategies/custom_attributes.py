from typing import List

from config.patterns import CUSTOM_VIDEO_ATTRIBUTES
from ...models.resource import MediaResource, MediaType
from .base import SniffContext, SniffStrategy


class CustomAttributeStrategy(SniffStrategy):
    name = "CustomAttributes"
    priority = 6

    def detect(self, context: SniffContext) -> List[MediaResource]:
        resources: List[MediaResource] = []

        for attrs in context.page.attributed:
            raw = next((attrs.get(a) for a in CUSTOM_VIDEO_ATTRIBUTES if attrs.get(a)), None)
            url = context.resolve(raw)
            if context.claim(url):
                resources.append(self._resource(url, MediaType.VIDEO))

        return resources
