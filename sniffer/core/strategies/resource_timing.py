from typing import List

from ...models.resource import MediaResource
from .base import SniffContext, SniffStrategy


class ResourceTimingStrategy(SniffStrategy):
    """Media the page fetched at runtime, from the passive resource-timing log.

    Catches assets injected by scripts that never appear as DOM elements.
    """

    name = "ResourceTiming"
    priority = 5

    def detect(self, context: SniffContext) -> List[MediaResource]:
        resources: List[MediaResource] = []

        for entry in context.page.resource_entries:
            url = context.resolve(entry.name)
            if not url or context.is_seen(url):
                continue

            media_type = context.classifier.classify(url, entry.initiator_type)
            if media_type and context.claim(url):
                resources.append(self._resource(url, media_type))

        return resources
