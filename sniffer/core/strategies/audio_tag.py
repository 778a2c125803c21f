from typing import List

from config.patterns import MEDIA_SOURCE_ATTRIBUTES
from ...models.resource import MediaResource, MediaType
from .base import SniffContext, SniffStrategy


class AudioTagStrategy(SniffStrategy):
    name = "AudioTag"
    priority = 4

    def detect(self, context: SniffContext) -> List[MediaResource]:
        resources: List[MediaResource] = []

        for audio in context.page.audios:
            url = context.first_valid(
                [audio.src, audio.current_src] + [audio.attr(a) for a in MEDIA_SOURCE_ATTRIBUTES]
            )
            if context.claim(url):
                resources.append(self._resource(url, MediaType.AUDIO, alt=audio.title or ""))

            for source in audio.sources:
                source_url = context.first_valid(
                    [source.src] + [source.attrs.get(a) for a in MEDIA_SOURCE_ATTRIBUTES]
                )
                if context.claim(source_url):
                    resources.append(self._resource(source_url, MediaType.AUDIO))

        return resources
