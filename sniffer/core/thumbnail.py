from __future__ import annotations

import threading
from typing import Any, Callable, Dict, List, Optional

from config.constants import DEFAULT_CONFIG, THUMBNAIL_ACTION
from ..models.resource import MediaResource
from ..utils.logger import get_logger

logger = get_logger("thumbnail")

ThumbnailMessage = Dict[str, Any]
Subscriber = Callable[[ThumbnailMessage], None]


class ThumbnailChannel:
    """Push channel for thumbnails that arrive after the sniff response."""

    def __init__(self):
        self._subscribers: List[Subscriber] = []
        self._lock = threading.Lock()

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe():
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def publish(self, url: str, thumbnail: str):
        message = {"action": THUMBNAIL_ACTION, "url": url, "thumbnail": thumbnail}
        with self._lock:
            subscribers = list(self._subscribers)
        for callback in subscribers:
            try:
                callback(message)
            except Exception as e:
                logger.warning(f"Thumbnail subscriber failed: {e}")


class ThumbnailCapturer:
    """Best-effort frame grabs for a few videos.

    ``renderer`` is a context manager exposing ``render(url, timeout)``; see
    PlaywrightFrameRenderer. Every failure collapses to "no thumbnail".
    """

    def __init__(
        self,
        renderer,
        max_videos: int = DEFAULT_CONFIG["max_thumbnails"],
        timeout: float = DEFAULT_CONFIG["thumbnail_timeout"],
    ):
        self.renderer = renderer
        self.max_videos = max_videos
        self.timeout = timeout

    def select_targets(self, resources: List[MediaResource]) -> List[MediaResource]:
        targets = [r for r in resources if r.is_video and not r.has_thumbnail]
        return targets[: self.max_videos]

    def capture_thumbnail(self, video_url: str) -> Optional[str]:
        try:
            data_uri = self.renderer.render(video_url, self.timeout)
        except Exception as e:
            logger.debug(f"[Thumbnail] capture failed for {video_url}: {e}")
            return None
        if isinstance(data_uri, str) and data_uri.startswith("data:image/"):
            return data_uri
        return None

    def backfill(
        self,
        resources: List[MediaResource],
        publish: Optional[Callable[[str, str], None]] = None,
    ) -> int:
        targets = self.select_targets(resources)
        if not targets:
            return 0

        captured = 0
        try:
            with self.renderer:
                for resource in targets:
                    thumbnail = self.capture_thumbnail(resource.url)
                    if not thumbnail:
                        continue
                    resource.thumbnail = thumbnail
                    captured += 1
                    if publish:
                        publish(resource.url, thumbnail)
        except Exception as e:
            logger.debug(f"[Thumbnail] renderer unavailable: {e}")

        logger.debug(f"[Thumbnail] captured {captured}/{len(targets)}")
        return captured

    def start_backfill(
        self,
        resources: List[MediaResource],
        publish: Optional[Callable[[str, str], None]] = None,
    ) -> threading.Thread:
        """Run ``backfill`` on a daemon thread and return immediately."""
        thread = threading.Thread(
            target=self.backfill,
            args=(resources, publish),
            name="mynest-thumbnails",
            daemon=True,
        )
        thread.start()
        return thread
