from __future__ import annotations

import concurrent.futures
from typing import Dict, List, Optional, Tuple

from config.constants import DEFAULT_CONFIG, SNIFF_LIMITS
from ..models.page import PageSnapshot, ResourceEntry
from ..models.resource import MediaResource, sort_by_size
from ..utils.logger import get_logger, sniff_timer
from .fetcher import AdvancedFetcher

logger = get_logger("size")


def size_from_entry(entry: Optional[ResourceEntry]) -> int:
    if entry is None:
        return 0
    if entry.transfer_size > 0:
        return entry.transfer_size
    if entry.encoded_body_size > 0:
        return entry.encoded_body_size
    return 0


class SizeResolver:
    """Fills in ``MediaResource.size`` and orders the list by it.

    The resource-timing log is consulted first; a HEAD probe is the fallback.
    A failed lookup leaves the size at 0 and never fails the batch.
    """

    def __init__(
        self,
        fetcher: Optional[AdvancedFetcher] = None,
        timeout: float = DEFAULT_CONFIG["size_probe_timeout"],
        max_workers: int = DEFAULT_CONFIG["size_workers"],
    ):
        self.fetcher = fetcher or AdvancedFetcher()
        self.timeout = timeout
        self.max_workers = max(1, min(int(max_workers), SNIFF_LIMITS["max_size_workers"]))
        # counts for the most recent resolve_all call only
        self.stats: Dict[str, int] = _empty_stats()

    def resolve_size(self, resource: MediaResource, snapshot: Optional[PageSnapshot] = None) -> int:
        return self._lookup(resource, snapshot)[0]

    def _lookup(self, resource: MediaResource, snapshot: Optional[PageSnapshot]) -> Tuple[int, str]:
        entry = snapshot.find_resource_entry(resource.url) if snapshot else None
        size = size_from_entry(entry)
        if size:
            return size, "from_timing"

        try:
            probed = self.fetcher.probe_content_length(resource.url, timeout=self.timeout)
        except Exception as e:
            logger.debug(f"[Size] HEAD failed for {resource.url}: {e}")
            probed = None

        if probed:
            return probed, "from_head"
        return 0, "unknown"

    def resolve_all(
        self,
        resources: List[MediaResource],
        snapshot: Optional[PageSnapshot] = None,
    ) -> List[MediaResource]:
        """Size every resource concurrently, wait for all, then sort descending."""
        stats = _empty_stats()
        self.stats = stats
        if not resources:
            return []

        workers = min(self.max_workers, len(resources))
        with sniff_timer(logger, "sizes", resources=len(resources)) as timing:
            with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as executor:
                fut_to_res = {
                    executor.submit(self._lookup, res, snapshot): res for res in resources
                }
                for future in concurrent.futures.as_completed(fut_to_res):
                    res = fut_to_res[future]
                    try:
                        res.size, source = future.result()
                    except Exception as e:
                        logger.debug(f"[Size] lookup crashed for {res.url}: {e}")
                        res.size, source = 0, "unknown"
                    stats[source] += 1
            timing.update(stats)

        return sort_by_size(resources)


def _empty_stats() -> Dict[str, int]:
    return {"from_timing": 0, "from_head": 0, "unknown": 0}
