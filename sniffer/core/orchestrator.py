from typing import List, Optional, Sequence

from ..models.page import PageSnapshot
from ..models.resource import MediaResource
from ..utils.logger import get_logger, sniff_timer
from ..utils.validator import URLValidator
from .classifier import MediaTypeClassifier, default_classifier
from .strategies import SniffContext, SniffStrategy, default_strategies

logger = get_logger("orchestrator")


class MediaSniffer:
    """Runs the detection strategies against one page snapshot.

    Strategies execute sequentially in ascending priority and share a dedup
    set that lives only for the duration of one ``sniff`` call. The first
    strategy to report a URL owns it. Output is in discovery order; sorting by
    size happens after sizes are known.
    """

    def __init__(
        self,
        strategies: Optional[Sequence[SniffStrategy]] = None,
        validator: Optional[URLValidator] = None,
        classifier: Optional[MediaTypeClassifier] = None,
    ):
        chosen = default_strategies() if strategies is None else list(strategies)
        self.strategies: List[SniffStrategy] = sorted(chosen, key=lambda s: s.priority)
        self.validator = validator or URLValidator()
        self.classifier = classifier or default_classifier

    def new_context(self, page: PageSnapshot) -> SniffContext:
        return SniffContext(page=page, validator=self.validator, classifier=self.classifier)

    def sniff(self, page: PageSnapshot) -> List[MediaResource]:
        context = self.new_context(page)
        resources: List[MediaResource] = []

        logger.debug(f"[Sniff] starting {len(self.strategies)} strategies on {page.url}")

        with sniff_timer(logger, "sniff", page=page.url) as timing:
            for strategy in self.strategies:
                found = strategy.detect_safely(context)
                resources.extend(found)
                logger.debug(f"[Sniff] strategy {strategy.name} found {len(found)} resources")
            timing["resources"] = len(resources)

        logger.info(f"[Sniff] total resources found: {len(resources)}")
        return resources
