from typing import List, Type

from .base import SniffContext, SniffStrategy
from .image_tag import ImageTagStrategy
from .background_image import BackgroundImageStrategy
from .video_tag import VideoTagStrategy
from .audio_tag import AudioTagStrategy
from .resource_timing import ResourceTimingStrategy
from .custom_attributes import CustomAttributeStrategy
from .script_extraction import ScriptExtractionStrategy, clean_script_url

STRATEGY_REGISTRY: List[Type[SniffStrategy]] = [
    ImageTagStrategy,
    BackgroundImageStrategy,
    VideoTagStrategy,
    AudioTagStrategy,
    ResourceTimingStrategy,
    CustomAttributeStrategy,
    ScriptExtractionStrategy,
]


def default_strategies() -> List[SniffStrategy]:
    """One instance of every registered strategy, lowest priority first."""
    return sorted((cls() for cls in STRATEGY_REGISTRY), key=lambda s: s.priority)


__all__ = [
    "SniffContext",
    "SniffStrategy",
    "ImageTagStrategy",
    "BackgroundImageStrategy",
    "VideoTagStrategy",
    "AudioTagStrategy",
    "ResourceTimingStrategy",
    "CustomAttributeStrategy",
    "ScriptExtractionStrategy",
    "clean_script_url",
    "STRATEGY_REGISTRY",
    "default_strategies",
]
