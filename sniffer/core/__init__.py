from .classifier import MediaTypeClassifier, default_classifier
from .fetcher import AdvancedFetcher
from .parser import PageParser, StaticPageSource
from .orchestrator import MediaSniffer
from .size_resolver import SizeResolver
from .thumbnail import ThumbnailCapturer, ThumbnailChannel
from .mynest_client import MyNestClient
from .bridge import BackgroundController, ContentBridge, ResourceCache, SniffReport

__all__ = [
    "MediaTypeClassifier",
    "default_classifier",
    "AdvancedFetcher",
    "PageParser",
    "StaticPageSource",
    "MediaSniffer",
    "SizeResolver",
    "ThumbnailCapturer",
    "ThumbnailChannel",
    "MyNestClient",
    "BackgroundController",
    "ContentBridge",
    "ResourceCache",
    "SniffReport",
]
