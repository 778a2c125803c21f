from .resource import MediaResource, MediaType, sort_by_size, count_by_type
from .page import PageSnapshot, MediaElement, SourceElement, ResourceEntry
from .config import SniffConfig
from .exceptions import (
    SnifferException,
    NetworkException,
    SecurityException,
    ValidationException,
    ConfigurationException,
    PageUnreachableException,
    MyNestAPIException,
    OutputException,
    URLValidationException,
    ContentSizeException,
)

__all__ = [
    "MediaResource",
    "MediaType",
    "sort_by_size",
    "count_by_type",
    "PageSnapshot",
    "MediaElement",
    "SourceElement",
    "ResourceEntry",
    "SniffConfig",
    "SnifferException",
    "NetworkException",
    "SecurityException",
    "ValidationException",
    "ConfigurationException",
    "PageUnreachableException",
    "MyNestAPIException",
    "OutputException",
    "URLValidationException",
    "ContentSizeException",
]
