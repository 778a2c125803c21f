from .logger import setup_logging, get_logger, sniff_timer
from .validator import URLValidator, InputSanitizer, url_validator, input_sanitizer, is_valid_resource_url
from .output_formatter import OutputFormatter, ResultSerializer, output_formatter, result_serializer, format_size

__all__ = [
    "setup_logging",
    "get_logger",
    "sniff_timer",
    "URLValidator",
    "InputSanitizer",
    "url_validator",
    "input_sanitizer",
    "is_valid_resource_url",
    "OutputFormatter",
    "ResultSerializer",
    "output_formatter",
    "result_serializer",
    "format_size",
]
