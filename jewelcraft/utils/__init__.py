"""
Utility modules for text sanitization, PII-safe logging and timestamp parsing
"""
from .sanitizers import sanitize_html, strip_html_tags, normalize_vision
from .secure_logger import secure_logger, scrub_object, scrub_string, PIIScrubbingFilter
from .timestamps import parse_timestamp

__all__ = [
    "sanitize_html",
    "strip_html_tags",
    "normalize_vision",
    "secure_logger",
    "scrub_object",
    "scrub_string",
    "PIIScrubbingFilter",
    "parse_timestamp",
]
