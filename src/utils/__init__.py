"""Utility functions and helpers."""

from src.utils.logging import get_logger, setup_logging
from src.utils.parsing import (
    contains_any,
    parse_json_object,
    strip_code_fences,
    truncate,
)

__all__ = [
    "contains_any",
    "get_logger",
    "parse_json_object",
    "setup_logging",
    "strip_code_fences",
    "truncate",
]
