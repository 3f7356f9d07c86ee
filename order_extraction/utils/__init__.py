"""
Utility Module for the Order Extraction System.

This module provides common utilities used across all other modules:
    - Logging configuration
    - Exception hierarchy
    - File and JSON helpers
"""

from .logger import setup_logger, get_logger
from .helpers import (
    ensure_directory,
    get_file_extension,
    clean_json_string,
    parse_json_object,
    parse_number,
)

__all__ = [
    'setup_logger',
    'get_logger',
    'ensure_directory',
    'get_file_extension',
    'clean_json_string',
    'parse_json_object',
    'parse_number',
]
