"""
Utility Module for the Pattern Extraction Engine.

Common utilities used across all other modules:
    - Logging configuration
    - Exception hierarchy
    - Small text and time helpers
"""

from .logger import setup_logger, get_logger
from .helpers import ensure_directory, generate_timestamp, utc_now

__all__ = [
    'setup_logger',
    'get_logger',
    'ensure_directory',
    'generate_timestamp',
    'utc_now'
]
