"""
Pattern Library Module for the Pattern Extraction Engine.

This module provides the read-only view of the administrator-curated
pattern library:
    - PatternCategory and PatternDefinition records
    - Immutable, refreshable PatternLibrary snapshots
    - Thread-safe per-pattern usage counters

Author: ML Engineering Team
"""

from .pattern_definition import PatternCategory, PatternDefinition, parse_flags
from .library import PatternLibrary
from .usage import PatternUsage, UsageTracker

__all__ = [
    'PatternCategory',
    'PatternDefinition',
    'parse_flags',
    'PatternLibrary',
    'PatternUsage',
    'UsageTracker'
]
