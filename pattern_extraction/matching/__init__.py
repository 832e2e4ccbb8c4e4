"""
Matching Module for the Pattern Extraction Engine.

Applies pattern expressions to text and yields ordered match candidates.

Author: ML Engineering Team
"""

from .matcher import PatternMatcher, PatternTestResult
from .match_candidate import MatchCandidate, RejectedCandidate

__all__ = ['PatternMatcher', 'PatternTestResult', 'MatchCandidate', 'RejectedCandidate']
