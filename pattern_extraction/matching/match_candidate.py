"""
Match Candidate Data Classes.

Ephemeral records produced by the PatternMatcher for every occurrence
of a pattern in a text body, and the rejection record kept for the
audit trail when a candidate does not make it.

Author: ML Engineering Team
"""

from dataclasses import dataclass
from typing import Any, Dict, Tuple


@dataclass(frozen=True)
class MatchCandidate:
    """
    One occurrence of a pattern in the source text.

    Offsets refer to the captured value; match_start/match_end bound the
    whole expression match.

    Attributes:
        pattern_id: Pattern that produced the candidate
        raw_match: Full text matched by the expression
        captured_text: Text of the configured capture group
        start_offset: Start of the captured text in the source
        end_offset: End (exclusive) of the captured text in the source
        match_start: Start of the full match
        match_end: End (exclusive) of the full match
        confidence: Confidence contribution, set once the candidate wins

    Example:
        >>> candidate = MatchCandidate(10, "Total Due $93.50", "93.50", 11, 16, 0, 16)
        >>> candidate.span
        (11, 16)
    """
    pattern_id: int
    raw_match: str
    captured_text: str
    start_offset: int
    end_offset: int
    match_start: int
    match_end: int
    confidence: float = 0.0

    @property
    def span(self) -> Tuple[int, int]:
        """Offsets of the captured value as a half-open range."""
        return self.start_offset, self.end_offset

    def to_dict(self) -> Dict[str, Any]:
        return {
            'pattern_id': self.pattern_id,
            'raw_match': self.raw_match,
            'captured_text': self.captured_text,
            'start_offset': self.start_offset,
            'end_offset': self.end_offset,
            'confidence': self.confidence,
        }


@dataclass(frozen=True)
class RejectedCandidate:
    """
    A candidate that lost, with the reason it was turned down.

    Attributes:
        candidate: The rejected match candidate
        reason: Short human-readable rejection reason
    """
    candidate: MatchCandidate
    reason: str

    def to_dict(self) -> Dict[str, Any]:
        data = self.candidate.to_dict()
        data['reason'] = self.reason
        return data
