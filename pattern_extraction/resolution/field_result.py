"""
Field Extraction Result Data Class.

Outcome of resolving one category for one invoice: the typed value, the
winning pattern and its confidence, and every candidate turned down on
the way.

Author: ML Engineering Team
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Optional, Tuple

from pattern_extraction.patterns.pattern_definition import PatternCategory
from pattern_extraction.matching.match_candidate import MatchCandidate, RejectedCandidate
from .status import ResolutionStatus


def serialize_value(value: Any) -> Any:
    """Render a typed field value for JSON output."""
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, date):
        return value.isoformat()
    return value


@dataclass(frozen=True)
class FieldExtractionResult:
    """
    Result of resolving one category.

    Attributes:
        category: Category that was resolved
        status: RESOLVED, UNRESOLVED or REJECTED_BY_VALIDATION
        value: Typed value (Decimal, date or str) when resolved
        winning_pattern_id: Id of the pattern that won, if any
        winning_pattern_name: Name of the pattern that won, if any
        winner: Winning candidate, carrying its confidence contribution
        field_confidence: Confidence in [0, 1], 0.0 when not resolved
        quality_factor: Factor applied to the pattern weight
        validated: Whether a validation expression was present and passed
        rejected_candidates: Candidates turned down, in evaluation order
        patterns_tried: Number of valid patterns evaluated

    Example:
        >>> result.status
        <ResolutionStatus.RESOLVED: 'RESOLVED'>
        >>> result.value
        Decimal('93.50')
    """
    category: PatternCategory
    status: ResolutionStatus
    value: Any = None
    winning_pattern_id: Optional[int] = None
    winning_pattern_name: Optional[str] = None
    winner: Optional[MatchCandidate] = None
    field_confidence: float = 0.0
    quality_factor: Optional[float] = None
    validated: bool = False
    rejected_candidates: Tuple[RejectedCandidate, ...] = ()
    patterns_tried: int = 0

    @classmethod
    def unresolved(
        cls,
        category: PatternCategory,
        rejected_candidates: Tuple[RejectedCandidate, ...] = (),
        patterns_tried: int = 0
    ) -> 'FieldExtractionResult':
        """
        Build the result of a category no pattern could fill.

        Status is REJECTED_BY_VALIDATION when candidates existed but none
        survived, UNRESOLVED when nothing matched at all.
        """
        status = ResolutionStatus.REJECTED_BY_VALIDATION if rejected_candidates else ResolutionStatus.UNRESOLVED
        return cls(
            category=category,
            status=status,
            rejected_candidates=tuple(rejected_candidates),
            patterns_tried=patterns_tried
        )

    @property
    def is_resolved(self) -> bool:
        return self.status is ResolutionStatus.RESOLVED

    @property
    def captured_text(self) -> Optional[str]:
        return self.winner.captured_text if self.winner else None

    def summary_line(self) -> str:
        """
        One human-readable audit line for this category.

        Example:
            >>> result.summary_line()
            "AMOUNT: pattern 10 (TotalDue_Tabular) captured '93.50' confidence 0.70"
        """
        label = self.category.name
        if self.is_resolved:
            return (f"{label}: pattern {self.winning_pattern_id} ({self.winning_pattern_name}) "
                    f"captured {self.captured_text!r} confidence {self.field_confidence:.2f}")
        if self.rejected_candidates:
            return f"{label}: no match ({len(self.rejected_candidates)} candidates rejected)"
        return f"{label}: no match"

    def to_dict(self) -> Dict[str, Any]:
        return {
            'category': self.category.name,
            'status': self.status.value,
            'value': serialize_value(self.value),
            'winning_pattern_id': self.winning_pattern_id,
            'winning_pattern_name': self.winning_pattern_name,
            'captured_text': self.captured_text,
            'raw_match': self.winner.raw_match if self.winner else None,
            'field_confidence': self.field_confidence,
            'quality_factor': self.quality_factor,
            'validated': self.validated,
            'patterns_tried': self.patterns_tried,
            'rejected_candidates': [rejected.to_dict() for rejected in self.rejected_candidates],
        }
