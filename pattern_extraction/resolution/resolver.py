"""
Category Resolver Module.

This module provides the CategoryResolver class, which picks the value of
one invoice field from the patterns of its category.

Resolution is winner-takes-priority: patterns are tried in ascending
priority (ties by id), each pattern's candidates in text order, and the
first candidate that normalizes and passes the pattern's validation
expression wins. A lower-priority pattern is only consulted when every
candidate of the patterns before it was turned down.

Author: ML Engineering Team
"""

import dataclasses
from typing import Dict, Iterable, List, Optional, Pattern, Set, Tuple

from pattern_extraction.utils.logger import get_logger
from pattern_extraction.utils.exceptions import PatternInvalidError
from pattern_extraction.utils.helpers import spans_overlap
from pattern_extraction.patterns.pattern_definition import PatternCategory, PatternDefinition
from pattern_extraction.patterns.usage import UsageTracker
from pattern_extraction.matching.matcher import PatternMatcher
from pattern_extraction.matching.match_candidate import MatchCandidate, RejectedCandidate
from pattern_extraction.postprocessor.normalizers import FieldNormalizer
from .confidence import ConfidenceScorer
from .field_result import FieldExtractionResult
from .status import ResolutionStatus

logger = get_logger(__name__)

REASON_SPAN_CONSUMED = "overlaps a span claimed by another field"
REASON_NORMALIZATION = "normalization failed"
REASON_VALIDATION = "validation expression not matched"


def resolution_order(
    category: PatternCategory,
    patterns: Iterable[PatternDefinition]
) -> List[PatternDefinition]:
    """
    Order patterns for resolving a category.

    The category's own patterns come first by (priority, id); patterns of
    fallback categories follow, one group per category in the order the
    groups first appear, each by (priority, id).
    """
    groups: Dict[PatternCategory, List[PatternDefinition]] = {category: []}
    for pattern in patterns:
        groups.setdefault(pattern.category, []).append(pattern)

    ordered: List[PatternDefinition] = []
    for items in groups.values():
        ordered.extend(sorted(items, key=lambda p: p.sort_key))
    return ordered


class CategoryResolver:
    """
    Resolves one category against a text body.

    The resolver holds no per-run state; the set of invalid patterns and
    the claimed spans are passed in by the caller.

    Example:
        >>> resolver = CategoryResolver()
        >>> result = resolver.resolve(PatternCategory.AMOUNT, "Total Due $93.50", patterns)
        >>> result.value
        Decimal('93.50')
    """

    def __init__(
        self,
        matcher: Optional[PatternMatcher] = None,
        normalizer: Optional[FieldNormalizer] = None,
        scorer: Optional[ConfidenceScorer] = None,
        usage_tracker: Optional[UsageTracker] = None
    ) -> None:
        self.matcher = matcher or PatternMatcher()
        self.normalizer = normalizer or FieldNormalizer()
        self.scorer = scorer or ConfidenceScorer()
        self.usage_tracker = usage_tracker or UsageTracker()

    def resolve(
        self,
        category: PatternCategory,
        text: str,
        patterns: Iterable[PatternDefinition],
        occupied_spans: Iterable[Tuple[int, int]] = (),
        invalid_pattern_ids: Optional[Set[int]] = None
    ) -> FieldExtractionResult:
        """
        Resolve a category.

        Args:
            category: Category being resolved.
            text: Source text.
            patterns: Candidate patterns for the category, optionally
                followed by fallback-category patterns.
            occupied_spans: Captured spans already claimed by other fields;
                overlapping candidates are turned down.
            invalid_pattern_ids: Run-level set of patterns found invalid.
                Patterns in it are skipped and newly failing patterns are
                added to it.

        Returns:
            FieldExtractionResult for the category. Exhaustion is reported
            as a status, never raised.
        """
        occupied = list(occupied_spans)
        rejected: List[RejectedCandidate] = []
        patterns_tried = 0

        for pattern in resolution_order(category, patterns):
            if invalid_pattern_ids is not None and pattern.id in invalid_pattern_ids:
                continue

            try:
                candidates = self.matcher.match(pattern, text)
                validator = self.matcher.compile_validation(pattern)
            except PatternInvalidError as e:
                logger.warning(f"Skipping pattern {pattern.id} ({pattern.name}): {e.reason}")
                if invalid_pattern_ids is not None:
                    invalid_pattern_ids.add(pattern.id)
                continue

            patterns_tried += 1

            for candidate in candidates:
                if any(spans_overlap(candidate.span, span) for span in occupied):
                    rejected.append(RejectedCandidate(candidate, REASON_SPAN_CONSUMED))
                    continue

                value = self.normalizer.normalize(category, candidate.captured_text, pattern.date_format)
                if value is None:
                    rejected.append(RejectedCandidate(candidate, REASON_NORMALIZATION))
                    continue

                if validator is not None and not self._passes_validation(validator, candidate):
                    rejected.append(RejectedCandidate(candidate, REASON_VALIDATION))
                    continue

                return self._win(category, pattern, candidate, value, validator is not None,
                                 rejected, patterns_tried)

            logger.debug(f"{category.name}: pattern {pattern.id} produced no valid candidate")

        logger.debug(f"{category.name}: unresolved after {patterns_tried} patterns "
                     f"({len(rejected)} candidates rejected)")
        return FieldExtractionResult.unresolved(category, tuple(rejected), patterns_tried)

    @staticmethod
    def _passes_validation(validator: Pattern, candidate: MatchCandidate) -> bool:
        return validator.fullmatch(candidate.captured_text.strip()) is not None

    def _win(
        self,
        category: PatternCategory,
        pattern: PatternDefinition,
        candidate: MatchCandidate,
        value,
        validated: bool,
        rejected: List[RejectedCandidate],
        patterns_tried: int
    ) -> FieldExtractionResult:
        confidence = self.scorer.score_field(pattern, validated)
        self.usage_tracker.record(pattern.id)

        logger.debug(f"{category.name}: pattern {pattern.id} won with {candidate.captured_text!r} "
                     f"(confidence {confidence})")

        return FieldExtractionResult(
            category=category,
            status=ResolutionStatus.RESOLVED,
            value=value,
            winning_pattern_id=pattern.id,
            winning_pattern_name=pattern.name,
            winner=dataclasses.replace(candidate, confidence=confidence),
            field_confidence=confidence,
            quality_factor=self.scorer.quality_factor(validated),
            validated=validated,
            rejected_candidates=tuple(rejected),
            patterns_tried=patterns_tried
        )
