"""
Confidence Scoring Module.

Field confidence is the winning pattern's weight times a quality factor:
the full factor when the pattern carries a validation expression that
passed, a configurable penalty when it carries none. Overall confidence
averages the resolved fields, counting each missing required category
as a zero.

Author: ML Engineering Team
"""

from typing import Any, Dict, Iterable, Mapping, Optional

from config import get_config
from pattern_extraction.utils.logger import get_logger
from pattern_extraction.utils.exceptions import ConfigurationError
from pattern_extraction.patterns.pattern_definition import PatternCategory, PatternDefinition
from .field_result import FieldExtractionResult
from .status import ExtractionStatus

logger = get_logger(__name__)


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))


class ConfidenceScorer:
    """
    Computes field and overall confidence and the run status.

    Attributes:
        validated_factor: Quality factor when validation passed
        no_validation_factor: Quality factor when no validation expression exists
        decimal_places: Rounding applied to every confidence

    Example:
        >>> scorer = ConfidenceScorer()
        >>> scorer.score_field(pattern, validated=False)
        0.7
    """

    def __init__(
        self,
        validated_factor: Optional[float] = None,
        no_validation_factor: Optional[float] = None,
        decimal_places: Optional[int] = None
    ) -> None:
        """
        Initialize the scorer.

        Args:
            validated_factor: Overrides confidence.validated_factor.
            no_validation_factor: Overrides confidence.no_validation_factor.
            decimal_places: Overrides confidence.decimal_places.

        Raises:
            ConfigurationError: If a factor is outside [0, 1] or the
                rounding is negative.
        """
        if validated_factor is None:
            validated_factor = get_config("confidence.validated_factor", 1.0)
        if no_validation_factor is None:
            no_validation_factor = get_config("confidence.no_validation_factor", 0.7)
        if decimal_places is None:
            decimal_places = get_config("confidence.decimal_places", 4)

        for key, factor in (("confidence.validated_factor", validated_factor),
                            ("confidence.no_validation_factor", no_validation_factor)):
            if not isinstance(factor, (int, float)) or not 0.0 <= factor <= 1.0:
                raise ConfigurationError(key, factor, "must be a number in [0, 1]")

        if not isinstance(decimal_places, int) or decimal_places < 0:
            raise ConfigurationError("confidence.decimal_places", decimal_places, "must be a non-negative integer")

        self.validated_factor = float(validated_factor)
        self.no_validation_factor = float(no_validation_factor)
        self.decimal_places = decimal_places

    def quality_factor(self, validated: bool) -> float:
        return self.validated_factor if validated else self.no_validation_factor

    def score_field(self, pattern: PatternDefinition, validated: bool) -> float:
        """
        Confidence of a field won by a pattern.

        Args:
            pattern: Winning pattern.
            validated: True when the pattern's validation expression
                existed and passed.

        Returns:
            Confidence in [0, 1].
        """
        score = pattern.confidence_weight * self.quality_factor(validated)
        return round(_clamp(score), self.decimal_places)

    def overall_confidence(
        self,
        field_results: Mapping[PatternCategory, FieldExtractionResult],
        required: Iterable[PatternCategory]
    ) -> float:
        """
        Aggregate field confidences into one run confidence.

        Resolved fields contribute their confidence. Unresolved required
        categories contribute 0 but still count; unresolved optional
        categories are ignored.

        Args:
            field_results: Field results keyed by category.
            required: Required categories.

        Returns:
            Overall confidence in [0, 1], 0.0 when nothing counts.
        """
        required_set = set(required)
        total = 0.0
        counted = 0

        for category, result in field_results.items():
            if result.is_resolved:
                total += result.field_confidence
                counted += 1
            elif category in required_set:
                counted += 1

        # Required categories that were not even processed
        counted += len(required_set - set(field_results))

        if counted == 0:
            return 0.0
        return round(_clamp(total / counted), self.decimal_places)

    def determine_status(
        self,
        field_results: Mapping[PatternCategory, FieldExtractionResult],
        required: Iterable[PatternCategory]
    ) -> ExtractionStatus:
        """
        Terminal run status.

        COMPLETE when every required category resolved, PARTIAL when some
        did, FAILED when none did. Without required categories, any
        resolved field makes the run COMPLETE.
        """
        required_set = set(required)

        if not required_set:
            any_resolved = any(result.is_resolved for result in field_results.values())
            return ExtractionStatus.COMPLETE if any_resolved else ExtractionStatus.FAILED

        resolved = sum(
            1 for category in required_set
            if category in field_results and field_results[category].is_resolved
        )
        if resolved == len(required_set):
            return ExtractionStatus.COMPLETE
        if resolved == 0:
            return ExtractionStatus.FAILED
        return ExtractionStatus.PARTIAL

    def breakdown(
        self,
        field_results: Mapping[PatternCategory, FieldExtractionResult],
        required: Iterable[PatternCategory]
    ) -> Dict[str, Any]:
        """
        Confidence details for the audit record.

        Returns:
            Dictionary with the scoring parameters, the overall confidence
            and one entry per category.
        """
        required_set = set(required)
        fields = {}
        for category, result in field_results.items():
            fields[category.name] = {
                'status': result.status.value,
                'required': category in required_set,
                'pattern_id': result.winning_pattern_id,
                'confidence': result.field_confidence,
                'quality_factor': result.quality_factor,
                'validated': result.validated,
            }

        resolved_required = sum(
            1 for category in required_set
            if category in field_results and field_results[category].is_resolved
        )
        return {
            'overall_confidence': self.overall_confidence(field_results, required_set),
            'required_resolved': resolved_required,
            'required_total': len(required_set),
            'validated_factor': self.validated_factor,
            'no_validation_factor': self.no_validation_factor,
            'fields': fields,
        }
