"""
Invoice Extraction Result Data Class.

This module defines the result of one extraction run: one field result
per processed category, the overall confidence and status, and the
audit record of which pattern won which field.

Author: ML Engineering Team
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

from pattern_extraction.utils.helpers import thaw
from pattern_extraction.patterns.pattern_definition import PatternCategory
from pattern_extraction.resolution.field_result import FieldExtractionResult, serialize_value
from pattern_extraction.resolution.status import ExtractionStatus
from .source_text import SourceText


@dataclass(frozen=True)
class InvoiceExtractionResult:
    """
    Represents the result of extracting one invoice.

    Created fresh by the orchestrator for every run and never modified
    afterwards.

    Attributes:
        fields: Field results keyed by category, in processing order
        overall_confidence: Aggregated confidence in [0, 1]
        status: COMPLETE, PARTIAL or FAILED
        used_pattern_ids: Winning pattern ids, first occurrence order
        pattern_match_summary: One audit line per category
        confidence_details: Confidence breakdown for the audit record
        required_categories: Categories the status is judged against
        warnings: Cross-field consistency warnings
        invalid_pattern_ids: Patterns skipped because they could not compile
        source: Metadata of the input text
        library_version: Version of the pattern snapshot used

    Example:
        >>> result = orchestrator.extract("Total Due $93.50")
        >>> result.value(PatternCategory.AMOUNT)
        Decimal('93.50')
        >>> result.to_audit_fields()["used_pattern_ids"]
        '10'
    """
    fields: Mapping[PatternCategory, FieldExtractionResult]
    overall_confidence: float
    status: ExtractionStatus
    used_pattern_ids: Tuple[int, ...] = ()
    pattern_match_summary: Tuple[str, ...] = ()
    confidence_details: Mapping[str, Any] = field(default_factory=dict)
    required_categories: Tuple[PatternCategory, ...] = ()
    warnings: Tuple[str, ...] = ()
    invalid_pattern_ids: Tuple[int, ...] = ()
    source: Optional[SourceText] = None
    library_version: Optional[str] = None

    def get_field(self, category: PatternCategory) -> Optional[FieldExtractionResult]:
        """Field result of a category, or None if it was not processed."""
        return self.fields.get(category)

    def value(self, category: PatternCategory) -> Any:
        """Resolved value of a category, or None."""
        result = self.fields.get(category)
        return result.value if result is not None and result.is_resolved else None

    @property
    def values(self) -> Dict[PatternCategory, Any]:
        """Resolved values keyed by category."""
        return {category: result.value for category, result in self.fields.items() if result.is_resolved}

    @property
    def missing_required(self) -> List[PatternCategory]:
        return [category for category in self.required_categories if self.value(category) is None]

    @property
    def invoice_number(self) -> Optional[str]:
        return self.value(PatternCategory.INVOICE_NUMBER)

    @property
    def total_amount(self):
        return self.value(PatternCategory.AMOUNT)

    @property
    def vendor_name(self) -> Optional[str]:
        return self.value(PatternCategory.VENDOR)

    @property
    def summary_text(self) -> str:
        return '\n'.join(self.pattern_match_summary)

    def to_audit_fields(self) -> Dict[str, str]:
        """
        The three audit columns stored with the invoice.

        Returns:
            Dictionary with used_pattern_ids (comma separated),
            pattern_match_summary (one line per category) and
            extraction_confidence_details (JSON).
        """
        return {
            'used_pattern_ids': ','.join(str(pattern_id) for pattern_id in self.used_pattern_ids),
            'pattern_match_summary': self.summary_text,
            'extraction_confidence_details': json.dumps(thaw(self.confidence_details), sort_keys=True),
        }

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert to dictionary format.

        Returns:
            JSON-serializable dictionary representation of the result.
        """
        return {
            'status': self.status.value,
            'overall_confidence': self.overall_confidence,
            'values': {category.name: serialize_value(value) for category, value in self.values.items()},
            'fields': {category.name: result.to_dict() for category, result in self.fields.items()},
            'required_categories': [category.name for category in self.required_categories],
            'missing_required': [category.name for category in self.missing_required],
            'used_pattern_ids': list(self.used_pattern_ids),
            'pattern_match_summary': list(self.pattern_match_summary),
            'confidence_details': thaw(self.confidence_details),
            'warnings': list(self.warnings),
            'invalid_pattern_ids': list(self.invalid_pattern_ids),
            'source': self.source.to_dict() if self.source else None,
            'library_version': self.library_version,
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)

    def to_flat_dict(self) -> Dict[str, Any]:
        """
        Convert to a flat dictionary with one value and one confidence
        column per category.
        """
        flat: Dict[str, Any] = {
            'status': self.status.value,
            'overall_confidence': self.overall_confidence,
            'source_name': self.source.source_name if self.source else '',
        }
        for category, result in self.fields.items():
            key = category.name.lower()
            value = serialize_value(result.value) if result.is_resolved else None
            flat[key] = '' if value is None else value
            flat[f'{key}_confidence'] = result.field_confidence
        flat.update(self.to_audit_fields())
        return flat
