"""
Resolution Module for the Pattern Extraction Engine.

Picks one winning value per category and scores it.

Author: ML Engineering Team
"""

from .status import ExtractionStatus, ResolutionStatus
from .field_result import FieldExtractionResult, serialize_value
from .confidence import ConfidenceScorer
from .resolver import CategoryResolver

__all__ = [
    'ExtractionStatus',
    'ResolutionStatus',
    'FieldExtractionResult',
    'serialize_value',
    'ConfidenceScorer',
    'CategoryResolver'
]
