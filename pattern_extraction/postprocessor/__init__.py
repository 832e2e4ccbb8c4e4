"""
Post-Processing Module for the Pattern Extraction Engine.

This module provides functionality for:
    - Amount normalization to fixed-point decimals
    - Date parsing with per-pattern formats
    - Text, currency, e-mail and phone cleaning
    - Cross-field consistency checks

Author: ML Engineering Team
"""

from .normalizers import (
    AmountNormalizer,
    DateNormalizer,
    FieldNormalizer,
    TextNormalizer,
    to_strptime_format
)
from .validators import (
    AmountConsistencyValidator,
    ConsistencyValidator,
    DateConsistencyValidator
)

__all__ = [
    'AmountNormalizer',
    'DateNormalizer',
    'FieldNormalizer',
    'TextNormalizer',
    'to_strptime_format',
    'AmountConsistencyValidator',
    'ConsistencyValidator',
    'DateConsistencyValidator'
]
