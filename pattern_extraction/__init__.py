"""
Invoice Pattern Extraction Engine - Source Package.

Turns OCR or text-layer invoice content into structured fields using a
prioritized, weighted library of category-specific regular expressions,
with a confidence score and an audit trail of which pattern matched
which field.

Modules:
    - patterns: Pattern definitions, library snapshots, usage counters
    - matching: Applying one pattern to a text body
    - postprocessor: Normalization and consistency checks
    - resolution: Winner-takes-priority resolution and confidence scoring
    - extraction: Per-invoice orchestration and results
    - utils: Logging, exceptions, helpers

Architecture:
    Text → Matching → Normalization/Validation → Resolution → Result
                                                       ↓
                                                 Usage counters
"""

__version__ = "1.0.0"
__author__ = "ML Engineering Team"

__all__ = [
    'patterns',
    'matching',
    'postprocessor',
    'resolution',
    'extraction',
    'utils'
]
