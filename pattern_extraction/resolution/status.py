"""
Status Enumerations.

Outcome of resolving one category and lifecycle of one extraction run.

Author: ML Engineering Team
"""

from enum import Enum


class ResolutionStatus(Enum):
    """Outcome of resolving one category."""
    RESOLVED = "RESOLVED"
    UNRESOLVED = "UNRESOLVED"
    REJECTED_BY_VALIDATION = "REJECTED_BY_VALIDATION"


class ExtractionStatus(Enum):
    """
    Lifecycle of one extraction run.

    PENDING -> MATCHING -> COMPLETE | PARTIAL | FAILED
    """
    PENDING = "PENDING"
    MATCHING = "MATCHING"
    COMPLETE = "COMPLETE"
    PARTIAL = "PARTIAL"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in (ExtractionStatus.COMPLETE, ExtractionStatus.PARTIAL, ExtractionStatus.FAILED)
