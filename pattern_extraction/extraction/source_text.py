"""
Source Text Data Class.

Input of one extraction run: the text produced by the upstream
text-extraction step (OCR or PDF text layer) and the metadata it
reported. The metadata is carried onto the result untouched.

Author: ML Engineering Team
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class SourceText:
    """
    Text handed to the extraction engine.

    Attributes:
        text: Raw invoice text
        ocr_confidence: Confidence reported by the text extraction step
        extraction_method: How the text was obtained (e.g. "OCR", "PDF_TEXT")
        status: Status reported by the text extraction step
        source_name: Identifier of the source document, for logs and output

    Example:
        >>> source = SourceText("Invoice Number: INV-1001", ocr_confidence=0.93)
        >>> source.is_empty
        False
    """
    text: str
    ocr_confidence: Optional[float] = None
    extraction_method: Optional[str] = None
    status: Optional[str] = None
    source_name: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not self.text or not self.text.strip()

    @property
    def character_count(self) -> int:
        return len(self.text or '')

    def to_dict(self) -> Dict[str, Any]:
        """Metadata only; the text itself is not repeated in outputs."""
        return {
            'source_name': self.source_name,
            'ocr_confidence': self.ocr_confidence,
            'extraction_method': self.extraction_method,
            'status': self.status,
            'character_count': self.character_count,
        }

    def __repr__(self) -> str:
        return f"SourceText({self.source_name or '<text>'}, chars={self.character_count})"
