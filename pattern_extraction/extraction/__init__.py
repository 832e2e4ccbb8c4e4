"""
Extraction Module for the Pattern Extraction Engine.

Drives every requested category for one invoice and builds the result
with its audit record.

Author: ML Engineering Team
"""

from .source_text import SourceText
from .extraction_result import InvoiceExtractionResult
from .orchestrator import ExtractionOrchestrator, ExtractionRun

__all__ = ['SourceText', 'InvoiceExtractionResult', 'ExtractionOrchestrator', 'ExtractionRun']
