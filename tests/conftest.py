"""Shared fixtures for the pattern extraction test suite."""

import pytest

from pattern_extraction.patterns.pattern_definition import PatternCategory, PatternDefinition
from pattern_extraction.patterns.library import PatternLibrary
from pattern_extraction.patterns.usage import UsageTracker
from pattern_extraction.resolution.confidence import ConfidenceScorer
from pattern_extraction.resolution.resolver import CategoryResolver
from pattern_extraction.extraction.orchestrator import ExtractionOrchestrator


SAMPLE_INVOICE = """From: DEMO - Sliced Invoices
Suite 5A-1204
123 Somewhere Street
Your City AZ 12345
admin@slicedinvoices.com

Invoice Number INV-3337
Order Number 12345
Invoice Date January 25, 2016
Due Date: February 24, 2016
Total Due $93.50

Bill To: Test Business
Sub Total $85.00
Tax $8.50
Total $93.50
"""


@pytest.fixture
def sample_invoice():
    return SAMPLE_INVOICE


@pytest.fixture
def make_pattern():
    """Factory for PatternDefinition objects with sensible defaults."""

    def _make(pattern_id, category, expression, **kwargs):
        if isinstance(category, str):
            category = PatternCategory.parse(category)
        kwargs.setdefault('name', f"{category.name.title()}_{pattern_id}")
        return PatternDefinition(id=pattern_id, category=category, expression=expression, **kwargs)

    return _make


@pytest.fixture
def basic_patterns(make_pattern):
    """One pattern per required category plus two date patterns."""
    return [
        make_pattern(1, 'INVOICE_NUMBER', r'invoice\s+number\s*:?\s*([A-Z0-9-]{3,})', priority=10),
        make_pattern(10, 'AMOUNT', r'total\s+due\s+\$?([0-9][0-9,]*\.?[0-9]*)', priority=10),
        make_pattern(30, 'VENDOR', r'from:\s*([^\n]+)', priority=10),
        make_pattern(20, 'DATE', r'([A-Za-z]+\s+\d{1,2},\s+\d{4})', priority=10,
                     date_format='MMMM d, yyyy'),
        make_pattern(21, 'DATE', r'(\d{4}-\d{2}-\d{2})', priority=20, date_format='yyyy-MM-dd'),
    ]


@pytest.fixture
def basic_library(basic_patterns):
    return PatternLibrary(basic_patterns, version="test-1")


@pytest.fixture
def seed_library():
    """The seed library shipped in config/patterns.yaml."""
    return PatternLibrary.from_yaml()


@pytest.fixture
def usage_tracker():
    return UsageTracker()


@pytest.fixture
def scorer():
    return ConfidenceScorer(validated_factor=1.0, no_validation_factor=0.7, decimal_places=4)


@pytest.fixture
def resolver(scorer, usage_tracker):
    return CategoryResolver(scorer=scorer, usage_tracker=usage_tracker)


@pytest.fixture
def orchestrator(basic_library, resolver):
    return ExtractionOrchestrator(
        library=basic_library,
        categories=['INVOICE_NUMBER', 'AMOUNT', 'VENDOR', 'DATE'],
        required_categories=['INVOICE_NUMBER', 'AMOUNT', 'VENDOR'],
        category_fallbacks={},
        exclude_consumed_spans=False,
        resolver=resolver,
        max_workers=4
    )
