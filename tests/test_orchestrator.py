"""Tests for the ExtractionOrchestrator and the extraction result."""

import json
from datetime import date
from decimal import Decimal

import pytest

from pattern_extraction.extraction.orchestrator import ExtractionOrchestrator, ExtractionRun
from pattern_extraction.extraction.source_text import SourceText
from pattern_extraction.patterns.library import PatternLibrary
from pattern_extraction.patterns.pattern_definition import PatternCategory
from pattern_extraction.resolution.status import ExtractionStatus, ResolutionStatus
from pattern_extraction.utils.exceptions import (
    ConfigurationError,
    ExtractionStateError,
    MalformedPatternError
)


INVOICE_TEXT = (
    "From: Acme Supplies\n"
    "Invoice Number INV-1001\n"
    "Invoice Date January 25, 2016\n"
    "Total Due $93.50\n"
)


class TestExtract:
    """Single-invoice extraction."""

    def test_complete_extraction(self, orchestrator):
        result = orchestrator.extract(INVOICE_TEXT)

        assert result.status is ExtractionStatus.COMPLETE
        assert result.invoice_number == "INV-1001"
        assert result.total_amount == Decimal("93.50")
        assert result.vendor_name == "Acme Supplies"
        assert result.value(PatternCategory.DATE) == date(2016, 1, 25)
        assert result.overall_confidence == pytest.approx(0.7)
        assert result.missing_required == []
        assert result.library_version == "test-1"

    def test_amount_winner(self, orchestrator):
        field = orchestrator.extract("Invoice Number INV-1 From: X\nTotal Due $93.50").get_field(PatternCategory.AMOUNT)

        assert field.value == Decimal("93.50")
        assert field.field_confidence == 0.7
        assert field.winning_pattern_id == 10

    def test_missing_vendor_is_partial(self, orchestrator):
        result = orchestrator.extract("Invoice Number INV-1001\nTotal Due $93.50\n")

        assert result.status is ExtractionStatus.PARTIAL
        assert result.missing_required == [PatternCategory.VENDOR]
        assert result.get_field(PatternCategory.VENDOR).status is ResolutionStatus.UNRESOLVED
        assert result.overall_confidence == pytest.approx(0.4667)

    def test_no_required_field_is_failed(self, orchestrator):
        result = orchestrator.extract("Dated January 25, 2016")

        assert result.status is ExtractionStatus.FAILED
        assert result.value(PatternCategory.DATE) == date(2016, 1, 25)

    @pytest.mark.parametrize("text", ["", "   \n\t  ", None])
    def test_empty_text_fails(self, orchestrator, text):
        result = orchestrator.extract(text)

        assert result.status is ExtractionStatus.FAILED
        assert result.overall_confidence == 0.0
        assert result.used_pattern_ids == ()
        assert all(f.status is ResolutionStatus.UNRESOLVED for f in result.fields.values())
        assert len(result.fields) == 4

    def test_source_metadata_kept(self, orchestrator):
        source = SourceText(INVOICE_TEXT, ocr_confidence=0.93, extraction_method="OCR", source_name="inv-1.txt")
        result = orchestrator.extract(source)

        assert result.source.source_name == "inv-1.txt"
        assert result.to_dict()['source']['ocr_confidence'] == 0.93
        assert 'text' not in result.to_dict()['source']

    def test_fields_are_read_only(self, orchestrator):
        result = orchestrator.extract(INVOICE_TEXT)
        with pytest.raises(TypeError):
            result.fields[PatternCategory.EMAIL] = None

    def test_confidence_details_are_read_only(self, orchestrator):
        details = orchestrator.extract(INVOICE_TEXT).confidence_details
        with pytest.raises(TypeError):
            details['fields']['AMOUNT']['confidence'] = 0.0
        with pytest.raises(TypeError):
            details['fields']['EMAIL'] = {}
        with pytest.raises(TypeError):
            details['status'] = "FAILED"
        assert details['fields']['AMOUNT']['confidence'] == pytest.approx(0.7)

    def test_confidence_details_serialize_as_plain_json(self, orchestrator):
        data = orchestrator.extract(INVOICE_TEXT).to_dict()
        assert isinstance(data['confidence_details']['fields'], dict)
        assert data['confidence_details']['invalid_pattern_ids'] == []
        assert json.loads(json.dumps(data))['confidence_details']['fields']['AMOUNT']['pattern_id'] == 10

    def test_confidence_bounds(self, orchestrator):
        for text in (INVOICE_TEXT, "Total Due $1.00", "nothing", ""):
            result = orchestrator.extract(text)
            assert 0.0 <= result.overall_confidence <= 1.0
            for field in result.fields.values():
                assert 0.0 <= field.field_confidence <= 1.0

    def test_deterministic(self, orchestrator):
        first = orchestrator.extract(INVOICE_TEXT)
        second = orchestrator.extract(INVOICE_TEXT)

        assert first.to_json() == second.to_json()
        assert first.to_audit_fields() == second.to_audit_fields()

    def test_malformed_pattern_does_not_abort(self, basic_patterns, make_pattern, resolver):
        patterns = basic_patterns + [make_pattern(99, 'AMOUNT', r'total\s+([0-9', priority=1)]
        orchestrator = ExtractionOrchestrator(
            library=PatternLibrary(patterns),
            categories=['INVOICE_NUMBER', 'AMOUNT', 'VENDOR'],
            required_categories=['INVOICE_NUMBER', 'AMOUNT', 'VENDOR'],
            category_fallbacks={},
            resolver=resolver
        )
        result = orchestrator.extract(INVOICE_TEXT)

        assert result.status is ExtractionStatus.COMPLETE
        assert result.total_amount == Decimal("93.50")
        assert result.invalid_pattern_ids == (99,)
        assert result.confidence_details['invalid_pattern_ids'] == (99,)


class TestAudit:
    """Audit record of a run."""

    def test_audit_fields(self, orchestrator):
        audit = orchestrator.extract(INVOICE_TEXT).to_audit_fields()

        assert audit['used_pattern_ids'] == "1,10,30,20"
        lines = audit['pattern_match_summary'].split('\n')
        assert len(lines) == 4
        assert "AMOUNT: pattern 10 (Amount_10) captured '93.50' confidence 0.70" in lines

        details = json.loads(audit['extraction_confidence_details'])
        assert details['overall_confidence'] == 0.7
        assert details['status'] == "COMPLETE"
        assert details['required_total'] == 3
        assert details['fields']['VENDOR']['pattern_id'] == 30

    def test_unresolved_summary_line(self, orchestrator):
        result = orchestrator.extract("Invoice Number INV-1001\nTotal Due $93.50\n")
        assert "VENDOR: no match" in result.pattern_match_summary

    def test_flat_dict(self, orchestrator):
        flat = orchestrator.extract(INVOICE_TEXT).to_flat_dict()

        assert flat['amount'] == "93.50"
        assert flat['date'] == "2016-01-25"
        assert flat['vendor_confidence'] == 0.7
        assert flat['used_pattern_ids'] == "1,10,30,20"

    def test_to_dict_serializes_values(self, orchestrator):
        data = json.loads(orchestrator.extract(INVOICE_TEXT).to_json())

        assert data['status'] == "COMPLETE"
        assert data['values']['AMOUNT'] == "93.50"
        assert data['fields']['AMOUNT']['winning_pattern_id'] == 10


class TestSeedLibrary:
    """Shipped seed patterns against the demo invoice."""

    def test_demo_invoice(self, seed_library, sample_invoice):
        orchestrator = ExtractionOrchestrator(library=seed_library)
        result = orchestrator.extract(sample_invoice)

        assert result.status is ExtractionStatus.COMPLETE
        assert result.invoice_number == "INV-3337"
        assert result.total_amount == Decimal("93.50")
        assert result.vendor_name == "DEMO - Sliced Invoices"
        assert result.value(PatternCategory.SUBTOTAL_AMOUNT) == Decimal("85.00")
        assert result.value(PatternCategory.TAX_AMOUNT) == Decimal("8.50")
        assert result.value(PatternCategory.INVOICE_DATE) == date(2016, 1, 25)
        assert result.value(PatternCategory.DUE_DATE) == date(2016, 2, 24)
        assert result.value(PatternCategory.CUSTOMER) == "Test Business"
        assert result.value(PatternCategory.EMAIL) == "admin@slicedinvoices.com"
        assert result.warnings == ()
        assert result.invalid_pattern_ids == ()


class TestConsumedSpans:
    """Claimed spans serve only one field when exclusion is on."""

    @pytest.fixture
    def date_library(self, make_pattern):
        return PatternLibrary([
            make_pattern(20, 'DATE', r'([A-Za-z]+\s+\d{1,2},\s+\d{4})', date_format='MMMM d, yyyy'),
        ])

    def _orchestrator(self, library, exclude):
        return ExtractionOrchestrator(
            library=library,
            categories=['INVOICE_DATE', 'DUE_DATE'],
            required_categories=[],
            category_fallbacks={'INVOICE_DATE': ['DATE'], 'DUE_DATE': ['DATE']},
            exclude_consumed_spans=exclude
        )

    def test_exclusion(self, date_library):
        text = "Invoice Date January 25, 2016\nDue Date: February 24, 2016"
        result = self._orchestrator(date_library, exclude=True).extract(text)

        assert result.value(PatternCategory.INVOICE_DATE) == date(2016, 1, 25)
        assert result.value(PatternCategory.DUE_DATE) == date(2016, 2, 24)

    def test_without_exclusion_span_is_shared(self, date_library):
        text = "Invoice Date January 25, 2016\nDue Date: February 24, 2016"
        result = self._orchestrator(date_library, exclude=False).extract(text)

        assert result.value(PatternCategory.INVOICE_DATE) == date(2016, 1, 25)
        assert result.value(PatternCategory.DUE_DATE) == date(2016, 1, 25)
        assert result.used_pattern_ids == (20,)

    def test_no_required_categories_status(self, date_library):
        orchestrator = self._orchestrator(date_library, exclude=False)
        assert orchestrator.extract("January 25, 2016").status is ExtractionStatus.COMPLETE
        assert orchestrator.extract("no dates").status is ExtractionStatus.FAILED


class TestBatchAndLibrary:
    """Concurrent batches and library refresh."""

    def test_batch_keeps_input_order(self, orchestrator):
        texts = [f"Invoice Number INV-{n:04d}\nTotal Due ${n}.00\nFrom: Vendor {n}" for n in range(1, 21)]
        results = orchestrator.extract_batch(texts, max_workers=4)

        assert [r.invoice_number for r in results] == [f"INV-{n:04d}" for n in range(1, 21)]
        assert [r.total_amount for r in results] == [Decimal(f"{n}.00") for n in range(1, 21)]

    def test_batch_usage_counts(self, orchestrator, usage_tracker):
        orchestrator.extract_batch([INVOICE_TEXT] * 25)

        assert usage_tracker.get(10).usage_count == 25
        assert usage_tracker.get(1).usage_count == 25
        assert usage_tracker.get(21).usage_count == 0

    def test_empty_batch(self, orchestrator):
        assert orchestrator.extract_batch([]) == []

    def test_refresh_library(self, orchestrator):
        snapshot = orchestrator.refresh_library(
            [{'id': 50, 'name': 'Vendor_Seller', 'category': 'VENDOR', 'expression': r'seller:\s*([^\n]+)'}],
            version="test-2"
        )

        assert orchestrator.library is snapshot
        result = orchestrator.extract("Seller: Globex\nFrom: Acme")
        assert result.vendor_name == "Globex"
        assert result.library_version == "test-2"

    def test_refresh_with_malformed_record_keeps_snapshot(self, orchestrator, basic_library):
        with pytest.raises(MalformedPatternError):
            orchestrator.refresh_library([{'id': 51, 'name': 'Broken', 'category': 'VENDOR'}])
        assert orchestrator.library is basic_library

    def test_held_snapshot_is_unaffected(self, orchestrator, basic_library):
        orchestrator.refresh_library(PatternLibrary.empty())
        assert len(basic_library) == 5
        assert orchestrator.extract(INVOICE_TEXT).status is ExtractionStatus.FAILED


class TestConfiguration:
    """Construction and diagnostics."""

    def test_unknown_category(self, basic_library):
        with pytest.raises(ConfigurationError):
            ExtractionOrchestrator(library=basic_library, categories=['NOPE'])

    def test_invalid_worker_count(self, basic_library):
        with pytest.raises(ConfigurationError):
            ExtractionOrchestrator(library=basic_library, max_workers=0)

    def test_required_categories_always_processed(self, basic_library):
        orchestrator = ExtractionOrchestrator(
            library=basic_library, categories=['AMOUNT'], required_categories=['VENDOR']
        )
        assert orchestrator.categories == [PatternCategory.AMOUNT, PatternCategory.VENDOR]

    def test_defaults_from_configuration(self, basic_library):
        info = ExtractionOrchestrator(library=basic_library).get_info()

        assert info['required_categories'] == ['INVOICE_NUMBER', 'AMOUNT', 'VENDOR']
        assert info['category_fallbacks'] == {'INVOICE_DATE': ['DATE'], 'DUE_DATE': ['DATE']}
        assert info['exclude_consumed_spans'] is False
        assert info['library_version'] == "test-1"

    def test_probe_patterns(self, orchestrator, usage_tracker):
        report = orchestrator.probe_patterns("Total Due $93.50", categories=['AMOUNT'])

        assert len(report) == 1
        entry = report[0]
        assert entry['pattern_id'] == 10
        assert entry['is_valid']
        assert entry['matches'] == [{
            'captured_text': "93.50",
            'start_offset': 11,
            'end_offset': 16,
            'normalized_value': "93.50",
        }]
        assert usage_tracker.get(10).usage_count == 0

    def test_probe_reports_invalid_pattern(self, make_pattern):
        orchestrator = ExtractionOrchestrator(
            library=PatternLibrary([make_pattern(7, 'AMOUNT', r'(unclosed')]),
            required_categories=[]
        )
        entry = orchestrator.probe_patterns("anything")[0]

        assert not entry['is_valid']
        assert "compile error" in entry['error']


class TestExtractionRun:
    """Run state machine."""

    def test_normal_lifecycle(self):
        run = ExtractionRun()
        run.transition(ExtractionStatus.MATCHING)
        run.transition(ExtractionStatus.PARTIAL)
        assert run.state is ExtractionStatus.PARTIAL

    def test_empty_text_lifecycle(self):
        run = ExtractionRun()
        run.transition(ExtractionStatus.FAILED)
        assert run.state.is_terminal

    @pytest.mark.parametrize("path", [
        [ExtractionStatus.COMPLETE],
        [ExtractionStatus.MATCHING, ExtractionStatus.PENDING],
        [ExtractionStatus.MATCHING, ExtractionStatus.COMPLETE, ExtractionStatus.MATCHING],
    ])
    def test_illegal_transitions(self, path):
        run = ExtractionRun()
        with pytest.raises(ExtractionStateError):
            for target in path:
                run.transition(target)
