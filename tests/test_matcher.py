"""Tests for the PatternMatcher."""

import pytest

from pattern_extraction.matching.matcher import PatternMatcher
from pattern_extraction.utils.exceptions import PatternInvalidError


@pytest.fixture
def matcher():
    return PatternMatcher()


class TestMatch:
    """Candidate generation."""

    def test_candidates_in_text_order(self, matcher, make_pattern):
        pattern = make_pattern(1, 'AMOUNT', r'\$([0-9.]+)')
        candidates = matcher.match(pattern, "Sub $85.00 Tax $8.50 Total $93.50")

        assert [c.captured_text for c in candidates] == ["85.00", "8.50", "93.50"]
        assert all(c.pattern_id == 1 for c in candidates)
        assert [c.start_offset for c in candidates] == sorted(c.start_offset for c in candidates)

    def test_offsets_refer_to_capture(self, matcher, make_pattern):
        text = "Total Due $93.50"
        candidate = matcher.match(make_pattern(1, 'AMOUNT', r'total\s+due\s+\$([0-9.]+)'), text)[0]

        assert candidate.raw_match == "Total Due $93.50"
        assert text[candidate.start_offset:candidate.end_offset] == "93.50"
        assert candidate.span == (11, 16)
        assert (candidate.match_start, candidate.match_end) == (0, 16)
        assert candidate.confidence == 0.0

    def test_case_insensitive_by_default(self, matcher, make_pattern):
        pattern = make_pattern(1, 'AMOUNT', r'total\s+(\d+)')
        assert matcher.match(pattern, "TOTAL 42")[0].captured_text == "42"

    def test_case_sensitive_override(self, matcher, make_pattern):
        pattern = make_pattern(1, 'AMOUNT', r'total\s+(\d+)', case_insensitive=False)
        assert matcher.match(pattern, "TOTAL 42") == []

    def test_multiline_flag(self, matcher, make_pattern):
        text = "Sub 10\nTotal 42\n"
        plain = make_pattern(1, 'AMOUNT', r'^total\s+(\d+)$')
        multiline = make_pattern(2, 'AMOUNT', r'^total\s+(\d+)$', multiline=True)
        assert matcher.match(plain, text) == []
        assert matcher.match(multiline, text)[0].captured_text == "42"

    def test_non_participating_group_is_discarded(self, matcher, make_pattern):
        pattern = make_pattern(1, 'INVOICE_NUMBER', r'a(\d)|b')
        candidates = matcher.match(pattern, "a1 b a2")
        assert [c.captured_text for c in candidates] == ["1", "2"]

    def test_capture_group_zero_is_whole_match(self, matcher, make_pattern):
        pattern = make_pattern(1, 'EMAIL', r'\w+@\w+\.com', capture_group=0)
        assert matcher.match(pattern, "mail bill@acme.com")[0].captured_text == "bill@acme.com"

    def test_no_match_gives_empty_list(self, matcher, make_pattern):
        assert matcher.match(make_pattern(1, 'VENDOR', r'from:\s*(\w+)'), "nothing here") == []

    def test_pure_for_repeated_calls(self, matcher, make_pattern):
        pattern = make_pattern(1, 'AMOUNT', r'\$([0-9.]+)')
        assert matcher.match(pattern, "$1.00 $2.00") == matcher.match(pattern, "$1.00 $2.00")


class TestInvalidPatterns:
    """Compile failures are reported per pattern."""

    def test_compile_error(self, matcher, make_pattern):
        pattern = make_pattern(3, 'AMOUNT', r'total\s+([0-9')
        with pytest.raises(PatternInvalidError) as exc_info:
            matcher.match(pattern, "total 5")
        assert exc_info.value.pattern_id == 3
        assert "compile error" in exc_info.value.reason

    def test_capture_group_out_of_range(self, matcher, make_pattern):
        pattern = make_pattern(4, 'AMOUNT', r'total\s+(\d+)', capture_group=2)
        with pytest.raises(PatternInvalidError) as exc_info:
            matcher.match(pattern, "total 5")
        assert exc_info.value.pattern_id == 4

    def test_invalid_validation_expression(self, matcher, make_pattern):
        pattern = make_pattern(5, 'AMOUNT', r'(\d+)', validation_expression=r'[0-9')
        with pytest.raises(PatternInvalidError):
            matcher.compile_validation(pattern)

    def test_no_validation_expression(self, matcher, make_pattern):
        assert matcher.compile_validation(make_pattern(5, 'AMOUNT', r'(\d+)')) is None


class TestPatternTester:
    """Ad-hoc expression testing."""

    def test_match(self, matcher):
        result = matcher.test_pattern(r'invoice\s+#?(\w+)', "Invoice #INV42 dated today")
        assert result.is_valid
        assert result.matches
        assert result.matched_text == "Invoice #INV42"
        assert result.start_index == 0
        assert result.end_index == 14
        assert result.capture_groups == ["INV42"]

    def test_no_match(self, matcher):
        result = matcher.test_pattern(r'invoice\s+(\d+)', "receipt 12")
        assert result.is_valid
        assert not result.matches
        assert result.matched_text is None

    def test_invalid_expression(self, matcher):
        result = matcher.test_pattern(r'(unclosed', "anything")
        assert not result.is_valid
        assert result.error_message

    def test_flags(self, matcher):
        text = "Sub 1\nTotal 42"
        assert not matcher.test_pattern(r'^total (\d+)', text).matches
        assert matcher.test_pattern(r'^total (\d+)', text, flags="CASE_INSENSITIVE,MULTILINE").matches
        assert not matcher.test_pattern(r'^total (\d+)', text, flags=8).matches
