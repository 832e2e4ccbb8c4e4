"""
Pattern Matcher Module.

This module provides the PatternMatcher class, which applies a single
pattern's expression to a text body and yields the ordered,
non-overlapping match candidates.

Compiled expressions are cached process-wide; the matcher itself keeps
no state, so one instance can serve any number of concurrent runs.

Author: ML Engineering Team
"""

import re
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Iterable, List, Optional, Pattern, Union

from pattern_extraction.utils.logger import get_logger
from pattern_extraction.utils.exceptions import PatternInvalidError
from pattern_extraction.patterns.pattern_definition import PatternDefinition, parse_flags
from .match_candidate import MatchCandidate

logger = get_logger(__name__)


@lru_cache(maxsize=1024)
def _compile(expression: str, flags: int) -> Pattern:
    return re.compile(expression, flags)


@dataclass
class PatternTestResult:
    """
    Outcome of trying an expression against sample text.

    Attributes:
        is_valid: Whether the expression compiled
        matches: Whether it matched the sample
        matched_text: Text of the first match
        start_index: Start of the first match
        end_index: End of the first match
        capture_groups: Capture groups of the first match (None for groups that did not participate)
        error_message: Compile error, if any
    """
    is_valid: bool
    matches: bool = False
    matched_text: Optional[str] = None
    start_index: Optional[int] = None
    end_index: Optional[int] = None
    capture_groups: List[Optional[str]] = field(default_factory=list)
    error_message: Optional[str] = None


class PatternMatcher:
    """
    Applies one pattern definition to a text body.

    Example:
        >>> matcher = PatternMatcher()
        >>> candidates = matcher.match(pattern, "Total Due $93.50")
        >>> candidates[0].captured_text
        '93.50'
    """

    def compile(self, pattern: PatternDefinition) -> Pattern:
        """
        Compile a pattern's expression with its flags.

        Args:
            pattern: Pattern definition.

        Returns:
            Compiled expression.

        Raises:
            PatternInvalidError: If the expression does not compile or has
                fewer groups than the configured capture group.
        """
        try:
            compiled = _compile(pattern.expression, pattern.regex_flags)
        except re.error as e:
            raise PatternInvalidError(pattern.id, pattern.expression, f"compile error: {e}")

        if pattern.capture_group > compiled.groups:
            raise PatternInvalidError(
                pattern.id,
                pattern.expression,
                f"capture group {pattern.capture_group} exceeds {compiled.groups} groups"
            )
        return compiled

    def compile_validation(self, pattern: PatternDefinition) -> Optional[Pattern]:
        """
        Compile a pattern's validation expression, if it has one.

        Raises:
            PatternInvalidError: If the validation expression does not compile.
        """
        if not pattern.has_validation:
            return None
        try:
            return _compile(pattern.validation_expression, 0)
        except re.error as e:
            raise PatternInvalidError(
                pattern.id, pattern.validation_expression, f"validation compile error: {e}"
            )

    def match(self, pattern: PatternDefinition, text: str) -> List[MatchCandidate]:
        """
        Find every occurrence of a pattern in text.

        Candidates are non-overlapping and in left-to-right order. An
        occurrence whose capture group did not participate is dropped.

        Args:
            pattern: Pattern definition to apply.
            text: Source text.

        Returns:
            Ordered list of match candidates (possibly empty).

        Raises:
            PatternInvalidError: If the pattern cannot be compiled.
        """
        compiled = self.compile(pattern)
        group = pattern.capture_group
        candidates = []

        for match in compiled.finditer(text):
            captured = match.group(group)
            if captured is None:
                continue
            start, end = match.span(group)
            candidates.append(MatchCandidate(
                pattern_id=pattern.id,
                raw_match=match.group(0),
                captured_text=captured,
                start_offset=start,
                end_offset=end,
                match_start=match.start(),
                match_end=match.end()
            ))

        logger.debug(f"Pattern {pattern.id} ({pattern.name}): {len(candidates)} candidates")
        return candidates

    def test_pattern(
        self,
        expression: str,
        sample_text: str,
        flags: Union[None, int, str, Iterable[str]] = None
    ) -> PatternTestResult:
        """
        Try an expression against sample text without a stored pattern.

        Used by pattern administrators before saving a new expression.

        Args:
            expression: Regular expression text.
            sample_text: Text to search.
            flags: Flag description as accepted by parse_flags().

        Returns:
            PatternTestResult describing the first match or the compile error.
        """
        case_insensitive, multiline, dotall = parse_flags(flags)
        regex_flags = ((re.IGNORECASE if case_insensitive else 0)
                       | (re.MULTILINE if multiline else 0)
                       | (re.DOTALL if dotall else 0))

        try:
            compiled = _compile(expression, regex_flags)
        except re.error as e:
            logger.info(f"Pattern test failed to compile: {e}")
            return PatternTestResult(is_valid=False, error_message=str(e))

        match = compiled.search(sample_text)
        if match is None:
            return PatternTestResult(is_valid=True, matches=False)

        return PatternTestResult(
            is_valid=True,
            matches=True,
            matched_text=match.group(0),
            start_index=match.start(),
            end_index=match.end(),
            capture_groups=list(match.groups())
        )
