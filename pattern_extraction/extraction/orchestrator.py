"""
Extraction Orchestrator Module.

This module provides the ExtractionOrchestrator class, which drives the
resolution of every requested category for one invoice text and
assembles the InvoiceExtractionResult with its audit record.

Run lifecycle:
    PENDING -> MATCHING -> COMPLETE | PARTIAL | FAILED
    PENDING -> FAILED (empty text)

Each run takes the current library snapshot once at its start and keeps
it to the end, so a concurrent refresh never changes the patterns a
running extraction sees. Runs share nothing else besides the usage
tracker, which is safe for concurrent use.

Author: ML Engineering Team
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple, Union

from config import get_config
from pattern_extraction.utils.logger import get_logger
from pattern_extraction.utils.helpers import freeze
from pattern_extraction.utils.exceptions import (
    ConfigurationError,
    ExtractionStateError,
    PatternInvalidError
)
from pattern_extraction.patterns.pattern_definition import PatternCategory, PatternDefinition
from pattern_extraction.patterns.library import PatternLibrary
from pattern_extraction.patterns.usage import UsageTracker
from pattern_extraction.postprocessor.validators import ConsistencyValidator
from pattern_extraction.resolution.field_result import FieldExtractionResult, serialize_value
from pattern_extraction.resolution.resolver import CategoryResolver
from pattern_extraction.resolution.status import ExtractionStatus
from .extraction_result import InvoiceExtractionResult
from .source_text import SourceText

logger = get_logger(__name__)


_TRANSITIONS = {
    ExtractionStatus.PENDING: {ExtractionStatus.MATCHING, ExtractionStatus.FAILED},
    ExtractionStatus.MATCHING: {ExtractionStatus.COMPLETE, ExtractionStatus.PARTIAL, ExtractionStatus.FAILED},
}


class ExtractionRun:
    """
    State holder of a single extraction run.

    Example:
        >>> run = ExtractionRun()
        >>> run.transition(ExtractionStatus.MATCHING)
        >>> run.transition(ExtractionStatus.PENDING)
        Traceback (most recent call last):
        ExtractionStateError: Illegal extraction state transition: MATCHING -> PENDING
    """

    def __init__(self) -> None:
        self.state = ExtractionStatus.PENDING
        self.invalid_pattern_ids: Set[int] = set()
        self.claimed_spans: List[Tuple[int, int]] = []

    def transition(self, target: ExtractionStatus) -> None:
        if target not in _TRANSITIONS.get(self.state, set()):
            raise ExtractionStateError(self.state.value, target.value)
        self.state = target


def _parse_categories(key: str, values: Iterable[Any]) -> List[PatternCategory]:
    categories = []
    for value in values or ():
        try:
            category = PatternCategory.parse(value)
        except ValueError:
            raise ConfigurationError(key, value, "unknown pattern category")
        if category not in categories:
            categories.append(category)
    return categories


class ExtractionOrchestrator:
    """
    Pattern-based invoice field extractor.

    Resolves each requested category in order, scores the run and builds
    the audit record. Required categories are always processed, after the
    requested ones if they were not requested explicitly.

    Attributes:
        categories: Processing order of categories
        required_categories: Categories the run status is judged against
        category_fallbacks: Generic categories tried after a category's own patterns
        exclude_consumed_spans: Whether a claimed span can serve only one field
        resolver: CategoryResolver used for every category
        usage_tracker: Shared usage counters

    Example:
        >>> orchestrator = ExtractionOrchestrator()
        >>> result = orchestrator.extract("Invoice Number: INV-1001 ... Total Due $93.50")
        >>> print(result.status, result.overall_confidence)
        >>> print(result.to_audit_fields()["pattern_match_summary"])
    """

    def __init__(
        self,
        library: Optional[PatternLibrary] = None,
        categories: Optional[Sequence[Union[str, PatternCategory]]] = None,
        required_categories: Optional[Sequence[Union[str, PatternCategory]]] = None,
        category_fallbacks: Optional[Mapping[Any, Sequence[Any]]] = None,
        exclude_consumed_spans: Optional[bool] = None,
        usage_tracker: Optional[UsageTracker] = None,
        resolver: Optional[CategoryResolver] = None,
        consistency_validator: Optional[ConsistencyValidator] = None,
        max_workers: Optional[int] = None
    ) -> None:
        """
        Initialize the orchestrator.

        Args:
            library: Pattern library snapshot. If None, loads the seed library.
            categories: Categories to extract. If None, uses config.
            required_categories: Required categories. If None, uses config;
                pass an empty list for none.
            category_fallbacks: Fallback categories per category. If None, uses config.
            exclude_consumed_spans: Reject candidates overlapping claimed spans.
            usage_tracker: Usage counters shared with other orchestrators.
            resolver: Custom resolver; its usage tracker takes precedence.
            consistency_validator: Cross-field checker.
            max_workers: Default thread count for extract_batch().

        Raises:
            ConfigurationError: On unknown category names or a bad worker count.
        """
        self._library = library if library is not None else PatternLibrary.from_yaml()
        self._library_lock = threading.Lock()

        if categories is None:
            categories = get_config("extraction.categories", [c.name for c in PatternCategory])
        if required_categories is None:
            required_categories = get_config("extraction.required_categories", [])
        if category_fallbacks is None:
            category_fallbacks = get_config("extraction.category_fallbacks", {}) or {}
        if exclude_consumed_spans is None:
            exclude_consumed_spans = get_config("extraction.exclude_consumed_spans", False)
        if max_workers is None:
            max_workers = get_config("extraction.max_workers", 4)

        self.required_categories = _parse_categories("extraction.required_categories", required_categories)
        self.categories = _parse_categories("extraction.categories", categories)
        for category in self.required_categories:
            if category not in self.categories:
                self.categories.append(category)

        self.category_fallbacks: Dict[PatternCategory, Tuple[PatternCategory, ...]] = {}
        for key, fallbacks in category_fallbacks.items():
            category = _parse_categories("extraction.category_fallbacks", [key])[0]
            self.category_fallbacks[category] = tuple(
                _parse_categories(f"extraction.category_fallbacks.{category.name}", fallbacks)
            )

        if not isinstance(max_workers, int) or max_workers < 1:
            raise ConfigurationError("extraction.max_workers", max_workers, "must be a positive integer")

        self.exclude_consumed_spans = bool(exclude_consumed_spans)
        self.max_workers = max_workers

        if resolver is None:
            resolver = CategoryResolver(usage_tracker=usage_tracker or UsageTracker())
        self.resolver = resolver
        self.usage_tracker = resolver.usage_tracker
        self.consistency_validator = consistency_validator or ConsistencyValidator()

        logger.info(
            f"ExtractionOrchestrator initialized: {len(self.categories)} categories, "
            f"{len(self.required_categories)} required, {self._library.active_count} active patterns"
        )

    # ------------------------------------------------------------------
    # Library snapshot
    # ------------------------------------------------------------------

    @property
    def library(self) -> PatternLibrary:
        """Current pattern library snapshot."""
        with self._library_lock:
            return self._library

    def refresh_library(
        self,
        library: Union[PatternLibrary, Iterable[Union[PatternDefinition, Dict[str, Any]]]],
        version: Optional[str] = None
    ) -> PatternLibrary:
        """
        Swap in a new pattern snapshot.

        Runs already in progress keep the snapshot they started with.

        Args:
            library: New snapshot, or the refreshed set of pattern definitions.
            version: Version label when a pattern set is given.

        Returns:
            The snapshot now in use.

        Raises:
            PatternLibraryError: If the refreshed set is malformed; the
                current snapshot stays in place.
        """
        if isinstance(library, PatternLibrary):
            snapshot = library
        else:
            snapshot = self.library.refreshed(library, version=version)

        with self._library_lock:
            previous = self._library
            self._library = snapshot

        logger.info(
            f"Pattern library refreshed: version {previous.version} -> {snapshot.version}, "
            f"{snapshot.active_count} active patterns"
        )
        return snapshot

    # ------------------------------------------------------------------
    # Extraction
    # ------------------------------------------------------------------

    def extract(self, source: Union[str, SourceText]) -> InvoiceExtractionResult:
        """
        Extract every configured category from one invoice text.

        Never raises on partial or total failure; check the result status.

        Args:
            source: Invoice text, or SourceText carrying upstream metadata.

        Returns:
            InvoiceExtractionResult for the text.
        """
        if not isinstance(source, SourceText):
            source = SourceText(text=source or '')

        library = self.library
        run = ExtractionRun()

        if source.is_empty:
            logger.warning(f"Empty text for {source!r}, extraction failed")
            fields = {category: FieldExtractionResult.unresolved(category) for category in self.categories}
            run.transition(ExtractionStatus.FAILED)
            return self._build_result(fields, run, source, library, warnings=[])

        run.transition(ExtractionStatus.MATCHING)

        fields: Dict[PatternCategory, FieldExtractionResult] = {}
        for category in self.categories:
            patterns = library.patterns_for(category, self.category_fallbacks.get(category, ()))
            result = self.resolver.resolve(
                category,
                source.text,
                patterns,
                occupied_spans=run.claimed_spans if self.exclude_consumed_spans else (),
                invalid_pattern_ids=run.invalid_pattern_ids
            )
            fields[category] = result
            if result.is_resolved and self.exclude_consumed_spans:
                run.claimed_spans.append(result.winner.span)

        warnings = self.consistency_validator.check(
            {category: result.value for category, result in fields.items() if result.is_resolved}
        )

        run.transition(self.resolver.scorer.determine_status(fields, self.required_categories))
        return self._build_result(fields, run, source, library, warnings)

    def _build_result(
        self,
        fields: Dict[PatternCategory, FieldExtractionResult],
        run: ExtractionRun,
        source: SourceText,
        library: PatternLibrary,
        warnings: List[str]
    ) -> InvoiceExtractionResult:
        scorer = self.resolver.scorer

        used_pattern_ids: List[int] = []
        for result in fields.values():
            if result.is_resolved and result.winning_pattern_id not in used_pattern_ids:
                used_pattern_ids.append(result.winning_pattern_id)

        details = scorer.breakdown(fields, self.required_categories)
        details['status'] = run.state.value
        details['invalid_pattern_ids'] = sorted(run.invalid_pattern_ids)

        result = InvoiceExtractionResult(
            fields=MappingProxyType(dict(fields)),
            overall_confidence=details['overall_confidence'],
            status=run.state,
            used_pattern_ids=tuple(used_pattern_ids),
            pattern_match_summary=tuple(field.summary_line() for field in fields.values()),
            confidence_details=freeze(details),
            required_categories=tuple(self.required_categories),
            warnings=tuple(warnings),
            invalid_pattern_ids=tuple(sorted(run.invalid_pattern_ids)),
            source=source,
            library_version=library.version
        )

        logger.info(
            f"Extraction {result.status.value} for {source!r}: "
            f"{len(result.values)}/{len(fields)} fields, confidence {result.overall_confidence:.2f}"
        )
        return result

    def extract_batch(
        self,
        sources: Iterable[Union[str, SourceText]],
        max_workers: Optional[int] = None
    ) -> List[InvoiceExtractionResult]:
        """
        Extract many invoices concurrently.

        Args:
            sources: Invoice texts or SourceText objects.
            max_workers: Worker threads, defaults to extraction.max_workers.

        Returns:
            Results in input order.
        """
        items = list(sources)
        if not items:
            return []

        workers = min(max_workers or self.max_workers, len(items))
        logger.info(f"Batch extraction of {len(items)} invoices on {workers} workers")

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="extraction") as executor:
            results = list(executor.map(self.extract, items))

        completed = sum(1 for result in results if result.status is ExtractionStatus.COMPLETE)
        logger.info(f"Batch finished: {completed}/{len(results)} complete")
        return results

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    def probe_patterns(
        self,
        text: str,
        categories: Optional[Iterable[Union[str, PatternCategory]]] = None
    ) -> List[Dict[str, Any]]:
        """
        Try every active pattern against a sample text.

        Shows what each pattern would capture and whether the capture
        normalizes, without choosing winners or recording usage.

        Args:
            text: Sample invoice text.
            categories: Restrict to these categories (default: all).

        Returns:
            One entry per active pattern in library order.
        """
        wanted = set(_parse_categories("categories", categories)) if categories is not None else None
        matcher = self.resolver.matcher
        normalizer = self.resolver.normalizer
        report = []

        for pattern in self.library.active_patterns:
            if wanted is not None and pattern.category not in wanted:
                continue

            entry: Dict[str, Any] = {
                'pattern_id': pattern.id,
                'name': pattern.name,
                'category': pattern.category.name,
                'priority': pattern.priority,
                'is_valid': True,
                'error': None,
                'matches': [],
            }
            try:
                candidates = matcher.match(pattern, text)
            except PatternInvalidError as e:
                entry['is_valid'] = False
                entry['error'] = e.reason
                report.append(entry)
                continue

            for candidate in candidates:
                value = normalizer.normalize(pattern.category, candidate.captured_text, pattern.date_format)
                entry['matches'].append({
                    'captured_text': candidate.captured_text,
                    'start_offset': candidate.start_offset,
                    'end_offset': candidate.end_offset,
                    'normalized_value': serialize_value(value),
                })
            report.append(entry)

        return report

    def get_info(self) -> Dict[str, Any]:
        """Describe the orchestrator configuration."""
        return {
            'library_version': self.library.version,
            'active_patterns': self.library.active_count,
            'categories': [category.name for category in self.categories],
            'required_categories': [category.name for category in self.required_categories],
            'category_fallbacks': {
                category.name: [fallback.name for fallback in fallbacks]
                for category, fallbacks in self.category_fallbacks.items()
            },
            'exclude_consumed_spans': self.exclude_consumed_spans,
            'max_workers': self.max_workers,
        }
