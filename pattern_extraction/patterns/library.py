"""
Pattern Library Module.

This module provides the PatternLibrary, an immutable, read-only
snapshot of pattern definitions grouped by category. A snapshot is
loaded once per processing batch (or refreshed on a schedule) and shared
by every concurrent extraction run without locking.

Author: ML Engineering Team
"""

from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple, Union

import yaml

from config import get_config
from pattern_extraction.utils.logger import get_logger
from pattern_extraction.utils.helpers import utc_now
from pattern_extraction.utils.exceptions import PatternLibraryError
from .pattern_definition import PatternCategory, PatternDefinition

logger = get_logger(__name__)


class PatternLibrary:
    """
    Immutable snapshot of pattern definitions.

    Active patterns are grouped by category and ordered by ascending
    priority, ties broken by ascending id, so that every run walking
    the same snapshot tries patterns in the same order.

    Attributes:
        version: Optional version label of the snapshot
        loaded_at: When the snapshot was built

    Example:
        >>> library = PatternLibrary.from_yaml()
        >>> for pattern in library.patterns_for(PatternCategory.AMOUNT):
        ...     print(pattern.priority, pattern.name)
    """

    def __init__(
        self,
        patterns: Iterable[PatternDefinition],
        version: Optional[str] = None,
        loaded_at: Optional[datetime] = None
    ) -> None:
        """
        Build a snapshot from pattern definitions.

        Args:
            patterns: Pattern definitions (active and inactive).
            version: Optional version label.
            loaded_at: Snapshot timestamp, defaults to now.

        Raises:
            PatternLibraryError: On non-PatternDefinition entries or duplicate ids.
        """
        by_id: Dict[int, PatternDefinition] = {}
        for pattern in patterns:
            if not isinstance(pattern, PatternDefinition):
                raise PatternLibraryError(
                    "Pattern library entries must be PatternDefinition instances",
                    {"entry": repr(pattern)}
                )
            if pattern.id in by_id:
                raise PatternLibraryError(
                    f"Duplicate pattern id: {pattern.id}",
                    {"pattern_id": pattern.id}
                )
            by_id[pattern.id] = pattern

        self.version = version
        self.loaded_at = loaded_at or utc_now()
        self._by_id = by_id
        self._patterns: Tuple[PatternDefinition, ...] = tuple(
            sorted(by_id.values(), key=lambda p: p.sort_key)
        )

        grouped: Dict[PatternCategory, List[PatternDefinition]] = {}
        for pattern in self._patterns:
            if pattern.is_active:
                grouped.setdefault(pattern.category, []).append(pattern)
        self._by_category: Dict[PatternCategory, Tuple[PatternDefinition, ...]] = {
            category: tuple(items) for category, items in grouped.items()
        }

        logger.debug(
            f"PatternLibrary built: {len(self._patterns)} patterns, "
            f"{self.active_count} active (version: {self.version})"
        )

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------

    @classmethod
    def from_records(
        cls,
        records: Sequence[Dict[str, Any]],
        version: Optional[str] = None
    ) -> 'PatternLibrary':
        """
        Build a snapshot from store records (dictionaries).

        Raises:
            MalformedPatternError: If any record is malformed.
            PatternLibraryError: On duplicate ids.
        """
        if records is None:
            raise PatternLibraryError("Pattern records are missing")
        return cls((PatternDefinition.from_dict(record) for record in records), version=version)

    @classmethod
    def from_yaml(cls, path: Optional[Union[str, Path]] = None) -> 'PatternLibrary':
        """
        Load a snapshot from a YAML file.

        The file holds either a list of pattern records or a mapping with
        a ``patterns`` list and an optional ``version``.

        Args:
            path: YAML file path. Defaults to ``patterns.library_path``.

        Raises:
            FileNotFoundError: If the file does not exist.
            PatternLibraryError: If the document has the wrong shape.
        """
        library_path = Path(path or get_config("patterns.library_path"))
        if not library_path.exists():
            raise FileNotFoundError(f"Pattern library not found: {library_path}")

        with open(library_path, 'r', encoding='utf-8') as f:
            document = yaml.safe_load(f)

        version = None
        if isinstance(document, dict):
            version = document.get('version')
            records = document.get('patterns')
        else:
            records = document

        if not isinstance(records, list):
            raise PatternLibraryError(
                f"Pattern library must contain a list of patterns: {library_path}"
            )

        library = cls.from_records(records, version=str(version) if version is not None else None)
        logger.info(
            f"Loaded pattern library from {library_path.name}: "
            f"{len(library)} patterns ({library.active_count} active)"
        )
        return library

    @classmethod
    def empty(cls) -> 'PatternLibrary':
        """Return a snapshot without any pattern."""
        return cls(())

    def refreshed(
        self,
        patterns: Iterable[Union[PatternDefinition, Dict[str, Any]]],
        version: Optional[str] = None
    ) -> 'PatternLibrary':
        """
        Build the next snapshot from a refreshed pattern set.

        The current snapshot is left untouched, so runs already holding it
        finish against the patterns they started with.
        """
        definitions = [
            p if isinstance(p, PatternDefinition) else PatternDefinition.from_dict(p)
            for p in patterns
        ]
        return PatternLibrary(definitions, version=version)

    # ------------------------------------------------------------------
    # Read view
    # ------------------------------------------------------------------

    def patterns_for(
        self,
        category: PatternCategory,
        fallbacks: Sequence[PatternCategory] = ()
    ) -> Tuple[PatternDefinition, ...]:
        """
        Active patterns for a category in resolution order.

        Patterns of fallback categories follow the category's own
        patterns, each group in its own priority order.

        Args:
            category: Category to resolve.
            fallbacks: Generic categories tried after the category's own patterns.

        Returns:
            Ordered tuple of pattern definitions.
        """
        ordered = list(self._by_category.get(category, ()))
        for fallback in fallbacks:
            if fallback == category:
                continue
            ordered.extend(self._by_category.get(fallback, ()))
        return tuple(ordered)

    def get(self, pattern_id: int) -> Optional[PatternDefinition]:
        """Get a pattern (active or not) by id."""
        return self._by_id.get(pattern_id)

    @property
    def categories(self) -> List[PatternCategory]:
        """Categories with at least one active pattern, in declaration order."""
        return [c for c in PatternCategory if c in self._by_category]

    @property
    def active_patterns(self) -> List[PatternDefinition]:
        return [p for p in self._patterns if p.is_active]

    @property
    def active_count(self) -> int:
        return sum(len(items) for items in self._by_category.values())

    def statistics(self) -> Dict[str, Any]:
        """
        Summarize the snapshot for pattern-performance views.

        Returns:
            Dictionary with overall counts and a per-category breakdown
            (counts, average priority and weight, top pattern).
        """
        total = len(self._patterns)
        weights = [p.confidence_weight for p in self._patterns]

        categories: Dict[str, Dict[str, Any]] = {}
        for category in PatternCategory:
            members = [p for p in self._patterns if p.category == category]
            if not members:
                continue
            active = self._by_category.get(category, ())
            categories[category.name] = {
                'total': len(members),
                'active': len(active),
                'inactive': len(members) - len(active),
                'average_priority': sum(p.priority for p in members) / len(members),
                'average_confidence_weight': sum(p.confidence_weight for p in members) / len(members),
                'top_pattern': active[0].name if active else None,
                'usage_count': sum(p.usage_count for p in members),
            }

        return {
            'version': self.version,
            'loaded_at': self.loaded_at.isoformat(),
            'total_patterns': total,
            'active_patterns': self.active_count,
            'inactive_patterns': total - self.active_count,
            'average_confidence_weight': sum(weights) / total if total else 0.0,
            'categories': categories,
        }

    def __len__(self) -> int:
        return len(self._patterns)

    def __iter__(self) -> Iterator[PatternDefinition]:
        return iter(self._patterns)

    def __contains__(self, pattern_id: object) -> bool:
        return pattern_id in self._by_id

    def __repr__(self) -> str:
        return (
            f"PatternLibrary(patterns={len(self._patterns)}, "
            f"active={self.active_count}, version={self.version})"
        )
