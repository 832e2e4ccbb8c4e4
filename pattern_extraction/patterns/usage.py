"""
Pattern Usage Tracking Module.

Usage statistics are the only state extraction runs share and mutate.
They are kept outside the immutable PatternLibrary in an arena of
per-pattern counters, each guarded by its own lock, so concurrent runs
winning the same pattern never lose an increment and runs winning
different patterns never contend.

Author: ML Engineering Team
"""

import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, List, Optional

from pattern_extraction.utils.logger import get_logger
from pattern_extraction.utils.helpers import utc_now
from .pattern_definition import PatternDefinition

logger = get_logger(__name__)


@dataclass(frozen=True)
class PatternUsage:
    """
    Usage statistics of one pattern.

    Attributes:
        pattern_id: Pattern identifier
        usage_count: Number of validated wins
        last_used_at: Time of the most recent validated win
    """
    pattern_id: int
    usage_count: int
    last_used_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, object]:
        return {
            'pattern_id': self.pattern_id,
            'usage_count': self.usage_count,
            'last_used_at': self.last_used_at.isoformat() if self.last_used_at else None,
        }


class _UsageCounter:
    """Counter slot for one pattern id."""

    __slots__ = ('lock', 'count', 'last_used_at')

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.count = 0
        self.last_used_at: Optional[datetime] = None


class UsageTracker:
    """
    Thread-safe per-pattern usage counters.

    Counts recorded here are increments since the tracker was created
    (or last drained); add them to the baseline loaded with a pattern via
    usage_for().

    Example:
        >>> tracker = UsageTracker()
        >>> tracker.record(10)
        PatternUsage(pattern_id=10, usage_count=1, last_used_at=...)
        >>> [u.pattern_id for u in tracker.drain()]
        [10]
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None) -> None:
        """
        Initialize the tracker.

        Args:
            clock: Callable returning the current time, defaults to UTC now.
        """
        self._clock = clock or utc_now
        self._counters: Dict[int, _UsageCounter] = {}
        self._registry_lock = threading.Lock()

    def _counter(self, pattern_id: int) -> _UsageCounter:
        counter = self._counters.get(pattern_id)
        if counter is None:
            with self._registry_lock:
                counter = self._counters.setdefault(pattern_id, _UsageCounter())
        return counter

    def record(self, pattern_id: int, used_at: Optional[datetime] = None) -> PatternUsage:
        """
        Record one validated win of a pattern.

        last_used_at only moves forward, whatever order concurrent
        recordings arrive in.

        Args:
            pattern_id: Winning pattern id.
            used_at: Time of the win, defaults to the tracker clock.

        Returns:
            Usage of the pattern after the increment.
        """
        when = used_at or self._clock()
        counter = self._counter(pattern_id)
        with counter.lock:
            counter.count += 1
            if counter.last_used_at is None or when > counter.last_used_at:
                counter.last_used_at = when
            usage = PatternUsage(pattern_id, counter.count, counter.last_used_at)

        logger.debug(f"Pattern {pattern_id} used ({usage.usage_count} since last drain)")
        return usage

    def get(self, pattern_id: int) -> PatternUsage:
        """Increments recorded for one pattern."""
        counter = self._counters.get(pattern_id)
        if counter is None:
            return PatternUsage(pattern_id, 0, None)
        with counter.lock:
            return PatternUsage(pattern_id, counter.count, counter.last_used_at)

    def usage_for(self, pattern: PatternDefinition) -> PatternUsage:
        """
        Combined usage: store baseline plus recorded increments.

        Args:
            pattern: Pattern definition carrying the stored baseline.

        Returns:
            Total usage for the pattern.
        """
        recorded = self.get(pattern.id)
        last_used = pattern.last_used_at
        if recorded.last_used_at is not None and (last_used is None or recorded.last_used_at > last_used):
            last_used = recorded.last_used_at
        return PatternUsage(pattern.id, pattern.usage_count + recorded.usage_count, last_used)

    def snapshot(self) -> Dict[int, PatternUsage]:
        """All recorded increments keyed by pattern id, in ascending id order."""
        with self._registry_lock:
            pattern_ids = sorted(self._counters)
        return {pattern_id: self.get(pattern_id) for pattern_id in pattern_ids}

    def drain(self) -> List[PatternUsage]:
        """
        Hand over and reset all recorded increments.

        This is the single aggregation pass the pattern administration side
        consumes once per batch. Only patterns used since the last drain
        are returned.

        Returns:
            Usage increments in ascending pattern id order.
        """
        with self._registry_lock:
            counters = sorted(self._counters.items())

        drained = []
        for pattern_id, counter in counters:
            with counter.lock:
                if counter.count == 0:
                    continue
                drained.append(PatternUsage(pattern_id, counter.count, counter.last_used_at))
                counter.count = 0
                counter.last_used_at = None

        if drained:
            logger.info(f"Drained usage for {len(drained)} patterns")
        return drained

    @property
    def total_recorded(self) -> int:
        """Sum of all increments not yet drained."""
        return sum(usage.usage_count for usage in self.snapshot().values())
