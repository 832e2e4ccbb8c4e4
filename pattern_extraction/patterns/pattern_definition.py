"""
Pattern Definition Data Classes.

This module defines the categories invoice fields are grouped into and
the immutable PatternDefinition record the engine consumes from the
pattern administration side.

Classes:
    PatternCategory: Target invoice field group
    PatternDefinition: One prioritized, weighted extraction rule

Author: ML Engineering Team
"""

import re
from dataclasses import dataclass, asdict
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, Optional, Tuple, Union

from pattern_extraction.utils.logger import get_logger
from pattern_extraction.utils.exceptions import MalformedPatternError

logger = get_logger(__name__)


class PatternCategory(Enum):
    """
    Invoice field groups that patterns compete to fill.

    The value of each member is its display name.
    """
    INVOICE_NUMBER = "Invoice Number"
    AMOUNT = "Total Amount"
    TAX_AMOUNT = "Tax Amount"
    SUBTOTAL_AMOUNT = "Subtotal Amount"
    DATE = "Date Fields"
    INVOICE_DATE = "Invoice Date"
    DUE_DATE = "Due Date"
    VENDOR = "Vendor/Company"
    ADDRESS = "Address"
    CUSTOMER = "Customer Information"
    CURRENCY = "Currency"
    EMAIL = "Email Address"
    PHONE = "Phone Number"
    PAYMENT_TERMS = "Payment Terms"

    @property
    def display_name(self) -> str:
        return self.value

    @property
    def is_amount(self) -> bool:
        return self in _AMOUNT_CATEGORIES

    @property
    def is_date(self) -> bool:
        return self in _DATE_CATEGORIES

    @classmethod
    def parse(cls, value: Union[str, 'PatternCategory']) -> 'PatternCategory':
        """
        Look up a category by member name (case-insensitive).

        Raises:
            ValueError: If the name is not a known category.
        """
        if isinstance(value, cls):
            return value
        try:
            return cls[str(value).strip().upper()]
        except KeyError:
            raise ValueError(f"Unknown pattern category: {value!r}") from None


_AMOUNT_CATEGORIES = frozenset({
    PatternCategory.AMOUNT,
    PatternCategory.TAX_AMOUNT,
    PatternCategory.SUBTOTAL_AMOUNT,
})

_DATE_CATEGORIES = frozenset({
    PatternCategory.DATE,
    PatternCategory.INVOICE_DATE,
    PatternCategory.DUE_DATE,
})

# Bit values used by the pattern store for its integer flag column
_FLAG_BITS = {
    2: 'CASE_INSENSITIVE',
    8: 'MULTILINE',
    32: 'DOTALL',
    64: 'UNICODE_CASE',
}


def parse_flags(flags: Union[None, int, str, Iterable[str]]) -> Tuple[bool, bool, bool]:
    """
    Translate a stored flag description into (case_insensitive, multiline, dotall).

    Accepts None (store default: case-insensitive only), the integer bit
    set used by the pattern store, a comma separated string of flag names
    or a list of flag names. Unknown names are logged and ignored.

    Example:
        >>> parse_flags("CASE_INSENSITIVE,MULTILINE")
        (True, True, False)
        >>> parse_flags(10)
        (True, True, False)
        >>> parse_flags([])
        (False, False, False)
    """
    if flags is None:
        return True, False, False

    if isinstance(flags, bool):
        raise TypeError("flags must not be a boolean")

    if isinstance(flags, int):
        names = [name for bit, name in _FLAG_BITS.items() if flags & bit]
    elif isinstance(flags, str):
        names = [part for part in flags.split(',') if part.strip()]
    else:
        names = list(flags)

    case_insensitive = multiline = dotall = False
    for name in names:
        flag = str(name).strip().upper()
        if flag == 'CASE_INSENSITIVE':
            case_insensitive = True
        elif flag == 'MULTILINE':
            multiline = True
        elif flag == 'DOTALL':
            dotall = True
        elif flag == 'UNICODE_CASE':
            # str patterns are already Unicode-aware
            continue
        else:
            logger.warning(f"Unknown pattern flag ignored: {name}")

    return case_insensitive, multiline, dotall


@dataclass(frozen=True)
class PatternDefinition:
    """
    One named, prioritized, weighted extraction rule for a single category.

    Instances are immutable: priority and confidence weight belong to the
    pattern administrators. Usage statistics are baselines as loaded from
    the store; increments made by extraction runs live in UsageTracker.

    Attributes:
        id: Unique pattern identifier
        name: Human-readable pattern name
        category: Field category the pattern fills
        expression: Regular expression text
        priority: Lower values are tried earlier
        confidence_weight: Trust in this pattern, in (0, 1]
        is_active: Inactive patterns are never evaluated
        case_insensitive: Apply re.IGNORECASE
        multiline: Apply re.MULTILINE
        dotall: Apply re.DOTALL
        date_format: Format token for date categories (e.g. "MMMM d, yyyy")
        capture_group: Index of the group holding the value (0 = whole match)
        validation_expression: Optional expression the captured text must fully match
        description: Free-text description
        usage_count: Usage count as loaded from the store
        last_used_at: Last use as loaded from the store

    Example:
        >>> pattern = PatternDefinition(
        ...     id=10, name="TotalDue", category=PatternCategory.AMOUNT,
        ...     expression=r"total\\s+due\\s+\\$([0-9.,]+)", priority=10
        ... )
    """
    id: int
    name: str
    category: PatternCategory
    expression: str
    priority: int = 100
    confidence_weight: float = 1.0
    is_active: bool = True
    case_insensitive: bool = True
    multiline: bool = False
    dotall: bool = False
    date_format: Optional[str] = None
    capture_group: int = 1
    validation_expression: Optional[str] = None
    description: Optional[str] = None
    usage_count: int = 0
    last_used_at: Optional[datetime] = None

    def __post_init__(self):
        """Reject records that break the library contract."""
        if not isinstance(self.id, int) or isinstance(self.id, bool):
            raise MalformedPatternError(self.id, "id must be an integer")
        if not isinstance(self.name, str) or not self.name.strip():
            raise MalformedPatternError(self.id, "name is required")
        if not isinstance(self.category, PatternCategory):
            raise MalformedPatternError(self.id, f"unknown category: {self.category!r}")
        if not isinstance(self.expression, str) or not self.expression.strip():
            raise MalformedPatternError(self.id, "expression is required")
        if not isinstance(self.priority, int) or isinstance(self.priority, bool):
            raise MalformedPatternError(self.id, "priority must be an integer")
        if not isinstance(self.confidence_weight, (int, float)) or isinstance(self.confidence_weight, bool):
            raise MalformedPatternError(self.id, "confidence_weight must be a number")
        if not 0.0 < float(self.confidence_weight) <= 1.0:
            raise MalformedPatternError(
                self.id, f"confidence_weight must be in (0, 1], got {self.confidence_weight}"
            )
        if not isinstance(self.capture_group, int) or self.capture_group < 0:
            raise MalformedPatternError(self.id, "capture_group must be a non-negative integer")
        for field_name in ('date_format', 'validation_expression', 'description'):
            value = getattr(self, field_name)
            if value is not None and not isinstance(value, str):
                raise MalformedPatternError(
                    self.id, f"{field_name} must be a string, got {type(value).__name__}"
                )
        if not isinstance(self.usage_count, int) or isinstance(self.usage_count, bool):
            raise MalformedPatternError(self.id, "usage_count must be an integer")
        if self.usage_count < 0:
            raise MalformedPatternError(self.id, "usage_count must not be negative")

    @property
    def regex_flags(self) -> int:
        """Compiled ``re`` flag set for this pattern."""
        flags = 0
        if self.case_insensitive:
            flags |= re.IGNORECASE
        if self.multiline:
            flags |= re.MULTILINE
        if self.dotall:
            flags |= re.DOTALL
        return flags

    @property
    def sort_key(self) -> Tuple[int, int]:
        """Resolution order: ascending priority, ties by ascending id."""
        return self.priority, self.id

    @property
    def has_validation(self) -> bool:
        return bool(self.validation_expression and self.validation_expression.strip())

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a plain dictionary (category by name, dates in ISO format)."""
        data = asdict(self)
        data['category'] = self.category.name
        data['last_used_at'] = self.last_used_at.isoformat() if self.last_used_at else None
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PatternDefinition':
        """
        Build a PatternDefinition from a store record.

        Accepts both the engine's field names and the pattern store's
        column names (pattern_name, pattern_category, pattern_regex,
        pattern_priority, pattern_flags, validation_regex).

        Args:
            data: Record dictionary.

        Returns:
            PatternDefinition instance.

        Raises:
            MalformedPatternError: If required fields are missing or invalid.
        """
        if not isinstance(data, dict):
            raise MalformedPatternError(None, f"pattern record must be a mapping, got {type(data).__name__}")

        pattern_id = data.get('id')
        name = data.get('name', data.get('pattern_name'))
        raw_category = data.get('category', data.get('pattern_category'))
        expression = data.get('expression', data.get('pattern_regex'))

        for field_name, value in (('id', pattern_id), ('name', name),
                                  ('category', raw_category), ('expression', expression)):
            if value is None:
                raise MalformedPatternError(pattern_id, f"missing required field '{field_name}'")

        try:
            category = PatternCategory.parse(raw_category)
        except ValueError as e:
            raise MalformedPatternError(pattern_id, str(e))

        try:
            flags = data.get('flags', data.get('pattern_flags'))
            case_insensitive, multiline, dotall = parse_flags(flags)
        except TypeError as e:
            raise MalformedPatternError(pattern_id, str(e))

        # Explicit booleans win over the flag list
        case_insensitive = bool(data.get('case_insensitive', case_insensitive))
        multiline = bool(data.get('multiline', multiline))
        dotall = bool(data.get('dotall', dotall))

        last_used_at = data.get('last_used_at')
        if isinstance(last_used_at, str):
            try:
                last_used_at = datetime.fromisoformat(last_used_at)
            except ValueError:
                raise MalformedPatternError(pattern_id, f"invalid last_used_at: {last_used_at!r}")

        return cls(
            id=pattern_id,
            name=name,
            category=category,
            expression=expression,
            priority=data.get('priority', data.get('pattern_priority', 100)),
            confidence_weight=data.get('confidence_weight', 1.0),
            is_active=bool(data.get('is_active', True)),
            case_insensitive=case_insensitive,
            multiline=multiline,
            dotall=dotall,
            date_format=data.get('date_format'),
            capture_group=data.get('capture_group', 1),
            validation_expression=data.get('validation_expression', data.get('validation_regex')),
            description=data.get('description', data.get('pattern_description')),
            usage_count=data.get('usage_count', 0) or 0,
            last_used_at=last_used_at
        )

    def __repr__(self) -> str:
        return (
            f"PatternDefinition(id={self.id}, name='{self.name}', "
            f"category={self.category.name}, priority={self.priority}, "
            f"active={self.is_active})"
        )
