"""
Helper Utilities Module.

Small generic helpers shared across the engine and the command line.

Functions:
    - ensure_directory: Create directory if it doesn't exist
    - generate_timestamp: Generate formatted timestamps
    - utc_now: Timezone-aware current time
    - collapse_whitespace: Normalize runs of whitespace
    - spans_overlap: Check two half-open offset ranges for overlap
    - freeze: Read-only copy of nested mappings and lists
    - thaw: Plain dict/list copy of a frozen structure
"""

import re
from datetime import datetime, timezone
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping, Tuple, Union

_WHITESPACE_RUN = re.compile(r'\s+')


def ensure_directory(path: Union[str, Path]) -> Path:
    """
    Ensure a directory exists, creating it if necessary.

    Args:
        path: Directory path to ensure exists.

    Returns:
        Path object pointing to the directory.

    Example:
        >>> ensure_directory("outputs/runs")
        PosixPath('outputs/runs')
    """
    dir_path = Path(path)
    dir_path.mkdir(parents=True, exist_ok=True)
    return dir_path


def generate_timestamp(format_str: str = "%Y%m%d_%H%M%S") -> str:
    """
    Generate a formatted timestamp string.

    Args:
        format_str: strftime format string.

    Returns:
        Formatted timestamp string.

    Example:
        >>> generate_timestamp("%Y-%m-%d")
        "2026-10-19"
    """
    return datetime.now().strftime(format_str)


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def collapse_whitespace(text: str) -> str:
    """
    Collapse every run of whitespace into a single space and trim.

    Example:
        >>> collapse_whitespace("  Acme \\n  Corp ")
        "Acme Corp"
    """
    return _WHITESPACE_RUN.sub(' ', text).strip()


def spans_overlap(first: Tuple[int, int], second: Tuple[int, int]) -> bool:
    """
    Check whether two half-open [start, end) offset ranges overlap.

    Example:
        >>> spans_overlap((0, 5), (4, 9))
        True
        >>> spans_overlap((0, 5), (5, 9))
        False
    """
    return first[0] < second[1] and second[0] < first[1]


def freeze(value: Any) -> Any:
    """
    Read-only copy of a nested structure.

    Mappings become MappingProxyType over a fresh dict and lists or tuples
    become tuples, at every level. Other values are returned unchanged.

    Example:
        >>> frozen = freeze({'fields': {'AMOUNT': {'confidence': 0.7}}})
        >>> frozen['fields']['AMOUNT']['confidence'] = 1.0
        Traceback (most recent call last):
        ...
        TypeError: 'mappingproxy' object does not support item assignment
    """
    if isinstance(value, Mapping):
        return MappingProxyType({key: freeze(item) for key, item in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(freeze(item) for item in value)
    return value


def thaw(value: Any) -> Any:
    """Inverse of freeze: plain dicts and lists, ready for json."""
    if isinstance(value, Mapping):
        return {key: thaw(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [thaw(item) for item in value]
    return value
