"""String helpers shared by the loader, query engine and scoring engine."""

import re
from typing import Iterable, List, Tuple, Union

_WHITESPACE = re.compile(r'\s+')
_DIGITS = re.compile(r'(\d+)')


def normalize_whitespace(value) -> str:
    """Collapse runs of whitespace to single spaces and strip the ends."""
    if value is None:
        return ""
    return _WHITESPACE.sub(" ", str(value)).strip()


def natural_key(value: str) -> Tuple[Union[int, str], ...]:
    """Sort key that compares digit runs numerically.

    "V2" < "V10" and "V3.2" < "V3.10", case-insensitively.
    """
    parts = _DIGITS.split(value.casefold())
    # Alternate (text, number) pairs keep the tuple types aligned position by position
    return tuple(int(part) if index % 2 else part for index, part in enumerate(parts))


def natural_sorted(values: Iterable[str]) -> List[str]:
    """Return values sorted in numeric-aware order."""
    return sorted(values, key=natural_key)


def normalize_code(value) -> str:
    """Upper-case and trim a category or subcategory code."""
    return normalize_whitespace(value).upper()
