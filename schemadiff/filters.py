"""
Table name filters.

Include/exclude patterns accept shell globs (``*``, ``?``), SQL ``LIKE``
wildcards (``%``, ``_``) and regular expressions with a ``re:`` prefix.
Matching is case-sensitive.
"""

import fnmatch
import re
from dataclasses import dataclass, field
from typing import Iterable, List, Set


def sql_like_to_fnmatch(pattern: str) -> str:
    """Rewrite a LIKE-style table pattern as a shell glob."""
    return pattern.replace("%", "*").replace("_", "?")


def matches_pattern(name: str, pattern: str) -> bool:
    """Check one table name against a single include/exclude pattern."""
    if pattern.startswith("re:"):
        return re.search(pattern[3:], name) is not None
    return fnmatch.fnmatchcase(name, sql_like_to_fnmatch(pattern))


@dataclass(frozen=True)
class TableFilter:
    """Include/exclude patterns for table selection."""

    include: List[str] = field(default_factory=list)
    exclude: List[str] = field(default_factory=list)

    def __post_init__(self):
        object.__setattr__(self, "include", list(self.include))
        object.__setattr__(self, "exclude", list(self.exclude))

    @property
    def is_empty(self) -> bool:
        return not self.include and not self.exclude

    def matches(self, table_name: str) -> bool:
        if self.include and not any(matches_pattern(table_name, p) for p in self.include):
            return False
        return not any(matches_pattern(table_name, p) for p in self.exclude)

    def apply(self, table_names: Iterable[str]) -> Set[str]:
        return {name for name in table_names if self.matches(name)}
