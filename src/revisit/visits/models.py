"""Value types of the visit index and their merge rule."""

from __future__ import annotations

import copy
import enum
from dataclasses import dataclass, field
from typing import Dict, Union


class Scope(enum.Enum):
    """Wildcard for path/cwd queries."""

    ALL = "all"


# A path or cwd argument: a concrete string, or Scope.ALL ("" is accepted as alias)
Query = Union[str, Scope]


@dataclass
class VisitRecord:
    """Visit data of one path inside one working directory."""

    count: float = 0
    latest: int = 0
    flags: set[str] | None = None

    def add_flag(self, flag: str) -> None:
        if self.flags is None:
            self.flags = set()
        self.flags.add(flag)

    def remove_flag(self, flag: str) -> None:
        if self.flags is None:
            return
        self.flags.discard(flag)
        # An empty flag set is never stored
        if not self.flags:
            self.flags = None

    def has_flag(self, flag: str) -> bool:
        return self.flags is not None and flag in self.flags


@dataclass
class PathData:
    """Flattened record handed to filters and sorts."""

    path: str
    cwd: str
    count: float = 0
    latest: int = 0
    flags: set[str] = field(default_factory=set)


Index = Dict[str, Dict[str, VisitRecord]]


def merge(a: VisitRecord, b: VisitRecord) -> VisitRecord:
    """Combine two observations of the same (cwd, path) pair.

    Counts add up, the latest visit wins and flags are united. Neither
    argument is modified.
    """
    flags = set(a.flags or ()) | set(b.flags or ())
    return VisitRecord(
        count=a.count + b.count,
        latest=max(a.latest, b.latest),
        flags=flags or None,
    )


def merge_cwd(base: dict[str, VisitRecord], new: dict[str, VisitRecord]) -> None:
    """Merge every record of ``new`` into the ``base`` bucket in place."""
    for path, record in new.items():
        existing = base.get(path)
        base[path] = merge(existing, record) if existing is not None else copy.deepcopy(record)


def merge_index(base: Index, new: Index) -> Index:
    """Return a fresh index with ``new`` merged into ``base`` per (cwd, path)."""
    res = copy.deepcopy(base)
    for cwd, cwd_tbl in new.items():
        merge_cwd(res.setdefault(cwd, {}), cwd_tbl)
    return res


def is_all(value: Query) -> bool:
    """True for the ``Scope.ALL`` wildcard and its empty-string alias."""
    return value is Scope.ALL or value == ""
