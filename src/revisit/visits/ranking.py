"""Built-in filters and sorts for path listings.

A filter is any ``Callable[[PathData], bool]``; a sort is any
``Callable[[list[PathData]], list[PathData]]`` returning paths best first.
"""

from __future__ import annotations

import time
from typing import Callable, List

from revisit.errors import InvalidOption, InvalidType
from revisit.visits.models import PathData

Filter = Callable[[PathData], bool]
Sort = Callable[[List[PathData]], List[PathData]]


# ── Filters ──────────────────────────────────────────────────


def default_filter() -> Filter:
    """Accept every path."""
    return lambda path_data: True


def session_filter(started_at: int) -> Filter:
    """Accept paths visited at or after ``started_at``."""
    return lambda path_data: path_data.latest >= started_at


def flag_filter(flag: str) -> Filter:
    """Accept paths carrying ``flag``."""
    if not isinstance(flag, str):
        raise InvalidType("`flag` should be a string.")
    return lambda path_data: flag in path_data.flags


def resolve_filter(x: Filter | str | None, fallback: Filter | None = None) -> Filter:
    """Validate a user supplied filter. A string is a flag name."""
    if x is None:
        x = fallback or default_filter()
    if isinstance(x, str):
        x = flag_filter(x)
    if not callable(x):
        raise InvalidType("`filter` should be callable or string flag name.")
    return x


def resolve_sort(x: Sort | None, fallback: Sort | None = None) -> Sort:
    """Validate a user supplied sort, falling back to the weighted rank sort."""
    if x is None:
        x = fallback or weighted_rank_sort()
    if not callable(x):
        raise InvalidType("`sort` should be callable.")
    return x


# ── Sorts ────────────────────────────────────────────────────


def add_ranks(values: list[float]) -> list[float]:
    """Rank ``values`` from largest (rank 1) to smallest.

    Tied values share the average of the positions they occupy, so three
    values tied at positions 2, 3 and 4 all get rank 3.
    """
    order = sorted(range(len(values)), key=lambda i: -values[i])
    ranks = [0.0] * len(values)
    pos = 0
    while pos < len(order):
        end = pos
        while end + 1 < len(order) and values[order[end + 1]] == values[order[pos]]:
            end += 1
        # Positions are 1-based
        mid_rank = (pos + 1 + end + 1) / 2
        for k in range(pos, end + 1):
            ranks[order[k]] = mid_rank
        pos = end + 1
    return ranks


def weighted_rank_sort(recency_weight: float = 0.5) -> Sort:
    """Blend frequency and recency ranks.

    ``recency_weight`` of 0 sorts by visit count only, 1 by latest visit only.
    """
    is_weight = (
        isinstance(recency_weight, (int, float))
        and not isinstance(recency_weight, bool)
        and 0 <= recency_weight <= 1
    )
    if not is_weight:
        raise InvalidOption("`recency_weight` should be number between 0 and 1.")

    def sort(path_data_arr: list[PathData]) -> list[PathData]:
        count_ranks = add_ranks([d.count for d in path_data_arr])
        latest_ranks = add_ranks([d.latest for d in path_data_arr])
        ranked = [
            ((1 - recency_weight) * c_rank + recency_weight * l_rank, d.path, d)
            for c_rank, l_rank, d in zip(count_ranks, latest_ranks, path_data_arr)
        ]
        ranked.sort(key=lambda t: (t[0], t[1]))
        return [t[2] for t in ranked]

    return sort


def z_score(count: float, latest: int, now: float) -> float:
    # Same formula as rupa/z
    age = max(now - latest, 0.0001)
    return 10000 * count * (3.75 / ((0.0001 * age + 1) + 0.25))


def z_sort(clock: Callable[[], float] = time.time) -> Sort:
    """Sort by "z" frecency score, highest first."""

    def sort(path_data_arr: list[PathData]) -> list[PathData]:
        now = clock()
        return sorted(path_data_arr, key=lambda d: (-z_score(d.count, d.latest, now), d.path))

    return sort


SORTS = ("default", "z")


def sort_from_name(name: str, recency_weight: float = 0.5) -> Sort:
    """Build a named built-in sort (``default`` or ``z``)."""
    if name == "default":
        return weighted_rank_sort(recency_weight)
    if name == "z":
        return z_sort()
    raise InvalidOption(f"Unknown sort {name!r}, expected one of: {', '.join(SORTS)}.")
