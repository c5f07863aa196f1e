"""Visit index: per-cwd visit counts, flags, normalization and ranking.

Layout of the index (also the layout of the stored JSON):

    {cwd: {path: {"count": 3, "latest": 1700000000, "flags": {"todo": true}}}}

Stored at ~/.revisit/index.json unless configured otherwise.
"""

from revisit.visits.models import Index, PathData, Scope, VisitRecord, merge
from revisit.visits.normalize import NormalizeOptions, normalize
from revisit.visits.ranking import (
    default_filter,
    flag_filter,
    session_filter,
    weighted_rank_sort,
    z_sort,
)
from revisit.visits.store import LoadState, VisitStore

__all__ = [
    "Index",
    "LoadState",
    "NormalizeOptions",
    "PathData",
    "Scope",
    "VisitRecord",
    "VisitStore",
    "default_filter",
    "flag_filter",
    "merge",
    "normalize",
    "session_filter",
    "weighted_rank_sort",
    "z_sort",
]
