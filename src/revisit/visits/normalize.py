"""Prune and decay of the visit index before it is stored.

Decay keeps the total visit mass of a busy directory bounded while preserving
the relative order of its paths. Prune evicts one-off visits and, optionally,
paths that no longer exist.
"""

from __future__ import annotations

import copy
import logging
import math
import os
from dataclasses import dataclass
from typing import Callable

from revisit.errors import InvalidType
from revisit.visits.models import Index, VisitRecord

logger = logging.getLogger(__name__)


@dataclass
class NormalizeOptions:
    """Thresholds used by :func:`normalize`."""

    decay_threshold: float = 50
    decay_target: float = 45
    prune_threshold: float = 0.5
    prune_paths: bool = False
    path_exists: Callable[[str], bool] | None = None


def round2(x: float) -> float:
    """Round half up to two decimal places."""
    return math.floor(100 * x + 0.5) / 100


def _check_number(value: object, name: str) -> None:
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        raise InvalidType(f"`{name}` should be a number.")


def _prune(index: Index, threshold: float, exists: Callable[[str], bool] | None) -> None:
    if exists is not None:
        for cwd in [c for c in index if not exists(c)]:
            logger.debug("Pruning missing cwd %s", cwd)
            del index[cwd]

    for cwd in list(index):
        cwd_tbl = index[cwd]
        for path in list(cwd_tbl):
            record = cwd_tbl[path]
            if (exists is not None and not exists(path)) or record.count < threshold:
                del cwd_tbl[path]
        if not cwd_tbl:
            del index[cwd]


def _decay_cwd(cwd_tbl: dict[str, VisitRecord], threshold: float, target: float) -> None:
    total = sum(record.count for record in cwd_tbl.values())
    if total == 0 or total <= threshold:
        return
    coef = target / total
    for record in cwd_tbl.values():
        record.count = round2(coef * record.count)


def normalize(index: Index, opts: NormalizeOptions | None = None) -> Index:
    """Return a pruned and decayed copy of ``index``."""
    opts = opts or NormalizeOptions()
    _check_number(opts.decay_threshold, "decay_threshold")
    _check_number(opts.decay_target, "decay_target")
    _check_number(opts.prune_threshold, "prune_threshold")
    exists = None
    if opts.prune_paths:
        exists = opts.path_exists or os.path.exists
        if not callable(exists):
            raise InvalidType("`path_exists` should be callable.")

    res = copy.deepcopy(index)
    _prune(res, opts.prune_threshold, exists)
    for cwd_tbl in res.values():
        _decay_cwd(cwd_tbl, opts.decay_threshold, opts.decay_target)
    # Decay may push counts under the prune threshold
    _prune(res, opts.prune_threshold, None)
    return res
