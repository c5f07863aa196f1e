"""Visit index engine: register visits, keep flags, list ranked paths.

The engine owns one in-memory index with the visits observed by this process.
The stored index is read lazily, the first time the full state is needed, and
merged in (stored data as base, session data on top). After that the in-memory
index is authoritative until :meth:`VisitStore.reset`.

Callers decide when to persist: nothing is written unless :meth:`write` is
called. Concurrent writers are not coordinated, the last write wins.
"""

from __future__ import annotations

import copy
import enum
import logging
import time
from collections import Counter
from pathlib import Path
from typing import Callable, Literal

from revisit.errors import EmptyArgument, InvalidOption, InvalidType
from revisit.visits.models import Index, PathData, Query, Scope, VisitRecord, is_all, merge, merge_index
from revisit.visits.normalize import NormalizeOptions, normalize
from revisit.visits.persistence import read_index, validate_index, write_index
from revisit.visits.ranking import Filter, Sort, resolve_filter, resolve_sort

logger = logging.getLogger(__name__)

Direction = Literal["first", "last", "forward", "backward"]


class LoadState(enum.Enum):
    NOT_LOADED = "not_loaded"
    LOADED = "loaded"


def _check_string(x: object, name: str) -> str:
    if x is Scope.ALL or x is None or x == "":
        raise EmptyArgument(f"`{name}` should be a non-empty string.")
    if not isinstance(x, str):
        raise InvalidType(f"`{name}` should be a string.")
    return x


def _check_query(x: object, name: str) -> Query:
    if is_all(x):
        return Scope.ALL
    if not isinstance(x, str):
        raise InvalidType(f"`{name}` should be a string or Scope.ALL.")
    return x


class VisitStore:
    """Track visits per (cwd, path) and rank them."""

    def __init__(
        self,
        store_path: Path | str | None = None,
        *,
        clock: Callable[[], float] = time.time,
        normalize_options: NormalizeOptions | None = None,
        default_filter: Filter | str | None = None,
        default_sort: Sort | None = None,
    ) -> None:
        self.store_path = Path(store_path) if store_path is not None else None
        self.clock = clock
        self.normalize_options = normalize_options or NormalizeOptions()
        self.default_filter = resolve_filter(default_filter)
        self.default_sort = resolve_sort(default_sort)
        self.started_at = int(clock())
        self._index: Index = {}
        self._state = LoadState.NOT_LOADED

    @property
    def state(self) -> LoadState:
        return self._state

    # ── Lazy load ────────────────────────────────────────────

    def _ensure_loaded(self) -> None:
        if self._state is LoadState.LOADED:
            return
        stored = self.read()
        if stored is not None:
            self._index = merge_index(stored, self._index)
            logger.info("Merged stored visit index from %s (%d cwds)", self.store_path, len(stored))
        self._state = LoadState.LOADED

    def _ensure_entry(self, path: str, cwd: str) -> VisitRecord:
        cwd_tbl = self._index.setdefault(cwd, {})
        return cwd_tbl.setdefault(path, VisitRecord())

    def resolve_path_cwd(self, path: Query, cwd: Query) -> list[tuple[str, str]]:
        """Expand wildcard ``path``/``cwd`` into concrete (path, cwd) pairs.

        An ALL cwd means every known cwd; an ALL path means every path known
        in each of those cwds. A concrete path is paired with every resolved
        cwd whether or not it was visited there.
        """
        path = _check_query(path, "path")
        cwd = _check_query(cwd, "cwd")
        self._ensure_loaded()

        cwds = sorted(self._index) if cwd is Scope.ALL else [cwd]
        if path is not Scope.ALL:
            return [(path, c) for c in cwds]
        return [(p, c) for c in cwds for p in sorted(self._index.get(c, {}))]

    # ── Entries ──────────────────────────────────────────────

    def register(self, path: str, cwd: str) -> None:
        """Register one visit of ``path`` while working in ``cwd``."""
        path = _check_string(path, "path")
        cwd = _check_string(cwd, "cwd")

        record = self._ensure_entry(path, cwd)
        record.count += 1
        record.latest = int(self.clock())
        logger.debug("Registered visit of %s in %s (count=%s)", path, cwd, record.count)

    def add_path(self, path: Query, cwd: Query) -> None:
        """Make sure entries exist without counting a visit."""
        for p, c in self.resolve_path_cwd(path, cwd):
            self._ensure_entry(p, c)

    def remove_path(self, path: Query, cwd: Query) -> None:
        """Forget every resolved (path, cwd) entry."""
        for p, c in self.resolve_path_cwd(path, cwd):
            cwd_tbl = self._index.get(c)
            if cwd_tbl is None:
                continue
            cwd_tbl.pop(p, None)
            if not cwd_tbl:
                del self._index[c]

    def add_flag(self, flag: str | None, path: Query, cwd: Query) -> None:
        """Attach ``flag`` to every resolved (path, cwd) entry, creating missing ones."""
        flag = _check_string(flag, "flag")
        for p, c in self.resolve_path_cwd(path, cwd):
            self._ensure_entry(p, c).add_flag(flag)

    def remove_flag(self, flag: str | None, path: Query, cwd: Query) -> None:
        """Drop ``flag`` from resolved entries. Unknown pairs are left alone."""
        flag = _check_string(flag, "flag")
        for p, c in self.resolve_path_cwd(path, cwd):
            record = self._index.get(c, {}).get(p)
            if record is not None:
                record.remove_flag(flag)

    # ── Whole index ──────────────────────────────────────────

    def get(self) -> Index:
        """Return a copy of the full index (stored and session visits merged)."""
        self._ensure_loaded()
        return copy.deepcopy(self._index)

    def set(self, index: Index) -> None:
        """Replace the full index. The stored index will not be merged in anymore."""
        self._index = validate_index(index)
        self._state = LoadState.LOADED

    def reset(self) -> None:
        """Drop session data and read the stored index again on next access."""
        self._index = {}
        self._state = LoadState.NOT_LOADED

    def normalize(self, index: Index | None = None, opts: NormalizeOptions | None = None) -> Index:
        index = self.get() if index is None else validate_index(index)
        return normalize(index, opts or self.normalize_options)

    # ── Storage ──────────────────────────────────────────────

    def _resolve_store_path(self, path: Path | str | None) -> Path | None:
        if path is None:
            return self.store_path
        if isinstance(path, str):
            if path == "":
                raise EmptyArgument("`path` should be a non-empty string.")
            return Path(path)
        if not isinstance(path, Path):
            raise InvalidType("`path` should be a string or a Path.")
        return path

    def read(self, path: Path | str | None = None) -> Index | None:
        """Read a stored index. Returns ``None`` if there is nothing usable."""
        store_path = self._resolve_store_path(path)
        if store_path is None:
            return None
        return read_index(store_path.expanduser())

    def write(self, path: Path | str | None = None, index: Index | None = None) -> None:
        """Normalize ``index`` (default: full index) and store it."""
        store_path = self._resolve_store_path(path)
        if store_path is None:
            raise EmptyArgument("No store path configured and no `path` given.")
        normalized = self.normalize(index)
        write_index(store_path.expanduser(), normalized)
        self.set(normalized)

    # ── Queries ──────────────────────────────────────────────

    def _path_data_arr(self, path: Query, cwd: Query) -> list[PathData]:
        by_path: dict[str, VisitRecord] = {}
        for p, c in self.resolve_path_cwd(path, cwd):
            record = self._index.get(c, {}).get(p)
            if record is None:
                continue
            by_path[p] = merge(by_path[p], record) if p in by_path else copy.deepcopy(record)

        cwd_value = "" if is_all(cwd) else cwd
        return [
            PathData(path=p, cwd=cwd_value, count=r.count, latest=r.latest, flags=set(r.flags or ()))
            for p, r in by_path.items()
        ]

    def list_paths(
        self,
        cwd: Query = "",
        *,
        filter: Filter | str | None = None,
        sort: Sort | None = None,
    ) -> list[str]:
        """List visited paths of ``cwd`` (all cwds if empty), best first."""
        cwd = _check_query(cwd, "cwd")
        filter = resolve_filter(filter, self.default_filter)
        sort = resolve_sort(sort, self.default_sort)

        path_data_arr = [d for d in self._path_data_arr(Scope.ALL, cwd) if filter(d)]
        return [d.path for d in sort(path_data_arr)]

    def list_flags(
        self,
        path: Query = "",
        cwd: Query = "",
        *,
        filter: Filter | str | None = None,
    ) -> list[str]:
        """List flags of matching paths, most frequent first (ties lexically)."""
        path = _check_query(path, "path")
        cwd = _check_query(cwd, "cwd")
        filter = resolve_filter(filter, self.default_filter)

        counts: Counter[str] = Counter()
        for path_data in self._path_data_arr(path, cwd):
            if filter(path_data):
                counts.update(path_data.flags)
        return sorted(counts, key=lambda flag: (-counts[flag], flag))

    def neighbor_path(
        self,
        direction: Direction,
        path: str | None = None,
        cwd: Query = "",
        *,
        filter: Filter | str | None = None,
        sort: Sort | None = None,
        n_times: int = 1,
        wrap: bool = True,
    ) -> str | None:
        """Pick a path relative to ``path`` in the ranked listing of ``cwd``."""
        if not isinstance(n_times, int) or isinstance(n_times, bool) or n_times < 1:
            raise InvalidOption("`n_times` should be a positive integer.")
        if direction not in ("first", "last", "forward", "backward"):
            raise InvalidOption("`direction` should be one of 'first', 'last', 'forward', 'backward'.")

        paths = self.list_paths(cwd, filter=filter, sort=sort)
        if not paths:
            return None

        n = len(paths)
        if direction == "first":
            idx = n_times - 1
        elif direction == "last":
            idx = n - n_times
        elif direction == "forward":
            start = paths.index(path) if path in paths else -1
            idx = start + n_times
        else:
            start = paths.index(path) if path in paths else n
            idx = start - n_times

        idx = idx % n if wrap else min(max(idx, 0), n - 1)
        return paths[idx]
