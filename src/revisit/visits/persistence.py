"""Validation and JSON storage of the visit index.

The stored file is plain, pretty-printed JSON so it stays readable and
diffable by hand::

    {
      "/home/me/project": {
        "/home/me/project/README.md": {"count": 3, "flags": {"todo": true}, "latest": 1700000000}
      }
    }
"""

from __future__ import annotations

import json
import logging
import math
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from revisit.errors import InvalidIndex
from revisit.visits.models import Index, VisitRecord

logger = logging.getLogger(__name__)


def _is_number(x: Any) -> bool:
    return isinstance(x, (int, float)) and not isinstance(x, bool)


def _is_finite(x: Any) -> bool:
    try:
        return math.isfinite(x)
    except OverflowError:
        # int too large for a float
        return False


def _validate_flags(flags: Any, name: str) -> set[str] | None:
    if flags is None:
        return None
    if isinstance(flags, Mapping):
        for key, value in flags.items():
            if not isinstance(key, str) or key == "":
                raise InvalidIndex(f"Keys in `flags` of {name} should be non-empty strings (not {key!r}).")
            if value is not True:
                raise InvalidIndex(f"Values in `flags` of {name} should only be `true` (not {value!r}).")
        keys = set(flags)
    elif isinstance(flags, (set, frozenset)):
        for key in flags:
            if not isinstance(key, str) or key == "":
                raise InvalidIndex(f"Flags of {name} should be non-empty strings (not {key!r}).")
        keys = set(flags)
    else:
        raise InvalidIndex(f"`flags` of {name} should be a mapping or a set.")
    return keys or None


def _validate_record(value: Any, name: str) -> VisitRecord:
    if isinstance(value, VisitRecord):
        count, latest, flags = value.count, value.latest, value.flags
    elif isinstance(value, Mapping):
        count, latest, flags = value.get("count"), value.get("latest"), value.get("flags")
    else:
        raise InvalidIndex(f"Second level values in {name} should be records or mappings.")

    if not _is_number(count):
        raise InvalidIndex(f"`count` entries in {name} should be numbers.")
    if not _is_number(latest):
        raise InvalidIndex(f"`latest` entries in {name} should be numbers.")
    if not (_is_finite(count) and _is_finite(latest)):
        raise InvalidIndex(f"`count` and `latest` entries in {name} should be finite.")
    if count < 0 or latest < 0:
        raise InvalidIndex(f"`count` and `latest` entries in {name} should be non-negative.")

    return VisitRecord(count=count, latest=latest, flags=_validate_flags(flags, name))


def validate_index(x: Any, name: str = "index") -> Index:
    """Check structure of ``x`` and return a freshly built copy of it.

    Accepts both ``VisitRecord`` leaves and raw mapping leaves as found in the
    stored JSON. Raises :class:`InvalidIndex` on the first violation.
    """
    if not isinstance(x, Mapping):
        raise InvalidIndex(f"{name} should be a mapping.")

    res: Index = {}
    for cwd, cwd_tbl in x.items():
        if not isinstance(cwd, str):
            raise InvalidIndex(f"First level keys in {name} should be strings.")
        if not isinstance(cwd_tbl, Mapping):
            raise InvalidIndex(f"First level values in {name} should be mappings.")
        bucket = {}
        for path, record in cwd_tbl.items():
            if not isinstance(path, str):
                raise InvalidIndex(f"Second level keys in {name} should be strings.")
            bucket[path] = _validate_record(record, name)
        res[cwd] = bucket
    return res


def index_to_dict(index: Index) -> dict[str, dict[str, dict[str, Any]]]:
    """Convert an index into JSON-ready plain data. Absent flags are omitted."""
    res: dict[str, dict[str, dict[str, Any]]] = {}
    for cwd, cwd_tbl in index.items():
        res[cwd] = {}
        for path, record in cwd_tbl.items():
            data: dict[str, Any] = {"count": record.count, "latest": record.latest}
            if record.flags:
                data["flags"] = {flag: True for flag in sorted(record.flags)}
            res[cwd][path] = data
    return res


def dumps_index(index: Index) -> str:
    """Serialize ``index`` as sorted, indented JSON ending with a newline.

    Non-finite numbers raise ``ValueError`` instead of producing ``NaN``.
    """
    return (
        json.dumps(index_to_dict(index), ensure_ascii=False, indent=2, sort_keys=True, allow_nan=False)
        + "\n"
    )


def _reject_constant(name: str) -> Any:
    raise InvalidIndex(f"Non-finite number {name} in stored index.")


def read_index(path: Path) -> Index | None:
    """Read a stored index. Missing or corrupt stores give ``None``."""
    if not path.is_file():
        logger.debug("No visit index at %s", path)
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"), parse_constant=_reject_constant)
        return validate_index(data, name=f"stored index {path}")
    # JSONDecodeError and UnicodeDecodeError are ValueErrors
    except (OSError, ValueError, RecursionError, InvalidIndex) as e:
        logger.warning("Ignoring unreadable visit index %s: %s", path, e)
        return None


def write_index(path: Path, index: Index) -> None:
    """Write ``index`` as-is, creating parent directories. I/O errors propagate."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(dumps_index(index), encoding="utf-8")
    logger.info("Wrote visit index (%d cwds) to %s", len(index), path)
