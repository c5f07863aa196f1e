"""Configuration loading from environment variables and revisit.toml."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib
from pathlib import Path

from revisit.errors import InvalidOption
from revisit.visits.normalize import NormalizeOptions
from revisit.visits.ranking import SORTS

_DEFAULT_STORE_PATH = Path.home() / ".revisit" / "index.json"
_CONFIG_FILENAME = "revisit.toml"


@dataclass
class ListConfig:
    """How the index is turned into a list of paths."""

    sort: str = "default"
    recency_weight: float = 0.5
    filter_flag: str | None = None


@dataclass
class NormalizeConfig:
    """Thresholds applied every time the index is written."""

    decay_threshold: float = 50
    decay_target: float = 45
    prune_threshold: float = 0.5
    prune_paths: bool = False

    def to_options(self) -> NormalizeOptions:
        return NormalizeOptions(
            decay_threshold=self.decay_threshold,
            decay_target=self.decay_target,
            prune_threshold=self.prune_threshold,
            prune_paths=self.prune_paths,
        )


@dataclass
class StoreConfig:
    """Where and when the index is stored."""

    path: Path = _DEFAULT_STORE_PATH
    autowrite: bool = True
    normalize: NormalizeConfig = field(default_factory=NormalizeConfig)


@dataclass
class RevisitConfig:
    """Top-level revisit configuration."""

    list: ListConfig = field(default_factory=ListConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    log_level: str = "WARNING"


def _as_bool(value: str | bool) -> bool:
    if isinstance(value, bool):
        return value
    return value.strip().lower() in ("1", "true", "yes", "on")


def _as_float(value: str | float, key: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        raise InvalidOption(f"`{key}` should be a number (not {value!r}).") from None


def load_config(config_path: Path | None = None) -> RevisitConfig:
    """Load configuration from environment variables and optional revisit.toml.

    Priority: environment variables > revisit.toml > defaults.
    """
    file_data: dict = {}
    if config_path and config_path.exists():
        file_data = tomllib.loads(config_path.read_text())
    else:
        # Search current dir and ~/.revisit/
        for candidate in [Path.cwd() / _CONFIG_FILENAME, Path.home() / ".revisit" / _CONFIG_FILENAME]:
            if candidate.exists():
                file_data = tomllib.loads(candidate.read_text())
                break

    list_data = file_data.get("list", {})
    store_data = file_data.get("store", {})
    normalize_data = store_data.get("normalize", {})

    config = RevisitConfig(
        list=ListConfig(
            sort=os.getenv("REVISIT_SORT", list_data.get("sort", "default")),
            recency_weight=_as_float(
                os.getenv("REVISIT_RECENCY_WEIGHT", list_data.get("recency_weight", 0.5)),
                "list.recency_weight",
            ),
            filter_flag=list_data.get("filter_flag"),
        ),
        store=StoreConfig(
            path=Path(
                os.getenv("REVISIT_STORE_PATH", store_data.get("path", str(_DEFAULT_STORE_PATH)))
            ).expanduser(),
            autowrite=_as_bool(os.getenv("REVISIT_AUTOWRITE", store_data.get("autowrite", True))),
            normalize=NormalizeConfig(
                decay_threshold=_as_float(
                    normalize_data.get("decay_threshold", 50), "store.normalize.decay_threshold"
                ),
                decay_target=_as_float(normalize_data.get("decay_target", 45), "store.normalize.decay_target"),
                prune_threshold=_as_float(
                    normalize_data.get("prune_threshold", 0.5), "store.normalize.prune_threshold"
                ),
                prune_paths=bool(normalize_data.get("prune_paths", False)),
            ),
        ),
        log_level=os.getenv("REVISIT_LOG_LEVEL", file_data.get("log_level", "WARNING")),
    )

    if config.list.sort not in SORTS:
        raise InvalidOption(
            f"Unknown sort {config.list.sort!r} in configuration, expected one of: {', '.join(SORTS)}."
        )
    if not 0 <= config.list.recency_weight <= 1:
        raise InvalidOption("`list.recency_weight` should be number between 0 and 1.")
    return config
