"""Entry point: python -m revisit <command>

- register:     Count one visit of a path in a working directory
- add-path / remove-path
- add-flag / remove-flag
- list:         Ranked paths of a working directory (or all of them)
- flags:        Flags ordered by how often they are used
- goto:         First/last/next/previous path of the ranked list
- normalize:    Prune and decay the stored index
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path

from revisit.config import RevisitConfig, load_config
from revisit.errors import VisitsError
from revisit.visits.models import Scope
from revisit.visits.persistence import dumps_index
from revisit.visits.ranking import flag_filter, session_filter, sort_from_name
from revisit.visits.store import VisitStore


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def full_path(path: str) -> str:
    """Absolute path without trailing separator."""
    return os.path.abspath(os.path.expanduser(path))


def short_path(path: str, cwd: str) -> str:
    """Path relative to ``cwd`` when it lives inside it."""
    if cwd == "" or not path.startswith(cwd.rstrip(os.sep) + os.sep):
        return path
    return path[len(cwd) :].strip(os.sep)


def _cwd_arg(args: argparse.Namespace) -> str | Scope:
    if getattr(args, "all", False):
        return Scope.ALL
    return full_path(args.cwd) if args.cwd else full_path(os.getcwd())


def _path_arg(value: str | None) -> str | Scope:
    return full_path(value) if value else Scope.ALL


def _build_store(config: RevisitConfig) -> VisitStore:
    default_sort = sort_from_name(config.list.sort, config.list.recency_weight)
    return VisitStore(
        config.store.path,
        normalize_options=config.store.normalize.to_options(),
        default_filter=config.list.filter_flag,
        default_sort=default_sort,
    )


def _autowrite(store: VisitStore, config: RevisitConfig) -> None:
    if config.store.autowrite:
        store.write()


# ── Commands ─────────────────────────────────────────────────


def cmd_register(store: VisitStore, config: RevisitConfig, args: argparse.Namespace) -> None:
    store.register(full_path(args.path), _cwd_arg(args))
    _autowrite(store, config)


def cmd_add_path(store: VisitStore, config: RevisitConfig, args: argparse.Namespace) -> None:
    store.add_path(full_path(args.path), _cwd_arg(args))
    _autowrite(store, config)


def cmd_remove_path(store: VisitStore, config: RevisitConfig, args: argparse.Namespace) -> None:
    store.remove_path(_path_arg(args.path), _cwd_arg(args))
    _autowrite(store, config)


def _flag_arg(args: argparse.Namespace, verb: str) -> str:
    if args.flag is not None:
        return args.flag
    return input(f"Enter flag to {verb}: ")


def cmd_add_flag(store: VisitStore, config: RevisitConfig, args: argparse.Namespace) -> None:
    store.add_flag(_flag_arg(args, "add"), _path_arg(args.path), _cwd_arg(args))
    _autowrite(store, config)


def cmd_remove_flag(store: VisitStore, config: RevisitConfig, args: argparse.Namespace) -> None:
    store.remove_flag(_flag_arg(args, "remove"), _path_arg(args.path), _cwd_arg(args))
    _autowrite(store, config)


def cmd_list(store: VisitStore, config: RevisitConfig, args: argparse.Namespace) -> None:
    cwd = _cwd_arg(args)
    sort = None
    if args.sort or args.recency_weight is not None:
        weight = args.recency_weight if args.recency_weight is not None else config.list.recency_weight
        sort = sort_from_name(args.sort or config.list.sort, weight)
    filters = []
    if args.flag:
        filters.append(flag_filter(args.flag))
    if args.session is not None:
        filters.append(session_filter(args.session))
    filter = (lambda d: all(f(d) for f in filters)) if filters else None

    for path in store.list_paths(cwd, filter=filter, sort=sort):
        print(short_path(path, cwd) if args.relative and isinstance(cwd, str) else path)


def cmd_flags(store: VisitStore, config: RevisitConfig, args: argparse.Namespace) -> None:
    for flag in store.list_flags(_path_arg(args.path), _cwd_arg(args)):
        print(flag)


def cmd_goto(store: VisitStore, config: RevisitConfig, args: argparse.Namespace) -> None:
    path = full_path(args.path) if args.path else None
    res = store.neighbor_path(
        args.direction,
        path,
        _cwd_arg(args),
        filter=args.flag,
        n_times=args.n,
        wrap=not args.no_wrap,
    )
    if res is not None:
        print(res)


def cmd_normalize(store: VisitStore, config: RevisitConfig, args: argparse.Namespace) -> None:
    if args.dry_run:
        sys.stdout.write(dumps_index(store.normalize()))
        return
    store.write()


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="revisit", description="Track and rank path visits.")
    parser.add_argument("--config", type=Path, help="Path to revisit.toml")
    parser.add_argument("--store", type=Path, help="Path to the visit index (overrides config)")
    sub = parser.add_subparsers(dest="command", required=True)

    def add_cwd(p: argparse.ArgumentParser, allow_all: bool = True) -> None:
        p.add_argument("--cwd", help="Working directory (default: current one)")
        if allow_all:
            p.add_argument("--all", action="store_true", help="Use all known working directories")

    p = sub.add_parser("register", help="Register a visit")
    p.add_argument("path")
    add_cwd(p, allow_all=False)
    p.set_defaults(func=cmd_register)

    p = sub.add_parser("add-path", help="Add a path without counting a visit")
    p.add_argument("path")
    add_cwd(p)
    p.set_defaults(func=cmd_add_path)

    p = sub.add_parser("remove-path", help="Forget a path (all paths if omitted)")
    p.add_argument("path", nargs="?")
    add_cwd(p)
    p.set_defaults(func=cmd_remove_path)

    for name, func in (("add-flag", cmd_add_flag), ("remove-flag", cmd_remove_flag)):
        p = sub.add_parser(name, help=f"{name.split('-')[0].capitalize()} a flag")
        p.add_argument("flag", nargs="?")
        p.add_argument("--path", help="Target path (default: all paths)")
        add_cwd(p)
        p.set_defaults(func=func)

    p = sub.add_parser("list", help="List ranked paths")
    add_cwd(p)
    p.add_argument("--flag", help="Only paths with this flag")
    p.add_argument("--sort", choices=["default", "z"])
    p.add_argument("--recency-weight", type=float)
    p.add_argument("--session", type=int, metavar="TIMESTAMP", help="Only paths visited since TIMESTAMP")
    p.add_argument("--relative", action="store_true", help="Show paths relative to the cwd")
    p.set_defaults(func=cmd_list)

    p = sub.add_parser("flags", help="List flags by frequency")
    p.add_argument("--path", help="Only flags of this path")
    add_cwd(p)
    p.set_defaults(func=cmd_flags)

    p = sub.add_parser("goto", help="Navigate the ranked list")
    p.add_argument("direction", choices=["first", "last", "forward", "backward"])
    p.add_argument("--path", help="Current path")
    p.add_argument("--flag", help="Only paths with this flag")
    p.add_argument("-n", type=int, default=1, help="Number of steps")
    p.add_argument("--no-wrap", action="store_true")
    add_cwd(p)
    p.set_defaults(func=cmd_goto)

    p = sub.add_parser("normalize", help="Prune and decay the stored index")
    p.add_argument("--dry-run", action="store_true", help="Print instead of writing")
    p.set_defaults(func=cmd_normalize)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    try:
        config = load_config(args.config)
        _setup_logging(config.log_level)
        if args.store:
            config.store.path = args.store
        store = _build_store(config)
        args.func(store, config, args)
    except VisitsError as e:
        print(f"revisit: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
