"""Read-only postcondition checks.

Package managers and partitioners can exit 0 while leaving the system in the
wrong state, so correctness-sensitive steps confirm their effect with one of
these predicates. Every predicate only reads system state; calling it twice
gives the same answer unless something else changed the system in between.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Callable, Iterable

from .lib.block import filesystem_type, list_partitions
from .lib.command import run_cmd
from .lib.pkg import package_installed

logger = logging.getLogger(__name__)

Predicate = Callable[[], bool]


def verify(predicate: Predicate) -> bool:
    """Evaluate a predicate; an exception counts as a failed check."""

    try:
        ok = bool(predicate())
    except Exception as e:
        logger.warning("Verification raised %s: %s", type(e).__name__, e)
        return False
    if not ok:
        logger.warning("Verification failed: %s", describe(predicate))
    return ok


def describe(predicate: Predicate) -> str:
    return getattr(predicate, "description", None) or getattr(predicate, "__name__", repr(predicate))


def _named(description: str, fn: Predicate) -> Predicate:
    setattr(fn, "description", description)
    return fn


def all_of(*predicates: Predicate) -> Predicate:
    def check() -> bool:
        for p in predicates:
            if not verify(p):
                return False
        return True

    return _named("all of: " + "; ".join(describe(p) for p in predicates), check)


def partition_count_at_least(disk: str, count: int) -> Predicate:
    return _named(
        f"{disk} has at least {count} partitions",
        lambda: len(list_partitions(disk)) >= count,
    )


def filesystem_is(device: str, fstype: str) -> Predicate:
    return _named(f"{device} is {fstype}", lambda: filesystem_type(device) == fstype)


def is_mounted(path: str) -> Predicate:
    path = os.path.normpath(path)

    def check() -> bool:
        r = run_cmd(["findmnt", "--noheadings", "--output", "TARGET", "--mountpoint", path], check=False)
        out = r.stdout.strip()
        return r.ok and bool(out) and os.path.normpath(out) == path

    return _named(f"{path} is mounted", check)


def swap_active(device: str) -> Predicate:
    def check() -> bool:
        r = run_cmd(["swapon", "--show=NAME", "--noheadings"], check=False)
        if not r.ok:
            return False
        active = {line.strip() for line in r.stdout.splitlines() if line.strip()}
        real = str(Path(device).resolve())
        return device in active or real in active

    return _named(f"swap active on {device}", check)


def file_exists(path: str) -> Predicate:
    return _named(f"{path} exists", lambda: Path(path).is_file())


def file_contains(path: str, text: str) -> Predicate:
    def check() -> bool:
        p = Path(path)
        if not p.is_file():
            return False
        return text in p.read_text(encoding="utf-8", errors="replace")

    return _named(f"{path} contains {text!r}", check)


def packages_installed(root: str, names: Iterable[str]) -> Predicate:
    names = list(names)

    def check() -> bool:
        missing = [n for n in names if not package_installed(root, n)]
        if missing:
            logger.warning("Packages not installed under %s: %s", root, ", ".join(missing))
        return not missing

    return _named(f"{len(names)} packages installed under {root}", check)
