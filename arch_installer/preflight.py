from __future__ import annotations

import logging
import os
from typing import Callable, List, Optional

from .errors import CommandError, PreconditionError
from .lib.block import Disk, list_disks
from .lib.net import DEFAULT_PROBE_HOST, is_online

logger = logging.getLogger(__name__)

MIN_DISK_BYTES = 20 * 1024**3

InputFn = Callable[[str], str]


def _human_size(n: int) -> str:
    size = float(n)
    for unit in ("B", "KiB", "MiB", "GiB", "TiB"):
        if size < 1024 or unit == "TiB":
            return f"{size:.1f}{unit}"
        size /= 1024
    return f"{n}B"


def _available_disks() -> List[Disk]:
    try:
        return list_disks()
    except CommandError as e:
        raise PreconditionError(f"Cannot list disks: {e}") from e


def check_root(geteuid: Callable[[], int] = os.geteuid) -> None:
    if geteuid() != 0:
        raise PreconditionError("The installer must run as root")


def check_network(host: str = DEFAULT_PROBE_HOST) -> None:
    if not is_online(host):
        raise PreconditionError(
            f"Cannot reach {host}. Check the cable/WiFi link (ip link), "
            "the address (ip addr) and DNS settings."
        )


def check_disk(disk: str, *, disks: Optional[List[Disk]] = None, min_bytes: int = MIN_DISK_BYTES) -> Disk:
    known = _available_disks() if disks is None else disks
    match = next((d for d in known if d.path == disk), None)
    if match is None:
        raise PreconditionError(f"{disk} is not an available disk")
    if match.size_bytes < min_bytes:
        raise PreconditionError(
            f"{disk} is too small ({_human_size(match.size_bytes)}, need {_human_size(min_bytes)})"
        )
    return match


def select_disk(*, disks: Optional[List[Disk]] = None, input_fn: InputFn = input) -> str:
    """Numbered interactive pick among available disks."""

    known = _available_disks() if disks is None else disks
    if not known:
        raise PreconditionError("No available disks found")

    print("Available disks:")
    for i, d in enumerate(known, start=1):
        print(f"  {i}) {d.path}  {_human_size(d.size_bytes)}  {d.model}")

    while True:
        answer = input_fn("Select the disk for installation (number): ").strip()
        if answer.isdigit() and 1 <= int(answer) <= len(known):
            chosen = known[int(answer) - 1].path
            logger.info("Selected disk %s", chosen)
            return chosen
        print("Invalid selection. Please try again.")


def confirm_destructive(disk: str, *, input_fn: InputFn = input) -> None:
    print(f"WARNING: All data on {disk} will be erased!")
    answer = input_fn("Are you sure you want to continue? (y/N): ").strip().lower()
    if answer not in {"y", "yes"}:
        raise PreconditionError("Installation aborted by user")
    logger.info("User confirmed wiping %s", disk)


def run_preflight(
    disk: str,
    *,
    assume_yes: bool = False,
    probe_host: str = DEFAULT_PROBE_HOST,
    input_fn: InputFn = input,
) -> None:
    """Checks that must pass before any step touches the machine."""

    check_root()
    check_network(probe_host)
    check_disk(disk)
    if not assume_yes:
        confirm_destructive(disk, input_fn=input_fn)
