from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Optional, Sequence

from .command import run_cmd
from .env import PATHS

logger = logging.getLogger(__name__)

REFLECTOR_TIMEOUT_S = 30.0


def refresh_keyring(*, dry_run: bool = False) -> None:
    run_cmd(["pacman", "-Sy", "--noconfirm", "archlinux-keyring"], dry_run=dry_run)


def update_mirrorlist(
    *,
    country: Optional[str] = None,
    mirrorlist: str = PATHS.mirrorlist,
    timeout_s: float = REFLECTOR_TIMEOUT_S,
    dry_run: bool = False,
) -> bool:
    """Rank mirrors with reflector, keeping a backup of the current list.

    A missing, failing or slow reflector leaves the stock mirrorlist in place;
    returns whether reflector rewrote it.
    """

    src = Path(mirrorlist)
    backup = src.with_name(src.name + ".backup")
    if dry_run:
        logger.info("Would back up %s -> %s", str(src), str(backup))
    elif src.exists():
        shutil.copy2(src, backup)

    if shutil.which("reflector") is None and not dry_run:
        logger.warning("reflector not installed, using default mirrors")
        return False

    argv = ["reflector", "--age", "12", "--protocol", "https", "--sort", "rate", "--save", mirrorlist]
    if country:
        argv[1:1] = ["--country", country]
    r = run_cmd(argv, check=False, timeout=timeout_s, dry_run=dry_run)
    if not r.ok:
        logger.warning("reflector failed or timed out (rc=%s), using default mirrors", r.returncode)
        if backup.exists() and not dry_run:
            shutil.copy2(backup, src)
        return False
    return True


def pacstrap(target_root: str, packages: Sequence[str], *, dry_run: bool = False) -> None:
    if not packages:
        return
    run_cmd(["pacstrap", "-K", target_root, *packages], dry_run=dry_run)


def package_installed(root: str, name: str) -> bool:
    """Ask the target's local package database, not the installer's exit code."""

    r = run_cmd(["pacman", "--root", root, "-Q", name], check=False)
    return r.ok
