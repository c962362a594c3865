from __future__ import annotations

from pathlib import Path

from .env import PATHS


def detect_boot_mode(efivars: str = PATHS.efivars) -> str:
    """Detect firmware interface of the *currently running* live environment.

    Returns: 'uefi' or 'bios'.
    """

    if Path(efivars).is_dir():
        return "uefi"
    return "bios"
