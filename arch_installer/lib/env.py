from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Paths:
    target_root: str = "/mnt"
    efivars: str = "/sys/firmware/efi/efivars"
    log_default: str = "/var/log/arch-installer.log"
    diagnostics_default: str = "/var/log/arch-installer/failure.json"
    pacman_log: str = "/var/log/pacman.log"
    mirrorlist: str = "/etc/pacman.d/mirrorlist"


PATHS = Paths()
