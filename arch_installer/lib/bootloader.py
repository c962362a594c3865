from __future__ import annotations

import logging
import shlex
from pathlib import Path
from typing import List

logger = logging.getLogger(__name__)

BOOTLOADER_ID = "GRUB"
GRUB_CFG = "boot/grub/grub.cfg"


def render_grub_script(*, boot_mode: str, disk: str, kernel_cmdline: str) -> str:
    """In-target script installing GRUB for the detected firmware."""

    if boot_mode == "uefi":
        install = (
            "grub-install --target=x86_64-efi --efi-directory=/boot "
            f"--bootloader-id={BOOTLOADER_ID} --recheck"
        )
    elif boot_mode == "bios":
        install = f"grub-install --target=i386-pc --recheck {shlex.quote(disk)}"
    else:
        raise RuntimeError(f"boot_mode must be uefi|bios, got {boot_mode}")

    # Escape what sed treats specially in the replacement, then shell-quote the expression.
    escaped = kernel_cmdline.replace("\\", "\\\\").replace("|", "\\|").replace("&", "\\&")
    expr = f's|^GRUB_CMDLINE_LINUX_DEFAULT=.*|GRUB_CMDLINE_LINUX_DEFAULT="{escaped}"|'
    return "\n".join(
        [
            "pacman -S --needed --noconfirm grub" + (" efibootmgr" if boot_mode == "uefi" else ""),
            install,
            f"sed -i {shlex.quote(expr)} /etc/default/grub",
            f"grub-mkconfig -o /{GRUB_CFG}",
        ]
    )


def expected_boot_files(target_root: str, boot_mode: str) -> List[str]:
    """Files whose presence shows the bootloader actually landed."""

    root = Path(target_root)
    files = [str(root / GRUB_CFG)]
    if boot_mode == "uefi":
        files.append(str(root / "boot/EFI" / BOOTLOADER_ID / "grubx64.efi"))
    else:
        files.append(str(root / "boot/grub/i386-pc/core.img"))
    return files
