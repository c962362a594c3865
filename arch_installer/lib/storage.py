from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, List, Optional

from ..run_state import RunState
from .block import partition_path
from .command import run_cmd

if TYPE_CHECKING:
    from ..config import InstallConfig

logger = logging.getLogger(__name__)

# First partition starts at 1MiB for alignment.
ALIGN_MIB = 1
BIOS_GRUB_SIZE_MIB = 1


@dataclass(frozen=True)
class PartitionPlan:
    disk: str
    boot_mode: str  # uefi|bios
    esp_size_mib: int = 512
    swap_size_mib: int = 4096


@dataclass(frozen=True)
class PartitionLayout:
    root_part: str
    swap_part: str
    esp_part: Optional[str] = None
    bios_grub_part: Optional[str] = None


def plan_layout(plan: PartitionPlan) -> PartitionLayout:
    """Device names the plan produces; both layouts use three partitions."""

    first = partition_path(plan.disk, 1)
    if plan.boot_mode == "uefi":
        return PartitionLayout(
            esp_part=first,
            swap_part=partition_path(plan.disk, 2),
            root_part=partition_path(plan.disk, 3),
        )
    return PartitionLayout(
        bios_grub_part=first,
        swap_part=partition_path(plan.disk, 2),
        root_part=partition_path(plan.disk, 3),
    )


def parted_commands(plan: PartitionPlan) -> List[List[str]]:
    """GPT layout.

    - UEFI: ESP (FAT32) + swap + root (ext4, rest of disk)
    - BIOS: 1MiB bios_grub + swap + root (ext4, rest of disk)
    """

    if plan.boot_mode not in {"uefi", "bios"}:
        raise RuntimeError(f"boot_mode must be 'uefi' or 'bios', got: {plan.boot_mode}")

    disk = plan.disk
    parted = ["parted", "-s", disk]
    cmds = [[*parted, "mklabel", "gpt"]]

    start = ALIGN_MIB
    if plan.boot_mode == "uefi":
        end = start + plan.esp_size_mib
        cmds.append([*parted, "mkpart", "primary", "fat32", f"{start}MiB", f"{end}MiB"])
        cmds.append([*parted, "set", "1", "esp", "on"])
    else:
        end = start + BIOS_GRUB_SIZE_MIB
        cmds.append([*parted, "mkpart", "primary", f"{start}MiB", f"{end}MiB"])
        cmds.append([*parted, "set", "1", "bios_grub", "on"])

    swap_end = end + plan.swap_size_mib
    cmds.append([*parted, "mkpart", "primary", "linux-swap", f"{end}MiB", f"{swap_end}MiB"])
    cmds.append([*parted, "mkpart", "primary", "ext4", f"{swap_end}MiB", "100%"])
    return cmds


def partition_disk(plan: PartitionPlan, *, dry_run: bool = False) -> PartitionLayout:
    logger.info("Partitioning disk=%s boot_mode=%s", plan.disk, plan.boot_mode)
    for argv in parted_commands(plan):
        run_cmd(argv, dry_run=dry_run)

    # Inform kernel
    run_cmd(["partprobe", plan.disk], dry_run=dry_run)
    return plan_layout(plan)


def format_partitions(layout: PartitionLayout, *, dry_run: bool = False) -> None:
    if layout.esp_part:
        run_cmd(["mkfs.fat", "-F", "32", layout.esp_part], dry_run=dry_run)
    run_cmd(["mkswap", "-f", layout.swap_part], dry_run=dry_run)
    run_cmd(["mkfs.ext4", "-F", layout.root_part], dry_run=dry_run)


def mount(device: str, mountpoint: str, *, run_state: RunState, dry_run: bool = False) -> None:
    if not dry_run:
        Path(mountpoint).mkdir(parents=True, exist_ok=True)
    run_cmd(["mount", device, mountpoint], dry_run=dry_run)
    if not dry_run:
        run_state.acquire("mount", mountpoint)


def swapon(device: str, *, run_state: RunState, dry_run: bool = False) -> None:
    run_cmd(["swapon", device], dry_run=dry_run)
    if not dry_run:
        run_state.acquire("swap", device)


def mount_filesystems(
    layout: PartitionLayout,
    target_root: str,
    *,
    run_state: RunState,
    dry_run: bool = False,
) -> None:
    """Root first, then the ESP on /boot inside it, then swap."""

    mount(layout.root_part, target_root, run_state=run_state, dry_run=dry_run)
    if layout.esp_part:
        mount(layout.esp_part, str(Path(target_root) / "boot"), run_state=run_state, dry_run=dry_run)
    swapon(layout.swap_part, run_state=run_state, dry_run=dry_run)


def plan_from_config(cfg: InstallConfig) -> PartitionPlan:
    return PartitionPlan(
        disk=cfg.disk,
        boot_mode=cfg.boot_mode,
        esp_size_mib=cfg.esp_size_mib,
        swap_size_mib=cfg.swap_size_mib,
    )
