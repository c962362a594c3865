from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import List, Optional

from .command import run_cmd

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Disk:
    path: str
    size_bytes: int
    model: str = ""


def get_uuid(dev: str, *, dry_run: bool = False) -> str:
    """Return filesystem UUID for a block device."""

    r = run_cmd(["blkid", "-s", "UUID", "-o", "value", dev], dry_run=dry_run)
    uuid = (r.stdout or "").strip()
    if not uuid and not dry_run:
        raise RuntimeError(f"Unable to determine UUID for {dev}")
    return uuid


def filesystem_type(dev: str) -> Optional[str]:
    r = run_cmd(["blkid", "-s", "TYPE", "-o", "value", dev], check=False)
    if not r.ok:
        return None
    return (r.stdout or "").strip() or None


def list_partitions(disk: str) -> List[str]:
    r = run_cmd(["lsblk", "-lnp", "-o", "NAME,TYPE", disk], check=False)
    if not r.ok:
        return []
    parts = []
    for line in r.stdout.splitlines():
        fields = line.split()
        if len(fields) == 2 and fields[1] == "part":
            parts.append(fields[0])
    return parts


def list_disks() -> List[Disk]:
    """Whole disks, excluding loop (7) and optical (11) devices."""

    r = run_cmd(["lsblk", "-d", "-b", "-J", "-e", "7,11", "-o", "PATH,SIZE,MODEL,TYPE"])
    data = json.loads(r.stdout or "{}")
    disks = []
    for dev in data.get("blockdevices") or []:
        if dev.get("type") != "disk":
            continue
        disks.append(
            Disk(
                path=str(dev.get("path")),
                size_bytes=int(dev.get("size") or 0),
                model=str(dev.get("model") or "").strip(),
            )
        )
    return disks


def partition_path(disk: str, n: int) -> str:
    # nvme/mmcblk devices use p suffix
    if disk.endswith(tuple("0123456789")):
        return f"{disk}p{n}"
    return f"{disk}{n}"
