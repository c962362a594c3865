from __future__ import annotations

import json
import logging
import tempfile
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

from .lib.command import run_cmd
from .lib.env import PATHS

logger = logging.getLogger(__name__)

DEFAULT_DIAGNOSTICS_PATH = PATHS.diagnostics_default
LOG_TAIL_LINES = 50

SNAPSHOT_COMMANDS: Dict[str, Sequence[str]] = {
    "memory": ["free", "-m"],
    "disk_layout": ["lsblk", "-f"],
    "mount_table": ["findmnt", "--list"],
}


@dataclass(frozen=True)
class WrittenRecord:
    path: str
    requested_path: str

    @property
    def fell_back(self) -> bool:
        return self.path != self.requested_path


def _detect_format(path: Path) -> str:
    ext = path.suffix.lower().lstrip(".")
    if ext in {"yaml", "yml"}:
        return "yaml"
    return "json"


def tail_lines(path: str, n: int = LOG_TAIL_LINES) -> Optional[List[str]]:
    p = Path(path)
    try:
        with p.open("r", encoding="utf-8", errors="replace") as fh:
            return [line.rstrip("\n") for line in deque(fh, maxlen=n)]
    except OSError:
        return None


def collect_snapshot(target_root: Optional[str] = None) -> Dict[str, Any]:
    """Best-effort view of the machine at failure time. Never raises."""

    snap: Dict[str, Any] = {}
    for key, argv in SNAPSHOT_COMMANDS.items():
        try:
            r = run_cmd(argv, check=False, timeout=10)
            snap[key] = r.stdout if r.ok else f"<{argv[0]} exited {r.returncode}: {r.stderr.strip()}>"
        except Exception as e:
            snap[key] = f"<unavailable: {e}>"

    logs = {"live": PATHS.pacman_log}
    if target_root:
        logs["target"] = str(Path(target_root) / PATHS.pacman_log.lstrip("/"))
    snap["pacman_log_tail"] = {name: tail_lines(path) for name, path in logs.items()}
    return snap


def build_record(
    *,
    ordinal: int,
    name: str,
    kind: str,
    exit_code: int,
    error: str,
    cleanup: List[Dict[str, Any]],
    config: Optional[Dict[str, Any]] = None,
    snapshot: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    return {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "failed_step": {"ordinal": ordinal, "name": name, "kind": kind},
        "exit_code": exit_code,
        "error": error,
        "cleanup": cleanup,
        "config": config or {},
        "environment": snapshot or {},
    }


def _dump(path: Path, record: Dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    if _detect_format(path) == "yaml":
        path.write_text(yaml.safe_dump(record, sort_keys=False), encoding="utf-8")
    else:
        path.write_text(json.dumps(record, indent=2, sort_keys=True) + "\n", encoding="utf-8")


def write_diagnostic_record(
    record: Dict[str, Any],
    path: str = DEFAULT_DIAGNOSTICS_PATH,
) -> WrittenRecord:
    """Persist the record, falling back to the temp dir if path is unwritable."""

    requested = Path(path)
    try:
        _dump(requested, record)
        return WrittenRecord(path=str(requested), requested_path=path)
    except OSError as e:
        fallback = Path(tempfile.gettempdir()) / (requested.name or "arch-installer-failure.json")
        logger.warning("Cannot write %s (%s); using %s", path, e, str(fallback))
        _dump(fallback, record)
        return WrittenRecord(path=str(fallback), requested_path=path)
