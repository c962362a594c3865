from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from ..run_state import RunState
from .command import run_cmd

logger = logging.getLogger(__name__)

SCRIPT_HEADER = "set -euo pipefail\n"


def run_in_target(
    target_root: str,
    script: str,
    *,
    run_state: RunState,
    label: str = "step",
    stdin: Optional[str] = None,
    dry_run: bool = False,
) -> None:
    """Execute a bash script as if running inside the installed system.

    The body is all-or-nothing: any failing line fails the whole call, and
    no partial progress is reported. Secrets go through stdin so they never
    land in the script file, which is tracked in the run's ledger while it
    exists inside the target.
    """

    rel = f"root/arch-installer-{label}.sh"
    host_path = Path(target_root) / rel
    body = SCRIPT_HEADER + script.strip() + "\n"

    if dry_run:
        logger.info("Would run in %s:\n%s", target_root, body)
        run_cmd(["arch-chroot", target_root, "/bin/bash", f"/{rel}"], dry_run=True)
        return

    host_path.parent.mkdir(parents=True, exist_ok=True)
    host_path.write_text(body, encoding="utf-8")
    run_state.acquire("tempfile", str(host_path))
    try:
        run_cmd(["arch-chroot", target_root, "/bin/bash", f"/{rel}"], input_text=stdin)
    finally:
        try:
            host_path.unlink(missing_ok=True)
            run_state.release(str(host_path))
        except OSError as e:
            logger.warning("Could not remove %s (%s); left for cleanup", str(host_path), e)
