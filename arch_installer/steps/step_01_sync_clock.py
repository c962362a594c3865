from __future__ import annotations

import logging

from ..lib.command import run_cmd
from ..pipeline import StepContext

logger = logging.getLogger(__name__)


class SyncClockStep:
    step_id = "01_sync_clock"
    name = "Synchronize system clock"

    def run(self, ctx: StepContext) -> None:
        run_cmd(["timedatectl", "set-ntp", "true"], dry_run=ctx.dry_run)
