from __future__ import annotations

import logging
from pathlib import Path

from ..lib.storage import mount_filesystems, plan_from_config, plan_layout
from ..pipeline import StepContext
from ..verify import all_of, is_mounted, swap_active

logger = logging.getLogger(__name__)


class MountFilesystemsStep:
    step_id = "05_mount_filesystems"
    name = "Mount filesystems and enable swap"

    def run(self, ctx: StepContext) -> None:
        layout = plan_layout(plan_from_config(ctx.config))
        mount_filesystems(layout, ctx.config.target_root, run_state=ctx.run_state, dry_run=ctx.dry_run)
        logger.info("Mounted target_root=%s", ctx.config.target_root)

    def verify(self, ctx: StepContext) -> bool:
        root = ctx.config.target_root
        layout = plan_layout(plan_from_config(ctx.config))
        checks = [is_mounted(root)]
        if layout.esp_part:
            checks.append(is_mounted(str(Path(root) / "boot")))
        checks.append(swap_active(layout.swap_part))
        return all_of(*checks)()
