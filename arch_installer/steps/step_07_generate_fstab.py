from __future__ import annotations

import logging
from pathlib import Path

from ..lib.block import get_uuid
from ..lib.command import run_cmd
from ..lib.storage import plan_from_config, plan_layout
from ..pipeline import StepContext
from ..verify import file_contains

logger = logging.getLogger(__name__)


class GenerateFstabStep:
    step_id = "07_generate_fstab"
    name = "Generate fstab"

    def run(self, ctx: StepContext) -> None:
        target_root = ctx.config.target_root
        r = run_cmd(["genfstab", "-U", target_root], dry_run=ctx.dry_run)

        fstab_path = Path(target_root) / "etc/fstab"
        if ctx.dry_run:
            logger.info("Would append to %s", str(fstab_path))
            return
        fstab_path.parent.mkdir(parents=True, exist_ok=True)
        with fstab_path.open("a", encoding="utf-8") as fh:
            fh.write(r.stdout)
        logger.info("Wrote fstab (%d lines)", len(r.stdout.splitlines()))

    def verify(self, ctx: StepContext) -> bool:
        layout = plan_layout(plan_from_config(ctx.config))
        root_uuid = get_uuid(layout.root_part)
        return file_contains(str(Path(ctx.config.target_root) / "etc/fstab"), f"UUID={root_uuid}")()
