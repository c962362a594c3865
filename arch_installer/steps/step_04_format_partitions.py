from __future__ import annotations

import logging

from ..lib.storage import format_partitions, plan_from_config, plan_layout
from ..pipeline import StepContext
from ..verify import all_of, filesystem_is

logger = logging.getLogger(__name__)


class FormatPartitionsStep:
    step_id = "04_format_partitions"
    name = "Format partitions"

    def run(self, ctx: StepContext) -> None:
        layout = plan_layout(plan_from_config(ctx.config))
        format_partitions(layout, dry_run=ctx.dry_run)

    def verify(self, ctx: StepContext) -> bool:
        # mkfs can succeed against the wrong device node; check what landed.
        layout = plan_layout(plan_from_config(ctx.config))
        checks = [filesystem_is(layout.swap_part, "swap"), filesystem_is(layout.root_part, "ext4")]
        if layout.esp_part:
            checks.insert(0, filesystem_is(layout.esp_part, "vfat"))
        return all_of(*checks)()
