from __future__ import annotations

import logging

from ..lib.storage import partition_disk, plan_from_config
from ..pipeline import StepContext
from ..verify import partition_count_at_least

logger = logging.getLogger(__name__)


class PartitionDiskStep:
    step_id = "03_partition_disk"
    name = "Partition target disk"

    def run(self, ctx: StepContext) -> None:
        layout = partition_disk(plan_from_config(ctx.config), dry_run=ctx.dry_run)
        logger.info("Partition layout: %s", layout)

    def verify(self, ctx: StepContext) -> bool:
        return partition_count_at_least(ctx.config.disk, 3)()
