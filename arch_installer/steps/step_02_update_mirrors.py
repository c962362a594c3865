from __future__ import annotations

import logging

from ..lib.env import PATHS
from ..lib.pkg import refresh_keyring, update_mirrorlist
from ..pipeline import StepContext
from ..verify import file_exists

logger = logging.getLogger(__name__)


class UpdateMirrorsStep:
    step_id = "02_update_mirrors"
    name = "Refresh keyring and mirrorlist"

    def run(self, ctx: StepContext) -> None:
        refresh_keyring(dry_run=ctx.dry_run)
        ranked = update_mirrorlist(country=ctx.config.mirror_country, dry_run=ctx.dry_run)
        logger.info("Mirrorlist %s", "ranked by reflector" if ranked else "left as shipped")

    def verify(self, ctx: StepContext) -> bool:
        return file_exists(PATHS.mirrorlist)()
