from __future__ import annotations

import logging

from ..lib.pkg import pacstrap
from ..pipeline import StepContext
from ..verify import packages_installed

logger = logging.getLogger(__name__)


class InstallBaseStep:
    step_id = "06_install_base"
    name = "Install base system"

    def run(self, ctx: StepContext) -> None:
        pacstrap(ctx.config.target_root, ctx.config.base_packages, dry_run=ctx.dry_run)

    def verify(self, ctx: StepContext) -> bool:
        return packages_installed(ctx.config.target_root, ctx.config.base_packages)()
