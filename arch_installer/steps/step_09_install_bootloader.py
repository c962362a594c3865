from __future__ import annotations

import logging

from ..lib.bootloader import expected_boot_files, render_grub_script
from ..lib.chroot import run_in_target
from ..pipeline import StepContext
from ..verify import all_of, file_exists

logger = logging.getLogger(__name__)


class InstallBootloaderStep:
    step_id = "09_install_bootloader"
    name = "Install bootloader"

    def run(self, ctx: StepContext) -> None:
        cfg = ctx.config
        script = render_grub_script(boot_mode=cfg.boot_mode, disk=cfg.disk, kernel_cmdline=cfg.kernel_cmdline)
        run_in_target(cfg.target_root, script, run_state=ctx.run_state, label=self.step_id, dry_run=ctx.dry_run)
        logger.info("Bootloader configured (boot_mode=%s)", cfg.boot_mode)

    def verify(self, ctx: StepContext) -> bool:
        files = expected_boot_files(ctx.config.target_root, ctx.config.boot_mode)
        return all_of(*(file_exists(f) for f in files))()
