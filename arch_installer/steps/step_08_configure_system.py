from __future__ import annotations

import logging
import shlex
from pathlib import Path

from ..config import InstallConfig
from ..lib.chroot import run_in_target
from ..pipeline import StepContext
from ..verify import all_of, file_contains

logger = logging.getLogger(__name__)

MKINITCPIO_HOOKS = "base udev autodetect modconf block keyboard keymap consolefont filesystems fsck"
# Disk controller drivers the initramfs must carry regardless of autodetect.
MKINITCPIO_MODULES = "ahci sd_mod"


def render_hosts(hostname: str) -> str:
    return "\n".join(
        [
            "127.0.0.1   localhost",
            "::1         localhost",
            f"127.0.1.1   {hostname}.localdomain   {hostname}",
            "",
        ]
    )


def render_configure_script(cfg: InstallConfig) -> str:
    """Timezone, locale, console, network identity and initramfs.

    Ends with chpasswd reading ``root:<password>`` from stdin.
    """

    q = shlex.quote
    locale_re = cfg.locale.replace(".", r"\.")
    return "\n".join(
        [
            f"ln -sf {q('/usr/share/zoneinfo/' + cfg.timezone)} /etc/localtime",
            "hwclock --systohc",
            f"sed -i {q(f's/^#{locale_re}/{cfg.locale}/')} /etc/locale.gen",
            "locale-gen",
            f"echo {q('LANG=' + cfg.locale)} > /etc/locale.conf",
            f"echo {q('KEYMAP=' + cfg.keymap)} > /etc/vconsole.conf",
            f"echo {q(cfg.hostname)} > /etc/hostname",
            f"printf '%s' {q(render_hosts(cfg.hostname))} > /etc/hosts",
            "systemctl enable NetworkManager systemd-modules-load systemd-udevd",
            f"sed -i {q(f's/^MODULES=.*/MODULES=({MKINITCPIO_MODULES})/')} /etc/mkinitcpio.conf",
            f"sed -i {q(f's/^HOOKS=.*/HOOKS=({MKINITCPIO_HOOKS})/')} /etc/mkinitcpio.conf",
            "mkinitcpio -P",
            "chpasswd",
        ]
    )


class ConfigureSystemStep:
    step_id = "08_configure_system"
    name = "Configure timezone, locale, hostname and initramfs"

    def run(self, ctx: StepContext) -> None:
        cfg = ctx.config
        run_in_target(
            cfg.target_root,
            render_configure_script(cfg),
            run_state=ctx.run_state,
            label=self.step_id,
            stdin=f"root:{cfg.root_password}\n",
            dry_run=ctx.dry_run,
        )
        logger.info("Configured hostname=%s timezone=%s locale=%s", cfg.hostname, cfg.timezone, cfg.locale)

    def verify(self, ctx: StepContext) -> bool:
        etc = Path(ctx.config.target_root) / "etc"
        return all_of(
            file_contains(str(etc / "hostname"), ctx.config.hostname),
            file_contains(str(etc / "locale.conf"), f"LANG={ctx.config.locale}"),
        )()
