from __future__ import annotations

import logging
import shlex
from pathlib import Path

from ..lib.chroot import run_in_target
from ..pipeline import StepContext
from ..verify import file_contains

logger = logging.getLogger(__name__)


def render_user_script(username: str) -> str:
    """Create the wheel user if missing and allow wheel to sudo.

    Ends with chpasswd reading ``<user>:<password>`` from stdin.
    """

    u = shlex.quote(username)
    return "\n".join(
        [
            f"id -u {u} >/dev/null 2>&1 || useradd -m -G wheel -s /bin/bash {u}",
            "echo '%wheel ALL=(ALL:ALL) ALL' > /etc/sudoers.d/wheel",
            "chmod 440 /etc/sudoers.d/wheel",
            "chpasswd",
        ]
    )


class CreateUserStep:
    step_id = "10_create_user"
    name = "Create user and sudo access"

    def run(self, ctx: StepContext) -> None:
        cfg = ctx.config
        run_in_target(
            cfg.target_root,
            render_user_script(cfg.username),
            run_state=ctx.run_state,
            label=self.step_id,
            stdin=f"{cfg.username}:{cfg.user_password}\n",
            dry_run=ctx.dry_run,
        )
        logger.info("Created user %s", cfg.username)

    def verify(self, ctx: StepContext) -> bool:
        passwd = Path(ctx.config.target_root) / "etc/passwd"
        return file_contains(str(passwd), f"\n{ctx.config.username}:")()
