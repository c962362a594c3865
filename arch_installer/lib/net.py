from __future__ import annotations

import logging

from .command import run_cmd

logger = logging.getLogger(__name__)

DEFAULT_PROBE_HOST = "archlinux.org"


def is_online(host: str = DEFAULT_PROBE_HOST, *, timeout_s: float = 5.0, dry_run: bool = False) -> bool:
    """Best-effort online check, bounded by timeout_s."""

    r = run_cmd(
        ["ping", "-c", "1", "-W", "2", host],
        check=False,
        timeout=timeout_s,
        dry_run=dry_run,
    )
    if not r.ok:
        logger.warning("Cannot reach %s (rc=%s)", host, r.returncode)
    return r.ok
