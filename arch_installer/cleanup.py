from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from .lib.command import run_cmd
from .run_state import HeldResource, RunState

logger = logging.getLogger(__name__)

# Mounts first (nested mounts come off before their parents), then swap,
# then temp files.
RELEASE_ORDER = ("mount", "swap", "tempfile")


@dataclass(frozen=True)
class ReleaseOutcome:
    kind: str
    ident: str
    ok: bool
    error: Optional[str] = None
    acquired_by: Optional[int] = None


@dataclass
class CleanupReport:
    outcomes: List[ReleaseOutcome] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return all(o.ok for o in self.outcomes)

    @property
    def failed(self) -> List[ReleaseOutcome]:
        return [o for o in self.outcomes if not o.ok]

    def as_dict(self) -> List[Dict[str, Any]]:
        return [
            {"kind": o.kind, "resource": o.ident, "released": o.ok, "error": o.error}
            for o in self.outcomes
        ]


def release_order(run_state: RunState) -> List[HeldResource]:
    """Held resources, each kind in reverse acquisition order."""

    ordered: List[HeldResource] = []
    for kind in RELEASE_ORDER:
        ordered.extend(reversed(run_state.held_resources(kind)))
    return ordered


def _release(res: HeldResource, *, dry_run: bool) -> None:
    if res.kind == "mount":
        run_cmd(["umount", res.ident], dry_run=dry_run)
    elif res.kind == "swap":
        run_cmd(["swapoff", res.ident], dry_run=dry_run)
    elif res.kind == "tempfile":
        if not dry_run:
            Path(res.ident).unlink(missing_ok=True)
    else:
        raise ValueError(f"Unknown resource kind: {res.kind}")


def cleanup(run_state: RunState, *, dry_run: bool = False) -> CleanupReport:
    """Best-effort release of everything the ledger says is held.

    Never raises: a failed release is recorded in the report so it cannot
    mask the failure that triggered cleanup.
    """

    report = CleanupReport()
    for res in release_order(run_state):
        try:
            _release(res, dry_run=dry_run)
        except Exception as e:
            logger.warning("Cleanup: could not release %s %s: %s", res.kind, res.ident, e)
            report.outcomes.append(
                ReleaseOutcome(kind=res.kind, ident=res.ident, ok=False, error=str(e), acquired_by=res.acquired_by)
            )
            continue
        run_state.release(res.ident)
        logger.info("Cleanup: released %s %s", res.kind, res.ident)
        report.outcomes.append(ReleaseOutcome(kind=res.kind, ident=res.ident, ok=True, acquired_by=res.acquired_by))

    if not report.outcomes:
        logger.info("Cleanup: nothing held")
    return report
