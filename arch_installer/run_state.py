from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)

RESOURCE_KINDS = ("mount", "swap", "tempfile")


class StepState(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    VERIFYING = "verifying"
    DONE = "done"
    FAILED = "failed"


@dataclass
class HeldResource:
    kind: str
    ident: str
    acquired_by: Optional[int] = None
    held: bool = True


@dataclass
class RunState:
    """Mutable bookkeeping for a single run.

    ``resources`` is the undo ledger consulted by cleanup: resource identifier
    (mount point, swap device, temp file path) -> HeldResource. Dict order is
    acquisition order.
    """

    total_steps: int
    current_step: int = 0
    step_states: Dict[int, StepState] = field(default_factory=dict)
    resources: Dict[str, HeldResource] = field(default_factory=dict)

    def advance_to(self, ordinal: int) -> None:
        if ordinal <= self.current_step:
            raise ValueError(
                f"current_step only moves forward (at {self.current_step}, asked for {ordinal})"
            )
        if ordinal > self.total_steps:
            raise ValueError(f"step {ordinal} is beyond the last step {self.total_steps}")
        self.current_step = ordinal

    def set_step_state(self, ordinal: int, state: StepState) -> None:
        self.step_states[ordinal] = state
        logger.debug("Step %s -> %s", ordinal, state.value)

    def acquire(self, kind: str, ident: str) -> HeldResource:
        if kind not in RESOURCE_KINDS:
            raise ValueError(f"Unknown resource kind: {kind}")
        # Re-acquiring moves the resource to the end so release order follows
        # the latest acquisition.
        self.resources.pop(ident, None)
        res = HeldResource(kind=kind, ident=ident, acquired_by=self.current_step or None)
        self.resources[ident] = res
        logger.debug("Holding %s %s", kind, ident)
        return res

    def release(self, ident: str) -> None:
        res = self.resources.get(ident)
        if res is not None:
            res.held = False
            logger.debug("Released %s %s", res.kind, ident)

    def is_held(self, ident: str) -> bool:
        res = self.resources.get(ident)
        return bool(res and res.held)

    def held_resources(self, kind: Optional[str] = None) -> List[HeldResource]:
        return [r for r in self.resources.values() if r.held and (kind is None or r.kind == kind)]
