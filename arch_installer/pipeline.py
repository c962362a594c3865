from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Protocol, Sequence, Tuple

from .config import InstallConfig
from .errors import CommandError, ConfigurationError
from .run_state import RunState, StepState
from .verify import verify

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StepContext:
    config: InstallConfig
    run_state: RunState
    dry_run: bool = False


class Step(Protocol):
    """A single forward-only installation step.

    A step may also define ``verify(ctx) -> bool``, a read-only check of the
    action's postcondition.
    """

    name: str

    def run(self, ctx: StepContext) -> None:
        ...


@dataclass(frozen=True)
class FunctionStep:
    """Step built from plain callables."""

    name: str
    action: Callable[[StepContext], None]
    check: Optional[Callable[[StepContext], bool]] = None

    def run(self, ctx: StepContext) -> None:
        self.action(ctx)

    def verify(self, ctx: StepContext) -> bool:
        if self.check is None:
            return True
        return self.check(ctx)


@dataclass(frozen=True)
class StepFailure:
    ordinal: int
    name: str
    reason: str
    exit_code: int = 1
    kind: str = "action"  # action|verification


@dataclass(frozen=True)
class PipelineResult:
    ran_steps: List[int] = field(default_factory=list)
    failure: Optional[StepFailure] = None

    @property
    def completed(self) -> bool:
        return self.failure is None


def step_table(steps: Sequence[Step]) -> Tuple[Tuple[int, Step], ...]:
    """Freeze the steps into (ordinal, step) pairs, ordinals starting at 1."""

    table = tuple((i, s) for i, s in enumerate(steps, start=1))
    names = [s.name for _, s in table]
    dupes = sorted({n for n in names if names.count(n) > 1})
    if dupes:
        raise ConfigurationError(f"Duplicate step names: {', '.join(dupes)}")
    return table


def validate_start(start: int, total: int) -> None:
    if total == 0:
        raise ConfigurationError("No steps to run")
    if not isinstance(start, int) or isinstance(start, bool) or not 1 <= start <= total:
        raise ConfigurationError(f"Start step must be between 1 and {total}, got {start!r}")


def _exit_code_for(exc: BaseException) -> int:
    if not isinstance(exc, CommandError) or not exc.returncode:
        return 1
    # Killed by a signal: report it the way a shell would.
    if exc.returncode < 0:
        return 128 + -exc.returncode
    return exc.returncode


def run_pipeline(
    *,
    steps: Sequence[Step],
    ctx: StepContext,
    start: int = 1,
) -> PipelineResult:
    """Run steps start..N in order, stopping at the first failure.

    Raises ConfigurationError (before running anything) for an out-of-range
    start; every other error is captured at the step boundary and returned
    as PipelineResult.failure.
    """

    table = step_table(steps)
    validate_start(start, len(table))

    run_state = ctx.run_state
    ran: List[int] = []

    for ordinal in range(start, len(table) + 1):
        run_state.set_step_state(ordinal, StepState.PENDING)

    for ordinal, step in table[start - 1:]:
        run_state.advance_to(ordinal)
        run_state.set_step_state(ordinal, StepState.RUNNING)
        logger.info("Running step %s/%s: %s", ordinal, len(table), step.name)
        ran.append(ordinal)

        try:
            step.run(ctx)
        except Exception as e:
            logger.error("Step %s (%s) failed: %s", ordinal, step.name, e)
            run_state.set_step_state(ordinal, StepState.FAILED)
            return PipelineResult(
                ran_steps=ran,
                failure=StepFailure(
                    ordinal=ordinal,
                    name=step.name,
                    reason=str(e) or type(e).__name__,
                    exit_code=_exit_code_for(e),
                    kind="action",
                ),
            )

        run_state.set_step_state(ordinal, StepState.VERIFYING)
        check = getattr(step, "verify", None)
        if check is not None and ctx.dry_run:
            logger.info("Would verify step %s (%s)", ordinal, step.name)
        elif check is not None and not verify(lambda: check(ctx)):
            run_state.set_step_state(ordinal, StepState.FAILED)
            return PipelineResult(
                ran_steps=ran,
                failure=StepFailure(
                    ordinal=ordinal,
                    name=step.name,
                    reason=f"Verification failed after {step.name}",
                    exit_code=1,
                    kind="verification",
                ),
            )

        run_state.set_step_state(ordinal, StepState.DONE)
        logger.info("Step %s (%s) done", ordinal, step.name)

    return PipelineResult(ran_steps=ran)
