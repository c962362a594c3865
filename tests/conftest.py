# tests/conftest.py
from typing import Callable, List, Optional

import pytest

from arch_installer.config import InstallConfig
from arch_installer.pipeline import FunctionStep, StepContext
from arch_installer.run_state import RunState


@pytest.fixture
def install_config(tmp_path) -> InstallConfig:
    """Config pointing the target root at a temp dir."""
    return InstallConfig(
        disk="/dev/sdz",
        boot_mode="uefi",
        hostname="testhost",
        timezone="Asia/Shanghai",
        locale="en_US.UTF-8",
        keymap="us",
        root_password="rootpw",
        username="tester",
        user_password="userpw",
        target_root=str(tmp_path / "target"),
    )


@pytest.fixture
def make_ctx(install_config) -> Callable[..., StepContext]:
    def _make(total_steps: int, dry_run: bool = False) -> StepContext:
        return StepContext(config=install_config, run_state=RunState(total_steps=total_steps), dry_run=dry_run)

    return _make


class StepRecorder:
    """Builds fake steps that log their invocations in order."""

    def __init__(self) -> None:
        self.calls: List[int] = []
        self.verify_calls: List[int] = []

    def steps(
        self,
        n: int,
        *,
        fail_at: Optional[int] = None,
        fail_with: Optional[BaseException] = None,
        bad_verify_at: Optional[int] = None,
        acquire: bool = False,
    ) -> List[FunctionStep]:
        out = []
        for i in range(1, n + 1):
            out.append(
                FunctionStep(
                    name=f"step-{i}",
                    action=self._action(i, fail_at, fail_with, acquire),
                    check=self._check(i, bad_verify_at),
                )
            )
        return out

    def _action(self, i, fail_at, fail_with, acquire):
        def action(ctx: StepContext) -> None:
            self.calls.append(i)
            if i == fail_at:
                raise fail_with or RuntimeError(f"step {i} broke")
            if acquire:
                ctx.run_state.acquire("mount", f"/mnt/step{i}")

        return action

    def _check(self, i, bad_verify_at):
        def check(ctx: StepContext) -> bool:
            self.verify_calls.append(i)
            return i != bad_verify_at

        return check


@pytest.fixture
def recorder() -> StepRecorder:
    return StepRecorder()


@pytest.fixture
def fake_run_cmd():
    """Stand-in for run_cmd that records argv and returns canned results."""
    from arch_installer.lib.command import CmdResult

    class FakeRunCmd:
        def __init__(self) -> None:
            self.calls: List[List[str]] = []
            self.outputs = {}
            self.failures = {}

        def __call__(self, argv, *, check=True, dry_run=False, **kwargs):
            argv = list(argv)
            self.calls.append(argv)
            key = tuple(argv)
            rc = self.failures.get(key, 0)
            if rc and check:
                from arch_installer.errors import CommandError

                raise CommandError(argv, rc, "boom")
            return CmdResult(argv=argv, returncode=rc, stdout=self.outputs.get(key, ""), stderr="")

    return FakeRunCmd()
