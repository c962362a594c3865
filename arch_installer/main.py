from __future__ import annotations

import argparse
import logging
from typing import List, Optional, Sequence

from .cleanup import CleanupReport, cleanup
from .config import InstallConfig, resolve_install_config
from .diagnostics import DEFAULT_DIAGNOSTICS_PATH, build_record, collect_snapshot, write_diagnostic_record
from .errors import PreconditionError
from .lib.net import DEFAULT_PROBE_HOST
from .logging_utils import DEFAULT_LOG_PATH, configure_logging
from .pipeline import Step, StepContext, run_pipeline, step_table, validate_start
from .preflight import run_preflight, select_disk
from .run_state import RunState
from .steps import (
    ConfigureSystemStep,
    CreateUserStep,
    FormatPartitionsStep,
    GenerateFstabStep,
    InstallBaseStep,
    InstallBootloaderStep,
    MountFilesystemsStep,
    PartitionDiskStep,
    SyncClockStep,
    UpdateMirrorsStep,
)

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_PRECONDITION = 2


def build_steps() -> List[Step]:
    return [
        SyncClockStep(),
        UpdateMirrorsStep(),
        PartitionDiskStep(),
        FormatPartitionsStep(),
        MountFilesystemsStep(),
        InstallBaseStep(),
        GenerateFstabStep(),
        ConfigureSystemStep(),
        InstallBootloaderStep(),
        CreateUserStep(),
    ]


def step_catalog(steps: Sequence[Step]) -> str:
    lines = ["Steps:"]
    for ordinal, step in step_table(steps):
        checked = " (verified)" if hasattr(step, "verify") else ""
        lines.append(f"  {ordinal:>2}. {step.name}{checked}")
    return "\n".join(lines)


def execute(
    *,
    steps: Sequence[Step],
    ctx: StepContext,
    start: int = 1,
    diagnostics_path: str = DEFAULT_DIAGNOSTICS_PATH,
) -> int:
    """Run the pipeline and turn its outcome into a process exit code.

    On failure: clean up held resources, persist a diagnostic record and
    return the failing tool's exit code.
    """

    result = run_pipeline(steps=steps, ctx=ctx, start=start)
    target_root = ctx.config.target_root

    failure = result.failure
    if failure is None:
        print(f"Installation complete ({len(result.ran_steps)} steps run).")
        print(f"Unmount with 'umount -R {target_root}' and 'swapoff -a', then reboot.")
        return EXIT_OK

    report = cleanup(ctx.run_state, dry_run=ctx.dry_run)
    record = build_record(
        ordinal=failure.ordinal,
        name=failure.name,
        kind=failure.kind,
        exit_code=failure.exit_code,
        error=failure.reason,
        cleanup=report.as_dict(),
        config=ctx.config.redacted(),
        snapshot=collect_snapshot(target_root),
    )

    print(f"Step {failure.ordinal} ({failure.name}) failed: {failure.reason}")
    for o in report.failed:
        print(f"  could not release {o.kind} {o.ident}: {o.error}")

    try:
        written = write_diagnostic_record(record, diagnostics_path)
    except OSError as e:
        logger.error("Diagnostic record could not be written anywhere: %s", e)
        print(f"Diagnostic record could not be written: {e}")
    else:
        if written.fell_back:
            print(f"{written.requested_path} is not writable; diagnostics written to the temp dir instead.")
        print(f"Diagnostics: {written.path}")

    print(f"Fix the problem and resume with --start-step {resume_step(failure.ordinal, report)}.")
    return failure.exit_code


def resume_step(failed_ordinal: int, report: CleanupReport) -> int:
    """Earliest step that has to run again after cleanup.

    Cleanup unmounts the target and turns swap off, so a resume must go back
    to the step that set those up; later steps assume they are in place.
    """

    resume = failed_ordinal
    for o in report.outcomes:
        if o.ok and o.kind in ("mount", "swap") and o.acquired_by is not None:
            resume = min(resume, o.acquired_by)
    return resume


def run(
    *,
    config: InstallConfig,
    steps: Optional[Sequence[Step]] = None,
    start: int = 1,
    diagnostics_path: str = DEFAULT_DIAGNOSTICS_PATH,
    dry_run: bool = False,
) -> int:
    steps = build_steps() if steps is None else list(steps)
    validate_start(start, len(steps))
    ctx = StepContext(config=config, run_state=RunState(total_steps=len(steps)), dry_run=dry_run)
    return execute(steps=steps, ctx=ctx, start=start, diagnostics_path=diagnostics_path)


def build_parser(steps: Sequence[Step]) -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="arch-installer",
        description="Install Arch Linux onto a disk, one verified step at a time.",
        epilog=step_catalog(steps),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    p.add_argument("--start-step", type=int, default=1, help=f"Resume at step 1..{len(steps)} (default 1)")
    p.add_argument("--list-steps", action="store_true", help="Print the step catalog and exit")
    p.add_argument("--config", default=None, help="YAML file with install settings")
    p.add_argument("--disk", default=None, help="Target disk, e.g. /dev/sda (prompted if missing)")
    p.add_argument("--hostname", default=None)
    p.add_argument("--timezone", default=None, help="e.g. Asia/Shanghai")
    p.add_argument("--locale", default=None, help="e.g. en_US.UTF-8")
    p.add_argument("--keymap", default=None)
    p.add_argument("--username", default=None)
    p.add_argument("--target-root", default=None, help="Mount point for the new system (default /mnt)")
    p.add_argument("--log", default=DEFAULT_LOG_PATH, help="Path to installer log")
    p.add_argument("--diagnostics", default=DEFAULT_DIAGNOSTICS_PATH, help="Where to write the failure record")
    p.add_argument("--probe-host", default=DEFAULT_PROBE_HOST, help="Host pinged to check connectivity")
    p.add_argument("--dry-run", action="store_true", help="Log commands without executing them")
    p.add_argument("--yes", action="store_true", help="Do not ask before wiping the disk")
    return p


def main(argv: Optional[List[str]] = None) -> int:
    steps = build_steps()
    args = build_parser(steps).parse_args(argv)

    if args.list_steps:
        print(step_catalog(steps))
        return EXIT_OK

    configure_logging(log_path=args.log)

    try:
        validate_start(args.start_step, len(steps))
        config = resolve_install_config(
            config_path=args.config,
            overrides={
                "disk": args.disk,
                "hostname": args.hostname,
                "timezone": args.timezone,
                "locale": args.locale,
                "keymap": args.keymap,
                "username": args.username,
                "target_root": args.target_root,
            },
            select_disk=select_disk,
        )
        if not args.dry_run:
            run_preflight(config.disk, assume_yes=args.yes, probe_host=args.probe_host)
    except PreconditionError as e:
        logger.error("Precondition failed: %s", e)
        print(f"Error: {e}")
        return EXIT_PRECONDITION

    return run(
        config=config,
        steps=steps,
        start=args.start_step,
        diagnostics_path=args.diagnostics,
        dry_run=args.dry_run,
    )


if __name__ == "__main__":
    raise SystemExit(main())
