from __future__ import annotations

from typing import Sequence


class InstallerError(RuntimeError):
    """Base class for installer errors."""


class CommandError(InstallerError):
    """An external command exited non-zero."""

    def __init__(self, argv: Sequence[str], returncode: int, stderr: str = "") -> None:
        self.argv = list(argv)
        self.returncode = returncode
        self.stderr = stderr
        detail = f"\n{stderr.strip()}" if stderr and stderr.strip() else ""
        super().__init__(f"Command failed ({returncode}): {' '.join(self.argv)}{detail}")


class PreconditionError(InstallerError):
    """Raised before any step runs; nothing to clean up."""


class ConfigurationError(PreconditionError):
    pass
