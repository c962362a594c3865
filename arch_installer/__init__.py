"""Arch Linux installer (step-ordered, verified, resumable).

Core design goals:
- Steps run forward-only, each exactly once per run
- Resume from any step ordinal
- Independent postcondition checks for correctness-sensitive steps
- Best-effort rollback of held mounts/swap/temp files on failure
- Diagnostic record persisted on failure
"""

__all__ = []
