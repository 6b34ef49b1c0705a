from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional, Sequence

from .command import CmdResult, run_cmd

logger = logging.getLogger(__name__)


def chroot_cmd(
    target_root: str,
    argv: Sequence[str],
    *,
    check: bool = True,
    input_text: Optional[str] = None,
    capture: bool = True,
    dry_run: bool = False,
) -> CmdResult:
    """Run a command inside target root.

    arch-chroot sets up /dev, /proc, /sys and resolv.conf itself.
    """

    return run_cmd(
        ["arch-chroot", target_root, *argv],
        check=check,
        input_text=input_text,
        capture=capture,
        dry_run=dry_run,
    )


def target_file(target_root: str, rel: str) -> Path:
    return Path(target_root) / rel.lstrip("/")


def read_target_file(target_root: str, rel: str) -> str:
    """Return file contents, or "" when it does not exist (yet)."""

    p = target_file(target_root, rel)
    if not p.exists():
        return ""
    return p.read_text(encoding="utf-8")


def write_target_file(
    target_root: str,
    rel: str,
    contents: str,
    *,
    mode: Optional[int] = None,
    dry_run: bool = False,
) -> Path:
    p = target_file(target_root, rel)
    if dry_run:
        logger.info("Would write %s", str(p))
        return p
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(contents, encoding="utf-8")
    if mode is not None:
        os.chmod(p, mode)
    logger.info("Wrote %s", str(p))
    return p
