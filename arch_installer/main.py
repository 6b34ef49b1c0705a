from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from .install_config import load_install_config
from .lib.command import CommandError
from .lib.env import PATHS
from .lib.prompt import UserAbort
from .lib.teardown import teardown_target
from .logging_utils import DEFAULT_LOG_PATH, configure_logging
from .pipeline import run_pipeline, select_steps
from .state_store import ensure_defaults, load_state, save_state, unmark_steps
from .steps import (
    BootloaderStep,
    CleanupPreviousStep,
    ConfigureSystemStep,
    DetectHardwareStep,
    EncryptStep,
    FinalizeStep,
    FormatSubvolumesStep,
    GatherConfigStep,
    InitramfsStep,
    MountStep,
    PacstrapStep,
    PartitionStep,
    PostInstallChecksStep,
    PreflightStep,
    ServicesStep,
    SnapperStep,
    UsersStep,
)
from .steps.step_20_cleanup_previous import MAPPING_NAMES

logger = logging.getLogger(__name__)


DEFAULT_STATE_PATH = PATHS.state_default


def build_steps():
    return [
        PreflightStep(),
        DetectHardwareStep(),
        GatherConfigStep(),
        CleanupPreviousStep(),
        PartitionStep(),
        EncryptStep(),
        FormatSubvolumesStep(),
        MountStep(),
        PacstrapStep(),
        ConfigureSystemStep(),
        UsersStep(),
        InitramfsStep(),
        BootloaderStep(),
        ServicesStep(),
        SnapperStep(),
        PostInstallChecksStep(),
        FinalizeStep(),
    ]


# Steps whose results live in mounts and open mappings; a failure teardown undoes them.
LIVE_STEPS = ("20_cleanup_previous", "40_mount")


def dry_run_state_path(state_path: str) -> str:
    """Dry runs keep their own state so a real run never inherits fake results."""

    p = Path(state_path)
    return str(p.with_name(f"{p.stem}.dry-run{p.suffix}"))


def _cleanup_after_failure(state: Dict[str, Any]) -> None:
    cfg = state.get("config") or {}
    if not cfg.get("cleanup_on_failure", True) or cfg.get("dry_run"):
        return
    target_root = str(cfg.get("target_root") or PATHS.target_root)
    logger.warning("Tearing down %s after failure", target_root)
    teardown_target(target_root, MAPPING_NAMES)

    undone = [s.step_id for s in select_steps(build_steps(), *LIVE_STEPS)]
    unmark_steps(state, undone)
    exe = state.setdefault("execution", {})
    exe["mappings"] = {}
    exe["mounts"] = {}
    logger.info("Steps %s will run again on resume", ", ".join(undone))


def run(
    *,
    state_path: str = DEFAULT_STATE_PATH,
    log_path: str = DEFAULT_LOG_PATH,
    config_path: Optional[str] = None,
    overrides: Optional[Dict[str, Any]] = None,
    start_at: Optional[str] = None,
    stop_after: Optional[str] = None,
    force: bool = False,
) -> Dict[str, Any]:
    """Run the installer pipeline, persisting state for resume.

    Values from config_path replace those in a resumed state; overrides (CLI
    flags) replace both. Defaults fill whatever is left. A dry run starts from
    empty state and saves to dry_run_state_path(state_path).
    """

    actual_log_path = configure_logging(log_path=log_path)

    requested: Dict[str, Any] = {}
    if config_path:
        requested.update(load_install_config(config_path).raw)
    requested.update(overrides or {})
    dry_run = bool(requested.get("dry_run", False))

    if dry_run:
        state_path = dry_run_state_path(state_path)
        state: Dict[str, Any] = {}
        logger.info("Dry run: commands are logged, not executed (state: %s)", state_path)
    else:
        state = load_state(state_path)

    cfg = state.setdefault("config", {})
    cfg.update(requested)
    cfg["dry_run"] = dry_run
    state = ensure_defaults(state)

    paths = state["execution"].setdefault("paths", {})
    paths["log_path_requested"] = log_path
    paths["log_path_actual"] = actual_log_path
    paths["state_path"] = state_path

    def checkpoint(s: Dict[str, Any]) -> None:
        save_state(state_path, s)

    try:
        result = run_pipeline(
            state=state,
            steps=build_steps(),
            start_at=start_at,
            stop_after=stop_after,
            force=force,
            checkpoint=checkpoint,
        )
        state = result.state
        summary = state.setdefault("execution", {}).setdefault("summary", {})
        summary["ran_steps"] = result.ran_steps
        summary["skipped_steps"] = result.skipped_steps
        return state
    except Exception as e:
        logger.exception("Installer failed")
        state.setdefault("execution", {}).setdefault("errors", []).append(
            {
                "step": (state.get("execution") or {}).get("current_step"),
                "error": str(e),
            }
        )
        _cleanup_after_failure(state)
        raise
    finally:
        save_state(state_path, state)


def _overrides(args: argparse.Namespace) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    if args.dry_run:
        out["dry_run"] = True
    if args.yes:
        out["assume_yes"] = True
    if args.disk:
        out["target_disk"] = args.disk
    return out


def main(argv: Optional[list[str]] = None) -> int:
    p = argparse.ArgumentParser(prog="arch-installer")
    p.add_argument("--config", default=None, help="Install config (yaml)")
    p.add_argument("--state", default=DEFAULT_STATE_PATH, help="Path to installer state (json|yaml)")
    p.add_argument("--log", default=DEFAULT_LOG_PATH, help="Path to installer log")
    p.add_argument("--start-at", default=None, help="Start at step_id (e.g. 45_pacstrap)")
    p.add_argument("--stop-after", default=None, help="Stop after step_id")
    p.add_argument("--force", action="store_true", help="Re-run steps even if marked completed")
    p.add_argument("--dry-run", action="store_true", help="Log commands without running them")
    p.add_argument("--yes", action="store_true", help='Answer "YES" to destructive confirmations')
    p.add_argument("--disk", default=None, help="Target disk (e.g. /dev/nvme0n1)")
    p.add_argument("--list-steps", action="store_true", help="Print step ids and exit")

    args = p.parse_args(argv)

    if args.list_steps:
        for step in build_steps():
            print(step.step_id)
        return 0

    try:
        run(
            state_path=args.state,
            log_path=args.log,
            config_path=args.config,
            overrides=_overrides(args),
            start_at=args.start_at,
            stop_after=args.stop_after,
            force=args.force,
        )
    except UserAbort as e:
        print(f"[!] {e}")
        return 1
    except CommandError as e:
        print(f"[x] {e}")
        return 2
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
