from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Tuple

from .lib.env import PATHS

DEFAULT_LOG_PATH = PATHS.log_default
FALLBACK_LOG_NAME = "arch-installer.log"

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S%z"

_CONFIGURED_ATTR = "_arch_installer_log_path"


def _open_log_file(log_path: str) -> Tuple[logging.Handler, str]:
    """FileHandler for log_path, or for ./arch-installer.log when that is not writable."""

    target = Path(log_path)
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        return logging.FileHandler(target, encoding="utf-8"), str(target)
    except OSError:
        fallback = Path.cwd() / FALLBACK_LOG_NAME
        return logging.FileHandler(fallback, encoding="utf-8"), str(fallback)


def configure_logging(
    log_path: str = DEFAULT_LOG_PATH,
    level: int = logging.INFO,
    also_console: bool = True,
) -> str:
    """Attach the install log (and the console) to the root logger.

    The file also receives DEBUG records, so command output that the console
    hides ends up in the log copied into the new system. Only the first call
    in a process does anything; later calls return the path already in use.
    """

    root = logging.getLogger()
    already = getattr(root, _CONFIGURED_ATTR, None)
    if already:
        return already

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    file_handler, chosen_path = _open_log_file(log_path)
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(formatter)
    root.addHandler(file_handler)

    if also_console:
        console = logging.StreamHandler(sys.stderr)
        console.setLevel(level)
        console.setFormatter(formatter)
        root.addHandler(console)

    root.setLevel(logging.DEBUG)
    setattr(root, _CONFIGURED_ATTR, chosen_path)

    logging.getLogger(__name__).info("Logging to %s (requested %s)", chosen_path, log_path)
    return chosen_path
