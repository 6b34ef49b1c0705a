from __future__ import annotations

import logging
from typing import Callable, Optional

from .command import run_cmd

logger = logging.getLogger(__name__)

LUKS_FORMAT_ARGS = [
    "--batch-mode",
    "--type",
    "luks2",
    "--pbkdf",
    "argon2id",
    "--iter-time",
    "5000",
]


class LuksOpenFailed(RuntimeError):
    """cryptsetup open kept failing past the attempt limit."""


def is_luks(dev: str, *, dry_run: bool = False) -> bool:
    if dry_run:
        return False
    r = run_cmd(["cryptsetup", "isLuks", dev], check=False)
    return r.returncode == 0


def luks_format(dev: str, *, passphrase: Optional[str] = None, dry_run: bool = False) -> None:
    """Create a LUKS2 header on dev.

    Without a passphrase cryptsetup asks on the terminal.
    """

    if passphrase is None:
        run_cmd(["cryptsetup", "luksFormat", *LUKS_FORMAT_ARGS, dev], capture=False, dry_run=dry_run)
    else:
        run_cmd(
            ["cryptsetup", "luksFormat", *LUKS_FORMAT_ARGS, "--key-file=-", dev],
            input_text=passphrase,
            dry_run=dry_run,
        )


def luks_open(
    dev: str,
    name: str,
    *,
    passphrase_provider: Optional[Callable[[int], str]] = None,
    max_attempts: int = 0,
    dry_run: bool = False,
) -> int:
    """Open dev as /dev/mapper/<name>, retrying until it succeeds.

    passphrase_provider(attempt) supplies the passphrase for each attempt;
    without it cryptsetup prompts on the terminal. max_attempts=0 retries
    forever. Returns the number of attempts used.
    """

    attempt = 0
    while True:
        attempt += 1
        if passphrase_provider is None:
            r = run_cmd(["cryptsetup", "open", dev, name], check=False, capture=False, dry_run=dry_run)
        else:
            r = run_cmd(
                ["cryptsetup", "open", "--key-file=-", dev, name],
                check=False,
                input_text=passphrase_provider(attempt),
                dry_run=dry_run,
            )
        if r.returncode == 0:
            logger.info("Opened %s as /dev/mapper/%s", dev, name)
            return attempt

        logger.warning("Wrong passphrase for %s. Try again.", name)
        if max_attempts and attempt >= max_attempts:
            raise LuksOpenFailed(f"Could not open {dev} as {name} after {attempt} attempts")


def luks_close(name: str, *, dry_run: bool = False) -> bool:
    r = run_cmd(["cryptsetup", "close", name], check=False, dry_run=dry_run)
    return r.returncode == 0


def luks_add_keyfile(
    dev: str,
    keyfile: str,
    *,
    passphrase: Optional[str] = None,
    dry_run: bool = False,
) -> None:
    """Enroll keyfile in a free keyslot; the existing passphrase unlocks it."""

    if passphrase is None:
        run_cmd(["cryptsetup", "luksAddKey", dev, keyfile], capture=False, dry_run=dry_run)
    else:
        run_cmd(
            ["cryptsetup", "luksAddKey", "--key-file=-", dev, keyfile],
            input_text=passphrase,
            dry_run=dry_run,
        )
