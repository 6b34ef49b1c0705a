from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Iterable

from .chroot import target_file

logger = logging.getLogger(__name__)

KEYFILE_DIR = "/etc/cryptsetup-keys.d"
KEYFILE_SIZE = 4096


@dataclass(frozen=True)
class CrypttabEntry:
    name: str
    uuid: str
    keyfile: str = "none"
    options: str = "luks,discard"

    def render(self) -> str:
        return f"{self.name}\tUUID={self.uuid}\t{self.keyfile}\t{self.options}"


def render_crypttab(entries: Iterable[CrypttabEntry]) -> str:
    lines = ["# <name>\t<device>\t<password>\t<options>"]
    lines += [e.render() for e in entries]
    return "\n".join(lines) + "\n"


def keyfile_path(name: str) -> str:
    return f"{KEYFILE_DIR}/{name}.key"


def create_keyfile(target_root: str, name: str, *, dry_run: bool = False) -> str:
    """Write a random keyfile readable by root only; returns its absolute target path."""

    rel = keyfile_path(name)
    p = target_file(target_root, rel)
    if dry_run:
        logger.info("Would create keyfile %s", str(p))
        return str(p)
    p.parent.mkdir(parents=True, exist_ok=True)
    os.chmod(p.parent, 0o700)
    p.write_bytes(os.urandom(KEYFILE_SIZE))
    os.chmod(p, 0o400)
    logger.info("Created keyfile %s", str(p))
    return str(p)
