from __future__ import annotations

import logging
import subprocess
from typing import Callable, List, Optional, Sequence, Tuple

import pytest


class FakeRunner:
    """Stands in for subprocess.run and records every argv.

    Rules match on an argv prefix; the most recently added rule wins.
    """

    def __init__(self) -> None:
        self.calls: List[List[str]] = []
        self.inputs: List[Optional[str]] = []
        self.kwargs: List[dict] = []
        self._rules: List[Tuple[Tuple[str, ...], object, str, Optional[Callable]]] = []

    def on(self, *prefix: str, returncode=0, stdout: str = "", effect: Optional[Callable] = None) -> None:
        """returncode may be an int or a list consumed one call at a time."""

        if isinstance(returncode, list):
            returncode = list(returncode)
        self._rules.insert(0, (tuple(prefix), returncode, stdout, effect))

    def __call__(self, argv: Sequence[str], input=None, **kwargs) -> subprocess.CompletedProcess:
        argv = list(argv)
        self.calls.append(argv)
        self.inputs.append(input)
        self.kwargs.append(kwargs)
        for prefix, rc, out, effect in self._rules:
            if tuple(argv[: len(prefix)]) == prefix:
                if effect is not None:
                    effect(argv)
                if isinstance(rc, list):
                    rc = rc.pop(0) if len(rc) > 1 else rc[0]
                return subprocess.CompletedProcess(argv, rc, out, "")
        return subprocess.CompletedProcess(argv, 0, "", "")

    def ran(self, *prefix: str) -> bool:
        return any(tuple(c[: len(prefix)]) == prefix for c in self.calls)

    def matching(self, *prefix: str) -> List[List[str]]:
        return [c for c in self.calls if tuple(c[: len(prefix)]) == prefix]

    def input_for(self, *prefix: str) -> Optional[str]:
        for argv, stdin in zip(self.calls, self.inputs):
            if tuple(argv[: len(prefix)]) == prefix:
                return stdin
        return None


@pytest.fixture
def fake_run(monkeypatch) -> FakeRunner:
    runner = FakeRunner()
    monkeypatch.setattr("arch_installer.lib.command.subprocess.run", runner)
    return runner


@pytest.fixture
def isolated_logging():
    """Undo configure_logging so each test gets its own log file."""

    root = logging.getLogger()
    before = list(root.handlers)
    level = root.level
    yield
    for h in list(root.handlers):
        if h not in before:
            root.removeHandler(h)
            h.close()
    if hasattr(root, "_arch_installer_log_path"):
        delattr(root, "_arch_installer_log_path")
    root.setLevel(level)


@pytest.fixture
def no_secrets_env(monkeypatch):
    for var in (
        "ARCH_INSTALLER_ROOT_PASSWORD",
        "ARCH_INSTALLER_USER_PASSWORD",
        "ARCH_INSTALLER_LUKS_PASSPHRASE",
    ):
        monkeypatch.delenv(var, raising=False)
