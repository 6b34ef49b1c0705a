from __future__ import annotations

from arch_installer.main import main as core_main


def main(argv: list[str] | None = None) -> int:
    # Thin wrapper so a live-ISO launcher can call the installer by file path.
    return core_main(argv)


if __name__ == "__main__":
    raise SystemExit(main())
