from __future__ import annotations

import re
from typing import Iterable, Optional


def enable_locales(locale_gen: str, locales: Iterable[str]) -> str:
    """Uncomment each wanted locale in /etc/locale.gen, appending any that are absent."""

    lines = locale_gen.splitlines()
    for loc in locales:
        pattern = re.compile(r"^\s*#?\s*" + re.escape(loc) + r"\s*$")
        found = False
        for i, line in enumerate(lines):
            if pattern.match(line):
                lines[i] = loc
                found = True
        if not found:
            lines.append(loc)
    return "\n".join(lines) + "\n"


def render_locale_conf(lang: str) -> str:
    return f"LANG={lang}\n"


def render_vconsole(keymap: str, font: Optional[str] = None, font_map: Optional[str] = None) -> str:
    out = [f"KEYMAP={keymap}"]
    if font:
        out.append(f"FONT={font}")
    if font_map:
        out.append(f"FONT_MAP={font_map}")
    return "\n".join(out) + "\n"


def render_hostname(hostname: str) -> str:
    return hostname.strip() + "\n"


def render_hosts(hostname: str) -> str:
    return "\n".join(
        [
            "127.0.0.1\tlocalhost",
            "::1\t\tlocalhost",
            f"127.0.1.1\t{hostname}.localdomain\t{hostname}",
            "",
        ]
    )


def render_sudoers_wheel() -> str:
    return "%wheel ALL=(ALL:ALL) ALL\n"


def render_nvidia_modprobe() -> str:
    return "options nvidia-drm modeset=1\n"
