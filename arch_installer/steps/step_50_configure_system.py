from __future__ import annotations

import logging
from typing import Any, Dict

from ..lib.chroot import chroot_cmd, read_target_file, write_target_file
from ..lib.system_files import (
    enable_locales,
    render_hostname,
    render_hosts,
    render_locale_conf,
    render_vconsole,
)

logger = logging.getLogger(__name__)


def _target_root(state: Dict[str, Any]) -> str:
    mounts = (state.get("execution") or {}).get("mounts") or {}
    target_root = mounts.get("target_root")
    if not target_root:
        raise RuntimeError("Missing execution.mounts.target_root; run mount step first")
    return str(target_root)


class ConfigureSystemStep:
    step_id = "50_configure_system"

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = state.get("config") or {}
        dry_run = bool(cfg.get("dry_run", False))
        root = _target_root(state)

        tz = str(cfg.get("timezone") or "UTC")
        chroot_cmd(root, ["ln", "-sf", f"/usr/share/zoneinfo/{tz}", "/etc/localtime"], dry_run=dry_run)
        # no RTC in some VMs
        chroot_cmd(root, ["hwclock", "--systohc"], check=False, dry_run=dry_run)

        locales = [str(x) for x in (cfg.get("locales") or ["en_US.UTF-8 UTF-8"])]
        locale_gen = enable_locales(read_target_file(root, "/etc/locale.gen"), locales)
        write_target_file(root, "/etc/locale.gen", locale_gen, dry_run=dry_run)
        chroot_cmd(root, ["locale-gen"], dry_run=dry_run)

        lang = str(cfg.get("lang") or locales[0].split()[0])
        write_target_file(root, "/etc/locale.conf", render_locale_conf(lang), dry_run=dry_run)

        vc = cfg.get("vconsole") or {}
        write_target_file(
            root,
            "/etc/vconsole.conf",
            render_vconsole(str(vc.get("keymap") or "us"), vc.get("font"), vc.get("font_map")),
            dry_run=dry_run,
        )

        hostname = str(cfg.get("hostname") or "archlinux")
        write_target_file(root, "/etc/hostname", render_hostname(hostname), dry_run=dry_run)
        write_target_file(root, "/etc/hosts", render_hosts(hostname), dry_run=dry_run)

        logger.info("Configured timezone=%s lang=%s hostname=%s", tz, lang, hostname)
        return state
