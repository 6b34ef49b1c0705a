"""Arch Linux installer for an encrypted Btrfs layout (state-driven, resumable).

Layout it produces:
- GPT: EFI system partition, LUKS2 root, optional LUKS2 home
- Btrfs subvolumes with compression, Snapper ready
- systemd-boot or GRUB, sd-encrypt initramfs, zram swap
"""

__all__ = []
