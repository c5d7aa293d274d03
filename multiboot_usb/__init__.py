"""Multiboot USB builder.

Partitions a USB stick (ESP + data partition), installs GRUB2, copies ISO
images and generates loopback menu entries by inspecting each ISO:
- Distribution classification from marker files and layout fingerprints
- Kernel/initrd lookup through priority-ordered glob lists
- Resumable, logged step pipeline around the system utilities
"""

__all__ = []
