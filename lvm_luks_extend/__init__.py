"""Grow LVM-on-LUKS filesystems onto new or enlarged disks."""

from lvm_luks_extend.__version__ import __version__

__all__ = ["__version__"]
