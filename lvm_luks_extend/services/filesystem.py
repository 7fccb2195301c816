"""Filesystem inspection and online growth (findmnt, df, xfs_growfs, resize2fs)."""

from __future__ import annotations

from typing import Callable, Optional

from lvm_luks_extend.domain.models import FsType
from lvm_luks_extend.storage import devices
from lvm_luks_extend.storage.commands import run_command


class FilesystemService:
    def __init__(self, run: Callable = run_command):
        self._run = run

    def _findmnt(self, column: str, mount_point: str) -> Optional[str]:
        result = self._run(
            ["findmnt", "-n", "-o", column, "-M", mount_point], check=False
        )
        if result.returncode != 0:
            return None
        value = (result.stdout or "").strip()
        return value.splitlines()[0].strip() if value else None

    def mount_source(self, mount_point: str) -> Optional[str]:
        """Device mounted exactly at ``mount_point``, or None if not a mount."""
        return self._findmnt("SOURCE", mount_point)

    def detect_type(self, mount_point: str) -> str:
        return self._findmnt("FSTYPE", mount_point) or ""

    def grow(self, mount_point: str, device: str, fs_type: FsType) -> None:
        """Grow a mounted filesystem to fill its logical volume.

        xfs grows through the mount point, ext* through the block device.
        """
        if fs_type is FsType.XFS:
            self._run(["xfs_growfs", mount_point])
        else:
            self._run(["resize2fs", device])

    def available_space(self, mount_point: str) -> str:
        return devices.available_label(mount_point)

    def usage_report(self) -> str:
        return devices.filesystem_usage()
