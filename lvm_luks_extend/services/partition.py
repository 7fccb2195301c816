"""Partition table operations (parted, partprobe, sysfs rescan)."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Iterable

from lvm_luks_extend.logging import LoggerFactory
from lvm_luks_extend.storage import devices
from lvm_luks_extend.storage.commands import run_command

log = LoggerFactory.for_commands()

SYSFS_BLOCK_ROOT = Path("/sys/block")


class PartitionService:
    def __init__(
        self,
        run: Callable = run_command,
        sysfs_root: Path = SYSFS_BLOCK_ROOT,
    ):
        self._run = run
        self._sysfs_root = sysfs_root

    # Discovery ----------------------------------------------------------

    def list_disks(self, prefixes: Iterable[str]) -> list[dict]:
        return devices.list_disks(prefixes)

    def list_partitions(self, disk: str) -> list[dict]:
        device = devices.get_device_by_name(disk)
        return devices.get_children(device) if device else []

    def disk_exists(self, disk: str) -> bool:
        return devices.disk_exists(disk)

    def partition_exists(self, path: str) -> bool:
        return devices.is_block_device(path)

    # Mutations ----------------------------------------------------------

    def create_whole_disk_partition(self, disk: str) -> str:
        """Write a GPT label with one partition spanning the disk.

        Returns:
            Path of the new partition (e.g., /dev/sdb1)
        """
        disk_path = f"/dev/{devices.normalize_disk_name(disk)}"
        self._run(
            ["parted", "-s", disk_path, "--", "mklabel", "gpt", "mkpart", "primary", "1MiB", "100%"]
        )
        return devices.partition_path(disk, 1)

    def grow_partition_to_full(self, disk: str, partition_number: str) -> None:
        """Grow a partition to the end of its disk.

        parted may ask to fix a GPT whose backup header is no longer at the
        end of an enlarged disk, so it runs attached to the terminal. On a
        partition that already ends at 100% this is a no-op.
        """
        disk_path = f"/dev/{devices.normalize_disk_name(disk)}"
        self._run(
            ["parted", disk_path, "resizepart", str(partition_number), "100%"],
            interactive=True,
        )

    def rescan(self, disk: str) -> None:
        """Ask the kernel to re-read the size of an enlarged disk."""
        rescan_path = self._sysfs_root / devices.normalize_disk_name(disk) / "device" / "rescan"
        if not rescan_path.exists():
            # virtio and nvme disks report capacity changes on their own
            log.debug(f"No rescan hook at {rescan_path}, skipping")
            return
        log.debug(f"Writing 1 to {rescan_path}")
        rescan_path.write_text("1\n")

    def reread_partition_table(self, disk: str) -> None:
        disk_path = f"/dev/{devices.normalize_disk_name(disk)}"
        self._run(["partprobe", disk_path])

