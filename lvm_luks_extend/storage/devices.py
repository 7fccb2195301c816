"""Block device discovery and naming helpers.

Device Detection:
    Uses lsblk with JSON output to enumerate disks and their partitions.
    Results are never cached: every call re-reads the live state so a
    decision is never made on topology that an earlier stage has changed.

Naming:
    Partition paths follow kernel conventions. Disks whose name ends in a
    digit (nvme0n1, mmcblk0, loop0) get a "p" separator:
    sdb + 1 -> /dev/sdb1, nvme0n1 + 1 -> /dev/nvme0n1p1.

Space Reporting:
    available_bytes() and filesystem_usage() wrap df for the before/after
    report shown at the end of every workflow.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Iterable, Optional

from lvm_luks_extend.logging import LoggerFactory
from lvm_luks_extend.storage.commands import run_command
from lvm_luks_extend.storage.exceptions import CommandError

log = LoggerFactory.for_topology()


def normalize_disk_name(name: str) -> str:
    """Strip whitespace and a leading /dev/ from a user-supplied disk name."""
    name = (name or "").strip()
    if name.startswith("/dev/"):
        name = name[len("/dev/"):]
    return name


def partition_path(disk: str, partition_number: str | int) -> str:
    disk = normalize_disk_name(disk)
    separator = "p" if disk[-1:].isdigit() else ""
    return f"/dev/{disk}{separator}{partition_number}"


def is_block_device(path: str) -> bool:
    try:
        return Path(path).is_block_device()
    except OSError:
        return False


def human_size(size_bytes):
    if size_bytes is None:
        return "0B"
    size = float(size_bytes)
    for unit in ["B", "KB", "MB", "GB", "TB"]:
        if size < 1024.0:
            return f"{size:.1f}{unit}"
        size /= 1024.0
    return f"{size:.1f}PB"


def get_block_devices() -> list[dict]:
    """Return the lsblk device tree; an empty list if lsblk fails."""
    try:
        result = run_command(
            ["lsblk", "-J", "-b", "-o", "NAME,TYPE,SIZE,MOUNTPOINT,FSTYPE"],
            log_output=False,
        )
        data = json.loads(result.stdout)
    except (CommandError, json.JSONDecodeError) as error:
        log.debug(f"lsblk failed: {error}")
        return []
    return data.get("blockdevices", []) or []


def get_children(device: dict) -> list[dict]:
    return device.get("children", []) or []


def get_device_by_name(name: str) -> Optional[dict]:
    name = normalize_disk_name(name)
    for device in get_block_devices():
        if device.get("name") == name:
            return device
        for child in get_children(device):
            if child.get("name") == name:
                return child
    return None


def list_disks(prefixes: Iterable[str]) -> list[dict]:
    """Whole disks whose names start with one of ``prefixes``."""
    prefixes = tuple(prefixes)
    return [
        device
        for device in get_block_devices()
        if device.get("type") == "disk"
        and str(device.get("name", "")).startswith(prefixes)
    ]


def disk_exists(name: str) -> bool:
    name = normalize_disk_name(name)
    if not name:
        return False
    device = get_device_by_name(name)
    if device is None or device.get("type") != "disk":
        return False
    return is_block_device(f"/dev/{name}")


def format_device_row(device: dict) -> str:
    parts = [str(device.get("name", "")), human_size(device.get("size"))]
    if device.get("type"):
        parts.append(str(device["type"]))
    if device.get("mountpoint"):
        parts.append(str(device["mountpoint"]))
    return "  ".join(parts)


def available_bytes(mount_point: str) -> Optional[int]:
    """Available space on a mounted filesystem, in bytes."""
    try:
        result = run_command(
            ["df", "-B1", "--output=avail", mount_point], log_output=False
        )
    except CommandError as error:
        log.debug(f"df failed for {mount_point}: {error}")
        return None
    lines = [line.strip() for line in result.stdout.splitlines() if line.strip()]
    if len(lines) < 2:
        return None
    try:
        return int(lines[-1])
    except ValueError:
        return None


def available_label(mount_point: str) -> str:
    size = available_bytes(mount_point)
    return human_size(size) if size is not None else "unknown"


def filesystem_usage() -> str:
    result = run_command(["df", "-h"], check=False, log_output=False)
    return (result.stdout or "").rstrip()
