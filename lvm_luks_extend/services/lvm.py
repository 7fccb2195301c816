"""LVM operations (pvcreate, vgextend, pvresize, lvextend, vgs, lvs, pvs)."""

from __future__ import annotations

from decimal import ROUND_DOWN, Decimal, InvalidOperation
from typing import Callable, Optional

from lvm_luks_extend.storage.commands import run_command
from lvm_luks_extend.storage.exceptions import CommandError

BYTES_PER_GIB = Decimal(1024**3)
GIB_PRECISION = Decimal("0.01")


def bytes_to_gib(value: int | str | Decimal) -> Decimal:
    """Convert bytes to GiB, truncated to two decimals (never rounded up)."""
    return (Decimal(value) / BYTES_PER_GIB).quantize(GIB_PRECISION, rounding=ROUND_DOWN)


def _first_field(output: Optional[str]) -> Optional[str]:
    for line in (output or "").splitlines():
        value = line.strip()
        if value:
            return value
    return None


class VolumeManagerService:
    def __init__(self, run: Callable = run_command):
        self._run = run

    def init_physical_volume(self, device: str) -> None:
        self._run(["pvcreate", device])

    def join_group(self, group: str, device: str) -> None:
        self._run(["vgextend", group, device])

    def grow_physical_volume(self, device: str) -> None:
        self._run(["pvresize", device])

    def grow_logical_volume_full(self, logical_volume: str) -> None:
        self._run(["lvextend", "-l", "+100%FREE", logical_volume])

    def grow_logical_volume_by(self, logical_volume: str, gib: Decimal) -> None:
        self._run(["lvextend", "-L", f"+{gib}G", logical_volume])

    def free_capacity(self, group: str) -> Decimal:
        """Unallocated capacity of a volume group in GiB.

        Raises:
            CommandError: If vgs fails or reports nothing (no such group)
        """
        command = ["vgs", "--noheadings", "--nosuffix", "--units", "b", "-o", "vg_free", group]
        result = self._run(command)
        value = _first_field(result.stdout)
        if value is None:
            raise CommandError(command, result.returncode, "no output")
        try:
            return bytes_to_gib(value.replace(",", "."))
        except InvalidOperation as error:
            raise CommandError(command, result.returncode, f"unparsable size {value!r}") from error

    def group_of_logical_volume(self, logical_volume: str) -> Optional[str]:
        return self._group_of("lvs", logical_volume)

    def group_of_physical_volume(self, device: str) -> Optional[str]:
        return self._group_of("pvs", device)

    def _group_of(self, tool: str, device: str) -> Optional[str]:
        result = self._run([tool, "--noheadings", "-o", "vg_name", device], check=False)
        if result.returncode != 0:
            return None
        return _first_field(result.stdout)
