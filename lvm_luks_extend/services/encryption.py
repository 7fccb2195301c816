"""LUKS container operations (cryptsetup)."""

from __future__ import annotations

from typing import Callable

from lvm_luks_extend.storage.commands import run_command


class EncryptionService:
    def __init__(self, run: Callable = run_command):
        self._run = run

    def format(self, partition: str) -> None:
        """Initialize a LUKS header; cryptsetup asks for the passphrase."""
        self._run(["cryptsetup", "luksFormat", partition], interactive=True)

    def derive_container_id(self, partition: str) -> str:
        """Return the LUKS UUID of a partition ("" if the header has none)."""
        result = self._run(["cryptsetup", "luksUUID", partition])
        return (result.stdout or "").strip()

    def open(self, partition: str, container_name: str) -> None:
        self._run(["cryptsetup", "luksOpen", partition, container_name], interactive=True)

    def grow_container(self, container_name: str) -> None:
        """Grow an open container to fill its (enlarged) partition."""
        self._run(["cryptsetup", "resize", container_name], interactive=True)
