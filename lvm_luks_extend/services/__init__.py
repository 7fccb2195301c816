"""Bindings of the external storage tools the orchestrator drives."""

from __future__ import annotations

from dataclasses import dataclass

from lvm_luks_extend.services.boot_config import BootConfigService
from lvm_luks_extend.services.encryption import EncryptionService
from lvm_luks_extend.services.filesystem import FilesystemService
from lvm_luks_extend.services.lvm import VolumeManagerService
from lvm_luks_extend.services.partition import PartitionService
from lvm_luks_extend.services.power import PowerService


@dataclass
class Services:
    partitions: PartitionService
    encryption: EncryptionService
    volumes: VolumeManagerService
    filesystems: FilesystemService
    boot: BootConfigService
    power: PowerService

    @classmethod
    def default(cls) -> Services:
        return cls(
            partitions=PartitionService(),
            encryption=EncryptionService(),
            volumes=VolumeManagerService(),
            filesystems=FilesystemService(),
            boot=BootConfigService(),
            power=PowerService(),
        )


__all__ = [
    "BootConfigService",
    "EncryptionService",
    "FilesystemService",
    "PartitionService",
    "PowerService",
    "Services",
    "VolumeManagerService",
]
