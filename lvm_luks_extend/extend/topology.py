"""Read-only queries against the live storage stack.

Every call goes to the system tools; nothing is cached, so a decision made
after a stage has run always sees the topology that stage produced.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Dict, Iterable, Optional

from lvm_luks_extend.domain.models import MountTarget, StorageTarget, VolumeGroup
from lvm_luks_extend.logging import LoggerFactory
from lvm_luks_extend.services.filesystem import FilesystemService
from lvm_luks_extend.services.lvm import VolumeManagerService
from lvm_luks_extend.storage.exceptions import (
    CommandError,
    MountPointNotFoundError,
    VolumeGroupNotFoundError,
)

log = LoggerFactory.for_topology()


class TopologyInspector:
    def __init__(self, volumes: VolumeManagerService, filesystems: FilesystemService):
        self._volumes = volumes
        self._filesystems = filesystems

    def resolve_target(self, mount_point: MountTarget) -> StorageTarget:
        """Find the logical volume and volume group behind a mount point.

        Raises:
            MountPointNotFoundError: If nothing is mounted there, or the
                mounted device is not a logical volume
        """
        source = self._filesystems.mount_source(mount_point.value)
        if not source:
            raise MountPointNotFoundError(mount_point.value, "not mounted")
        group = self.volume_group_of(source)
        if not group:
            raise MountPointNotFoundError(
                mount_point.value, f"{source} is not an LVM logical volume"
            )
        log.debug(f"{mount_point.value} is {source} in Volume Group {group}")
        return StorageTarget(
            mount_point=mount_point, logical_volume=source, volume_group=group
        )

    def resolve_available(
        self, mount_points: Iterable[MountTarget] = tuple(MountTarget)
    ) -> Dict[MountTarget, StorageTarget]:
        """Resolve every mount point that can be resolved, skipping the rest."""
        targets: Dict[MountTarget, StorageTarget] = {}
        for mount_point in mount_points:
            try:
                targets[mount_point] = self.resolve_target(mount_point)
            except MountPointNotFoundError as error:
                log.debug(f"Skipping {mount_point.value}: {error}")
        return targets

    def volume_group_of(self, logical_volume: str) -> Optional[str]:
        return self._volumes.group_of_logical_volume(logical_volume)

    def volume_group_of_physical_volume(self, device: Optional[str]) -> Optional[str]:
        """Group a physical volume belongs to; None if it has not joined one."""
        if not device:
            return None
        return self._volumes.group_of_physical_volume(device)

    def free_capacity(self, volume_group: str) -> Decimal:
        """Unallocated capacity of ``volume_group`` in GiB.

        Raises:
            VolumeGroupNotFoundError: If the group does not exist
        """
        try:
            free = self._volumes.free_capacity(volume_group)
        except CommandError as error:
            log.debug(f"vgs failed for {volume_group}: {error}")
            raise VolumeGroupNotFoundError("free capacity query", volume_group) from error
        log.debug(f"Volume Group {volume_group} has {free}G free")
        return free

    def volume_group(self, name: str) -> VolumeGroup:
        return VolumeGroup(name=name, free_gib=self.free_capacity(name))
