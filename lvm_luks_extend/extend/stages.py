"""Build the stage steps for each workflow family.

    new disk:       create partition -> luksFormat + luksOpen -> pvcreate + vgextend
    existing disk:  rescan + resizepart -> cryptsetup resize -> pvresize
    every target:   lvextend -> xfs_growfs / resize2fs
"""

from __future__ import annotations

from decimal import Decimal
from typing import List, Optional

from lvm_luks_extend.domain.models import (
    EncryptedDevice,
    FsType,
    GrowthMode,
    Stage,
    StageStep,
    StorageTarget,
)
from lvm_luks_extend.extend.topology import TopologyInspector
from lvm_luks_extend.services import Services
from lvm_luks_extend.storage.exceptions import (
    EncryptedDeviceNotFoundError,
    TopologyError,
    UnsupportedFilesystemError,
)


class StageBuilder:
    def __init__(self, services: Services, inspector: TopologyInspector):
        self._services = services
        self._inspector = inspector

    def new_disk_preparation(self, device: EncryptedDevice, group: str) -> List[StageStep]:
        services = self._services

        def create_partition() -> None:
            device.partition = services.partitions.create_whole_disk_partition(device.disk)

        def create_container() -> None:
            services.encryption.format(device.partition)
            device.uuid = services.encryption.derive_container_id(device.partition)
            if not device.uuid:
                raise EncryptedDeviceNotFoundError(device.partition)
            services.encryption.open(device.partition, device.container_name)

        def join_group() -> None:
            services.volumes.init_physical_volume(device.physical_volume)
            services.volumes.join_group(group, device.physical_volume)
            joined = self._inspector.volume_group_of_physical_volume(device.physical_volume)
            if joined != group:
                raise TopologyError(
                    f"{device.physical_volume} joined Volume Group {joined!r}, "
                    f"expected {group!r}"
                )

        return [
            StageStep(Stage.PARTITION, f"Partitioning disk {device.disk_path}", create_partition),
            StageStep(
                Stage.CONTAINER,
                f"Formatting {device.partition} with LUKS and opening it. "
                "You will be asked to set a passphrase",
                create_container,
            ),
            StageStep(
                Stage.PHYSICAL_VOLUME,
                f"Creating Physical Volume and extending Volume Group '{group}'",
                join_group,
            ),
        ]

    def existing_disk_growth(self, device: EncryptedDevice) -> List[StageStep]:
        services = self._services

        def grow_partition() -> None:
            services.partitions.rescan(device.disk)
            services.partitions.grow_partition_to_full(device.disk, device.partition_number)

        return [
            StageStep(
                Stage.PARTITION,
                f"Resizing partition {device.partition_number} on {device.disk} to 100%",
                grow_partition,
            ),
            StageStep(
                Stage.CONTAINER,
                f"Resizing LUKS container {device.container_name}",
                lambda: services.encryption.grow_container(device.container_name),
            ),
            StageStep(
                Stage.PHYSICAL_VOLUME,
                f"Resizing physical volume {device.physical_volume}",
                lambda: services.volumes.grow_physical_volume(device.physical_volume),
            ),
        ]

    def volume_growth(
        self,
        target: StorageTarget,
        mode: GrowthMode = GrowthMode.ALL_FREE,
        amount: Optional[Decimal] = None,
    ) -> List[StageStep]:
        services = self._services
        if mode is GrowthMode.EXACT and amount is None:
            raise ValueError("EXACT growth needs an amount")

        def grow_volume() -> None:
            if mode is GrowthMode.ALL_FREE:
                services.volumes.grow_logical_volume_full(target.logical_volume)
            else:
                services.volumes.grow_logical_volume_by(target.logical_volume, amount)

        def grow_filesystem() -> None:
            mount_point = target.mount_point.value
            reported = services.filesystems.detect_type(mount_point)
            fs_type = FsType.from_reported(reported)
            if fs_type is None:
                raise UnsupportedFilesystemError(mount_point, reported)
            services.filesystems.grow(mount_point, target.logical_volume, fs_type)

        size = "all free space" if mode is GrowthMode.ALL_FREE else f"{amount}G"
        return [
            StageStep(
                Stage.LOGICAL_VOLUME,
                f"Extending logical volume {target.logical_volume} by {size}",
                grow_volume,
            ),
            StageStep(
                Stage.FILESYSTEM,
                f"Growing filesystem on {target.mount_point.value}",
                grow_filesystem,
            ),
        ]
