"""Domain models for storage extension.

Exports type-safe value objects that replace loose strings and dicts
passed between the topology, planning and sequencing layers.
"""

from lvm_luks_extend.domain.models import (
    AllocationPlan,
    EncryptedDevice,
    FsType,
    GrowthMode,
    MismatchOption,
    MismatchResolution,
    MountTarget,
    ResizeSequence,
    Stage,
    StageStep,
    StorageTarget,
    VolumeGroup,
    Workflow,
)

__all__ = [
    "AllocationPlan",
    "EncryptedDevice",
    "FsType",
    "GrowthMode",
    "MismatchOption",
    "MismatchResolution",
    "MountTarget",
    "ResizeSequence",
    "Stage",
    "StageStep",
    "StorageTarget",
    "VolumeGroup",
    "Workflow",
]
