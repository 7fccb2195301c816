"""Domain model for encrypted LVM extension.

All of these objects are derived from live system state at the start of a
workflow and discarded at its end. Nothing here is persisted or cached
across runs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Callable, List, Optional, Tuple


# ==============================================================================
# Mount Targets and Filesystems
# ==============================================================================


class MountTarget(str, Enum):
    """The two well-known mount points this tool can extend."""

    ROOT = "/"
    HOME = "/home"

    @property
    def label(self) -> str:
        return "/ (root)" if self is MountTarget.ROOT else "/home"


class FsType(str, Enum):
    """Filesystem families with a supported online growth operation."""

    XFS = "xfs"
    EXT = "ext"

    @classmethod
    def from_reported(cls, value: Optional[str]) -> Optional[FsType]:
        """Map a type string reported by findmnt/df to a family.

        Returns None for anything that cannot be grown in place.
        """
        normalized = (value or "").strip().lower()
        if normalized == "xfs":
            return cls.XFS
        if normalized in ("ext2", "ext3", "ext4"):
            return cls.EXT
        return None


# ==============================================================================
# Topology Domain
# ==============================================================================


@dataclass(frozen=True)
class StorageTarget:
    """A mount point and the logical volume currently backing it."""

    mount_point: MountTarget
    logical_volume: str  # e.g., "/dev/mapper/vg0-root"
    volume_group: str


@dataclass
class EncryptedDevice:
    """A LUKS partition and the container it is exposed through.

    ``uuid`` is None for a freshly partitioned disk until luksFormat has
    written a header; the container name and physical volume path are
    derived from it.
    """

    disk: str  # e.g., "sdb"
    partition: str  # e.g., "/dev/sdb1"
    partition_number: str = "1"
    uuid: Optional[str] = None
    container_prefix: str = "luks-"

    @property
    def disk_path(self) -> str:
        return f"/dev/{self.disk}"

    @property
    def container_name(self) -> Optional[str]:
        if not self.uuid:
            return None
        return f"{self.container_prefix}{self.uuid}"

    @property
    def physical_volume(self) -> Optional[str]:
        name = self.container_name
        return f"/dev/mapper/{name}" if name else None


@dataclass(frozen=True)
class VolumeGroup:
    """A pool of capacity; ``free_gib`` is a snapshot at query time."""

    name: str
    free_gib: Decimal


@dataclass(frozen=True)
class AllocationPlan:
    """Split of newly free capacity between root (first) and /home (second)."""

    total: Decimal
    first: Decimal
    second: Decimal


# ==============================================================================
# Resize Pipeline
# ==============================================================================


class Stage(Enum):
    """Ordered stages of the resize pipeline."""

    PARTITION = 1
    CONTAINER = 2
    PHYSICAL_VOLUME = 3
    LOGICAL_VOLUME = 4
    FILESYSTEM = 5

    @property
    def label(self) -> str:
        return _STAGE_LABELS[self]


_STAGE_LABELS = {
    Stage.PARTITION: "Partition",
    Stage.CONTAINER: "Encryption container",
    Stage.PHYSICAL_VOLUME: "Physical volume",
    Stage.LOGICAL_VOLUME: "Logical volume",
    Stage.FILESYSTEM: "Filesystem",
}


class GrowthMode(Enum):
    """How stage 4 sizes the logical volume."""

    ALL_FREE = "all-free"  # lvextend -l +100%FREE
    EXACT = "exact"  # lvextend -L +<N>G


@dataclass(frozen=True)
class StageStep:
    stage: Stage
    description: str
    action: Callable[[], None]


@dataclass
class ResizeSequence:
    """Stage steps bound to one target/device pair.

    A sequence may cover only part of the pipeline (the split workflows run
    stages 1-3 once and stages 4-5 per target) but the stages it holds are
    always strictly increasing.
    """

    name: str
    steps: List[StageStep] = field(default_factory=list)
    # Disk whose partition table is reread after the partition stage.
    disk: Optional[str] = None

    def __post_init__(self) -> None:
        values = [step.stage.value for step in self.steps]
        if any(later <= earlier for earlier, later in zip(values, values[1:])):
            raise ValueError(
                f"Stages of sequence '{self.name}' are out of order: "
                + ", ".join(step.stage.name for step in self.steps)
            )

    @property
    def stages(self) -> Tuple[Stage, ...]:
        return tuple(step.stage for step in self.steps)


# ==============================================================================
# Menus
# ==============================================================================


class Workflow(Enum):
    """Main menu entries, keyed by the number the user types."""

    NEW_DISK_SINGLE = "1"
    NEW_DISK_SPLIT = "2"
    EXISTING_DISK_SINGLE = "3"
    EXISTING_DISK_SPLIT = "4"
    EXIT = "5"

    @property
    def label(self) -> str:
        return _WORKFLOW_LABELS[self]

    @property
    def is_split(self) -> bool:
        return self in (Workflow.NEW_DISK_SPLIT, Workflow.EXISTING_DISK_SPLIT)


_WORKFLOW_LABELS = {
    Workflow.NEW_DISK_SINGLE: "Add a new disk (extend / or /home)",
    Workflow.NEW_DISK_SPLIT: "Add a new disk (interactively extend both / and /home)",
    Workflow.EXISTING_DISK_SINGLE: "Resize an existing disk (extend / or /home)",
    Workflow.EXISTING_DISK_SPLIT: (
        "Resize an existing disk (interactively extend both / and /home)"
    ),
    Workflow.EXIT: "Exit",
}


class MismatchOption(Enum):
    """Choices offered when the two mount points live in different groups."""

    EXTEND_ROOT = "1"
    EXTEND_HOME = "2"
    RETURN_TO_MENU = "3"

    @property
    def label(self) -> str:
        if self is MismatchOption.EXTEND_ROOT:
            return "Extend only / (root)"
        if self is MismatchOption.EXTEND_HOME:
            return "Extend only /home"
        return "Return to main menu"

    @property
    def target(self) -> Optional[MountTarget]:
        if self is MismatchOption.EXTEND_ROOT:
            return MountTarget.ROOT
        if self is MismatchOption.EXTEND_HOME:
            return MountTarget.HOME
        return None

    @classmethod
    def for_target(cls, target: MountTarget) -> MismatchOption:
        return cls.EXTEND_ROOT if target is MountTarget.ROOT else cls.EXTEND_HOME


@dataclass(frozen=True)
class MismatchResolution:
    """Restricted option set returned by the mismatch resolver.

    ``consistent`` is False when the reachable group backs neither mount
    point; the only option is then RETURN_TO_MENU.
    """

    options: Tuple[MismatchOption, ...]
    reachable_group: Optional[str]
    consistent: bool

    @property
    def targets(self) -> Tuple[MountTarget, ...]:
        return tuple(option.target for option in self.options if option.target)
