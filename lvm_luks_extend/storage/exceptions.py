"""Custom exceptions for storage extension operations.

This module defines a hierarchy of exceptions so the orchestrator can tell
recoverable conditions (a volume group mismatch) apart from fatal ones.

Exception Hierarchy:
    ExtendError (base)
        ├── CommandError
        ├── InputError
        │   ├── InvalidChoiceError
        │   ├── InvalidQuantityError
        │   └── OverdraftError
        ├── NotFoundError
        │   ├── DiskNotFoundError
        │   ├── PartitionNotFoundError
        │   ├── MountPointNotFoundError
        │   ├── VolumeGroupNotFoundError
        │   └── EncryptedDeviceNotFoundError
        ├── TopologyError
        │   └── VolumeGroupMismatchError
        ├── StageFailure
        │   └── UnsupportedFilesystemError
        ├── BootConfigError
        └── PrivilegeError

    OperationCancelled sits outside the hierarchy: declining a
    confirmation gate is not an error.

Usage:
    from lvm_luks_extend.storage.exceptions import DiskNotFoundError

    if not disk_exists(name):
        raise DiskNotFoundError(name)
"""

from __future__ import annotations

from decimal import Decimal
from typing import Optional, Sequence

from lvm_luks_extend.domain.models import Stage


class ExtendError(Exception):
    """Base exception for all extension operations."""


class OperationCancelled(Exception):
    """The user declined a confirmation prompt."""

    def __init__(self, message: str = "Operation cancelled by user."):
        super().__init__(message)


class PrivilegeError(ExtendError):
    """The program is not running with root privileges."""

    def __init__(self):
        super().__init__("This program must be run as root.")


class CommandError(ExtendError):
    """An external command exited with a non-zero status."""

    def __init__(
        self, command: Sequence[str], returncode: int, stderr: str = "", stdout: str = ""
    ):
        self.command = list(command)
        self.returncode = returncode
        self.stderr = stderr
        self.stdout = stdout
        detail = (stderr or stdout or "").strip()
        msg = f"Command failed ({' '.join(self.command)}) with exit status {returncode}"
        if detail:
            msg += f": {detail}"
        super().__init__(msg)


class InputError(ExtendError):
    """Malformed or out-of-range user input."""


class InvalidChoiceError(InputError):
    """A menu answer did not match any offered option."""

    def __init__(self, choice: str, valid: Sequence[str] = ()):
        self.choice = choice
        self.valid = list(valid)
        msg = f"Invalid choice: {choice!r}"
        if self.valid:
            msg += f" (expected one of {', '.join(self.valid)})"
        super().__init__(msg)


class InvalidQuantityError(InputError):
    """An allocation amount is not a non-negative decimal number."""

    def __init__(self, value: str):
        self.value = value
        super().__init__(f"Invalid input {value!r}. Please enter a non-negative number.")


class OverdraftError(InputError):
    """An allocation amount exceeds the available capacity."""

    def __init__(self, requested: Decimal, available: Decimal):
        self.requested = requested
        self.available = available
        super().__init__(
            f"Cannot allocate {requested}G, more than available. Max is {available}G."
        )


class NotFoundError(ExtendError):
    """A named disk, partition, mount point or volume group does not exist."""


class DiskNotFoundError(NotFoundError):
    """Disk was not found or is not a block device."""

    def __init__(self, disk: str):
        self.disk = disk
        super().__init__(f"Disk '{disk}' does not exist or is not a valid block device.")


class PartitionNotFoundError(NotFoundError):
    """Partition was not found on the selected disk."""

    def __init__(self, partition: str):
        self.partition = partition
        super().__init__(f"Partition {partition} does not exist.")


class MountPointNotFoundError(NotFoundError):
    """Mount point is not mounted or has no backing logical volume."""

    def __init__(self, mount_point: str, reason: str = ""):
        self.mount_point = mount_point
        self.reason = reason
        msg = f"Mount point '{mount_point}' does not exist or is not a valid filesystem"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class VolumeGroupNotFoundError(NotFoundError):
    """A volume group could not be determined or does not exist."""

    def __init__(self, subject: str, volume_group: Optional[str] = None):
        self.subject = subject
        self.volume_group = volume_group
        if volume_group:
            msg = f"Volume Group '{volume_group}' does not exist ({subject})."
        else:
            msg = f"Could not determine the Volume Group for {subject}."
        super().__init__(msg)


class EncryptedDeviceNotFoundError(NotFoundError):
    """Partition does not carry a readable LUKS header."""

    def __init__(self, partition: str):
        self.partition = partition
        super().__init__(f"Failed to get LUKS UUID from {partition}.")


class TopologyError(ExtendError):
    """Volume groups are inconsistent with the requested plan."""


class VolumeGroupMismatchError(TopologyError):
    """The groups behind / and /home do not allow extending both from one disk.

    Either / and /home live in different volume groups, or the partition
    being grown belongs to a group that backs neither of them.

    Raised by the split workflows; the orchestrator recovers from it by
    offering single-target alternatives and returning to the menu.
    """

    def __init__(
        self,
        root_group: str,
        home_group: str,
        *,
        disk: str,
        partition_number: Optional[str] = None,
        reachable_group: Optional[str] = None,
    ):
        self.root_group = root_group
        self.home_group = home_group
        self.disk = disk
        self.partition_number = partition_number
        self.reachable_group = reachable_group
        if root_group != home_group:
            msg = (
                "Cannot extend both / and /home because they are on different "
                f"Volume Groups: / is on {root_group}, /home is on {home_group}"
            )
        else:
            msg = (
                f"The selected partition belongs to Volume Group {reachable_group}, "
                f"but / and /home are on {root_group}"
            )
        super().__init__(msg)

    @property
    def is_new_disk(self) -> bool:
        return self.partition_number is None


class StageFailure(ExtendError):
    """A resize stage failed; later stages were not executed."""

    def __init__(self, stage: Stage, cause: Exception | str):
        self.stage = stage
        self.cause = cause
        super().__init__(f"{stage.label} stage failed: {cause}")


class UnsupportedFilesystemError(StageFailure):
    """Filesystem type has no known online growth operation."""

    def __init__(self, mount_point: str, fs_type: str):
        self.mount_point = mount_point
        self.fs_type = fs_type
        super().__init__(
            Stage.FILESYSTEM,
            f"Unsupported filesystem type on {mount_point}: {fs_type or 'unknown'}",
        )


class BootConfigError(ExtendError):
    """Updating the boot configuration failed."""

    def __init__(self, step: str, cause: Exception | str):
        self.step = step
        self.cause = cause
        super().__init__(f"Boot configuration step '{step}' failed: {cause}")
