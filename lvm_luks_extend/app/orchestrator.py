"""Top-level controller for the four extension workflows.

Workflows:
    1. New disk, single target:   prepare disk, join target's group, grow target
    2. New disk, split:           prepare disk, join shared group, split space
    3. Existing disk, single:     grow partition/container/PV, grow one target
    4. Existing disk, split:      grow partition/container/PV, split space

Every destructive step is preceded by a plan summary and a yes/no gate.
Exit codes: 0 for success or a declined gate, 1 for any failure. A volume
group mismatch in a split workflow sends the user back to the menu.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

from lvm_luks_extend.app.state import Outcome, State, StateMachine
from lvm_luks_extend.config import settings
from lvm_luks_extend.domain.models import (
    AllocationPlan,
    EncryptedDevice,
    GrowthMode,
    MismatchOption,
    MismatchResolution,
    MountTarget,
    ResizeSequence,
    StorageTarget,
    Workflow,
)
from lvm_luks_extend.extend.mismatch import MismatchResolver
from lvm_luks_extend.extend.planner import CapacityPlanner
from lvm_luks_extend.extend.sequencer import ResizeSequencer
from lvm_luks_extend.extend.stages import StageBuilder
from lvm_luks_extend.extend.topology import TopologyInspector
from lvm_luks_extend.logging import LoggerFactory
from lvm_luks_extend.services import Services
from lvm_luks_extend.storage import devices
from lvm_luks_extend.storage.exceptions import (
    BootConfigError,
    CommandError,
    DiskNotFoundError,
    EncryptedDeviceNotFoundError,
    ExtendError,
    InvalidChoiceError,
    OperationCancelled,
    PartitionNotFoundError,
    StageFailure,
    TopologyError,
    VolumeGroupMismatchError,
    VolumeGroupNotFoundError,
)
from lvm_luks_extend.ui.console import Console

log = LoggerFactory.for_workflow()

RULE = "=" * 60


class ExtensionOrchestrator:
    def __init__(
        self,
        console: Console,
        services: Services,
        *,
        log_path: Optional[Path] = None,
        planner: Optional[CapacityPlanner] = None,
        resolver: Optional[MismatchResolver] = None,
        sequencer: Optional[ResizeSequencer] = None,
    ):
        self.console = console
        self.services = services
        self.log_path = log_path
        self.inspector = TopologyInspector(services.volumes, services.filesystems)
        self.planner = planner or CapacityPlanner()
        self.resolver = resolver or MismatchResolver()
        self.sequencer = sequencer or ResizeSequencer(services.partitions)
        self.stages = StageBuilder(services, self.inspector)
        self.machine = StateMachine()
        self._handlers: Dict[Workflow, Callable[[], Outcome]] = {
            Workflow.NEW_DISK_SINGLE: self.new_disk_single,
            Workflow.NEW_DISK_SPLIT: self.new_disk_split,
            Workflow.EXISTING_DISK_SINGLE: self.existing_disk_single,
            Workflow.EXISTING_DISK_SPLIT: self.existing_disk_split,
        }

    # ------------------------------------------------------------------
    # Main loop
    # ------------------------------------------------------------------

    @property
    def state(self) -> State:
        return self.machine.state

    def _enter(self, state: State) -> None:
        previous = self.machine.enter(state)
        log.debug(f"State {previous.name} -> {state.name}")

    def run(self) -> int:
        """Show the menu and run workflows until one finishes.

        Returns:
            Process exit status
        """
        while True:
            try:
                workflow = self._select_workflow()
            except OperationCancelled as cancelled:
                self.console.status(str(cancelled))
                self._enter(State.EXIT)
                return 0
            if workflow is None:
                self._enter(State.MENU_IDLE)
                continue
            if workflow is Workflow.EXIT:
                self._enter(State.EXIT)
                self.console.status("Exiting.")
                return 0

            self._enter(State.WORKFLOW_SELECTED)
            try:
                outcome = self._execute(workflow)
            except OperationCancelled as cancelled:
                self._enter(State.CANCELLED)
                self.console.status(str(cancelled))
                self._enter(State.EXIT)
                return 0
            except ExtendError as error:
                self._fail(error)
                return 1

            if outcome is Outcome.RETURN_TO_MENU:
                if self.state is not State.MENU_IDLE:
                    self._enter(State.MENU_IDLE)
                continue
            self._enter(State.EXIT)
            return 0

    def _execute(self, workflow: Workflow) -> Outcome:
        try:
            return self._handlers[workflow]()
        except VolumeGroupMismatchError as mismatch:
            if not workflow.is_split:
                raise
            return self.handle_mismatch(mismatch)

    def _fail(self, error: ExtendError) -> None:
        self._enter(State.FAILED)
        self.console.error(str(error))
        if isinstance(error, StageFailure):
            self.console.error(
                "Stages completed before the failure were not rolled back."
            )
        if self.log_path:
            self.console.error(
                f"Execution failed. Please check the log file: {self.log_path}"
            )
        else:
            self.console.error("Execution failed.")
        self._enter(State.EXIT)

    def _select_workflow(self) -> Optional[Workflow]:
        self.console.line()
        self.console.line(
            f"LUKS LVM Management - Started at: {datetime.now():%a %b %d %H:%M:%S %Y}"
        )
        self.console.line(RULE)
        if self.log_path:
            self.console.status(f"Log file will be saved to: {self.log_path}")
        options = {
            workflow.value: (workflow.label, workflow) for workflow in Workflow
        }
        workflow = self.console.try_choose(
            "Please choose the operation you want to perform:",
            options,
            prompt="Enter your choice (1-5): ",
        )
        if workflow is not None:
            log.debug(f"Selected workflow {workflow.name}")
        return workflow

    # ------------------------------------------------------------------
    # Workflows
    # ------------------------------------------------------------------

    def new_disk_single(
        self, mount: Optional[MountTarget] = None, disk: Optional[str] = None
    ) -> Outcome:
        self._banner("Add a New Disk to Extend LVM")
        if mount is None:
            mount = self._ask_mount_point()
        target = self.inspector.resolve_target(mount)
        initial = self._available(mount)
        self.console.status(f"Initial available space on '{mount.value}' is: {initial}")
        if disk is None:
            disk = self._ask_new_disk()
        device = self._new_encrypted_device(disk)

        self._enter(State.TOPOLOGY_RESOLVED)
        self.console.status(f"Automatically detected Volume Group: {target.volume_group}")
        self._summary(
            "The following operations will be performed:",
            [
                f"Create new partition:   {device.partition}",
                f"Encrypt with LUKS:      {device.partition}",
                f"Add to Volume Group:    {target.volume_group}",
                f"Extend Filesystem on:   {mount.value}",
            ],
            warn_disk=disk,
        )
        self.console.require_confirmation()
        self._enter(State.PLAN_CONFIRMED)

        self._enter(State.EXECUTING)
        steps = self.stages.new_disk_preparation(device, target.volume_group)
        steps += self.stages.volume_growth(target, GrowthMode.ALL_FREE)
        self.sequencer.run(
            ResizeSequence(name=f"extend-{_slug(mount)}", steps=steps, disk=disk)
        )
        self._apply_boot_config(device)
        self._report([(mount, initial)])
        return Outcome.COMPLETED

    def existing_disk_single(
        self,
        disk: Optional[str] = None,
        partition_number: Optional[str] = None,
        mount: Optional[MountTarget] = None,
    ) -> Outcome:
        self._banner("Extend LVM on a Resized Disk")
        if disk is None or partition_number is None:
            disk, partition_number = self._ask_existing_partition()
        device = self._detect_encrypted_device(disk, partition_number)
        reachable = self._reachable_group(device)
        self.console.status(f"This partition belongs to Volume Group: {reachable}")
        targets = self.inspector.resolve_available()

        self._enter(State.TOPOLOGY_RESOLVED)
        if mount is None:
            resolution = self.resolver.resolve(_groups(targets), reachable)
            if not resolution.consistent:
                raise TopologyError(
                    f"No logical volumes found in Volume Group {reachable} "
                    "that back / or /home."
                )
            option = self._choose_option(
                resolution, "Which filesystem would you like to extend?"
            )
            if option is MismatchOption.RETURN_TO_MENU:
                self.console.status("Returning to main menu.")
                self._enter(State.MENU_IDLE)
                return Outcome.RETURN_TO_MENU
            mount = option.target

        target = targets.get(mount)
        if target is None or target.volume_group != reachable:
            raise TopologyError(
                "Selected filesystem is not in the same Volume Group as the "
                "partition. Cannot extend."
            )
        self.console.status(f"Volume Group for extension: {reachable}")
        initial = self._available(mount)
        self.console.status(f"Initial available space on '{mount.value}' is: {initial}")
        self._summary(
            "About to perform the following operations:",
            [
                f"Resize partition {device.partition}",
                f"Resize LUKS container /dev/mapper/{device.container_name}",
                "Resize Physical Volume on the LUKS container",
                f"Extend Logical Volume {target.logical_volume}",
                f"Grow filesystem on {mount.value}",
            ],
        )
        self.console.require_confirmation()
        self._enter(State.PLAN_CONFIRMED)

        self._enter(State.EXECUTING)
        steps = self.stages.existing_disk_growth(device)
        steps += self.stages.volume_growth(target, GrowthMode.ALL_FREE)
        self.sequencer.run(
            ResizeSequence(name=f"extend-{_slug(mount)}", steps=steps, disk=disk)
        )
        self._report([(mount, initial)])
        return Outcome.COMPLETED

    def new_disk_split(self) -> Outcome:
        self._banner("Add a New Disk and Distribute Space Interactively")
        disk = self._ask_new_disk()
        root = self.inspector.resolve_target(MountTarget.ROOT)
        home = self.inspector.resolve_target(MountTarget.HOME)

        self._enter(State.TOPOLOGY_RESOLVED)
        if root.volume_group != home.volume_group:
            raise VolumeGroupMismatchError(root.volume_group, home.volume_group, disk=disk)
        group = root.volume_group
        self.console.status(f"Detected Volume Group: {group}")
        initial = [
            (MountTarget.ROOT, self._available(MountTarget.ROOT)),
            (MountTarget.HOME, self._available(MountTarget.HOME)),
        ]
        device = self._new_encrypted_device(disk)
        self._summary(
            "The new disk will be prepared first:",
            [
                f"Create new partition:   {device.partition}",
                f"Encrypt with LUKS:      {device.partition}",
                f"Add to Volume Group:    {group}",
            ],
            warn_disk=disk,
        )
        self.console.require_confirmation()
        self._enter(State.PLAN_CONFIRMED)

        self._enter(State.EXECUTING)
        self.sequencer.run(
            ResizeSequence(
                name=f"prepare-{disk}",
                steps=self.stages.new_disk_preparation(device, group),
                disk=disk,
            )
        )
        self.console.success(f"New disk successfully added to the Volume Group '{group}'.")
        self._split_and_extend(group, root, home)
        self._apply_boot_config(device)
        self._report(initial)
        return Outcome.COMPLETED

    def existing_disk_split(self) -> Outcome:
        self._banner("Resize Existing Disk and Distribute Space Interactively")
        disk, partition_number = self._ask_existing_partition(
            prompt="Enter the partition number that has been resized: "
        )
        device = self._detect_encrypted_device(disk, partition_number)
        root = self.inspector.resolve_target(MountTarget.ROOT)
        home = self.inspector.resolve_target(MountTarget.HOME)

        self._enter(State.TOPOLOGY_RESOLVED)
        if root.volume_group != home.volume_group:
            raise VolumeGroupMismatchError(
                root.volume_group,
                home.volume_group,
                disk=disk,
                partition_number=partition_number,
            )
        group = root.volume_group
        self.console.status(f"Detected Volume Group: {group}")
        self.console.status(f"Detected LUKS Mapper: {device.container_name}")
        reachable = self._reachable_group(device)
        if reachable != group:
            raise VolumeGroupMismatchError(
                group,
                group,
                disk=disk,
                partition_number=partition_number,
                reachable_group=reachable,
            )
        self.console.status(f"This partition belongs to Volume Group: {reachable}")
        initial = [
            (MountTarget.ROOT, self._available(MountTarget.ROOT)),
            (MountTarget.HOME, self._available(MountTarget.HOME)),
        ]
        self._summary(
            "About to perform the following operations:",
            [
                f"Resize partition {device.partition}",
                f"Resize LUKS container /dev/mapper/{device.container_name}",
                "Resize Physical Volume on the LUKS container",
                f"Extend Logical Volumes in {reachable}",
            ],
        )
        self.console.require_confirmation()
        self._enter(State.PLAN_CONFIRMED)

        self._enter(State.EXECUTING)
        self.sequencer.run(
            ResizeSequence(
                name=f"grow-{disk}",
                steps=self.stages.existing_disk_growth(device),
                disk=disk,
            )
        )
        self.console.success("Disk, partition, and PV have been successfully resized.")
        self._split_and_extend(reachable, root, home)
        self._report(initial)
        return Outcome.COMPLETED

    # ------------------------------------------------------------------
    # Mismatch handling
    # ------------------------------------------------------------------

    def handle_mismatch(self, mismatch: VolumeGroupMismatchError) -> Outcome:
        self._enter(State.MISMATCH_HANDLING)
        self.console.error(str(mismatch))
        self.console.line(f"  - / (root) is on Volume Group: {mismatch.root_group}")
        self.console.line(f"  - /home is on Volume Group: {mismatch.home_group}")
        groups = {
            MountTarget.ROOT: mismatch.root_group,
            MountTarget.HOME: mismatch.home_group,
        }

        if mismatch.is_new_disk:
            resolution = self.resolver.resolve_for_new_disk(groups)
        else:
            device = self._detect_encrypted_device(mismatch.disk, mismatch.partition_number)
            reachable = self.inspector.volume_group_of_physical_volume(
                device.physical_volume
            )
            resolution = self.resolver.resolve(groups, reachable)
            if reachable is None:
                self.console.error(
                    "Could not determine which Volume Group this partition belongs to."
                )
            elif not resolution.consistent:
                self.console.error(
                    f"This partition belongs to Volume Group '{reachable}' which "
                    "doesn't match either / or /home."
                )
            else:
                self.console.status(f"This partition belongs to Volume Group: {reachable}")

        option = MismatchOption.RETURN_TO_MENU
        if resolution.consistent:
            try:
                option = self._choose_option(
                    resolution, "Please choose which filesystem you want to extend:"
                )
            except InvalidChoiceError as error:
                self.console.error(f"{error}. Returning to main menu.")

        if option is MismatchOption.RETURN_TO_MENU:
            self.console.status("Returning to main menu.")
            self._enter(State.MENU_IDLE)
            return Outcome.RETURN_TO_MENU

        self._enter(State.WORKFLOW_SELECTED)
        if mismatch.is_new_disk:
            return self.new_disk_single(mount=option.target, disk=mismatch.disk)
        return self.existing_disk_single(
            disk=mismatch.disk,
            partition_number=mismatch.partition_number,
            mount=option.target,
        )

    def _choose_option(self, resolution: MismatchResolution, title: str) -> MismatchOption:
        options = {option.value: (option.label, option) for option in resolution.options}
        return self.console.choose(title, options)

    # ------------------------------------------------------------------
    # Shared steps
    # ------------------------------------------------------------------

    def _split_and_extend(
        self, group: str, root: StorageTarget, home: StorageTarget
    ) -> AllocationPlan:
        pool = self.inspector.volume_group(group)
        total = pool.free_gib
        self.console.status(f"Total new allocatable space in {group}: {total}G")
        requested = self.console.ask(
            "How much space (in GB) do you want to add to /? (just enter number, like 20): "
        )
        plan = self.planner.plan(total, requested)
        self._summary(
            "The following changes will be made:",
            [
                f"Extend / (root) by: {plan.first}G",
                f"Extend /home by:    {plan.second}G",
            ],
        )
        self.console.require_confirmation("Are you sure you want to proceed?")
        self._enter(State.PLAN_CONFIRMED)

        self._enter(State.EXECUTING)
        if plan.first > 0:
            self._extend_target(root, GrowthMode.EXACT, plan.first)
        else:
            self.console.status("Nothing to allocate to /, skipping.")
        # lvextend -L rounds up to whole extents, so /home takes what is left
        # rather than an exact amount that may no longer fit.
        if self.planner.is_negligible(plan.second):
            self.console.status("Nothing to allocate to /home, skipping.")
        else:
            self._extend_target(home, GrowthMode.ALL_FREE)
        return plan

    def _extend_target(
        self, target: StorageTarget, mode: GrowthMode, amount: Optional[Decimal] = None
    ) -> None:
        self.sequencer.run(
            ResizeSequence(
                name=f"extend-{_slug(target.mount_point)}",
                steps=self.stages.volume_growth(target, mode, amount),
            )
        )
        self.console.success(f"{target.mount_point.value} extended successfully.")

    def _apply_boot_config(self, device: EncryptedDevice) -> None:
        boot = self.services.boot
        steps: List[Tuple[str, str, Callable[[], object]]] = [
            (
                "crypttab",
                f"Updating {boot.crypttab_path} for automatic unlocking on boot.",
                lambda: boot.register_encrypted_device(device.container_name, device.uuid),
            ),
            (
                "grub defaults",
                "Updating GRUB to include new LUKS UUID for initramfs.",
                lambda: boot.append_boot_parameter(device.container_name),
            ),
            (
                "grub2-mkconfig",
                "Rebuilding GRUB configuration.",
                boot.rebuild_bootloader_config,
            ),
            ("dracut", "Rebuilding initramfs with dracut.", boot.rebuild_boot_image),
        ]
        for name, description, action in steps:
            self.console.status(description)
            try:
                action()
            except (CommandError, OSError) as error:
                raise BootConfigError(name, error) from error

    def _report(self, initial: List[Tuple[MountTarget, str]]) -> None:
        self._enter(State.REPORTED)
        self.console.line()
        self.console.success("All operations completed successfully!")
        self.console.line()
        self.console.line(" FINAL RESULT ".center(len(RULE), "="))
        for mount, before in initial:
            after = self._available(mount)
            self.console.success(
                f"The available space on '{mount.value}' changed from {before} to {after}."
            )
        self.console.line()
        self.console.status("Final Filesystem Usage:")
        self.console.line(self.services.filesystems.usage_report())
        self.console.line()
        self.console.warning("A REBOOT IS RECOMMENDED to ensure all changes are properly applied.")
        if self.console.confirm("Do you want to reboot now?"):
            self.console.status("Rebooting system...")
            self.services.power.reboot()
        else:
            self.console.status("Please remember to reboot the system.")

    # ------------------------------------------------------------------
    # Prompts and discovery helpers
    # ------------------------------------------------------------------

    def _banner(self, title: str) -> None:
        self.console.line()
        self.console.status(f"Starting Workflow: {title}")
        self.console.line(RULE)

    def _summary(self, title: str, items: List[str], warn_disk: Optional[str] = None) -> None:
        self.console.line()
        self.console.warning(title)
        for item in items:
            self.console.warning(f"  - {item}")
        if warn_disk:
            partitions = self.services.partitions.list_partitions(warn_disk)
            if partitions:
                self.console.warning(
                    f"  ! /dev/{warn_disk} already has {len(partitions)} partition(s); "
                    "they will be destroyed"
                )
        self.console.line()

    def _ask_mount_point(self) -> MountTarget:
        options = {
            str(index): (mount.label, mount)
            for index, mount in enumerate(MountTarget, start=1)
        }
        return self.console.choose(
            "Please select the mount point you want to extend:",
            options,
            prompt="Enter your choice (1 or 2): ",
        )

    def _show_disks(self) -> None:
        prefixes = settings.get_setting("disk_name_prefixes") or ()
        self.console.status("Available disks on the system:")
        self.console.lines(
            devices.format_device_row(disk)
            for disk in self.services.partitions.list_disks(prefixes)
        )
        self.console.line()

    def _ask_disk(self, prompt: str) -> str:
        self._show_disks()
        disk = devices.normalize_disk_name(self.console.ask(prompt))
        if not disk or not self.services.partitions.disk_exists(disk):
            raise DiskNotFoundError(f"/dev/{disk}")
        return disk

    def _ask_new_disk(self) -> str:
        return self._ask_disk("Enter the name of the new disk to use: ")

    def _ask_existing_partition(
        self, prompt: str = "Enter the partition number to extend: "
    ) -> Tuple[str, str]:
        disk = self._ask_disk("Enter the name of the resized disk: ")
        self.console.status(f"Partitions on /dev/{disk}:")
        self.console.lines(
            devices.format_device_row(partition)
            for partition in self.services.partitions.list_partitions(disk)
        )
        self.console.line()
        partition_number = self.console.ask(prompt)
        if not partition_number.isdigit():
            raise InvalidChoiceError(partition_number)
        path = devices.partition_path(disk, partition_number)
        if not self.services.partitions.partition_exists(path):
            raise PartitionNotFoundError(path)
        return disk, partition_number

    def _new_encrypted_device(self, disk: str) -> EncryptedDevice:
        return EncryptedDevice(
            disk=disk,
            partition=devices.partition_path(disk, 1),
            partition_number="1",
            container_prefix=settings.get_setting("container_name_prefix", "luks-"),
        )

    def _detect_encrypted_device(self, disk: str, partition_number: str) -> EncryptedDevice:
        device = EncryptedDevice(
            disk=disk,
            partition=devices.partition_path(disk, partition_number),
            partition_number=partition_number,
            container_prefix=settings.get_setting("container_name_prefix", "luks-"),
        )
        self.console.status("Detecting LUKS UUID...")
        try:
            device.uuid = self.services.encryption.derive_container_id(device.partition)
        except CommandError as error:
            raise EncryptedDeviceNotFoundError(device.partition) from error
        if not device.uuid:
            raise EncryptedDeviceNotFoundError(device.partition)
        self.console.success(f"Detected LUKS UUID: {device.uuid}")
        return device

    def _reachable_group(self, device: EncryptedDevice) -> str:
        group = self.inspector.volume_group_of_physical_volume(device.physical_volume)
        if not group:
            raise VolumeGroupNotFoundError(f"partition {device.partition}")
        return group

    def _available(self, mount: MountTarget) -> str:
        return self.services.filesystems.available_space(mount.value)


def _groups(targets: Dict[MountTarget, StorageTarget]) -> Dict[MountTarget, str]:
    return {mount: target.volume_group for mount, target in targets.items()}


def _slug(mount: MountTarget) -> str:
    return "root" if mount is MountTarget.ROOT else "home"
