"""
Pytest configuration and shared fixtures for lvm-luks-extend tests.

This module provides common fixtures and utilities used across all test modules.
No test touches real disks: every external tool is reached through mocked
services or a patched run_command.
"""

import subprocess
from decimal import Decimal
from pathlib import Path
from typing import Dict, List, Optional
from unittest.mock import MagicMock, Mock

import pytest

from lvm_luks_extend.config import settings
from lvm_luks_extend.extend.sequencer import ResizeSequencer
from lvm_luks_extend.services import Services
from lvm_luks_extend.ui.console import Console


# ==============================================================================
# Settings
# ==============================================================================


@pytest.fixture(autouse=True)
def default_settings():
    """Start every test from the built-in defaults, ignoring /etc overrides."""
    settings.settings_store.values = dict(settings.DEFAULT_SETTINGS)
    yield
    settings.settings_store.values = dict(settings.DEFAULT_SETTINGS)


# ==============================================================================
# Command Mocks
# ==============================================================================


def completed(stdout: str = "", returncode: int = 0, stderr: str = "") -> Mock:
    """Build a stand-in for subprocess.CompletedProcess."""
    return Mock(spec=subprocess.CompletedProcess, stdout=stdout, stderr=stderr, returncode=returncode)


@pytest.fixture
def mock_run() -> Mock:
    """A run_command replacement that succeeds with empty output."""
    return Mock(return_value=completed())


# ==============================================================================
# Console
# ==============================================================================


class ScriptedInput:
    """Feeds canned answers to Console and records every prompt shown."""

    def __init__(self, answers: List[str]):
        self.answers = list(answers)
        self.prompts: List[str] = []

    def __call__(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if not self.answers:
            raise AssertionError(f"Unexpected prompt: {prompt!r}")
        return self.answers.pop(0)


@pytest.fixture
def scripted_console():
    """Factory fixture: scripted_console(["1", "sdb", "y"]) -> (Console, ScriptedInput)."""

    def factory(answers: List[str]):
        scripted = ScriptedInput(answers)
        return Console(input_func=scripted), scripted

    return factory


# ==============================================================================
# Storage Topology Mocks
# ==============================================================================


@pytest.fixture
def mock_disk() -> Dict[str, object]:
    """
    Fixture providing a new, empty 20 GiB disk as reported by lsblk.

    Returns:
        Dict representing the disk entry in lsblk -J output.
    """
    return {"name": "sdb", "type": "disk", "size": 21474836480, "mountpoint": None}


@pytest.fixture
def mock_services(mock_disk) -> Services:
    """
    Fixture providing Services whose collaborators are all MagicMocks.

    The default topology: / on vg0-root, /home on vg0-home, both xfs, a
    new disk sdb that becomes /dev/sdb1 with LUKS UUID 1234-abcd.
    """
    services = Services(
        partitions=MagicMock(name="partitions"),
        encryption=MagicMock(name="encryption"),
        volumes=MagicMock(name="volumes"),
        filesystems=MagicMock(name="filesystems"),
        boot=MagicMock(name="boot"),
        power=MagicMock(name="power"),
    )
    set_topology(services, {"/": ("vg0-root", "vg0"), "/home": ("vg0-home", "vg0")})

    services.partitions.list_disks.return_value = [mock_disk]
    services.partitions.disk_exists.return_value = True
    services.partitions.list_partitions.return_value = []
    services.partitions.partition_exists.return_value = True
    services.partitions.create_whole_disk_partition.return_value = "/dev/sdb1"

    services.encryption.derive_container_id.return_value = "1234-abcd"
    services.volumes.group_of_physical_volume.return_value = "vg0"
    services.volumes.free_capacity.return_value = Decimal("20.00")

    services.filesystems.detect_type.return_value = "xfs"
    services.filesystems.available_space.return_value = "10.0GB"
    services.filesystems.usage_report.return_value = "Filesystem  Size  Used Avail Use% Mounted on"

    services.boot.crypttab_path = Path("/etc/crypttab")
    return services


def set_topology(services: Services, mounts: Dict[str, Optional[tuple]]) -> None:
    """Wire findmnt/lvs answers: {"/": ("vg0-root", "vg0"), ...}."""
    sources = {
        mount: f"/dev/mapper/{lv}" for mount, (lv, _group) in mounts.items()
    }
    groups = {
        f"/dev/mapper/{lv}": group for lv, group in mounts.values()
    }
    services.filesystems.mount_source.side_effect = sources.get
    services.volumes.group_of_logical_volume.side_effect = groups.get


@pytest.fixture
def sequencer(mock_services) -> ResizeSequencer:
    """A sequencer that does not sleep between stages."""
    return ResizeSequencer(mock_services.partitions, settle_delay=0, sleep=Mock())


@pytest.fixture
def completed_process():
    """Factory fixture returning completed(stdout, returncode, stderr)."""
    return completed


@pytest.fixture
def topology(mock_services):
    """Re-wire the mocked mount topology: topology({"/": ("vg0-root", "vg0")})."""

    def rewire(mounts):
        set_topology(mock_services, mounts)

    return rewire
