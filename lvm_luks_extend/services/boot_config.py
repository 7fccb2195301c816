"""Boot configuration for newly added encrypted disks.

A new LUKS container must be unlocked at boot before LVM can assemble the
volume group, so after a new disk joins a group:

    1. crypttab gains "<name> UUID=<uuid> none"
    2. the grub defaults file is backed up to <file>.bak-<YYYY-MM-DD> and
       "rd.luks.uuid=<name>" is appended to GRUB_CMDLINE_LINUX
    3. grub2-mkconfig regenerates the bootloader configuration
    4. dracut rebuilds the initramfs
"""

from __future__ import annotations

import re
import shutil
from datetime import date
from pathlib import Path
from typing import Callable, Optional

from lvm_luks_extend.config import settings
from lvm_luks_extend.logging import LoggerFactory
from lvm_luks_extend.storage.commands import run_command
from lvm_luks_extend.storage.exceptions import BootConfigError

log = LoggerFactory.for_boot()

CMDLINE_PATTERN = re.compile(r'^(GRUB_CMDLINE_LINUX=")(.*)(")[ \t]*$', re.MULTILINE)


def add_kernel_parameter(grub_defaults: str, parameter: str) -> str:
    """Append ``parameter`` inside GRUB_CMDLINE_LINUX="..." (once).

    Raises:
        ValueError: If the file has no GRUB_CMDLINE_LINUX line
    """
    match = CMDLINE_PATTERN.search(grub_defaults)
    if match is None:
        raise ValueError("GRUB_CMDLINE_LINUX not found")
    current = match.group(2)
    if parameter in current.split():
        return grub_defaults
    updated = f"{current} {parameter}" if current.strip() else parameter
    return (
        grub_defaults[: match.start(2)] + updated + grub_defaults[match.end(2):]
    )


class BootConfigService:
    def __init__(
        self,
        run: Callable = run_command,
        crypttab_path: Optional[Path] = None,
        grub_defaults_path: Optional[Path] = None,
        grub_config_output: Optional[str] = None,
        today: Optional[Callable[[], date]] = None,
    ):
        self._run = run
        self.crypttab_path = Path(crypttab_path or settings.get_setting("crypttab_path"))
        self.grub_defaults_path = Path(
            grub_defaults_path or settings.get_setting("grub_defaults_path")
        )
        self.grub_config_output = grub_config_output or settings.get_setting(
            "grub_config_output"
        )
        self._today = today or date.today

    def register_encrypted_device(self, container_name: str, uuid: str) -> None:
        entry = f"{container_name} UUID={uuid} none"
        existing = ""
        if self.crypttab_path.exists():
            existing = self.crypttab_path.read_text(encoding="utf-8")
        if any(line.split()[:1] == [container_name] for line in existing.splitlines()):
            log.debug(f"{self.crypttab_path} already lists {container_name}")
            return
        with self.crypttab_path.open("a", encoding="utf-8") as crypttab:
            if existing and not existing.endswith("\n"):
                crypttab.write("\n")
            crypttab.write(entry + "\n")
        log.debug(f"Appended to {self.crypttab_path}: {entry}")

    def backup_path(self) -> Path:
        stamp = self._today().isoformat()
        return self.grub_defaults_path.with_name(
            f"{self.grub_defaults_path.name}.bak-{stamp}"
        )

    def append_boot_parameter(self, container_name: str) -> Path:
        """Back up the grub defaults file and add rd.luks.uuid for the container.

        Returns:
            Path of the backup copy
        """
        backup = self.backup_path()
        shutil.copy2(self.grub_defaults_path, backup)
        log.debug(f"Backed up {self.grub_defaults_path} to {backup}")
        content = self.grub_defaults_path.read_text(encoding="utf-8")
        try:
            updated = add_kernel_parameter(content, f"rd.luks.uuid={container_name}")
        except ValueError as error:
            raise BootConfigError(
                "grub defaults", f"{error} in {self.grub_defaults_path}"
            ) from error
        if updated != content:
            self.grub_defaults_path.write_text(updated, encoding="utf-8")
        return backup

    def rebuild_bootloader_config(self) -> None:
        self._run(["grub2-mkconfig", "-o", str(self.grub_config_output)])

    def rebuild_boot_image(self) -> None:
        self._run(["dracut", "-f"])
