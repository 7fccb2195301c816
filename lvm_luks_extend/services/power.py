"""System power actions."""

from __future__ import annotations

from typing import Callable

from lvm_luks_extend.storage.commands import run_command


class PowerService:
    def __init__(self, run: Callable = run_command):
        self._run = run

    def reboot(self) -> None:
        self._run(["reboot"])
