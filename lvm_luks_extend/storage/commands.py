"""External command execution with transcript logging."""

from __future__ import annotations

import subprocess
from typing import Sequence

from lvm_luks_extend.logging import LoggerFactory
from lvm_luks_extend.storage.exceptions import CommandError


log = LoggerFactory.for_commands()


def run_command(
    command: Sequence[str],
    check: bool = True,
    log_output: bool = True,
    interactive: bool = False,
) -> subprocess.CompletedProcess:
    """Run an external command.

    Interactive commands (luksFormat, luksOpen, parted prompts) inherit the
    terminal so the user can answer them; their output is not captured.

    Raises:
        CommandError: If the command is missing, or exits non-zero and check=True
    """
    command = list(command)
    log.debug(f"Running command: {' '.join(command)}")
    try:
        if interactive:
            result = subprocess.run(command, check=False, text=True)
        else:
            result = subprocess.run(command, check=False, text=True, capture_output=True)
    except FileNotFoundError as error:
        log.debug(f"Command not found: {command[0]}")
        raise CommandError(command, 127, str(error)) from error
    if interactive:
        log.debug("Output went to the terminal and is not in this transcript")
    if result.stdout and (log_output or result.returncode != 0):
        log.debug(f"stdout: {result.stdout.strip()}")
    if result.stderr and (log_output or result.returncode != 0):
        log.debug(f"stderr: {result.stderr.strip()}")
    log.debug(f"Command completed with return code {result.returncode}")
    if check and result.returncode != 0:
        raise CommandError(
            command, result.returncode, result.stderr or "", result.stdout or ""
        )
    return result
