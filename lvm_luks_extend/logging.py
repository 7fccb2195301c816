from __future__ import annotations

import sys
import time
import uuid
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from loguru import Logger

from loguru import logger

LOG_FILE_PREFIX = "lvm_luks_extend"


def _console_format(record) -> str:
    """Plain lines (menus, listings) print bare; everything else gets a [LEVEL] tag."""
    if record["extra"].get("plain"):
        return "{message}\n"
    return "<level>[{level}]</level> {message}\n"


def log_file_name(now: datetime | None = None) -> str:
    """Return the timestamped log file name, e.g. lvm_luks_extend_20250101_120000.log."""
    now = now or datetime.now()
    return f"{LOG_FILE_PREFIX}_{now.strftime('%Y%m%d_%H%M%S')}.log"


def setup_logging(
    *,
    debug: bool = False,
    log_dir: Path | None = None,
    now: datetime | None = None,
) -> Path:
    """
    Setup console and transcript logging.

    Sinks:
    - Console (stderr): INFO+ (DEBUG+ with debug=True), "[LEVEL] message"
    - Transcript file: DEBUG+ with timestamps, appended to
      <log_dir>/lvm_luks_extend_<YYYYMMDD_HHMMSS>.log

    Args:
        debug: Show DEBUG records (commands, prompt answers) on the console
        log_dir: Directory for the transcript (defaults to the working directory)
        now: Timestamp used for the file name (defaults to the current time)

    Returns:
        Path of the transcript log file
    """
    logger.remove()
    logger.configure(extra={"job_id": "-", "tags": [], "source": "APP"})

    # SINK 1: Console (stderr) - not enqueued so output stays ordered with prompts
    logger.add(
        sys.stderr,
        level="DEBUG" if debug else "INFO",
        enqueue=False,
        backtrace=False,
        diagnose=False,
        colorize=True,
        format=_console_format,
    )

    # SINK 2: Transcript - everything, append-only
    log_dir = log_dir or Path.cwd()
    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = log_dir / log_file_name(now)
    logger.add(
        log_path,
        level="DEBUG",
        mode="a",
        enqueue=False,
        backtrace=True,
        diagnose=False,
        format=(
            "{time:YYYY-MM-DD HH:mm:ss.SSS} | "
            "{level: <8} | "
            "{extra[source]: <10} | "
            "{message}"
        ),
    )

    return log_path


def get_logger(*, source: str | None = None) -> Logger:
    """
    Get a logger with bound context.

    Args:
        source: Source component (e.g., "topology", "sequencer")

    Returns:
        Logger with bound context
    """
    if source is None:
        return logger.bind()
    return logger.bind(source=source)



@contextmanager
def operation_context(operation: str, **details):
    """
    Context manager for tracking a resize sequence with automatic timing.

    Logs start at DEBUG, completion and failure with duration, and
    re-raises failures unchanged.

    Example:
        with operation_context("resize-root", target="/") as log:
            log.debug("Extending logical volume")
    """
    job_id = f"{operation}-{uuid.uuid4().hex[:8]}"

    with logger.contextualize(job_id=job_id, operation=operation, **details):
        start_time = time.time()
        log = logger.bind(source="sequencer", job_id=job_id, tags=[operation])
        log.debug(f"Sequence {operation} started")

        try:
            yield log
            duration = time.time() - start_time
            log.debug(
                f"Sequence {operation} completed in {duration:.2f}s"
            )
        except Exception as e:
            duration = time.time() - start_time
            log.debug(
                f"Sequence {operation} failed after {duration:.2f}s: "
                f"{type(e).__name__}: {e}"
            )
            raise


class LoggerFactory:
    """
    Factory for creating component loggers with automatic context.
    """

    @staticmethod
    def for_topology() -> Logger:
        """Logger for topology discovery (findmnt, lvs, pvs, vgs)."""
        return logger.bind(source="topology", tags=["lvm", "topology"])

    @staticmethod
    def for_workflow() -> Logger:
        """Logger for orchestrator states and workflow progress."""
        return logger.bind(source="workflow", tags=["workflow"])

    @staticmethod
    def for_commands() -> Logger:
        """Logger for external command execution."""
        return logger.bind(source="command", tags=["command"])

    @staticmethod
    def for_boot() -> Logger:
        """Logger for crypttab, grub and initramfs updates."""
        return logger.bind(source="boot", tags=["boot"])

    @staticmethod
    def for_console() -> Logger:
        """Logger for user-facing messages and prompt transcripts."""
        return logger.bind(source="console", tags=["ui"])
