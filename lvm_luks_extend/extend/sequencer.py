"""Run resize stages in order, stopping at the first failure."""

from __future__ import annotations

import time
from typing import Callable, Optional

from lvm_luks_extend.config import settings
from lvm_luks_extend.domain.models import ResizeSequence, Stage
from lvm_luks_extend.logging import operation_context
from lvm_luks_extend.services.partition import PartitionService
from lvm_luks_extend.storage.exceptions import CommandError, ExtendError, StageFailure


class ResizeSequencer:
    """Execute a ResizeSequence.

    Collaborator errors are wrapped in StageFailure carrying the failed
    stage. Nothing is retried or rolled back: stages below the filesystem
    change physical layout and a blind re-run could compound the damage.
    """

    def __init__(
        self,
        partitions: PartitionService,
        settle_delay: Optional[float] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._partitions = partitions
        if settle_delay is None:
            settle_delay = settings.get_float(
                "settle_delay_seconds", settings.DEFAULT_SETTLE_DELAY_SECONDS
            )
        self.settle_delay = settle_delay
        self._sleep = sleep

    def run(self, sequence: ResizeSequence) -> None:
        """
        Raises:
            StageFailure: At the first failing stage; later stages never run
            ExtendError: Raised unchanged when a stage detects a topology or
                input problem itself
        """
        with operation_context(
            sequence.name, stages=[stage.name for stage in sequence.stages]
        ) as log:
            for step in sequence.steps:
                log.info(f"{step.description}...")
                self._execute(step.stage, step.action)
                log.success(f"{step.stage.label} stage completed.")
                if step.stage is Stage.PARTITION and sequence.disk:
                    log.info("Updating partition table...")
                    self._execute(
                        Stage.PARTITION,
                        lambda: self._partitions.reread_partition_table(sequence.disk),
                    )
                    self._sleep(self.settle_delay)

    @staticmethod
    def _execute(stage: Stage, action: Callable[[], None]) -> None:
        try:
            action()
        except (CommandError, OSError) as error:
            raise StageFailure(stage, error) from error
        except ExtendError:
            raise
