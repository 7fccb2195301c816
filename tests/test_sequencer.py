"""Tests for extend/sequencer.py - ordered stages with stop-at-first-failure."""

from unittest.mock import Mock, call

import pytest

from lvm_luks_extend.domain.models import ResizeSequence, Stage, StageStep
from lvm_luks_extend.extend.sequencer import ResizeSequencer
from lvm_luks_extend.storage.exceptions import (
    CommandError,
    StageFailure,
    TopologyError,
)


def five_stage_sequence(actions, disk=None):
    return ResizeSequence(
        name="extend-root",
        steps=[StageStep(stage, stage.label, actions[stage]) for stage in Stage],
        disk=disk,
    )


@pytest.fixture
def actions():
    return {stage: Mock(name=stage.name) for stage in Stage}


class TestResizeSequenceOrdering:
    """Tests for ResizeSequence stage ordering."""

    def test_stages_in_order_are_accepted(self, actions):
        """Test a full five-stage sequence."""
        sequence = five_stage_sequence(actions)

        assert sequence.stages == tuple(Stage)

    def test_partial_sequence_is_accepted(self):
        """Test that a split workflow may run only stages 4 and 5."""
        sequence = ResizeSequence(
            name="extend-home",
            steps=[
                StageStep(Stage.LOGICAL_VOLUME, "lv", Mock()),
                StageStep(Stage.FILESYSTEM, "fs", Mock()),
            ],
        )

        assert sequence.stages == (Stage.LOGICAL_VOLUME, Stage.FILESYSTEM)

    def test_out_of_order_stages_are_rejected(self):
        """Test that growing the filesystem before the volume is refused."""
        with pytest.raises(ValueError, match="out of order"):
            ResizeSequence(
                name="bad",
                steps=[
                    StageStep(Stage.FILESYSTEM, "fs", Mock()),
                    StageStep(Stage.LOGICAL_VOLUME, "lv", Mock()),
                ],
            )

    def test_repeated_stage_is_rejected(self):
        """Test that a stage cannot appear twice."""
        with pytest.raises(ValueError):
            ResizeSequence(
                name="bad",
                steps=[
                    StageStep(Stage.CONTAINER, "a", Mock()),
                    StageStep(Stage.CONTAINER, "b", Mock()),
                ],
            )


class TestRun:
    """Tests for ResizeSequencer.run()."""

    def test_runs_every_stage_in_order(self, actions):
        """Test that all five stages run once, in order."""
        order = Mock()
        for stage, action in actions.items():
            order.attach_mock(action, stage.name)
        sequencer = ResizeSequencer(Mock(), settle_delay=0, sleep=Mock())

        sequencer.run(five_stage_sequence(actions))

        assert [c[0] for c in order.mock_calls] == [stage.name for stage in Stage]

    def test_failure_at_stage_three_stops_the_sequence(self, actions):
        """Test that stages 4 and 5 never run after stage 3 fails."""
        actions[Stage.PHYSICAL_VOLUME].side_effect = CommandError(["pvresize"], 5, "boom")
        sequencer = ResizeSequencer(Mock(), settle_delay=0, sleep=Mock())

        with pytest.raises(StageFailure) as exc_info:
            sequencer.run(five_stage_sequence(actions))

        assert exc_info.value.stage is Stage.PHYSICAL_VOLUME
        assert isinstance(exc_info.value.cause, CommandError)
        assert actions[Stage.PARTITION].call_count == 1
        assert actions[Stage.CONTAINER].call_count == 1
        assert actions[Stage.LOGICAL_VOLUME].call_count == 0
        assert actions[Stage.FILESYSTEM].call_count == 0

    def test_os_error_becomes_stage_failure(self, actions):
        """Test that a failed sysfs write is reported against its stage."""
        actions[Stage.PARTITION].side_effect = PermissionError("rescan")
        sequencer = ResizeSequencer(Mock(), settle_delay=0, sleep=Mock())

        with pytest.raises(StageFailure) as exc_info:
            sequencer.run(five_stage_sequence(actions))

        assert exc_info.value.stage is Stage.PARTITION
        assert actions[Stage.CONTAINER].call_count == 0

    def test_extend_errors_pass_through_unchanged(self, actions):
        """Test that a topology problem found by a stage is not re-wrapped."""
        actions[Stage.PHYSICAL_VOLUME].side_effect = TopologyError("joined vg9")
        sequencer = ResizeSequencer(Mock(), settle_delay=0, sleep=Mock())

        with pytest.raises(TopologyError):
            sequencer.run(five_stage_sequence(actions))

        assert actions[Stage.LOGICAL_VOLUME].call_count == 0

    def test_rereads_partition_table_and_settles_after_partition_stage(self, actions):
        """Test that partprobe and the settle delay sit between stages 1 and 2."""
        partitions = Mock()
        sleep = Mock()
        order = Mock()
        order.attach_mock(actions[Stage.PARTITION], "partition")
        order.attach_mock(partitions.reread_partition_table, "reread")
        order.attach_mock(sleep, "sleep")
        order.attach_mock(actions[Stage.CONTAINER], "container")
        sequencer = ResizeSequencer(partitions, settle_delay=2.0, sleep=sleep)

        sequencer.run(five_stage_sequence(actions, disk="sdb"))

        assert order.mock_calls[:4] == [
            call.partition(),
            call.reread("sdb"),
            call.sleep(2.0),
            call.container(),
        ]

    def test_no_reread_without_a_disk(self, actions):
        """Test that volume-only sequences skip partprobe."""
        partitions = Mock()
        sleep = Mock()
        sequencer = ResizeSequencer(partitions, settle_delay=2.0, sleep=sleep)

        sequencer.run(five_stage_sequence(actions))

        partitions.reread_partition_table.assert_not_called()
        sleep.assert_not_called()

    def test_failed_reread_is_a_partition_stage_failure(self, actions):
        """Test that a partprobe failure stops before the container stage."""
        partitions = Mock()
        partitions.reread_partition_table.side_effect = CommandError(["partprobe"], 1)
        sequencer = ResizeSequencer(partitions, settle_delay=0, sleep=Mock())

        with pytest.raises(StageFailure) as exc_info:
            sequencer.run(five_stage_sequence(actions, disk="sdb"))

        assert exc_info.value.stage is Stage.PARTITION
        actions[Stage.CONTAINER].assert_not_called()

    def test_settle_delay_defaults_from_settings(self):
        """Test that the settle delay is read from settings."""
        from lvm_luks_extend.config import settings

        settings.settings_store.values["settle_delay_seconds"] = 5

        assert ResizeSequencer(Mock()).settle_delay == 5.0
