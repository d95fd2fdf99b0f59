"""Tests for descriptor slots, stages and results."""

import pytest

from piperunner.pipeline.errors import DescriptorStateError
from piperunner.pipeline.schema import (
    WAIT_ERROR,
    DescriptorSlot,
    PipelineResult,
    SlotState,
    Stage,
    StageResult,
)


class TestDescriptorSlot:
    def test_default_unset(self):
        slot = DescriptorSlot()
        assert slot.state is SlotState.UNSET
        assert slot.fd is None
        assert not slot.is_open

    def test_open_then_take(self):
        slot = DescriptorSlot()
        slot.open(7)
        assert slot.is_open
        assert slot.take() == 7
        assert slot.state is SlotState.CLOSED
        assert slot.fd is None

    def test_double_take_rejected(self):
        slot = DescriptorSlot()
        slot.open(7)
        slot.take()
        with pytest.raises(DescriptorStateError):
            slot.take()

    def test_take_unset_rejected(self):
        with pytest.raises(DescriptorStateError):
            DescriptorSlot().take()

    def test_reopen_rejected(self):
        slot = DescriptorSlot()
        slot.open(3)
        with pytest.raises(DescriptorStateError):
            slot.open(4)

    def test_invalidate_unset(self):
        slot = DescriptorSlot()
        slot.invalidate()
        assert slot.state is SlotState.CLOSED

    def test_invalidate_open_rejected(self):
        slot = DescriptorSlot()
        slot.open(5)
        with pytest.raises(DescriptorStateError):
            slot.invalidate()


class TestStage:
    def test_name_is_first_argument(self):
        assert Stage(index=0, arguments=["wc", "-l"]).name == "wc"

    def test_process_assigned_once(self):
        stage = Stage(index=0, arguments=["true"])
        stage.assign_process(1234)
        with pytest.raises(DescriptorStateError):
            stage.assign_process(5678)
        assert stage.process_id == 1234


class TestResults:
    def test_stage_result_defaults_to_wait_error(self):
        sr = StageResult(index=0, name="x")
        assert sr.exit_code == WAIT_ERROR
        assert sr.wait_failed
        assert not sr.success

    def test_pipeline_success_requires_all_zero(self):
        result = PipelineResult(
            stage_results=[
                StageResult(index=0, name="false", exit_code=1),
                StageResult(index=1, name="true", exit_code=0),
            ]
        )
        assert result.success is False
        result.stage_results[0].exit_code = 0
        assert result.success is True
