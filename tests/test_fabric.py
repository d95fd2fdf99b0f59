"""Tests for pipe allocation and release."""

import errno
import os
from unittest.mock import patch

import pytest

from piperunner.pipeline.errors import PipeCreationFailed
from piperunner.pipeline.fabric import prepare_pipes, release_pipes
from piperunner.pipeline.schema import SlotState
from tests.conftest import is_closed, make_stages


class TestPreparePipes:
    def test_single_stage_creates_no_pipes(self):
        stages = make_stages(["true"])
        with patch("piperunner.pipeline.fabric.os.pipe") as mock_pipe:
            assert prepare_pipes(stages) == 0
        mock_pipe.assert_not_called()
        assert stages[0].input.state is SlotState.UNSET
        assert stages[0].output.state is SlotState.UNSET

    def test_three_stages_wiring(self):
        stages = make_stages(["a"], ["b"], ["c"])
        try:
            assert prepare_pipes(stages) == 2
            assert stages[0].input.state is SlotState.UNSET
            assert stages[0].output.is_open
            assert stages[1].input.is_open
            assert stages[1].output.is_open
            assert stages[2].input.is_open
            assert stages[2].output.state is SlotState.UNSET
        finally:
            release_pipes(stages, 0)

    def test_output_connects_to_next_input(self):
        stages = make_stages(["a"], ["b"])
        prepare_pipes(stages)
        try:
            os.write(stages[0].output.fd, b"\x00\xffdata")
            assert os.read(stages[1].input.fd, 64) == b"\x00\xffdata"
        finally:
            release_pipes(stages, 0)

    def test_pipes_created_in_pipeline_order(self):
        stages = make_stages(["a"], ["b"], ["c"])
        created = []
        real_pipe = os.pipe

        def _pipe():
            fds = real_pipe()
            created.append(fds)
            return fds

        with patch("piperunner.pipeline.fabric.os.pipe", side_effect=_pipe):
            prepare_pipes(stages)
        try:
            assert stages[0].output.fd == created[0][1]
            assert stages[1].input.fd == created[0][0]
            assert stages[1].output.fd == created[1][1]
            assert stages[2].input.fd == created[1][0]
        finally:
            release_pipes(stages, 0)

    def test_pipe_failure(self):
        stages = make_stages(["a"], ["b"])
        err = OSError(errno.EMFILE, "Too many open files")
        with patch("piperunner.pipeline.fabric.os.pipe", side_effect=err):
            with pytest.raises(PipeCreationFailed) as exc_info:
                prepare_pipes(stages)
        assert exc_info.value.os_error is err
        assert exc_info.value.detail == "Too many open files"
        assert exc_info.value.message == "pipe() failed."


class TestReleasePipes:
    def test_release_all(self):
        stages = make_stages(["a"], ["b"], ["c"])
        prepare_pipes(stages)
        fds = [s.input.fd for s in stages[1:]] + [s.output.fd for s in stages[:-1]]
        assert release_pipes(stages, 0) == 4
        assert all(is_closed(fd) for fd in fds)
        for stage in stages[1:]:
            assert stage.input.state is SlotState.CLOSED

    def test_release_from_boundary(self):
        stages = make_stages(["a"], ["b"], ["c"])
        prepare_pipes(stages)
        first_write = stages[0].output.fd
        try:
            # stage 1 holds pipe 0's read end and pipe 1's write end; stage 2 pipe 1's read end
            assert release_pipes(stages, 1) == 3
            assert not is_closed(first_write)
            assert stages[0].output.is_open
        finally:
            release_pipes(stages, 0)
        assert is_closed(first_write)

    def test_release_twice_is_noop(self):
        stages = make_stages(["a"], ["b"])
        prepare_pipes(stages)
        release_pipes(stages, 0)
        assert release_pipes(stages, 0) == 0

    def test_keep_marks_closed_without_closing(self):
        stages = make_stages(["a"], ["b"])
        prepare_pipes(stages)
        kept = stages[1].input.fd
        try:
            assert release_pipes(stages, 0, keep=[kept]) == 1
            assert stages[1].input.state is SlotState.CLOSED
            assert not is_closed(kept)
        finally:
            os.close(kept)
