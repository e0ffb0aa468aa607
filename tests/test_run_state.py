"""
Test Run State
==============
"""

import sys
import os
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import pytest

from core.errors import LocationNotFound
from core.run_state import PipelineRun, RunStatus, TransitionValidator


def test_valid_transitions():
    assert TransitionValidator.validate(RunStatus.PENDING, RunStatus.RUNNING)
    assert TransitionValidator.validate(RunStatus.RUNNING, RunStatus.RUNNING)
    assert TransitionValidator.validate(RunStatus.RUNNING, RunStatus.SUCCEEDED)
    assert TransitionValidator.validate(RunStatus.RUNNING, RunStatus.FAILED)
    assert not TransitionValidator.validate(RunStatus.PENDING, RunStatus.SUCCEEDED)
    assert not TransitionValidator.validate(RunStatus.FAILED, RunStatus.RUNNING)


def test_terminal_states():
    assert TransitionValidator.is_terminal(RunStatus.SUCCEEDED)
    assert TransitionValidator.is_terminal(RunStatus.FAILED)
    assert not TransitionValidator.is_terminal(RunStatus.PENDING)


def test_steps_advance_strictly_in_order():
    run = PipelineRun(pipeline="demo")
    run.start("fetch")
    with pytest.raises(ValueError):
        run.advance(2, "skip-ahead")
    run.advance(1, "plan")
    assert run.step_index == 1
    assert run.current_step == "plan"


def test_finished_runs_cannot_restart():
    run = PipelineRun()
    run.start("fetch")
    run.fail(LocationNotFound("Atlantis", step_name="fetch"))
    assert run.error == {"kind": "LocationNotFound", "step": "fetch", "message": "Location 'Atlantis' not found"}
    with pytest.raises(ValueError):
        run.start("fetch")
    with pytest.raises(ValueError):
        run.succeed()


def test_snapshot_is_json_friendly():
    run = PipelineRun(pipeline="demo")
    run.start("fetch")
    run.record_step("fetch", 12.345)
    run.succeed()
    snap = run.snapshot()
    assert snap["status"] == "succeeded"
    assert snap["completed_steps"] == [{"step": "fetch", "duration_ms": 12.3}]
    assert isinstance(snap["created_at"], str)
