from __future__ import annotations

import pytest

from multiboot_usb.pipeline import run_pipeline, select_steps


class RecordingStep:
    def __init__(self, step_id, log):
        self.step_id = step_id
        self.log = log

    def run(self, state):
        self.log.append(self.step_id)
        state.setdefault("seen", []).append(self.step_id)
        return state


def _steps(log):
    return [RecordingStep(s, log) for s in ("10_a", "20_b", "30_c")]


def test_runs_all_in_order():
    log = []
    result = run_pipeline(state={}, steps=_steps(log))
    assert log == ["10_a", "20_b", "30_c"]
    assert result.ran_steps == log
    assert result.state["execution"]["completed_steps"] == log
    assert result.state["execution"]["current_step"] is None


def test_skips_completed_unless_forced():
    log = []
    state = {"execution": {"completed_steps": ["10_a"]}}
    result = run_pipeline(state=state, steps=_steps(log))
    assert result.skipped_steps == ["10_a"]
    assert log == ["20_b", "30_c"]

    log.clear()
    result = run_pipeline(state=state, steps=_steps(log), force=True)
    assert log == ["10_a", "20_b", "30_c"]


def test_start_at_and_stop_after():
    log = []
    run_pipeline(state={}, steps=_steps(log), start_at="20_b", stop_after="20_b")
    assert log == ["20_b"]


def test_unknown_step_id():
    with pytest.raises(ValueError, match="Unknown step_id"):
        run_pipeline(state={}, steps=_steps([]), start_at="99_nope")


def test_failure_leaves_step_uncompleted():
    class Boom:
        step_id = "20_b"

        def run(self, state):
            raise RuntimeError("boom")

    state = {}
    with pytest.raises(RuntimeError):
        run_pipeline(state=state, steps=[RecordingStep("10_a", []), Boom()])
    assert state["execution"]["completed_steps"] == ["10_a"]
    assert state["execution"]["current_step"] == "20_b"


def test_select_steps_window():
    steps = _steps([])
    assert [s.step_id for s in select_steps(steps, start_at="20_b")] == ["20_b", "30_c"]
    assert [s.step_id for s in select_steps(steps, stop_after="20_b")] == ["10_a", "20_b"]
    with pytest.raises(ValueError, match="comes before"):
        select_steps(steps, start_at="30_c", stop_after="10_a")


def test_step_seconds_recorded():
    ticks = iter([10.0, 12.5, 20.0, 20.25])
    result = run_pipeline(state={}, steps=_steps([])[:2], clock=lambda: next(ticks))
    assert result.state["execution"]["step_seconds"] == {"10_a": 2.5, "20_b": 0.25}


def test_progress_not_recorded_when_disabled():
    log = []
    result = run_pipeline(state={}, steps=_steps(log), record_progress=False)
    assert log == ["10_a", "20_b", "30_c"]
    assert result.state["execution"].get("completed_steps", []) == []
