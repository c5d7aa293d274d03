from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence

from .state_store import is_step_completed, mark_step_completed

logger = logging.getLogger(__name__)


class Step(Protocol):
    """One resumable stage of preparing the stick."""

    step_id: str

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        ...


@dataclass(frozen=True)
class PipelineResult:
    state: Dict[str, Any]
    ran_steps: List[str]
    skipped_steps: List[str]


def select_steps(
    steps: Sequence[Step],
    *,
    start_at: Optional[str] = None,
    stop_after: Optional[str] = None,
) -> List[Step]:
    """The contiguous window of `steps` between start_at and stop_after (inclusive)."""

    ids = [s.step_id for s in steps]
    for wanted in (start_at, stop_after):
        if wanted is not None and wanted not in ids:
            raise ValueError(f"Unknown step_id: {wanted} (known: {', '.join(ids)})")

    first = ids.index(start_at) if start_at is not None else 0
    last = ids.index(stop_after) if stop_after is not None else len(ids) - 1
    if last < first:
        raise ValueError(f"stop_after {stop_after} comes before start_at {start_at}")
    return list(steps[first : last + 1])


def run_pipeline(
    *,
    state: Dict[str, Any],
    steps: Sequence[Step],
    start_at: Optional[str] = None,
    stop_after: Optional[str] = None,
    force: bool = False,
    record_progress: bool = True,
    clock: Callable[[], float] = time.monotonic,
) -> PipelineResult:
    """Run the selected steps in order, skipping completed ones unless forced.

    `execution.current_step` names the step in flight, so a failure leaves it
    pointing at the step to resume from. Wall time per step goes to
    `execution.step_seconds`. With record_progress=False (dry runs) steps
    still run but are not marked completed.
    """

    window = select_steps(steps, start_at=start_at, stop_after=stop_after)
    exe = state.setdefault("execution", {})
    timings = exe.setdefault("step_seconds", {})

    ran: List[str] = []
    skipped: List[str] = []

    for n, step in enumerate(window, start=1):
        exe["current_step"] = step.step_id

        if not force and is_step_completed(state, step.step_id):
            logger.info("[%d/%d] %s already completed, skipping", n, len(window), step.step_id)
            skipped.append(step.step_id)
            continue

        logger.info("[%d/%d] %s", n, len(window), step.step_id)
        started = clock()
        state = step.run(state)
        exe = state.setdefault("execution", {})
        exe.setdefault("step_seconds", timings)[step.step_id] = round(clock() - started, 3)
        if record_progress:
            mark_step_completed(state, step.step_id)
        ran.append(step.step_id)

    if stop_after is not None:
        logger.info("Stopped after %s", stop_after)

    exe["current_step"] = None
    return PipelineResult(state=state, ran_steps=ran, skipped_steps=skipped)
