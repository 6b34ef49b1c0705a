from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence

from .state_store import is_step_completed, mark_step_completed

logger = logging.getLogger(__name__)

Checkpoint = Callable[[Dict[str, Any]], None]


class Step(Protocol):
    """One stage of the install. run() must be safe to repeat after a crash."""

    step_id: str

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        ...


@dataclass
class PipelineResult:
    state: Dict[str, Any]
    ran_steps: List[str] = field(default_factory=list)
    skipped_steps: List[str] = field(default_factory=list)


def select_steps(
    steps: Sequence[Step],
    start_at: Optional[str] = None,
    stop_after: Optional[str] = None,
) -> List[Step]:
    """The contiguous slice of steps between start_at and stop_after (inclusive)."""

    ids = [s.step_id for s in steps]
    for wanted in (start_at, stop_after):
        if wanted is not None and wanted not in ids:
            raise ValueError(f"Unknown step_id {wanted!r}; known: {', '.join(ids)}")

    first = ids.index(start_at) if start_at else 0
    last = ids.index(stop_after) if stop_after else len(ids) - 1
    return list(steps[first : last + 1])


def _execute(step: Step, state: Dict[str, Any]) -> Dict[str, Any]:
    logger.info("==> %s", step.step_id)
    started = time.monotonic()
    state = step.run(state)
    elapsed = round(time.monotonic() - started, 3)

    mark_step_completed(state, step.step_id)
    state.setdefault("execution", {}).setdefault("timings", {})[step.step_id] = elapsed
    logger.info("<== %s (%.1fs)", step.step_id, elapsed)
    return state


def run_pipeline(
    *,
    state: Dict[str, Any],
    steps: Sequence[Step],
    start_at: Optional[str] = None,
    stop_after: Optional[str] = None,
    force: bool = False,
    checkpoint: Optional[Checkpoint] = None,
) -> PipelineResult:
    """Run the selected steps, skipping ones already recorded as completed.

    execution.current_step names the running step, so after a crash it is the
    step to look at. checkpoint(state) runs after each step that completes.
    """

    result = PipelineResult(state=state)

    for step in select_steps(steps, start_at, stop_after):
        result.state.setdefault("execution", {})["current_step"] = step.step_id

        if is_step_completed(result.state, step.step_id) and not force:
            logger.info("Skipping %s (already completed)", step.step_id)
            result.skipped_steps.append(step.step_id)
            continue

        result.state = _execute(step, result.state)
        result.ran_steps.append(step.step_id)
        if checkpoint is not None:
            checkpoint(result.state)

    if stop_after is not None:
        logger.info("Stopped after %s", stop_after)
    result.state.setdefault("execution", {})["current_step"] = None
    return result
