"""
Run State
=========

Per-execution state machine of a pipeline run:

    Pending -> Running(0) -> Running(1) -> ... -> Succeeded
                     \\            \\
                      +-> Failed    +-> Failed

Running only advances left to right; there is no retry, skip or branch edge.
"""

import logging
import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Set, Tuple

from pydantic import BaseModel, Field

from core.errors import PipelineError

logger = logging.getLogger(__name__)


class RunStatus(str, Enum):
    """Lifecycle states of a pipeline run."""
    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class RunTransition(Enum):
    """
    Valid status transitions.

    RUNNING -> RUNNING is the advance to the next step; the step index must
    grow by exactly one (checked by PipelineRun.advance).
    """
    START = (RunStatus.PENDING, RunStatus.RUNNING)
    ADVANCE = (RunStatus.RUNNING, RunStatus.RUNNING)
    SUCCEED = (RunStatus.RUNNING, RunStatus.SUCCEEDED)
    FAIL = (RunStatus.RUNNING, RunStatus.FAILED)

    @property
    def from_status(self) -> RunStatus:
        return self.value[0]

    @property
    def to_status(self) -> RunStatus:
        return self.value[1]


class TransitionValidator:
    """
    Validates run status transitions.

    Example:
        >>> TransitionValidator.validate(RunStatus.PENDING, RunStatus.RUNNING)  # True
        >>> TransitionValidator.validate(RunStatus.FAILED, RunStatus.RUNNING)  # False
    """

    VALID_TRANSITIONS: Set[Tuple[RunStatus, RunStatus]] = {t.value for t in RunTransition}

    @classmethod
    def validate(cls, from_status: RunStatus, to_status: RunStatus) -> bool:
        is_valid = (from_status, to_status) in cls.VALID_TRANSITIONS
        if not is_valid:
            logger.warning(f"Invalid run transition attempted: {from_status.value} -> {to_status.value}")
        return is_valid

    @classmethod
    def get_allowed_transitions(cls, from_status: RunStatus) -> List[RunStatus]:
        return [to for (frm, to) in cls.VALID_TRANSITIONS if frm == from_status]

    @classmethod
    def is_terminal(cls, status: RunStatus) -> bool:
        return not cls.get_allowed_transitions(status)

    @classmethod
    def validate_or_raise(cls, from_status: RunStatus, to_status: RunStatus):
        """
        Raises:
            ValueError: If the transition is not allowed
        """
        if not cls.validate(from_status, to_status):
            allowed = [s.value for s in cls.get_allowed_transitions(from_status)]
            raise ValueError(
                f"Invalid transition: {from_status.value} -> {to_status.value}. "
                f"Allowed transitions from {from_status.value}: {allowed}"
            )


class PipelineRun(BaseModel):
    """
    Record of one pipeline execution.

    Holds progress and the structured failure, never intermediate step
    outputs: a failed run exposes no partial result.
    """
    run_id: str = Field(default_factory=lambda: uuid.uuid4().hex, description="Run identifier")
    pipeline: str = Field(default="", description="Name of the executed pipeline")
    status: RunStatus = Field(default=RunStatus.PENDING, description="Current status")
    step_index: Optional[int] = Field(default=None, description="Index of the running or failed step")
    current_step: Optional[str] = Field(default=None, description="Name of the running or failed step")
    completed_steps: List[Dict[str, Any]] = Field(default_factory=list, description="Finished steps with durations")
    error: Optional[Dict[str, Any]] = Field(default=None, description="Structured failure")
    created_at: datetime = Field(default_factory=datetime.now)
    finished_at: Optional[datetime] = None

    def _move(self, to_status: RunStatus):
        TransitionValidator.validate_or_raise(self.status, to_status)
        self.status = to_status

    def start(self, step_name: str):
        self._move(RunStatus.RUNNING)
        self.step_index = 0
        self.current_step = step_name

    def advance(self, step_index: int, step_name: str):
        if self.step_index is None or step_index != self.step_index + 1:
            raise ValueError(
                f"Steps run strictly in order: cannot move from {self.step_index} to {step_index}"
            )
        self._move(RunStatus.RUNNING)
        self.step_index = step_index
        self.current_step = step_name

    def record_step(self, step_name: str, duration_ms: float):
        self.completed_steps.append({"step": step_name, "duration_ms": round(duration_ms, 1)})

    def succeed(self):
        self._move(RunStatus.SUCCEEDED)
        self.finished_at = datetime.now()

    def fail(self, error: PipelineError):
        self._move(RunStatus.FAILED)
        self.error = error.to_dict()
        self.finished_at = datetime.now()

    @property
    def is_finished(self) -> bool:
        return TransitionValidator.is_terminal(self.status)

    def snapshot(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")
