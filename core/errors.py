"""
Pipeline Errors
===============

Failure taxonomy shared by contracts, steps, providers and the pipeline.

Every error carries a ``kind`` (the class name), an optional ``step_name``
(filled in by the pipeline when the error crosses a step boundary) and a
human readable message, so callers always receive a structured failure.
"""

from typing import Any, Dict, Optional


class PipelineError(Exception):
    """Base class for every failure surfaced by a pipeline run."""

    def __init__(self, message: str, step_name: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.step_name = step_name

    @property
    def kind(self) -> str:
        return type(self).__name__

    def to_dict(self) -> Dict[str, Any]:
        """Serializable form used by the HTTP layer and run records."""
        return {
            "kind": self.kind,
            "step": self.step_name,
            "message": self.message,
        }

    def __str__(self) -> str:
        if self.step_name:
            return f"[{self.step_name}] {self.message}"
        return self.message


class ContractViolation(PipelineError):
    """
    A value does not conform to a schema contract.

    Args:
        message: Description of the mismatch
        path: Dotted path of the first offending field ("" for the root value)
    """

    def __init__(self, message: str, path: str = "", step_name: Optional[str] = None):
        super().__init__(message, step_name=step_name)
        self.path = path

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["path"] = self.path
        return data


class InputContractViolation(ContractViolation):
    """Raw input rejected before the step executor was invoked."""


class OutputContractViolation(ContractViolation):
    """The step executor ran but produced a value that breaks its output contract."""


class PipelineDefinitionError(PipelineError):
    """Misconfigured pipeline, raised at composition time only."""


class LocationNotFound(PipelineError):
    """The forecast provider could not resolve a location name."""

    def __init__(self, location: str, step_name: Optional[str] = None):
        super().__init__(f"Location '{location}' not found", step_name=step_name)
        self.location = location


class StreamInterrupted(PipelineError):
    """
    A fragment sequence ended abnormally.

    The text accumulated before the failure is discarded; only the number of
    fragments received is kept for diagnostics.
    """

    def __init__(self, message: str, fragments_received: int = 0, step_name: Optional[str] = None):
        super().__init__(message, step_name=step_name)
        self.fragments_received = fragments_received

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["fragments_received"] = self.fragments_received
        return data


class ProviderTimeout(PipelineError):
    """A provider call exceeded its configured time budget."""

    def __init__(self, timeout_seconds: float, step_name: Optional[str] = None):
        super().__init__(
            f"Provider call exceeded {timeout_seconds}s timeout",
            step_name=step_name,
        )
        self.timeout_seconds = timeout_seconds


class StepExecutionError(PipelineError):
    """An executor raised something outside this taxonomy; underlying exception kept as __cause__."""


class RunStateError(PipelineError):
    """A run record was handed to execute() after it had already started."""
