from .contracts import Contract, FieldSpec, define, validate
from .errors import (
    PipelineError,
    ContractViolation,
    InputContractViolation,
    OutputContractViolation,
    PipelineDefinitionError,
    LocationNotFound,
    StreamInterrupted,
    ProviderTimeout,
    StepExecutionError,
    RunStateError,
)
from .run_state import PipelineRun, RunStatus

__all__ = [
    "Contract",
    "FieldSpec",
    "define",
    "validate",
    "PipelineError",
    "ContractViolation",
    "InputContractViolation",
    "OutputContractViolation",
    "PipelineDefinitionError",
    "LocationNotFound",
    "StreamInterrupted",
    "ProviderTimeout",
    "StepExecutionError",
    "RunStateError",
    "PipelineRun",
    "RunStatus",
]
