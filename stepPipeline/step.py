"""
Step
====

A named unit of work with an input contract, an output contract and an
executor.

The executor receives the validated input and may return:
- a value (dict) conforming to the output contract,
- an awaitable resolving to such a value,
- a fragment sequence (sync/async iterator of str), reduced by the
  StreamAggregator. With ``stream_field`` set the aggregated text is placed
  under that key; otherwise the bare string is validated (and an object
  contract will reject it).
"""

import inspect
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from core.contracts import Contract
from core.errors import (
    ContractViolation,
    InputContractViolation,
    OutputContractViolation,
    PipelineDefinitionError,
    PipelineError,
    StepExecutionError,
)
from core.timeout import run_with_timeout
from stepPipeline.stream_aggregator import FragmentObserver, StreamAggregator, is_fragment_sequence

logger = logging.getLogger(__name__)

Executor = Callable[[Any], Any]


@dataclass(frozen=True)
class Step:
    """
    Immutable step definition; holds no per-run state.

    Args:
        name: Step identifier (uniqueness is checked by Pipeline.compose)
        input_contract: Contract the raw input must satisfy
        output_contract: Contract the executor's result must satisfy
        executor: Function of the validated input
        description: Free text shown in workflow listings
        stream_field: Output key that receives aggregated stream text
        timeout: Seconds allowed for the executor, stream included
    """
    name: str
    input_contract: Contract
    output_contract: Contract
    executor: Executor
    description: str = ""
    stream_field: Optional[str] = None
    timeout: Optional[float] = None

    def __post_init__(self):
        if not isinstance(self.input_contract, Contract):
            raise PipelineDefinitionError(
                f"Step '{self.name}': input_contract must be a Contract, "
                f"got {type(self.input_contract).__name__}"
            )
        if not isinstance(self.output_contract, Contract):
            raise PipelineDefinitionError(
                f"Step '{self.name}': output_contract must be a Contract, "
                f"got {type(self.output_contract).__name__}"
            )
        if not callable(self.executor):
            raise PipelineDefinitionError(f"Step '{self.name}': executor must be callable")

    async def _invoke(self, validated_input: Any, on_fragment: Optional[FragmentObserver]) -> Any:
        result = self.executor(validated_input)
        if inspect.isawaitable(result):
            result = await result

        if is_fragment_sequence(result):
            text = await StreamAggregator(on_fragment=on_fragment).aggregate(result)
            return {self.stream_field: text} if self.stream_field else text
        return result

    async def run(self, raw_input: Any, on_fragment: Optional[FragmentObserver] = None) -> Any:
        """
        Validate input, execute, validate output.

        Raises:
            InputContractViolation: raw input rejected; executor not invoked
            OutputContractViolation: executor result rejected
            StreamInterrupted: streamed result ended abnormally
            ProviderTimeout: executor exceeded ``timeout``
            StepExecutionError: executor raised anything else (kept as __cause__)

        Every error raised here carries this step's name.
        """
        try:
            validated_input = self.input_contract.validate(raw_input)
        except ContractViolation as e:
            raise InputContractViolation(e.message, path=e.path, step_name=self.name) from None

        logger.info(f"🛠️ [Step] Executing: {self.name}")
        try:
            result = await run_with_timeout(
                self._invoke(validated_input, on_fragment),
                self.timeout,
                label=self.name,
            )
        except PipelineError as e:
            e.step_name = e.step_name or self.name
            raise
        except Exception as e:
            raise StepExecutionError(f"{type(e).__name__}: {e}", step_name=self.name) from e

        try:
            validated_output = self.output_contract.validate(result)
        except ContractViolation as e:
            raise OutputContractViolation(e.message, path=e.path, step_name=self.name) from None

        logger.info(f"✅ [Step] {self.name} completed")
        return validated_output

    def describe(self):
        return {
            "id": self.name,
            "description": self.description,
            "inputSchema": self.input_contract.describe(),
            "outputSchema": self.output_contract.describe(),
            "streams": self.stream_field is not None,
        }


def create_step(
    name: str,
    input_contract: Contract,
    output_contract: Contract,
    executor: Executor,
    **options,
) -> Step:
    """Functional constructor mirroring Step(...)."""
    return Step(name, input_contract, output_contract, executor, **options)
