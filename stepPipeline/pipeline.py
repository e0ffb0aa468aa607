"""
Pipeline
========

Ordered, immutable composition of Steps.

Composition checks everything that can be checked without running anything:
at least one step, unique non-empty names, and contract compatibility for
every adjacent pair (plus the optional pipeline-level input/output
contracts). Execution threads each step's validated output into the next
step and fails fast, tagging the failure with the step's name.
"""

import logging
import time
from typing import Any, Dict, Iterable, Optional, Tuple

from core.contracts import Contract, incompatibilities
from core.errors import (
    ContractViolation,
    InputContractViolation,
    PipelineDefinitionError,
    PipelineError,
    RunStateError,
    StepExecutionError,
)
from core.run_state import PipelineRun, RunStatus
from stepPipeline.step import Step
from stepPipeline.stream_aggregator import FragmentObserver

logger = logging.getLogger(__name__)


def _check_link(upstream: Contract, downstream: Contract, where: str):
    problems = incompatibilities(upstream, downstream)
    if problems:
        raise PipelineDefinitionError(f"Incompatible contracts {where}: " + "; ".join(problems))


class Pipeline:
    """
    Immutable pipeline descriptor.

    Example:
        >>> pipeline = Pipeline.compose(fetch_weather, plan_activities, name="weather-workflow")
        >>> result = await pipeline.execute({"city": "osaka"})
    """

    __slots__ = ("_name", "_steps", "_input_contract", "_output_contract")

    def __init__(
        self,
        steps: Iterable[Step],
        name: str = "pipeline",
        input_contract: Optional[Contract] = None,
        output_contract: Optional[Contract] = None,
    ):
        steps = tuple(steps)
        self._validate_definition(steps, input_contract, output_contract)
        object.__setattr__(self, "_name", name)
        object.__setattr__(self, "_steps", steps)
        object.__setattr__(self, "_input_contract", input_contract)
        object.__setattr__(self, "_output_contract", output_contract)

    def __setattr__(self, key, value):
        raise AttributeError("Pipeline is immutable")

    @classmethod
    def compose(cls, *steps: Step, **options) -> "Pipeline":
        """
        Build a pipeline from steps in execution order.

        Raises:
            PipelineDefinitionError: empty pipeline, bad or duplicate step
                names, or incompatible contracts between neighbours
        """
        return cls(steps, **options)

    @staticmethod
    def _validate_definition(
        steps: Tuple[Step, ...],
        input_contract: Optional[Contract],
        output_contract: Optional[Contract],
    ):
        if not steps:
            raise PipelineDefinitionError("A pipeline needs at least one step")

        seen = set()
        for step in steps:
            if not isinstance(step, Step):
                raise PipelineDefinitionError(f"Expected Step, got {type(step).__name__}")
            if not isinstance(step.name, str) or not step.name.strip():
                raise PipelineDefinitionError("Step names must be non-empty strings")
            if step.name in seen:
                raise PipelineDefinitionError(f"Duplicate step name '{step.name}'")
            seen.add(step.name)

        for upstream, downstream in zip(steps, steps[1:]):
            _check_link(
                upstream.output_contract,
                downstream.input_contract,
                f"between '{upstream.name}' and '{downstream.name}'",
            )

        if input_contract is not None:
            _check_link(input_contract, steps[0].input_contract, f"at pipeline input ('{steps[0].name}')")
        if output_contract is not None:
            _check_link(steps[-1].output_contract, output_contract, f"at pipeline output ('{steps[-1].name}')")

    @property
    def name(self) -> str:
        return self._name

    @property
    def steps(self) -> Tuple[Step, ...]:
        return self._steps

    @property
    def input_contract(self) -> Contract:
        return self._input_contract or self._steps[0].input_contract

    @property
    def output_contract(self) -> Contract:
        return self._output_contract or self._steps[-1].output_contract

    def then(self, step: Step) -> "Pipeline":
        """Return a new pipeline with ``step`` appended (re-validated)."""
        return Pipeline(
            self._steps + (step,),
            name=self._name,
            input_contract=self._input_contract,
            output_contract=self._output_contract,
        )

    async def execute(
        self,
        initial_input: Any,
        on_fragment: Optional[FragmentObserver] = None,
        run: Optional[PipelineRun] = None,
    ) -> Any:
        """
        Run every step in order and return the last step's output.

        Args:
            initial_input: Raw input for the first step
            on_fragment: Observer for streamed fragments of any step
            run: Optional run record to observe progress and failure

        Returns:
            Final validated output

        Raises:
            PipelineError: first failure, with ``step_name`` set. Unknown
                executor exceptions are wrapped in StepExecutionError.
            RunStateError: ``run`` was already used
        """
        run = run or PipelineRun(pipeline=self._name)
        if run.status != RunStatus.PENDING:
            raise RunStateError(
                f"Run {run.run_id} is already {run.status.value}; each execution needs a fresh PipelineRun"
            )
        run.pipeline = self._name
        logger.info(f"🚀 [Pipeline] {self._name} run {run.run_id} started ({len(self._steps)} steps)")

        if self._input_contract is not None:
            try:
                self._input_contract.validate(initial_input)
            except ContractViolation as e:
                error = InputContractViolation(e.message, path=e.path, step_name=self._steps[0].name)
                run.start(self._steps[0].name)
                run.fail(error)
                logger.error(f"❌ [Pipeline] {self._name} rejected input: {error}")
                raise error from None

        data = initial_input
        for index, step in enumerate(self._steps):
            if index == 0:
                run.start(step.name)
            else:
                run.advance(index, step.name)

            started = time.perf_counter()
            try:
                data = await step.run(data, on_fragment=on_fragment)
            except PipelineError as e:
                e.step_name = e.step_name or step.name
                run.fail(e)
                logger.error(f"❌ [Pipeline] {self._name} failed at {step.name}: {e.kind}: {e.message}")
                raise
            except Exception as e:
                error = StepExecutionError(f"{type(e).__name__}: {e}", step_name=step.name)
                run.fail(error)
                logger.error(f"❌ [Pipeline] {self._name} failed at {step.name}: {error.message}")
                raise error from e
            run.record_step(step.name, (time.perf_counter() - started) * 1000)

        run.succeed()
        logger.info(f"✅ [Pipeline] {self._name} run {run.run_id} succeeded")
        return data

    def describe(self) -> Dict[str, Any]:
        return {
            "id": self._name,
            "inputSchema": self.input_contract.describe(),
            "outputSchema": self.output_contract.describe(),
            "steps": [step.describe() for step in self._steps],
        }

    def __repr__(self) -> str:
        return f"Pipeline({self._name!r}, steps={[s.name for s in self._steps]})"


def compose(*steps: Step, **options) -> Pipeline:
    return Pipeline.compose(*steps, **options)
