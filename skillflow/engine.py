"""Workflow execution engine: drives a workflow graph one skill at a time."""

from __future__ import annotations

import copy
import logging
import uuid
from typing import Any, Dict, Optional

from pydantic_core import PydanticSerializationError, to_jsonable_python

from .catalog import WorkflowCatalog
from .contracts import (
    Execution,
    ExecutionStatus,
    SkillContext,
    SkillInput,
    SkillOutput,
    SkillStatus,
    Step,
    StepRecord,
    Workflow,
    utcnow,
)
from .errors import (
    DefinitionError,
    ExecutionNotFoundError,
    InvalidStateError,
    UnknownSkillError,
)
from .parser import validate
from .registry import SkillRegistry
from .state import StateStore, check_trace_id
from .utils.retry import wait_before_retry

logger = logging.getLogger(__name__)


class RetryCounter:
    """Failure count for the current occurrence of a step.

    The count survives re-invocations of the same step and is reset whenever
    a different step is entered. The engine keeps one per running trace, in
    memory only, so a resumed execution starts counting from zero.
    """

    def __init__(self) -> None:
        self.step: Optional[str] = None
        self.failures = 0

    def enter(self, step_name: str) -> None:
        if step_name != self.step:
            self.step = step_name
            self.failures = 0

    def reset(self) -> None:
        self.step = None
        self.failures = 0

    def record_failure(self) -> int:
        self.failures += 1
        return self.failures


class WorkflowEngine:
    """Execute workflows against a skill registry, checkpointing every transition.

    Args:
        registry: Skills available to workflow steps.
        state_store: Checkpoint persistence keyed by trace id.
        catalog: Workflows known to the engine, used to resume by trace id.
        retry_backoff: Optional exponential backoff base (seconds) awaited
            before a failed step is invoked again.
    """

    def __init__(
        self,
        registry: SkillRegistry,
        state_store: StateStore,
        catalog: Optional[WorkflowCatalog] = None,
        retry_backoff: Optional[float] = None,
    ) -> None:
        self._registry = registry
        self._state = state_store
        self._catalog = catalog if catalog is not None else WorkflowCatalog()
        self._retry_backoff = retry_backoff
        self._retries: Dict[str, RetryCounter] = {}

    @property
    def catalog(self) -> WorkflowCatalog:
        return self._catalog

    # ------------------------------------------------------------------
    # Entry points
    async def start(
        self,
        workflow: Workflow,
        params: Optional[Dict[str, Any]] = None,
        trace_id: Optional[str] = None,
    ) -> Execution:
        """Begin a new execution of ``workflow`` and run it until it stops.

        Raises:
            InvalidTraceIdError: If ``trace_id`` is not a single path segment.
            DefinitionError: If ``workflow`` fails validation. Nothing is
                persisted in that case.
        """
        result = validate(workflow)
        if not result.valid:
            raise DefinitionError(
                f"Workflow {workflow.name} validation failed: {'; '.join(result.errors)}"
            )
        for warning in result.warnings:
            logger.warning(f"Workflow {workflow.name}: {warning}")

        trace_id = check_trace_id(trace_id or str(uuid.uuid4()))
        if workflow.name not in self._catalog:
            self._catalog.register(workflow)

        execution = Execution(
            trace_id=trace_id,
            workflow_name=workflow.name,
            current_step=workflow.initial_step,
            params=dict(params or {}),
        )
        logger.info(f"Starting workflow {workflow.name} for trace_id={execution.trace_id}")
        await self._checkpoint(execution)
        return await self._drive(execution, workflow)

    async def resume(
        self,
        trace_id: str,
        response: Optional[Dict[str, Any]] = None,
        workflow: Optional[Workflow] = None,
    ) -> Execution:
        """Continue a paused or interrupted execution from its checkpoint.

        ``response`` is merged into the execution context before the current
        step is invoked again.

        Raises:
            ExecutionNotFoundError: If no checkpoint exists for ``trace_id``.
            InvalidStateError: If the execution already finished.
            DefinitionError: If the execution's workflow is unknown.
        """
        execution = await self._state.load(trace_id)
        if execution is None:
            raise ExecutionNotFoundError(trace_id)
        if execution.status.is_terminal:
            raise InvalidStateError(
                f"Cannot resume execution {trace_id} with status {execution.status.value}"
            )

        workflow = workflow or self._catalog.get(execution.workflow_name)
        if workflow is None:
            raise DefinitionError(f"Workflow {execution.workflow_name} is not registered")
        if workflow.name != execution.workflow_name:
            raise DefinitionError(
                f"Execution {trace_id} belongs to workflow {execution.workflow_name}, "
                f"not {workflow.name}"
            )

        if response:
            execution.context.update(response)
        execution.pending_input = None
        execution.status = ExecutionStatus.RUNNING
        logger.info(
            f"Resuming workflow {workflow.name} at step {execution.current_step} "
            f"for trace_id={trace_id}"
        )
        await self._checkpoint(execution)
        return await self._drive(execution, workflow)

    async def resume_last(self, response: Optional[Dict[str, Any]] = None) -> Execution:
        """Resume the most recently started paused or running execution."""
        execution = await self._state.get_last_resumable()
        if execution is None:
            raise ExecutionNotFoundError("<latest>")
        return await self.resume(execution.trace_id, response=response)

    # ------------------------------------------------------------------
    # State machine
    async def _drive(self, execution: Execution, workflow: Workflow) -> Execution:
        self._retries[execution.trace_id] = RetryCounter()
        while await self.tick(execution, workflow):
            pass
        return execution

    async def tick(self, execution: Execution, workflow: Workflow) -> bool:
        """Invoke the current step once and apply the resulting transition.

        Returns ``True`` while the execution should keep ticking. The new
        state is checkpointed before this method returns. Failures of the
        current step are counted across calls for the same trace until the
        execution pauses or finishes.
        """
        if execution.status != ExecutionStatus.RUNNING:
            raise InvalidStateError(
                f"Execution {execution.trace_id} is {execution.status.value}, not running"
            )
        retries = self._retries.setdefault(execution.trace_id, RetryCounter())
        try:
            return await self._advance(execution, workflow, retries)
        finally:
            if execution.status != ExecutionStatus.RUNNING:
                self._retries.pop(execution.trace_id, None)

    async def _advance(
        self, execution: Execution, workflow: Workflow, retries: RetryCounter
    ) -> bool:
        step_name = execution.current_step

        step = workflow.get_step(step_name)
        if step is None:
            return await self._fail(
                execution, f'Step "{step_name}" not found in workflow "{workflow.name}"'
            )

        skill = self._registry.get(step.skill_name)
        if skill is None:
            return await self._fail(execution, str(UnknownSkillError(step.skill_name)))

        retries.enter(step_name)
        record = StepRecord(
            trace_id=execution.trace_id,
            step_name=step_name,
            attempt=retries.failures + 1,
        )
        logger.debug(f"Executing step {step_name} for trace_id={execution.trace_id}")
        output = self._checkpointable(
            await skill.invoke(self._build_input(execution, step)), step_name
        )

        execution.steps_executed.append(step_name)
        record.status = output.status.name.lower()
        record.message = output.message
        record.completed_at = utcnow()
        await self._state.record_step(record)

        if output.status == SkillStatus.OK:
            return await self._on_success(execution, step, output, retries)
        if output.status == SkillStatus.NEEDS_INPUT:
            return await self._on_needs_input(execution, step, output)
        if output.status == SkillStatus.RETRYABLE:
            return await self._on_retryable(execution, step, output, retries)
        return await self._fail(execution, output.message or f'Step "{step_name}" failed')

    async def _on_success(
        self,
        execution: Execution,
        step: Step,
        output: SkillOutput,
        retries: RetryCounter,
    ) -> bool:
        execution.context.update(output.data)
        retries.reset()
        if step.on_success is None:
            execution.finish(ExecutionStatus.SUCCESS)
            await self._checkpoint(execution)
            duration = execution.end_time - execution.start_time
            logger.info(
                f"Workflow {execution.workflow_name} completed for "
                f"trace_id={execution.trace_id} in {duration.total_seconds():.3f}s"
            )
            return False
        execution.current_step = step.on_success
        await self._checkpoint(execution)
        return True

    async def _on_needs_input(
        self, execution: Execution, step: Step, output: SkillOutput
    ) -> bool:
        execution.status = ExecutionStatus.PAUSED
        execution.pending_input = {
            "step": step.skill_name,
            "message": output.message,
            "data": output.data,
        }
        await self._checkpoint(execution)
        logger.info(
            f"Workflow {execution.workflow_name} paused at step {step.skill_name} "
            f"for trace_id={execution.trace_id}"
        )
        return False

    async def _on_retryable(
        self,
        execution: Execution,
        step: Step,
        output: SkillOutput,
        retries: RetryCounter,
    ) -> bool:
        failures = retries.record_failure()
        if failures <= step.retry_budget:
            logger.warning(
                f"Step {step.skill_name} failed for trace_id={execution.trace_id}, "
                f"retry {failures}/{step.retry_budget}: {output.message}"
            )
            await self._checkpoint(execution)
            if self._retry_backoff:
                await wait_before_retry(failures, self._retry_backoff)
            return True

        target = step.on_fail
        if target is None or target == step.skill_name:
            return await self._fail(
                execution,
                f'Step "{step.skill_name}" failed after {failures} attempts: {output.message}',
            )
        logger.warning(
            f"Step {step.skill_name} exhausted its retry budget for "
            f"trace_id={execution.trace_id}, continuing at {target}"
        )
        retries.reset()
        execution.current_step = target
        await self._checkpoint(execution)
        return True

    async def _fail(self, execution: Execution, error: str) -> bool:
        execution.finish(ExecutionStatus.FAILED, error=error)
        await self._checkpoint(execution)
        logger.error(
            f"Workflow {execution.workflow_name} failed for trace_id={execution.trace_id}: {error}"
        )
        return False

    # ------------------------------------------------------------------
    # Helpers
    @staticmethod
    def _checkpointable(output: SkillOutput, step_name: str) -> SkillOutput:
        try:
            to_jsonable_python(output.data)
        except (PydanticSerializationError, ValueError) as e:
            return SkillOutput.fatal(
                f'Step "{step_name}" returned data that cannot be checkpointed: {e}'
            )
        return output

    def _build_input(self, execution: Execution, step: Step) -> SkillInput:
        return SkillInput(
            params={**execution.params, **step.params},
            context=SkillContext(
                read_only=copy.deepcopy(execution.params),
                writable=copy.deepcopy(execution.context),
            ),
            trace_id=execution.trace_id,
            step=step.skill_name,
        )

    async def _checkpoint(self, execution: Execution) -> None:
        await self._state.save(execution)
