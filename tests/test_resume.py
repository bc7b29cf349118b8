import pytest

from skillflow.catalog import WorkflowCatalog
from skillflow.contracts import Execution, ExecutionStatus, SkillOutput
from skillflow.engine import WorkflowEngine
from skillflow.errors import DefinitionError, ExecutionNotFoundError, InvalidStateError
from skillflow.parser import parse
from skillflow.skills import AskConfirmSkill


CONFIRM_FLOW = {
    "name": "confirm-flow",
    "initialStep": "prepare",
    "steps": [
        {"skill": "prepare", "onSuccess": "ask-confirm"},
        {
            "skill": "ask-confirm",
            "params": {"prompt": "Ship it?"},
            "onSuccess": "finish",
        },
        {"skill": "finish"},
    ],
}


@pytest.fixture
def confirm_flow(registry, make_skill):
    make_skill("prepare", SkillOutput.ok({"draft": "v1"}))
    finish = make_skill("finish", SkillOutput.ok({"shipped": True}))
    registry.register(AskConfirmSkill())
    return parse(CONFIRM_FLOW), finish


@pytest.mark.asyncio
async def test_pause_then_resume_completes(engine, confirm_flow, state_store):
    workflow, finish = confirm_flow

    paused = await engine.start(workflow, trace_id="t-confirm")
    assert paused.status == ExecutionStatus.PAUSED
    assert paused.current_step == "ask-confirm"
    assert paused.pending_input["data"]["prompt"] == "Ship it?"
    assert finish.calls == 0

    done = await engine.resume("t-confirm", response={"confirmed": "yes"})

    assert done.status == ExecutionStatus.SUCCESS
    assert done.context == {"draft": "v1", "confirmed": "yes", "shipped": True}
    assert done.pending_input is None
    # the paused step runs again on resume
    assert done.steps_executed == ["prepare", "ask-confirm", "ask-confirm", "finish"]
    assert finish.calls == 1
    assert (await state_store.load("t-confirm")).status == ExecutionStatus.SUCCESS


@pytest.mark.asyncio
async def test_resume_without_answer_pauses_again(engine, confirm_flow):
    workflow, _ = confirm_flow
    await engine.start(workflow, trace_id="t-again")

    again = await engine.resume("t-again")

    assert again.status == ExecutionStatus.PAUSED
    assert again.current_step == "ask-confirm"


@pytest.mark.asyncio
async def test_resume_terminal_execution_is_rejected_without_writes(
    engine, make_skill, state_store, store
):
    make_skill("only", SkillOutput.ok())
    workflow = parse({"name": "one", "initialStep": "only", "steps": [{"skill": "only"}]})
    await engine.start(workflow, trace_id="t-done")
    before = await store.load("workflow-state/t-done")

    with pytest.raises(InvalidStateError):
        await engine.resume("t-done", response={"late": True})

    assert await store.load("workflow-state/t-done") == before


@pytest.mark.asyncio
async def test_resume_unknown_trace_raises(engine):
    with pytest.raises(ExecutionNotFoundError):
        await engine.resume("missing")


@pytest.mark.asyncio
async def test_resume_with_unknown_workflow_raises(registry, state_store):
    await state_store.save(
        Execution(trace_id="t-orphan", workflow_name="gone", current_step="x")
    )
    engine = WorkflowEngine(registry, state_store)

    with pytest.raises(DefinitionError):
        await engine.resume("t-orphan")


@pytest.mark.asyncio
async def test_resume_rejects_mismatched_workflow(engine, confirm_flow):
    workflow, _ = confirm_flow
    await engine.start(workflow, trace_id="t-mismatch")
    other = parse({"name": "other", "initialStep": "prepare", "steps": [{"skill": "prepare"}]})

    with pytest.raises(DefinitionError):
        await engine.resume("t-mismatch", workflow=other)


@pytest.mark.asyncio
async def test_resume_fails_when_current_step_disappeared(registry, state_store, make_skill):
    make_skill("a", SkillOutput.ok())
    await state_store.save(
        Execution(
            trace_id="t-stale",
            workflow_name="edited",
            current_step="removed",
            status=ExecutionStatus.PAUSED,
        )
    )
    workflow = parse({"name": "edited", "initialStep": "a", "steps": [{"skill": "a"}]})
    engine = WorkflowEngine(registry, state_store, catalog=WorkflowCatalog([workflow]))

    execution = await engine.resume("t-stale")

    assert execution.status == ExecutionStatus.FAILED
    assert "removed" in execution.error
    assert execution.steps_executed == []


@pytest.mark.asyncio
async def test_resume_interrupted_running_execution(registry, state_store, make_skill):
    step = make_skill("b", SkillOutput.ok({"b": 1}))
    workflow = parse(
        {
            "name": "crashy",
            "initialStep": "a",
            "steps": [{"skill": "a", "onSuccess": "b"}, {"skill": "b"}],
        }
    )
    await state_store.save(
        Execution(
            trace_id="t-crash",
            workflow_name="crashy",
            current_step="b",
            context={"a": 1},
            steps_executed=["a"],
        )
    )
    engine = WorkflowEngine(registry, state_store)

    execution = await engine.resume("t-crash", workflow=workflow)

    assert execution.status == ExecutionStatus.SUCCESS
    assert execution.steps_executed == ["a", "b"]
    assert execution.context == {"a": 1, "b": 1}
    assert step.calls == 1


@pytest.mark.asyncio
async def test_resume_starts_a_fresh_retry_budget(engine, make_skill):
    flaky = make_skill(
        "flaky",
        SkillOutput.retryable("down"),
        SkillOutput.needs_input(message="operator check"),
        SkillOutput.retryable("down"),
        SkillOutput.ok(),
    )
    workflow = parse(
        {"name": "budget", "initialStep": "flaky", "steps": [{"skill": "flaky", "retry": 1}]}
    )

    paused = await engine.start(workflow, trace_id="t-budget")
    assert paused.status == ExecutionStatus.PAUSED

    done = await engine.resume("t-budget")

    assert done.status == ExecutionStatus.SUCCESS
    assert flaky.calls == 4


@pytest.mark.asyncio
async def test_resume_last_picks_latest_resumable(engine, confirm_flow):
    workflow, _ = confirm_flow
    await engine.start(workflow, trace_id="t-first")
    await engine.start(workflow, trace_id="t-second")

    execution = await engine.resume_last({"confirmed": "no"})

    assert execution.trace_id == "t-second"
    assert execution.status == ExecutionStatus.SUCCESS


@pytest.mark.asyncio
async def test_resume_last_without_candidates(engine):
    with pytest.raises(ExecutionNotFoundError):
        await engine.resume_last()


class SecondConfirm(AskConfirmSkill):
    meta = AskConfirmSkill.meta.model_copy(update={"name": "confirm-again"})


def _double_confirm_flow(second_params):
    return parse(
        {
            "name": "double-confirm",
            "initialStep": "ask-confirm",
            "steps": [
                {
                    "skill": "ask-confirm",
                    "params": {"prompt": "Ship it?"},
                    "onSuccess": "confirm-again",
                },
                {"skill": "confirm-again", "params": second_params, "onSuccess": "finish"},
                {"skill": "finish"},
            ],
        }
    )


@pytest.mark.asyncio
async def test_answer_is_reused_by_later_confirmation_with_same_key(
    engine, registry, make_skill
):
    make_skill("finish", SkillOutput.ok())
    registry.register(AskConfirmSkill())
    registry.register(SecondConfirm())
    workflow = _double_confirm_flow({"prompt": "Really ship it?"})

    await engine.start(workflow, trace_id="t-same-key")
    done = await engine.resume("t-same-key", response={"confirmed": "yes"})

    assert done.status == ExecutionStatus.SUCCESS
    assert done.steps_executed[-2:] == ["confirm-again", "finish"]


@pytest.mark.asyncio
async def test_confirmation_with_own_key_asks_again(engine, registry, make_skill):
    finish = make_skill("finish", SkillOutput.ok())
    registry.register(AskConfirmSkill())
    registry.register(SecondConfirm())
    workflow = _double_confirm_flow({"prompt": "Really ship it?", "key": "really"})

    await engine.start(workflow, trace_id="t-own-key")
    second = await engine.resume("t-own-key", response={"confirmed": "yes"})

    assert second.status == ExecutionStatus.PAUSED
    assert second.current_step == "confirm-again"
    assert second.pending_input["data"]["key"] == "really"
    assert finish.calls == 0

    done = await engine.resume("t-own-key", response={"really": "yes"})
    assert done.status == ExecutionStatus.SUCCESS
    assert done.context["really"] == "yes"
