"""Tests for the tool-result processor — at-most-once persistence of tool side effects."""

import asyncio

from conftest import FakeGateway, make_breakdown, make_job, make_profile, scored_entry
from jobpilot.chat.aggregator import SessionAggregator
from jobpilot.chat.messages import AgentName, Message, TextPart, ToolInvocation, ToolState
from jobpilot.chat.processor import ToolResultProcessor
from jobpilot.tools.results import SavedJobsOutput, ScoredJobsOutput


def _saved_output(*job_ids: str) -> dict:
    jobs = [make_job(job_id).mark_saved() for job_id in job_ids]
    return SavedJobsOutput(
        saved_jobs=jobs, count=len(jobs), message=f"Saved {len(jobs)} jobs"
    ).to_json_dict()


def _scored_output(*entries: dict) -> dict:
    return ScoredJobsOutput.model_validate({
        "scoredJobs": list(entries),
        "count": len(entries),
        "averageScore": 83,
        "priorityCounts": {"medium": len(entries)},
        "message": "Scored",
    }).to_json_dict()


def _reply(
    tool_name: str,
    output: dict | None,
    invocation_id: str = "call-1",
    state: ToolState = ToolState.COMPLETED,
    origin: AgentName = AgentName.DISCOVERY,
) -> Message:
    invocation = ToolInvocation(
        tool_name=tool_name, invocation_id=invocation_id, state=state, output=output
    )
    return Message(role="assistant", origin=origin, parts=[invocation, TextPart(text="Done")])


# -- At-most-once ----------------------------------------------------------------


async def test_save_persisted_once_across_many_passes(gateway: FakeGateway) -> None:
    processor = ToolResultProcessor(gateway, "u1")
    messages = [_reply("saveJobsToProfile", _saved_output("a", "b"))]

    for _ in range(5):
        await processor.process(messages)

    assert len(gateway.upsert_calls) == 1
    assert [job.id for job in gateway.upsert_calls[0]] == ["a", "b"]
    assert processor.is_processed("call-1")


async def test_concurrent_passes_persist_once(gateway: FakeGateway) -> None:
    gateway.write_delay = 0.01
    processor = ToolResultProcessor(gateway, "u1")
    messages = [_reply("saveJobsToProfile", _saved_output("a"))]

    await asyncio.gather(*(processor.process(messages) for _ in range(10)))

    assert len(gateway.upsert_calls) == 1


async def test_in_progress_invocation_is_processed_once_completed(gateway: FakeGateway) -> None:
    processor = ToolResultProcessor(gateway, "u1")
    message = _reply("saveJobsToProfile", None, state=ToolState.INPUT_READY)

    report = await processor.process([message])
    assert report.processed == []
    assert gateway.upsert_calls == []

    invocation = message.tool_invocations[0]
    invocation.output = _saved_output("a")
    invocation.state = ToolState.COMPLETED
    await processor.process([message])
    await processor.process([message])
    assert len(gateway.upsert_calls) == 1


async def test_distinct_invocations_each_persist(gateway: FakeGateway) -> None:
    processor = ToolResultProcessor(gateway, "u1")
    messages = [
        _reply("saveJobsToProfile", _saved_output("a"), invocation_id="c1"),
        _reply("saveJobsToProfile", _saved_output("b"), invocation_id="c2"),
    ]
    report = await processor.process(messages)
    assert report.processed == ["c1", "c2"]
    assert len(gateway.upsert_calls) == 2


async def test_user_messages_and_errored_calls_ignored(gateway: FakeGateway) -> None:
    processor = ToolResultProcessor(gateway, "u1")
    user = Message(
        role="user",
        origin=AgentName.DISCOVERY,
        parts=[ToolInvocation("saveJobsToProfile", "u-call", ToolState.COMPLETED, output=_saved_output("a"))],
    )
    errored = _reply("saveJobsToProfile", None, invocation_id="e1", state=ToolState.ERRORED)

    report = await processor.process([user, errored])
    assert report.processed == []
    assert gateway.upsert_calls == []


async def test_tools_without_side_effects_only_claimed(gateway: FakeGateway) -> None:
    processor = ToolResultProcessor(gateway, "u1")
    display = {"action": "display", "jobs": [], "count": 0, "message": "none"}
    report = await processor.process([_reply("displayJobs", display)])

    assert report.processed == ["call-1"]
    assert report.ok
    assert gateway.upsert_calls == []


async def test_works_on_aggregated_timeline(gateway: FakeGateway) -> None:
    processor = ToolResultProcessor(gateway, "u1")
    aggregator = SessionAggregator()
    discovery = [_reply("saveJobsToProfile", _saved_output("a"), invocation_id="d1")]

    for _ in range(3):
        await processor.process(aggregator.observe(discovery, []))
    assert len(gateway.upsert_calls) == 1


# -- Scores ------------------------------------------------------------------------


async def test_scores_applied_with_derived_priority() -> None:
    gateway = FakeGateway(profile=make_profile(), jobs=[make_job("a").mark_saved()])
    processor = ToolResultProcessor(gateway, "u1")
    output = _scored_output(scored_entry("a", priority="high"))

    report = await processor.process(
        [_reply("scoreJobsTool", output, origin=AgentName.MATCHING)]
    )

    assert report.ok
    assert len(gateway.score_calls) == 1
    assert gateway.score_calls[0]["a"].priority == "medium"
    assert gateway.jobs["a"].score == 83


async def test_malformed_score_reported_not_persisted() -> None:
    gateway = FakeGateway(profile=make_profile(), jobs=[make_job("a").mark_saved()])
    processor = ToolResultProcessor(gateway, "u1")
    output = _scored_output(scored_entry("a", make_breakdown(salary=40)))

    report = await processor.process(
        [_reply("scoreJobsTool", output, origin=AgentName.MATCHING)]
    )

    assert not report.ok
    assert report.failures[0].tool_name == "scoreJobsTool"
    assert "salary_match" in report.failures[0].error
    assert gateway.score_calls == []


async def test_scores_without_profile_fail() -> None:
    gateway = FakeGateway(profile=None, jobs=[make_job("a").mark_saved()])
    processor = ToolResultProcessor(gateway, "u1")
    report = await processor.process(
        [_reply("scoreJobsTool", _scored_output(scored_entry("a")))]
    )
    assert not report.ok
    assert gateway.score_calls == []


# -- Failures and refresh ------------------------------------------------------------


async def test_failed_write_reported_and_not_retried(gateway: FakeGateway) -> None:
    gateway.fail_writes = True
    refreshes = []

    async def on_refresh() -> None:
        refreshes.append(True)

    processor = ToolResultProcessor(gateway, "u1", on_refresh=on_refresh)
    messages = [_reply("saveJobsToProfile", _saved_output("a"))]

    first = await processor.process(messages)
    second = await processor.process(messages)

    assert len(first.failures) == 1
    assert first.failures[0].invocation_id == "call-1"
    assert second.failures == []
    assert len(gateway.upsert_calls) == 1
    assert refreshes == []


async def test_unexpected_output_shape_reported(gateway: FakeGateway) -> None:
    processor = ToolResultProcessor(gateway, "u1")
    report = await processor.process([_reply("saveJobsToProfile", {"unexpected": True})])
    assert len(report.failures) == 1
    assert gateway.upsert_calls == []


async def test_refresh_called_once_per_pass_with_changes(gateway: FakeGateway) -> None:
    refreshes = []

    async def on_refresh() -> None:
        refreshes.append(True)

    processor = ToolResultProcessor(gateway, "u1", on_refresh=on_refresh)
    messages = [
        _reply("saveJobsToProfile", _saved_output("a"), invocation_id="c1"),
        _reply("saveJobsToProfile", _saved_output("b"), invocation_id="c2"),
    ]
    await processor.process(messages)
    await processor.process(messages)
    assert refreshes == [True]


async def test_reset_forgets_processed_ids(gateway: FakeGateway) -> None:
    processor = ToolResultProcessor(gateway, "u1")
    messages = [_reply("saveJobsToProfile", _saved_output("a"))]
    await processor.process(messages)

    processor.reset()
    assert not processor.is_processed("call-1")


async def test_gateway_exception_on_save_reported_once(gateway: FakeGateway) -> None:
    gateway.write_error = RuntimeError("disk I/O error")
    processor = ToolResultProcessor(gateway, "u1")
    messages = [_reply("saveJobsToProfile", _saved_output("a"))]

    first = await processor.process(messages)
    second = await processor.process(messages)

    assert len(first.failures) == 1
    assert first.failures[0].error == "disk I/O error"
    assert processor.is_processed("call-1")
    assert second.failures == []
    assert len(gateway.upsert_calls) == 1


async def test_gateway_exception_on_scores_reported_once() -> None:
    gateway = FakeGateway(profile=make_profile(), jobs=[make_job("a").mark_saved()])
    gateway.write_error = RuntimeError("database is locked")
    processor = ToolResultProcessor(gateway, "u1")
    messages = [
        _reply("scoreJobsTool", _scored_output(scored_entry("a")), origin=AgentName.MATCHING)
    ]

    first = await processor.process(messages)
    second = await processor.process(messages)

    assert [f.tool_name for f in first.failures] == ["scoreJobsTool"]
    assert processor.is_processed("call-1")
    assert second.failures == []
    assert len(gateway.score_calls) == 1
    assert gateway.jobs["a"].score is None


async def test_refresh_failure_does_not_escape(gateway: FakeGateway) -> None:
    async def on_refresh() -> None:
        msg = "db locked"
        raise RuntimeError(msg)

    processor = ToolResultProcessor(gateway, "u1", on_refresh=on_refresh)
    report = await processor.process([_reply("saveJobsToProfile", _saved_output("a"))])

    assert report.ok
    assert report.refresh_error == "db locked"
    assert report.processed == ["call-1"]
    assert "a" in gateway.jobs
