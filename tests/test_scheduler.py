"""Tests for the persistent job scheduler."""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from coinbox.core.exceptions import NotFoundError, RemoteServiceError, ValidationError
from coinbox.modules.jobs import JobStatus
from coinbox.workflows.pipeline import Pipeline, step
from coinbox.infrastructure.database.repositories.job_repository import SqlJobRepository
from coinbox.workflows.scheduler import JobScheduler


class ManualClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


async def _echo(context, payload):
    return {"echo": payload.get("value")}


async def _explode(context, payload):
    raise RemoteServiceError("wallet service unavailable")


@pytest.mark.asyncio
async def test_enqueue_and_run_records_success(scheduler):
    scheduler.define("echo", _echo)

    invocation_id = await scheduler.enqueue("echo", {"value": 42})
    pending = await scheduler.get(invocation_id)
    assert pending.status is JobStatus.PENDING
    assert pending.payload == {"value": 42}

    processed = await scheduler.run_pending()

    assert processed == 1
    done = await scheduler.get(invocation_id)
    assert done.status is JobStatus.SUCCEEDED
    assert done.result == {"echo": 42}
    assert done.attempts == 0
    assert done.last_error is None
    assert done.finished_at is not None


@pytest.mark.asyncio
async def test_handler_failure_is_recorded_and_worker_keeps_going(scheduler):
    scheduler.define("explode", _explode)
    scheduler.define("echo", _echo)

    failing_id = await scheduler.enqueue("explode", {})
    ok_id = await scheduler.enqueue("echo", {"value": "still running"})

    assert await scheduler.run_pending() == 2

    failed = await scheduler.get(failing_id)
    assert failed.status is JobStatus.FAILED
    assert failed.attempts == 1
    assert "wallet service unavailable" in failed.last_error
    assert (await scheduler.get(ok_id)).status is JobStatus.SUCCEEDED


@pytest.mark.asyncio
async def test_enqueue_unknown_job_is_rejected(scheduler):
    with pytest.raises(ValidationError):
        await scheduler.enqueue("does not exist", {})


@pytest.mark.asyncio
async def test_get_unknown_invocation(scheduler):
    with pytest.raises(NotFoundError):
        await scheduler.get("missing")


@pytest.mark.asyncio
async def test_redefining_a_job_replaces_the_handler(scheduler):
    async def second(context, payload):
        return "second"

    scheduler.define("job", _echo)
    scheduler.define("job", second)
    invocation_id = await scheduler.enqueue("job", {"value": 1})
    await scheduler.run_pending()

    assert (await scheduler.get(invocation_id)).result == "second"
    assert scheduler.job_names == ["job"]


@pytest.mark.asyncio
async def test_concurrent_claims_have_exactly_one_winner(scheduler):
    scheduler.define("echo", _echo)
    invocation_id = await scheduler.enqueue("echo", {})

    results = await asyncio.gather(*(scheduler.claim(invocation_id, f"worker-{n}") for n in range(5)))

    winners = [result for result in results if result is not None]
    assert len(winners) == 1
    claimed = await scheduler.get(invocation_id)
    assert claimed.status is JobStatus.RUNNING
    assert claimed.worker_id == winners[0].worker_id


@pytest.mark.asyncio
async def test_concurrent_workers_run_each_invocation_once(scheduler):
    executed = []

    async def record(context, payload):
        executed.append(context.invocation.id)
        await asyncio.sleep(0)
        return payload["n"]

    scheduler.define("record", record)
    ids = [await scheduler.enqueue("record", {"n": n}) for n in range(8)]

    counts = await asyncio.gather(*(scheduler.run_pending(worker_id=f"worker-{n}") for n in range(3)))

    assert sum(counts) == 8
    assert sorted(executed) == sorted(ids)
    for invocation_id in ids:
        assert (await scheduler.get(invocation_id)).status is JobStatus.SUCCEEDED


@pytest.mark.asyncio
async def test_retry_creates_new_invocation_with_increasing_attempts(scheduler):
    scheduler.define("explode", _explode)
    first_id = await scheduler.enqueue("explode", {"wallet": "w1"})
    await scheduler.run_pending()

    second_id = await scheduler.retry(first_id)
    second = await scheduler.get(second_id)
    assert second_id != first_id
    assert second.status is JobStatus.PENDING
    assert second.retry_of == first_id
    assert second.payload == {"wallet": "w1"}

    await scheduler.run_pending()
    third_id = await scheduler.retry(second_id)
    await scheduler.run_pending()

    attempts = [(await scheduler.get(i)).attempts for i in (first_id, second_id, third_id)]
    assert attempts == [1, 2, 3]
    assert (await scheduler.get(first_id)).status is JobStatus.FAILED


@pytest.mark.asyncio
async def test_only_failed_invocations_can_be_retried(scheduler):
    scheduler.define("echo", _echo)
    invocation_id = await scheduler.enqueue("echo", {})

    with pytest.raises(ValidationError):
        await scheduler.retry(invocation_id)
    with pytest.raises(NotFoundError):
        await scheduler.retry("missing")


@pytest.mark.asyncio
async def test_stale_running_invocation_is_reclaimed(session_factory, workflow_context):
    clock = ManualClock(datetime(2026, 10, 19, 9, 0, tzinfo=timezone.utc))
    scheduler = JobScheduler(
        session_factory,
        context=workflow_context,
        stale_after=timedelta(minutes=10),
        clock=clock,
    )
    scheduler.define("echo", _echo)
    invocation_id = await scheduler.enqueue("echo", {"value": 1})

    crashed = await scheduler.claim_next("worker-a")
    assert crashed.id == invocation_id

    clock.advance(minutes=5)
    assert await scheduler.claim_next("worker-b") is None

    clock.advance(minutes=6)
    reclaimed = await scheduler.claim_next("worker-b")
    assert reclaimed.id == invocation_id
    assert crashed.claim_count == 1
    assert reclaimed.claim_count == 2
    assert reclaimed.is_reclaimed
    await scheduler.execute(reclaimed, "worker-b")

    # The first worker wakes up late; its result must not overwrite the new owner's.
    await scheduler.execute(crashed, "worker-a")
    done = await scheduler.get(invocation_id)
    assert done.status is JobStatus.SUCCEEDED
    assert done.worker_id == "worker-b"


@pytest.mark.asyncio
async def test_claim_next_ignores_undefined_jobs(session_factory, workflow_context):
    producer = JobScheduler(session_factory, context=workflow_context)
    producer.define("echo", _echo)
    producer.define("explode", _explode)
    await producer.enqueue("explode", {})

    consumer = JobScheduler(session_factory, context=workflow_context)
    consumer.define("echo", _echo)

    assert await consumer.run_pending() == 0
    assert len(await producer.list_by_status(JobStatus.PENDING)) == 1


@pytest.mark.asyncio
async def test_pipeline_can_be_registered_as_a_job(scheduler):
    @step("Load")
    async def load(context, payload):
        return payload["value"]

    @step("Check")
    async def check(context, value):
        if value < 0:
            raise ValidationError("negative")
        return {"value": value}

    scheduler.define("checked", Pipeline("checked", [load, check]))
    ok_id = await scheduler.enqueue("checked", {"value": 3})
    bad_id = await scheduler.enqueue("checked", {"value": -1})

    await scheduler.run_pending()

    assert (await scheduler.get(ok_id)).result == {"value": 3}
    failed = await scheduler.get(bad_id)
    assert failed.status is JobStatus.FAILED
    assert failed.result["failed_step"] == "Check"
    assert failed.result["failed_step_index"] == 1
    assert failed.result["completed_steps"] == ["Load"]


@pytest.mark.asyncio
async def test_worker_pool_drains_queue_and_stops(scheduler):
    scheduler.define("echo", _echo)
    ids = [await scheduler.enqueue("echo", {"value": n}) for n in range(4)]

    scheduler.start(concurrency=2)
    assert scheduler.is_running
    try:
        for _ in range(200):
            statuses = [(await scheduler.get(i)).status for i in ids]
            if all(status is JobStatus.SUCCEEDED for status in statuses):
                break
            await asyncio.sleep(0.02)
    finally:
        await scheduler.stop()

    assert not scheduler.is_running
    assert [(await scheduler.get(i)).status for i in ids] == [JobStatus.SUCCEEDED] * 4


class RecordingJobRepository(SqlJobRepository):
    calls: list[str] = []

    async def claim(self, invocation_id, **kwargs):
        self.calls.append(f"claim:{invocation_id}")
        return await super().claim(invocation_id, **kwargs)


class VanishingJobRepository(SqlJobRepository):
    """Claims succeed but the row cannot be read back."""

    async def get(self, invocation_id):
        return None


@pytest.mark.asyncio
async def test_scheduler_uses_the_given_repository_factory(session_factory, workflow_context):
    RecordingJobRepository.calls = []
    scheduler = JobScheduler(session_factory, context=workflow_context, repository_factory=RecordingJobRepository)
    scheduler.define("echo", _echo)
    invocation_id = await scheduler.enqueue("echo", {"value": 3})

    assert await scheduler.run_pending() == 1
    assert RecordingJobRepository.calls == [f"claim:{invocation_id}"]


@pytest.mark.asyncio
async def test_claimed_invocation_that_cannot_be_read_back_is_not_found(session_factory, workflow_context):
    producer = JobScheduler(session_factory, context=workflow_context)
    producer.define("echo", _echo)
    invocation_id = await producer.enqueue("echo", {})

    scheduler = JobScheduler(session_factory, context=workflow_context, repository_factory=VanishingJobRepository)
    scheduler.define("echo", _echo)

    with pytest.raises(NotFoundError):
        await scheduler.claim(invocation_id, "worker-a")


@pytest.mark.asyncio
async def test_worker_loop_requires_start(scheduler):
    with pytest.raises(RuntimeError):
        await scheduler._worker_loop("worker-a")
