"""Persistent job scheduler with an asyncio worker pool.

Invocations live in the ``job_invocations`` table. A worker owns an
invocation only after a successful compare-and-set claim, so two workers never
run the same invocation at the same time. Execution is at-least-once: a
worker that dies after claiming leaves a ``running`` row behind, which becomes
claimable again once it is older than ``stale_after``. Handlers must therefore
tolerate running twice.

Handler failures are recorded on the invocation and never retried
automatically; ``retry`` re-enqueues a failed invocation as a new one.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, Optional, Union

from pydantic_core import to_jsonable_python
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from coinbox.core.config import SchedulerSettings
from coinbox.core.exceptions import NotFoundError, PipelineError, ValidationError
from coinbox.infrastructure.database.repositories.job_repository import SqlJobRepository
from coinbox.infrastructure.database.session import session_scope
from coinbox.modules.jobs.models import JobInvocation, JobStatus
from coinbox.modules.jobs.repository import JobRepository

from .context import WorkflowContext
from .pipeline import Pipeline

logger = logging.getLogger(__name__)

JobFunction = Callable[[WorkflowContext, dict], Awaitable[Any]]
JobHandler = Union[Pipeline, JobFunction]
RepositoryFactory = Callable[[AsyncSession], JobRepository]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JobScheduler:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        *,
        context: WorkflowContext | None = None,
        concurrency: int = 2,
        poll_interval: float = 1.0,
        stale_after: timedelta = timedelta(minutes=10),
        clock: Callable[[], datetime] = utcnow,
        repository_factory: RepositoryFactory = SqlJobRepository,
    ) -> None:
        self._session_factory = session_factory
        self._repository: RepositoryFactory = repository_factory
        self._context = context or WorkflowContext(session_factory=session_factory)
        self._definitions: dict[str, JobHandler] = {}
        self.concurrency = concurrency
        self.poll_interval = poll_interval
        self.stale_after = stale_after
        self._clock = clock
        self._tasks: list[asyncio.Task] = []
        self._stopping: asyncio.Event | None = None

    @classmethod
    def from_settings(
        cls,
        settings: SchedulerSettings,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        *,
        context: WorkflowContext | None = None,
    ) -> "JobScheduler":
        return cls(
            session_factory,
            context=context,
            concurrency=settings.concurrency,
            poll_interval=settings.poll_interval,
            stale_after=timedelta(seconds=settings.stale_after_seconds),
        )

    # ------------------------------------------------------------------
    # Definitions
    # ------------------------------------------------------------------

    def define(self, job_name: str, handler: JobHandler) -> None:
        """Register ``handler`` under ``job_name``, replacing any previous one."""
        if not job_name:
            raise ValueError("job_name is required")
        if job_name in self._definitions:
            logger.info("Replacing handler for job %r", job_name)
        self._definitions[job_name] = handler

    def is_defined(self, job_name: str) -> bool:
        return job_name in self._definitions

    @property
    def job_names(self) -> list[str]:
        return list(self._definitions)

    # ------------------------------------------------------------------
    # Invocation store
    # ------------------------------------------------------------------

    async def enqueue(self, job_name: str, payload: dict[str, Any] | None = None) -> str:
        if job_name not in self._definitions:
            raise ValidationError(f"Unknown job {job_name!r}")
        async with session_scope(self._session_factory) as session:
            model = await self._repository(session).create(job_name=job_name, payload=payload or {})
            invocation_id = model.id
        logger.info("Enqueued %r as %s", job_name, invocation_id)
        return invocation_id

    async def get(self, invocation_id: str) -> JobInvocation:
        async with session_scope(self._session_factory) as session:
            model = await self._repository(session).get(invocation_id)
            if model is None:
                raise NotFoundError(f"No job invocation with id {invocation_id}")
            return JobInvocation.from_orm(model)

    async def list_by_status(self, status: JobStatus, limit: int = 50, offset: int = 0) -> list[JobInvocation]:
        async with session_scope(self._session_factory) as session:
            models = await self._repository(session).list_by_status(status.value, limit, offset)
            return [JobInvocation.from_orm(model) for model in models]

    async def retry(self, invocation_id: str) -> str:
        """Re-enqueue a failed invocation as a new pending one.

        The new invocation inherits ``attempts`` so repeated failures keep
        counting up; the failed one stays untouched for audit.
        """
        async with session_scope(self._session_factory) as session:
            repository = self._repository(session)
            failed = await repository.get(invocation_id)
            if failed is None:
                raise NotFoundError(f"No job invocation with id {invocation_id}")
            if failed.status != JobStatus.FAILED.value:
                raise ValidationError(f"Only failed invocations can be retried, {invocation_id} is {failed.status}")
            model = await repository.create(
                job_name=failed.job_name,
                payload=JobInvocation.from_orm(failed).payload,
                attempts=failed.attempts or 0,
                retry_of=failed.id,
            )
            new_id = model.id
        logger.info("Re-enqueued failed invocation %s as %s", invocation_id, new_id)
        return new_id

    # ------------------------------------------------------------------
    # Claiming and execution
    # ------------------------------------------------------------------

    async def claim(self, invocation_id: str, worker_id: str) -> Optional[JobInvocation]:
        """Atomically take ownership of one invocation, or return ``None``."""
        now = self._clock()
        async with session_scope(self._session_factory) as session:
            repository = self._repository(session)
            claimed = await repository.claim(
                invocation_id,
                worker_id=worker_id,
                now=now,
                stale_before=now - self.stale_after,
            )
            if not claimed:
                return None
            model = await repository.get(invocation_id)
            if model is None:
                raise NotFoundError(f"Claimed invocation {invocation_id} could not be read back")
            return JobInvocation.from_orm(model)

    async def claim_next(self, worker_id: str, batch: int = 5) -> Optional[JobInvocation]:
        if not self._definitions:
            return None
        now = self._clock()
        async with session_scope(self._session_factory) as session:
            candidates = await self._repository(session).list_claimable_ids(
                self.job_names,
                now - self.stale_after,
                batch,
            )
        for invocation_id in candidates:
            invocation = await self.claim(invocation_id, worker_id)
            if invocation is not None:
                logger.info("Worker %s claimed %s (%s)", worker_id, invocation.id, invocation.job_name)
                return invocation
        return None

    async def execute(self, invocation: JobInvocation, worker_id: str) -> None:
        """Run the handler for a claimed invocation and record its terminal state."""
        handler = self._definitions.get(invocation.job_name)
        context = self._context.bind(invocation)
        try:
            if handler is None:
                raise ValidationError(f"No handler defined for job {invocation.job_name!r}")
            if isinstance(handler, Pipeline):
                outcome = await handler.run(context, invocation.payload)
                result = outcome.unwrap()
            else:
                result = await handler(context, invocation.payload)
        except PipelineError as exc:
            logger.warning("Invocation %s (%s) failed: %s", invocation.id, invocation.job_name, exc)
            await self._finish(
                invocation,
                worker_id,
                error=str(exc),
                result={
                    "pipeline": exc.pipeline,
                    "completed_steps": exc.completed_steps,
                    "failed_step": exc.step_name,
                    "failed_step_index": exc.step_index,
                },
            )
        except Exception as exc:  # pylint: disable=broad-except
            logger.exception("Invocation %s (%s) crashed", invocation.id, invocation.job_name)
            await self._finish(invocation, worker_id, error=f"{type(exc).__name__}: {exc}")
        else:
            logger.info("Invocation %s (%s) succeeded", invocation.id, invocation.job_name)
            await self._finish(invocation, worker_id, result=result)

    async def _finish(
        self,
        invocation: JobInvocation,
        worker_id: str,
        *,
        result: Any = None,
        error: str | None = None,
    ) -> None:
        now = self._clock()
        payload = to_jsonable_python(result, fallback=str)
        async with session_scope(self._session_factory) as session:
            repository = self._repository(session)
            if error is None:
                recorded = await repository.mark_succeeded(invocation.id, worker_id=worker_id, result=payload, now=now)
            else:
                recorded = await repository.mark_failed(
                    invocation.id,
                    worker_id=worker_id,
                    error=error,
                    result=payload,
                    now=now,
                )
        if not recorded:
            # The claim went stale and another worker owns the invocation now.
            logger.warning("Worker %s lost invocation %s before recording it", worker_id, invocation.id)

    async def run_pending(self, worker_id: str = "inline", limit: int | None = None) -> int:
        """Claim and execute invocations in this task until none is left."""
        processed = 0
        while limit is None or processed < limit:
            invocation = await self.claim_next(worker_id)
            if invocation is None:
                break
            await self.execute(invocation, worker_id)
            processed += 1
        return processed

    # ------------------------------------------------------------------
    # Worker pool
    # ------------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        return any(not task.done() for task in self._tasks)

    def start(self, concurrency: int | None = None) -> None:
        if self.is_running:
            return
        self._stopping = asyncio.Event()
        count = concurrency or self.concurrency
        prefix = uuid.uuid4().hex[:8]
        self._tasks = [
            asyncio.create_task(self._worker_loop(f"worker-{prefix}-{index}"), name=f"coinbox-worker-{index}")
            for index in range(count)
        ]
        logger.info("Started %d job workers", count)

    async def stop(self) -> None:
        """Stop polling; invocations already running are allowed to finish."""
        if self._stopping is not None:
            self._stopping.set()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        logger.info("Job workers stopped")

    async def _worker_loop(self, worker_id: str) -> None:
        if self._stopping is None:
            raise RuntimeError("Worker loop started outside start()")
        while not self._stopping.is_set():
            try:
                invocation = await self.claim_next(worker_id)
                if invocation is not None:
                    await self.execute(invocation, worker_id)
                    continue
            except Exception:  # pylint: disable=broad-except
                logger.exception("Worker %s could not poll the job store", worker_id)
            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=self.poll_interval)
            except asyncio.TimeoutError:
                pass


__all__ = ["JobFunction", "JobHandler", "JobScheduler", "RepositoryFactory", "utcnow"]
