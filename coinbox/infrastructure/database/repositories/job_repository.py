"""SQLAlchemy implementation for JobRepository"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Sequence

from sqlalchemy import and_, desc, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from coinbox.db.models import JobInvocation


def _dumps(value: Any) -> str | None:
    if value is None:
        return None
    return json.dumps(value, ensure_ascii=False, default=str)


class SqlJobRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create(
        self,
        *,
        job_name: str,
        payload: dict[str, Any],
        attempts: int = 0,
        retry_of: str | None = None,
    ) -> JobInvocation:
        invocation = JobInvocation(
            job_name=job_name,
            payload=_dumps(payload or {}),
            status="pending",
            attempts=attempts,
            retry_of=retry_of,
        )
        self.session.add(invocation)
        await self.session.flush()
        await self.session.refresh(invocation)
        return invocation

    async def get(self, invocation_id: str) -> JobInvocation | None:
        stmt = select(JobInvocation).where(JobInvocation.id == invocation_id)
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def list_by_status(self, status: str, limit: int, offset: int) -> Sequence[JobInvocation]:
        stmt = (
            select(JobInvocation)
            .where(JobInvocation.status == status)
            .order_by(desc(JobInvocation.created_at))
            .offset(offset)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def list_claimable_ids(
        self,
        job_names: Sequence[str],
        stale_before: datetime,
        limit: int,
    ) -> Sequence[str]:
        stmt = (
            select(JobInvocation.id)
            .where(JobInvocation.job_name.in_(list(job_names)), self._claimable(stale_before))
            .order_by(JobInvocation.created_at, JobInvocation.id)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def claim(
        self,
        invocation_id: str,
        *,
        worker_id: str,
        now: datetime,
        stale_before: datetime | None = None,
    ) -> bool:
        """Compare-and-set: only one caller can move a claimable row to running."""
        stmt = (
            update(JobInvocation)
            .where(JobInvocation.id == invocation_id, self._claimable(stale_before))
            .values(
                status="running",
                worker_id=worker_id,
                claim_count=JobInvocation.claim_count + 1,
                claimed_at=now,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def mark_succeeded(self, invocation_id: str, *, worker_id: str, result: Any, now: datetime) -> bool:
        stmt = (
            update(JobInvocation)
            .where(
                JobInvocation.id == invocation_id,
                JobInvocation.status == "running",
                JobInvocation.worker_id == worker_id,
            )
            .values(
                status="succeeded",
                result=_dumps(result),
                last_error=None,
                finished_at=now,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        res = await self.session.execute(stmt)
        return res.rowcount == 1

    async def mark_failed(
        self,
        invocation_id: str,
        *,
        worker_id: str,
        error: str,
        result: Any,
        now: datetime,
    ) -> bool:
        stmt = (
            update(JobInvocation)
            .where(
                JobInvocation.id == invocation_id,
                JobInvocation.status == "running",
                JobInvocation.worker_id == worker_id,
            )
            .values(
                status="failed",
                attempts=JobInvocation.attempts + 1,
                last_error=error,
                result=_dumps(result),
                finished_at=now,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        res = await self.session.execute(stmt)
        return res.rowcount == 1

    @staticmethod
    def _claimable(stale_before: datetime | None):
        pending = JobInvocation.status == "pending"
        if stale_before is None:
            return pending
        return or_(
            pending,
            and_(JobInvocation.status == "running", JobInvocation.claimed_at < stale_before),
        )
