"""Protocol for job invocation persistence"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol, Sequence

from coinbox.db.models import JobInvocation as JobInvocationModel


class JobRepository(Protocol):
    async def create(
        self,
        *,
        job_name: str,
        payload: dict[str, Any],
        attempts: int = 0,
        retry_of: str | None = None,
    ) -> JobInvocationModel:
        ...

    async def get(self, invocation_id: str) -> JobInvocationModel | None:
        ...

    async def list_by_status(self, status: str, limit: int, offset: int) -> Sequence[JobInvocationModel]:
        ...

    async def list_claimable_ids(
        self,
        job_names: Sequence[str],
        stale_before: datetime,
        limit: int,
    ) -> Sequence[str]:
        ...

    async def claim(
        self,
        invocation_id: str,
        *,
        worker_id: str,
        now: datetime,
        stale_before: datetime | None = None,
    ) -> bool:
        ...

    async def mark_succeeded(self, invocation_id: str, *, worker_id: str, result: Any, now: datetime) -> bool:
        ...

    async def mark_failed(
        self,
        invocation_id: str,
        *,
        worker_id: str,
        error: str,
        result: Any,
        now: datetime,
    ) -> bool:
        ...
