"""Domain representations for job invocations."""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from coinbox.db import models as orm


class JobStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.SUCCEEDED, JobStatus.FAILED)


def _loads(raw: Optional[str]) -> Any:
    if not raw:
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw


@dataclass(slots=True)
class JobInvocation:
    id: str
    job_name: str
    payload: dict[str, Any]
    status: JobStatus
    attempts: int
    claim_count: int
    last_error: Optional[str]
    result: Any
    worker_id: Optional[str]
    retry_of: Optional[str]
    claimed_at: Optional[datetime]
    finished_at: Optional[datetime]
    created_at: Optional[datetime]
    updated_at: Optional[datetime]

    @property
    def is_reclaimed(self) -> bool:
        """Claimed again after an earlier claim went stale."""
        return self.claim_count > 1

    @classmethod
    def from_orm(cls, instance: orm.JobInvocation) -> "JobInvocation":
        return cls(
            id=str(instance.id),
            job_name=instance.job_name,
            payload=_loads(instance.payload) or {},
            status=JobStatus(instance.status),
            attempts=instance.attempts or 0,
            claim_count=instance.claim_count or 0,
            last_error=instance.last_error,
            result=_loads(instance.result),
            worker_id=instance.worker_id,
            retry_of=instance.retry_of,
            claimed_at=instance.claimed_at,
            finished_at=instance.finished_at,
            created_at=instance.created_at,
            updated_at=instance.updated_at,
        )
