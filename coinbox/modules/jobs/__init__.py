"""Exports for job invocation domain"""

from .models import JobInvocation, JobStatus
from .repository import JobRepository

__all__ = [
    "JobInvocation",
    "JobRepository",
    "JobStatus",
]
