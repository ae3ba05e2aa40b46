"""Job invocation status and manual retry."""

from fastapi import APIRouter, Depends, status

from coinbox.api.deps import get_scheduler
from coinbox.modules.jobs import JobInvocation
from coinbox.schemas import JobInvocationResponse, JobQueuedResponse
from coinbox.workflows.scheduler import JobScheduler

router = APIRouter()


def _to_schema(invocation: JobInvocation) -> JobInvocationResponse:
    return JobInvocationResponse(
        id=invocation.id,
        job_name=invocation.job_name,
        status=invocation.status.value,
        attempts=invocation.attempts,
        claim_count=invocation.claim_count,
        last_error=invocation.last_error,
        result=invocation.result,
        retry_of=invocation.retry_of,
        claimed_at=invocation.claimed_at,
        finished_at=invocation.finished_at,
        created_at=invocation.created_at,
    )


@router.get("/{invocation_id}", response_model=JobInvocationResponse, summary="Get job invocation status")
async def get_invocation(invocation_id: str, scheduler: JobScheduler = Depends(get_scheduler)):
    return _to_schema(await scheduler.get(invocation_id))


@router.post(
    "/{invocation_id}/retry",
    response_model=JobQueuedResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Re-enqueue a failed invocation",
)
async def retry_invocation(invocation_id: str, scheduler: JobScheduler = Depends(get_scheduler)):
    return JobQueuedResponse(invocation_id=await scheduler.retry(invocation_id))
