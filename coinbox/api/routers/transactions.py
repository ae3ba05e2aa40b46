"""Send-funds endpoint."""

from fastapi import APIRouter, Depends, Query, Response, status

from coinbox.api.deps import get_current_user_id, get_scheduler, get_workflow_context
from coinbox.schemas import JobQueuedResponse, ProposalResponse, SendFundsRequest
from coinbox.workflows.context import WorkflowContext
from coinbox.workflows.scheduler import JobScheduler
from coinbox.workflows.transactions import send_funds
from coinbox.workflows.triggers import enqueue_send_funds

router = APIRouter()


@router.post(
    "/send",
    response_model=ProposalResponse | JobQueuedResponse,
    summary="Create, publish, sign and broadcast a transaction proposal",
)
async def send_transaction(
    payload: SendFundsRequest,
    response: Response,
    queue: bool = Query(default=False, alias="async"),
    user_id: str = Depends(get_current_user_id),
    context: WorkflowContext = Depends(get_workflow_context),
    scheduler: JobScheduler = Depends(get_scheduler),
):
    outputs = [output.model_dump() for output in payload.outputs]
    if queue:
        invocation_id = await enqueue_send_funds(
            scheduler,
            user_id=user_id,
            wallet_id=payload.wallet_id,
            outputs=outputs,
            message=payload.message,
        )
        response.status_code = status.HTTP_202_ACCEPTED
        return JobQueuedResponse(invocation_id=invocation_id)

    proposal = await send_funds(
        context,
        user_id=user_id,
        wallet_id=payload.wallet_id,
        outputs=outputs,
        message=payload.message,
    )
    return ProposalResponse(
        wallet_id=payload.wallet_id,
        proposal_id=proposal.proposal_id,
        stage=proposal.stage.value if proposal.stage else None,
        memo=proposal.memo,
    )
