"""Inbound hook fired by the account service when a user signs up."""

from fastapi import APIRouter, Depends, status

from coinbox.api.deps import get_scheduler
from coinbox.schemas import SignupEvent, SignupQueuedResponse
from coinbox.workflows.scheduler import JobScheduler
from coinbox.workflows.triggers import on_user_signup

router = APIRouter()


@router.post("", response_model=SignupQueuedResponse, status_code=status.HTTP_202_ACCEPTED, summary="Queue default wallet for a new user")
async def user_signed_up(payload: SignupEvent, scheduler: JobScheduler = Depends(get_scheduler)):
    queued = await on_user_signup(
        scheduler,
        user_id=payload.user_id,
        email=payload.email,
        display_name=payload.display_name,
        confirmation_token=payload.confirmation_token,
    )
    return SignupQueuedResponse(**queued)
