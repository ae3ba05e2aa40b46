"""Entry points used by callers outside the workflow engine."""

from __future__ import annotations

from typing import Any, Iterable, Optional

from coinbox.core.exceptions import ValidationError

from .notifications import send_confirmation_email
from .provisioning import provision_default_wallet
from .scheduler import JobScheduler
from .transactions import send_funds_job

PROVISION_DEFAULT_WALLET = "provision default wallet"
SEND_FUNDS = "send funds"
CONFIRMATION_EMAIL = "confirmation email"


def register_jobs(scheduler: JobScheduler, job_types: Optional[Iterable[str]] = None) -> JobScheduler:
    """Define the built-in jobs, optionally limited to ``job_types``."""
    handlers = {
        PROVISION_DEFAULT_WALLET: provision_default_wallet,
        SEND_FUNDS: send_funds_job,
        CONFIRMATION_EMAIL: send_confirmation_email,
    }
    wanted = set(job_types) if job_types else set(handlers)
    unknown = wanted - set(handlers)
    if unknown:
        raise ValueError(f"Unknown job types: {', '.join(sorted(unknown))}")
    for name, handler in handlers.items():
        if name in wanted:
            scheduler.define(name, handler)
    return scheduler


async def on_user_signup(
    scheduler: JobScheduler,
    *,
    user_id: str,
    email: str,
    display_name: Optional[str] = None,
    confirmation_token: Optional[str] = None,
) -> dict[str, str]:
    """Queue the default wallet (and the confirmation email when a token is given)."""
    if not user_id or not email:
        raise ValidationError("user_id and email are required")
    queued = {
        "provision": await scheduler.enqueue(
            PROVISION_DEFAULT_WALLET,
            {"user_id": user_id, "email": email, "display_name": display_name},
        )
    }
    if confirmation_token:
        queued["confirmation_email"] = await scheduler.enqueue(
            CONFIRMATION_EMAIL,
            {"email": email, "first_name": display_name, "token": confirmation_token},
        )
    return queued


async def enqueue_send_funds(
    scheduler: JobScheduler,
    *,
    user_id: str,
    wallet_id: str,
    outputs: list[dict[str, Any]],
    message: Optional[str] = None,
) -> str:
    return await scheduler.enqueue(
        SEND_FUNDS,
        {"user_id": user_id, "wallet_id": wallet_id, "outputs": outputs, "message": message},
    )
