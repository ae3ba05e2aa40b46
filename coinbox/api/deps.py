"""Reusable FastAPI dependencies."""

from fastapi import Depends, Header, HTTPException, status

from coinbox.core.container import ApplicationContainer, get_container
from coinbox.workflows.context import WorkflowContext
from coinbox.workflows.scheduler import JobScheduler


def get_app_container() -> ApplicationContainer:
    return get_container()


def get_current_user_id(x_user_id: str | None = Header(default=None)) -> str:
    """Caller identity is asserted by the fronting auth layer."""
    if not x_user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing X-User-Id header")
    return x_user_id


def get_workflow_context(container: ApplicationContainer = Depends(get_app_container)) -> WorkflowContext:
    return container.workflow_context()


def get_scheduler(container: ApplicationContainer = Depends(get_app_container)) -> JobScheduler:
    if container.scheduler is None:
        raise RuntimeError("Job scheduler is not initialised")
    return container.scheduler


__all__ = [
    "get_app_container",
    "get_current_user_id",
    "get_scheduler",
    "get_workflow_context",
]
