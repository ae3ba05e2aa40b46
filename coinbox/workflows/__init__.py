"""Workflow engine: pipelines, the job scheduler and the built-in workflows."""

from .context import WorkflowContext
from .pipeline import Err, Ok, Pipeline, PipelineOutcome, Result, WorkflowStep, step
from .provisioning import WALLET_PROVISIONING, ProvisionRequest, create_named_wallet, provision_default_wallet
from .scheduler import JobScheduler
from .transactions import TRANSACTION_PROPOSAL, send_funds, submit_proposal
from .triggers import (
    CONFIRMATION_EMAIL,
    PROVISION_DEFAULT_WALLET,
    SEND_FUNDS,
    enqueue_send_funds,
    on_user_signup,
    register_jobs,
)

__all__ = [
    "CONFIRMATION_EMAIL",
    "Err",
    "JobScheduler",
    "Ok",
    "PROVISION_DEFAULT_WALLET",
    "Pipeline",
    "PipelineOutcome",
    "ProvisionRequest",
    "Result",
    "SEND_FUNDS",
    "TRANSACTION_PROPOSAL",
    "WALLET_PROVISIONING",
    "WorkflowContext",
    "WorkflowStep",
    "create_named_wallet",
    "enqueue_send_funds",
    "on_user_signup",
    "provision_default_wallet",
    "register_jobs",
    "send_funds",
    "step",
    "submit_proposal",
]
