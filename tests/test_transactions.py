"""Tests for the send-funds proposal workflow."""

from datetime import datetime, timedelta, timezone

import pytest

from coinbox.core.exceptions import NotFoundError, PipelineError, ValidationError
from coinbox.modules.jobs import JobStatus
from coinbox.modules.transactions import ProposalOutput, ProposalStage, TransactionProposal, parse_outputs
from coinbox.workflows.provisioning import provision_default_wallet
from coinbox.workflows.transactions import TRANSACTION_PROPOSAL, SendFundsRequest, send_funds, submit_proposal
from coinbox.workflows.scheduler import JobScheduler
from coinbox.workflows.triggers import enqueue_send_funds, register_jobs

OUTPUTS = [{"amount": 1_500, "destination_address": "tb1qdestination"}]


async def _provisioned_client(workflow_context, wallet_service, user_id="u1"):
    result = await provision_default_wallet(workflow_context, {"user_id": user_id, "email": f"{user_id}@example.com"})
    wallet_id = result["wallet"].wallet_id
    return wallet_id, wallet_service.clients[wallet_id]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_send_funds_reaches_broadcast(workflow_context, wallet_service):
    wallet_id, client = await _provisioned_client(workflow_context, wallet_service)
    client.calls.clear()

    proposal = await send_funds(
        workflow_context,
        user_id="u1",
        wallet_id=wallet_id,
        outputs=OUTPUTS,
        message="rent",
    )

    assert proposal.stage is ProposalStage.BROADCAST
    assert proposal.memo == f"memo-{proposal.proposal_id}"
    assert proposal.message == "rent"
    assert client.calls == [
        "get_balance",
        "create_proposal",
        "publish_proposal",
        "sign_proposal",
        "broadcast_proposal",
    ]
    assert client.proposals[proposal.proposal_id]["status"] == "broadcasted"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_publish_failure_stops_before_signing(workflow_context, wallet_service, remote_down):
    wallet_id, client = await _provisioned_client(workflow_context, wallet_service)
    client.fail["publish_proposal"] = remote_down
    client.calls.clear()

    with pytest.raises(PipelineError) as excinfo:
        await send_funds(workflow_context, user_id="u1", wallet_id=wallet_id, outputs=OUTPUTS)

    error = excinfo.value
    assert error.step_name == "PublishProposal"
    assert error.step_index == 1
    assert error.completed_steps == ["CreateProposal"]
    assert "sign_proposal" not in client.calls
    assert "broadcast_proposal" not in client.calls
    # Nothing is rolled back: the created proposal stays on the remote side.
    assert list(client.proposals.values())[0]["status"] == "temporary"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_insufficient_funds_fails_at_create(workflow_context, wallet_service):
    wallet_id, client = await _provisioned_client(workflow_context, wallet_service)
    client.balance.available_amount = 1_000

    with pytest.raises(PipelineError) as excinfo:
        await send_funds(workflow_context, user_id="u1", wallet_id=wallet_id, outputs=OUTPUTS)

    assert excinfo.value.step_name == "CreateProposal"
    assert isinstance(excinfo.value.cause, ValidationError)
    assert client.proposals == {}


@pytest.mark.asyncio
@pytest.mark.integration
async def test_send_funds_only_sees_the_callers_wallets(workflow_context, wallet_service):
    wallet_id, _client = await _provisioned_client(workflow_context, wallet_service, user_id="owner")
    await _provisioned_client(workflow_context, wallet_service, user_id="other")

    with pytest.raises(NotFoundError):
        await send_funds(workflow_context, user_id="other", wallet_id=wallet_id, outputs=OUTPUTS)


@pytest.mark.asyncio
async def test_missing_client_is_a_validation_failure(workflow_context):
    outcome = await TRANSACTION_PROPOSAL.run(
        workflow_context,
        SendFundsRequest(client=None, outputs=[ProposalOutput(amount=1, destination_address="tb1q")]),
    )

    assert outcome.failed_step == "CreateProposal"
    assert isinstance(outcome.failure.cause, ValidationError)
    with pytest.raises(PipelineError):
        await submit_proposal(workflow_context, None, [ProposalOutput(amount=1, destination_address="tb1q")])


@pytest.mark.asyncio
@pytest.mark.integration
async def test_send_funds_job_records_broadcast(job_scheduler, workflow_context, wallet_service):
    wallet_id, _client = await _provisioned_client(workflow_context, wallet_service)

    invocation_id = await enqueue_send_funds(
        job_scheduler,
        user_id="u1",
        wallet_id=wallet_id,
        outputs=OUTPUTS,
        message="coffee",
    )
    await job_scheduler.run_pending()

    invocation = await job_scheduler.get(invocation_id)
    assert invocation.status is JobStatus.SUCCEEDED
    assert invocation.result["stage"] == "broadcast"
    assert invocation.result["memo"].startswith("memo-")


@pytest.mark.asyncio
@pytest.mark.integration
async def test_reclaimed_send_funds_job_sends_nothing(session_factory, workflow_context, wallet_service):
    wallet_id, client = await _provisioned_client(workflow_context, wallet_service)
    client.calls.clear()
    now = [datetime(2026, 10, 19, 9, 0, tzinfo=timezone.utc)]
    scheduler = register_jobs(
        JobScheduler(session_factory, context=workflow_context, stale_after=timedelta(minutes=10), clock=lambda: now[0])
    )
    invocation_id = await enqueue_send_funds(scheduler, user_id="u1", wallet_id=wallet_id, outputs=OUTPUTS)

    # The first worker claims and disappears before running anything.
    assert (await scheduler.claim_next("worker-a")).id == invocation_id
    now[0] += timedelta(minutes=11)
    reclaimed = await scheduler.claim_next("worker-b")
    assert reclaimed.claim_count == 2
    await scheduler.execute(reclaimed, "worker-b")

    invocation = await scheduler.get(invocation_id)
    assert invocation.status is JobStatus.FAILED
    assert invocation.result["failed_step"] == "CreateProposal"
    assert "not idempotent" in invocation.last_error
    assert "create_proposal" not in client.calls
    assert client.proposals == {}


@pytest.mark.unit
def test_outputs_must_be_positive_and_addressed():
    assert parse_outputs([{"amount": 5, "destinationAddress": " tb1qx "}]) == [
        ProposalOutput(amount=5, destination_address="tb1qx")
    ]
    with pytest.raises(ValidationError):
        parse_outputs([])
    with pytest.raises(ValidationError):
        parse_outputs([{"amount": 0, "destination_address": "tb1qx"}])
    with pytest.raises(ValidationError):
        parse_outputs([{"amount": True, "destination_address": "tb1qx"}])
    with pytest.raises(ValidationError):
        parse_outputs([{"amount": 5}])


@pytest.mark.unit
def test_proposal_stage_only_moves_forward_one_step():
    proposal = TransactionProposal(outputs=[ProposalOutput(amount=1, destination_address="tb1q")])

    with pytest.raises(ValueError):
        proposal.advance(ProposalStage.PUBLISHED)
    proposal.advance(ProposalStage.CREATED)
    proposal.advance(ProposalStage.PUBLISHED)
    with pytest.raises(ValueError):
        proposal.advance(ProposalStage.CREATED)
    with pytest.raises(ValueError):
        proposal.advance(ProposalStage.BROADCAST)
    assert proposal.stage is ProposalStage.PUBLISHED
