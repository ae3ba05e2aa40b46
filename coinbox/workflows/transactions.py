"""Send funds: create → publish → sign → broadcast a transaction proposal.

The remote service only accepts each stage after the previous one, so the
steps are strictly sequential. A proposal that fails after being created or
published stays on the remote side as it is; nothing is rolled back.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Optional, Sequence

from coinbox.core.exceptions import ValidationError
from coinbox.modules.transactions.models import (
    ProposalOutput,
    ProposalStage,
    TransactionProposal,
    parse_outputs,
)
from coinbox.modules.wallets.aggregator import get_by_wallet_id
from coinbox.modules.wallets.remote import RemoteWalletClient

from .context import WorkflowContext
from .pipeline import Err, Ok, Pipeline, Result, step

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class SendFundsRequest:
    client: Optional[RemoteWalletClient]
    outputs: Sequence[ProposalOutput]
    message: Optional[str] = None


@dataclass(slots=True)
class ProposalState:
    client: RemoteWalletClient
    proposal: TransactionProposal


@step("CreateProposal", idempotent=False)
async def create_proposal(context: WorkflowContext, request: SendFundsRequest) -> Result[ProposalState]:
    if request.client is None:
        return Err(ValidationError("Wallet client required"))
    proposal = TransactionProposal(outputs=list(request.outputs), message=request.message)
    if not proposal.outputs:
        return Err(ValidationError("At least one output is required"))

    balance = await request.client.get_balance()
    if balance.available_amount < proposal.total_amount:
        return Err(
            ValidationError(
                f"Insufficient funds: {proposal.total_amount} requested, {balance.available_amount} available"
            )
        )
    proposal.proposal_id = await request.client.create_proposal(proposal.outputs, proposal.message)
    proposal.advance(ProposalStage.CREATED)
    logger.info("Created proposal %s on wallet %s", proposal.proposal_id, request.client.wallet_id)
    return Ok(ProposalState(client=request.client, proposal=proposal))


@step("PublishProposal")
async def publish_proposal(context: WorkflowContext, state: ProposalState) -> Result[ProposalState]:
    ack = await state.client.publish_proposal(state.proposal.proposal_id)
    state.proposal.acknowledgements["publish"] = ack
    state.proposal.advance(ProposalStage.PUBLISHED)
    return Ok(state)


@step("SignProposal")
async def sign_proposal(context: WorkflowContext, state: ProposalState) -> Result[ProposalState]:
    ack = await state.client.sign_proposal(state.proposal.proposal_id)
    state.proposal.acknowledgements["sign"] = ack
    state.proposal.advance(ProposalStage.SIGNED)
    return Ok(state)


@step("BroadcastProposal")
async def broadcast_proposal(context: WorkflowContext, state: ProposalState) -> Result[ProposalState]:
    memo = await state.client.broadcast_proposal(state.proposal.proposal_id)
    state.proposal.memo = memo
    state.proposal.advance(ProposalStage.BROADCAST)
    logger.info("Broadcast proposal %s on wallet %s", state.proposal.proposal_id, state.client.wallet_id)
    return Ok(state)


TRANSACTION_PROPOSAL = Pipeline(
    "transaction proposal",
    [create_proposal, publish_proposal, sign_proposal, broadcast_proposal],
)


async def submit_proposal(
    context: WorkflowContext,
    client: Optional[RemoteWalletClient],
    outputs: Sequence[ProposalOutput],
    message: Optional[str] = None,
) -> TransactionProposal:
    outcome = await TRANSACTION_PROPOSAL.run(context, SendFundsRequest(client=client, outputs=outputs, message=message))
    return outcome.unwrap().proposal


async def send_funds(
    context: WorkflowContext,
    *,
    user_id: str,
    wallet_id: str,
    outputs: Iterable[dict[str, Any]],
    message: Optional[str] = None,
) -> TransactionProposal:
    """Resolve the user's wallet and push one proposal through to broadcast."""
    parsed = parse_outputs(outputs)
    wallets = await context.aggregator().load_wallets_for_user(user_id)
    wallet = get_by_wallet_id(wallets, wallet_id)
    return await submit_proposal(context, wallet.client, parsed, message or None)


async def send_funds_job(context: WorkflowContext, payload: dict[str, Any]) -> dict[str, Any]:
    user_id = payload.get("user_id") or payload.get("userId")
    wallet_id = payload.get("wallet_id") or payload.get("walletId")
    if not user_id or not wallet_id:
        raise ValidationError("user_id and wallet_id are required")
    proposal = await send_funds(
        context,
        user_id=str(user_id),
        wallet_id=str(wallet_id),
        outputs=payload.get("outputs") or [],
        message=payload.get("message"),
    )
    return {
        "wallet_id": wallet_id,
        "proposal_id": proposal.proposal_id,
        "stage": proposal.stage,
        "memo": proposal.memo,
    }
