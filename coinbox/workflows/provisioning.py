"""Wallet provisioning: create remote wallet → derive address → record it.

Persistence runs last so that a stored record always points at a live remote
wallet with a derived address. A failure after the remote wallet exists leaves
an orphaned remote wallet; the failed outcome says which steps completed.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Optional

from coinbox.core.exceptions import RemoteServiceError, ValidationError
from coinbox.infrastructure.database.session import session_scope
from coinbox.modules.wallets.models import Network, WalletRecord, WalletView
from coinbox.modules.wallets.remote import RemoteWalletClient
from coinbox.modules.wallets.service import WalletService

from .context import WorkflowContext
from .pipeline import Err, Ok, Pipeline, Result, step

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ProvisionRequest:
    user_id: str
    email: str
    wallet_name: str
    display_name: Optional[str] = None
    is_default: bool = False
    remote_wallet_id: Optional[str] = None

    @classmethod
    def from_payload(
        cls,
        payload: dict[str, Any],
        *,
        wallet_name: str,
        is_default: bool,
    ) -> "ProvisionRequest":
        user_id = payload.get("user_id") or payload.get("userId")
        email = payload.get("email")
        if not user_id:
            raise ValidationError("user_id is required")
        if not email:
            raise ValidationError("email is required")
        return cls(
            user_id=str(user_id),
            email=email,
            wallet_name=payload.get("wallet_name") or wallet_name,
            display_name=payload.get("display_name") or payload.get("displayName"),
            is_default=is_default,
        )


@dataclass(slots=True)
class RemoteWalletCreated:
    request: ProvisionRequest
    client: RemoteWalletClient


@dataclass(slots=True)
class InitialAddressDerived:
    request: ProvisionRequest
    client: RemoteWalletClient
    address: str


@step("CreateRemoteWallet", idempotent=False)
async def create_remote_wallet(context: WorkflowContext, request: ProvisionRequest) -> Result[RemoteWalletCreated]:
    settings = context.wallet_settings
    _secret, client = await context.require_wallet_service().create_wallet(
        request.wallet_name,
        request.email,
        required_signers=settings.required_signers,
        total_signers=settings.total_signers,
        network=settings.network,
    )
    request.remote_wallet_id = client.wallet_id
    status = None
    for attempt in range(1, settings.completion_attempts + 1):
        status = await client.get_status()
        if status.is_complete:
            logger.info("Remote wallet %s is ready for user %s", status.wallet_id, request.user_id)
            return Ok(RemoteWalletCreated(request=request, client=client))
        logger.info(
            "Remote wallet %s is %s (%d/%d copayers), check %d/%d",
            client.wallet_id,
            status.status,
            status.joined_signers,
            status.total_signers,
            attempt,
            settings.completion_attempts,
        )
        if attempt < settings.completion_attempts:
            await asyncio.sleep(settings.completion_interval)
    return Err(
        RemoteServiceError(
            f"Remote wallet {client.wallet_id} is still {status.status if status else 'unknown'} "
            f"after {settings.completion_attempts} checks"
        )
    )


@step("DeriveInitialAddress")
async def derive_initial_address(context: WorkflowContext, created: RemoteWalletCreated) -> Result[InitialAddressDerived]:
    if created.client is None:
        return Err(ValidationError("Wallet client required"))
    address = await created.client.create_address()
    return Ok(InitialAddressDerived(request=created.request, client=created.client, address=address))


@step("PersistWalletRecord")
async def persist_wallet_record(context: WorkflowContext, derived: InitialAddressDerived) -> Result[WalletRecord]:
    client = derived.client
    if not client.wallet_id:
        return Err(ValidationError("Remote wallet has no wallet id"))
    async with session_scope(context.session_factory) as session:
        record = await WalletService.with_session(session).record_wallet(
            wallet_id=client.wallet_id,
            user_id=derived.request.user_id,
            wallet_name=client.wallet_name or derived.request.wallet_name,
            network=Network.parse(client.network),
            credentials_blob=client.export(),
            initial_address=derived.address,
            is_default=derived.request.is_default,
            currency=context.wallet_settings.currency,
        )
    return Ok(record)


WALLET_PROVISIONING = Pipeline(
    "wallet provisioning",
    [create_remote_wallet, derive_initial_address, persist_wallet_record],
    # The unique default-wallet index makes a repeated default run resolve to one record.
    dedup_key=lambda request: f"default-wallet:{request.user_id}" if request.is_default else None,
)


async def provision_wallet(context: WorkflowContext, request: ProvisionRequest) -> WalletRecord:
    outcome = await WALLET_PROVISIONING.run(context, request)
    return outcome.unwrap()


async def provision_default_wallet(context: WorkflowContext, payload: dict[str, Any]) -> dict[str, Any]:
    """Job handler. ``user_id`` is the idempotency key: one default wallet per user."""
    request = ProvisionRequest.from_payload(
        payload,
        wallet_name=context.wallet_settings.default_wallet_name,
        is_default=True,
    )
    async with session_scope(context.session_factory) as session:
        existing = await WalletService.with_session(session).get_default(request.user_id)
    if existing is not None:
        logger.info("User %s already has default wallet %s", request.user_id, existing.wallet_id)
        return {"created": False, "wallet": existing.to_view()}

    record = await provision_wallet(context, request)
    return {"created": record.wallet_id == request.remote_wallet_id, "wallet": record.to_view()}


async def create_named_wallet(
    context: WorkflowContext,
    *,
    user_id: str,
    email: str,
    wallet_name: str,
) -> WalletView:
    """Provision an extra, non-default wallet on direct request."""
    if not wallet_name or not wallet_name.strip():
        raise ValidationError("Name is required")
    request = ProvisionRequest(user_id=user_id, email=email, wallet_name=wallet_name.strip())
    record = await provision_wallet(context, request)
    return record.to_view()
