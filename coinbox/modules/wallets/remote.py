"""Capability contracts for the remote wallet service.

A ``RemoteWalletClient`` is bound to exactly one wallet's credentials. Clients
are produced per request by a ``RemoteWalletService`` (either by creating a new
remote wallet or by importing an exported credentials blob) and must never be
shared between owners.

Every coroutine may raise ``RemoteServiceError`` (transport or service-side
failure) or ``ValidationError`` (the service rejected the request). None of the
remote operations offers a compensating cancel.
"""

from __future__ import annotations

from typing import Any, Optional, Protocol, Sequence

from coinbox.modules.transactions.models import ProposalOutput

from .models import WalletBalance, WalletStatus


class RemoteWalletClient(Protocol):
    @property
    def wallet_id(self) -> Optional[str]:
        ...

    @property
    def wallet_name(self) -> Optional[str]:
        ...

    @property
    def network(self) -> str:
        ...

    async def get_status(self) -> WalletStatus:
        ...

    async def create_address(self) -> str:
        ...

    def export(self) -> str:
        ...

    async def get_balance(self) -> WalletBalance:
        ...

    async def get_transaction_history(self) -> list[dict[str, Any]]:
        ...

    async def create_proposal(self, outputs: Sequence[ProposalOutput], message: Optional[str]) -> str:
        ...

    async def publish_proposal(self, proposal_id: str) -> dict[str, Any]:
        ...

    async def sign_proposal(self, proposal_id: str) -> dict[str, Any]:
        ...

    async def broadcast_proposal(self, proposal_id: str) -> str:
        ...


class RemoteWalletService(Protocol):
    async def create_wallet(
        self,
        name: str,
        owner_email: str,
        *,
        required_signers: int,
        total_signers: int,
        network: str,
    ) -> tuple[Optional[str], RemoteWalletClient]:
        """Create a wallet and join it as the first copayer.

        Returns the join secret (``None`` for single-signer wallets) and a
        client that may still be pending until every copayer has joined.
        """
        ...

    def import_credentials(self, blob: str) -> RemoteWalletClient:
        ...
