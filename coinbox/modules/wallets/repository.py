"""Repository protocol for wallet records."""

from __future__ import annotations

from typing import Protocol, Sequence

from coinbox.db.models import Wallet as WalletModel


class WalletRepository(Protocol):
    async def get_by_wallet_id(self, wallet_id: str) -> WalletModel | None:
        ...

    async def list_by_owner(self, user_id: str) -> Sequence[WalletModel]:
        ...

    async def get_default_for_owner(self, user_id: str) -> WalletModel | None:
        ...

    async def create(
        self,
        *,
        wallet_id: str,
        user_id: str,
        wallet_name: str,
        network: str,
        credentials_blob: str,
        initial_address: str,
        is_default: bool,
        currency: str | None,
    ) -> WalletModel:
        ...
