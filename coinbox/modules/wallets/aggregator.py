"""Load a user's wallets and rebuild one remote client per record.

Reconstruction is tolerant of partial degradation: wallets whose credentials
cannot be imported are reported on the result instead of failing the call,
unless nothing could be loaded at all.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Iterator, Sequence

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from coinbox.core.exceptions import (
    CoinboxError,
    NotFoundError,
    PartialAggregationError,
    RemoteServiceError,
)
from coinbox.infrastructure.database.session import session_scope

from .models import AggregatedWallet, WalletOverview, WalletRecord
from .remote import RemoteWalletService
from .service import WalletService

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class WalletAggregation:
    wallets: list[AggregatedWallet] = field(default_factory=list)
    errors: list[PartialAggregationError] = field(default_factory=list)

    def __iter__(self) -> Iterator[AggregatedWallet]:
        return iter(self.wallets)

    def __len__(self) -> int:
        return len(self.wallets)

    @property
    def is_partial(self) -> bool:
        return bool(self.errors)

    def get(self, wallet_id: str) -> AggregatedWallet:
        return get_by_wallet_id(self.wallets, wallet_id)


def get_by_wallet_id(wallets: Sequence[AggregatedWallet] | WalletAggregation, wallet_id: str) -> AggregatedWallet:
    """Pick one wallet out of an already loaded set. Issues no remote calls."""
    for wallet in wallets:
        if wallet.wallet_id == wallet_id:
            return wallet
    raise NotFoundError(f"No wallet with id {wallet_id}")


class WalletAggregator:
    def __init__(
        self,
        wallet_service: RemoteWalletService,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
    ) -> None:
        self._wallet_service = wallet_service
        self._session_factory = session_factory

    async def load_wallets_for_user(self, user_id: str) -> WalletAggregation:
        async with session_scope(self._session_factory) as session:
            records = await WalletService.with_session(session).list_for_owner(user_id)
        return self.aggregate(records)

    def aggregate(self, records: Sequence[WalletRecord]) -> WalletAggregation:
        aggregation = WalletAggregation()
        for record in records:
            try:
                client = self._wallet_service.import_credentials(record.credentials_blob)
            except Exception as exc:  # pylint: disable=broad-except
                logger.warning("Wallet %s could not be reconstructed: %s", record.wallet_id, exc)
                aggregation.errors.append(PartialAggregationError(record.wallet_id, exc))
                continue
            aggregation.wallets.append(AggregatedWallet(record=record, client=client))

        if records and not aggregation.wallets:
            raise RemoteServiceError("Something is wrong with the bitcoin network: no wallet could be loaded")
        if aggregation.is_partial:
            logger.info(
                "Loaded %d of %d wallets", len(aggregation.wallets), len(records)
            )
        return aggregation


async def describe_wallet(wallet: AggregatedWallet) -> WalletOverview:
    """Public view of a wallet enriched with its balance and history."""
    try:
        balance, transactions = await asyncio.gather(
            wallet.client.get_balance(),
            wallet.client.get_transaction_history(),
        )
    except CoinboxError:
        raise
    except Exception as exc:
        raise RemoteServiceError(f"Could not describe wallet {wallet.wallet_id}: {exc}") from exc
    return WalletOverview(wallet=wallet.record.to_view(), balance=balance, transactions=transactions)


async def describe_wallets(wallets: Sequence[AggregatedWallet] | WalletAggregation) -> list[WalletOverview]:
    return list(await asyncio.gather(*(describe_wallet(wallet) for wallet in wallets)))
