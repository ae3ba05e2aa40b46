"""SQLAlchemy implementation for wallet records"""

from __future__ import annotations

from typing import Sequence

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from coinbox.db.models import Wallet


class SqlWalletRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_by_wallet_id(self, wallet_id: str) -> Wallet | None:
        stmt = select(Wallet).where(Wallet.wallet_id == wallet_id)
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def list_by_owner(self, user_id: str) -> Sequence[Wallet]:
        stmt = select(Wallet).where(Wallet.user_id == user_id).order_by(Wallet.created_at)
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def get_default_for_owner(self, user_id: str) -> Wallet | None:
        stmt = select(Wallet).where(Wallet.user_id == user_id, Wallet.is_default.is_(True))
        result = await self.session.execute(stmt)
        return result.scalars().first()

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
    ) -> Wallet:
        wallet = Wallet(
            wallet_id=wallet_id,
            user_id=user_id,
            wallet_name=wallet_name,
            network=network,
            credentials_blob=credentials_blob,
            initial_address=initial_address,
            is_default=is_default,
            currency=currency,
        )
        self.session.add(wallet)
        try:
            await self.session.flush()
        except IntegrityError:
            # Leave the session usable so the caller can read the conflicting row.
            await self.session.rollback()
            raise
        await self.session.refresh(wallet)
        return wallet
