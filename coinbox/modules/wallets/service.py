"""Wallet record domain service"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from coinbox.core.exceptions import NotFoundError, PersistenceError, ValidationError
from coinbox.db.models import Wallet as WalletModel
from coinbox.infrastructure.database.repositories.wallet_repository import SqlWalletRepository

from .models import Network, WalletRecord
from .repository import WalletRepository

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class WalletService:
    repository: WalletRepository

    @classmethod
    def with_session(cls, session: AsyncSession) -> "WalletService":
        return cls(SqlWalletRepository(session))

    async def record_wallet(
        self,
        *,
        wallet_id: str,
        user_id: str,
        wallet_name: str,
        network: Network,
        credentials_blob: str,
        initial_address: str,
        is_default: bool = False,
        currency: Optional[str] = None,
    ) -> WalletRecord:
        """Persist a fully provisioned wallet.

        Re-recording the same ``wallet_id`` for the same owner returns the
        stored record untouched: credentials are written once. A user has at
        most one default wallet; recording another default returns the one
        already stored and leaves the new remote wallet orphaned.
        """
        missing = [
            name
            for name, value in (
                ("wallet_id", wallet_id),
                ("user_id", user_id),
                ("wallet_name", wallet_name),
                ("credentials_blob", credentials_blob),
                ("initial_address", initial_address),
            )
            if not value
        ]
        if missing:
            raise ValidationError(f"Wallet record is incomplete: missing {', '.join(missing)}")

        try:
            existing = await self._find_recorded(wallet_id, user_id, is_default)
            if existing is not None:
                return existing
            try:
                model = await self.repository.create(
                    wallet_id=wallet_id,
                    user_id=user_id,
                    wallet_name=wallet_name,
                    network=network.value,
                    credentials_blob=credentials_blob,
                    initial_address=initial_address,
                    is_default=is_default,
                    currency=currency,
                )
            except IntegrityError:
                # A concurrent run stored this wallet or the user's default first.
                existing = await self._find_recorded(wallet_id, user_id, is_default)
                if existing is None:
                    raise
                return existing
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not record wallet {wallet_id}: {exc}") from exc
        return self._to_domain(model)

    async def _find_recorded(self, wallet_id: str, user_id: str, is_default: bool) -> WalletRecord | None:
        model = await self.repository.get_by_wallet_id(wallet_id)
        if model is not None:
            if model.user_id != user_id:
                raise ValidationError(f"Wallet {wallet_id} already belongs to another user")
            logger.info("Wallet %s already recorded for user %s", wallet_id, user_id)
            return self._to_domain(model)
        if is_default:
            model = await self.repository.get_default_for_owner(user_id)
            if model is not None:
                logger.warning(
                    "User %s already has default wallet %s; remote wallet %s is orphaned",
                    user_id,
                    model.wallet_id,
                    wallet_id,
                )
                return self._to_domain(model)
        return None

    async def list_for_owner(self, user_id: str) -> list[WalletRecord]:
        try:
            models = await self.repository.list_by_owner(user_id)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not load wallets for user {user_id}: {exc}") from exc
        return [self._to_domain(model) for model in models]

    async def get_default(self, user_id: str) -> WalletRecord | None:
        try:
            model = await self.repository.get_default_for_owner(user_id)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not load default wallet for user {user_id}: {exc}") from exc
        return self._to_domain(model) if model else None

    async def get_for_owner(self, user_id: str, wallet_id: str) -> WalletRecord:
        try:
            model = await self.repository.get_by_wallet_id(wallet_id)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not load wallet {wallet_id}: {exc}") from exc
        if model is None or model.user_id != user_id:
            raise NotFoundError(f"No wallet with id {wallet_id}")
        return self._to_domain(model)

    @staticmethod
    def _to_domain(model: WalletModel) -> WalletRecord:
        return WalletRecord(
            wallet_id=model.wallet_id,
            user_id=model.user_id,
            wallet_name=model.wallet_name,
            network=Network.parse(model.network),
            credentials_blob=model.credentials_blob,
            initial_address=model.initial_address,
            is_default=bool(model.is_default),
            currency=model.currency,
            created_at=model.created_at,
        )
