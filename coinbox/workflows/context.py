"""Collaborators handed to every workflow step and job handler."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from coinbox.core.config import WalletServiceSettings
from coinbox.core.exceptions import ValidationError
from coinbox.modules.jobs.models import JobInvocation
from coinbox.modules.wallets.aggregator import WalletAggregator
from coinbox.modules.wallets.remote import RemoteWalletService

if TYPE_CHECKING:
    from .notifications import Notifier


@dataclass(slots=True)
class WorkflowContext:
    wallet_service: Optional[RemoteWalletService] = None
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None
    wallet_settings: WalletServiceSettings = field(default_factory=WalletServiceSettings)
    notifier: Optional["Notifier"] = None
    invocation: Optional[JobInvocation] = None

    def bind(self, invocation: JobInvocation) -> "WorkflowContext":
        return replace(self, invocation=invocation)

    @property
    def is_reclaimed(self) -> bool:
        return self.invocation is not None and self.invocation.is_reclaimed

    def require_wallet_service(self) -> RemoteWalletService:
        if self.wallet_service is None:
            raise ValidationError("No remote wallet service configured")
        return self.wallet_service

    def aggregator(self) -> WalletAggregator:
        return WalletAggregator(self.require_wallet_service(), self.session_factory)
