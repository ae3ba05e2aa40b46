"""Simple dependency container for wiring core services."""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import lru_cache
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from coinbox.core.config import Settings, get_settings
from coinbox.infrastructure.database.session import get_session_factory
from coinbox.infrastructure.wallet_service import HttpWalletService
from coinbox.modules.wallets.remote import RemoteWalletService
from coinbox.workflows.context import WorkflowContext
from coinbox.workflows.notifications import LoggingNotifier, Notifier
from coinbox.workflows.scheduler import JobScheduler
from coinbox.workflows.triggers import register_jobs


@dataclass(slots=True)
class ApplicationContainer:
    settings: Settings
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None
    wallet_service: Optional[RemoteWalletService] = None
    notifier: Optional[Notifier] = None
    scheduler: Optional[JobScheduler] = field(default=None)

    def init_infrastructure(self) -> None:
        """Ensure infrastructure singletons (database engine, etc.) are initialised."""
        if self.session_factory is None:
            self.session_factory = get_session_factory()
        if self.wallet_service is None:
            self.wallet_service = HttpWalletService.from_settings(self.settings.wallet_service)
        if self.notifier is None:
            self.notifier = LoggingNotifier()
        if self.scheduler is None:
            self.scheduler = register_jobs(
                JobScheduler.from_settings(
                    self.settings.scheduler,
                    self.session_factory,
                    context=self.workflow_context(),
                )
            )

    def workflow_context(self) -> WorkflowContext:
        return WorkflowContext(
            wallet_service=self.wallet_service,
            session_factory=self.session_factory,
            wallet_settings=self.settings.wallet_service,
            notifier=self.notifier,
        )

    async def shutdown(self) -> None:
        if self.scheduler is not None:
            await self.scheduler.stop()
        if isinstance(self.wallet_service, HttpWalletService):
            await self.wallet_service.aclose()


@lru_cache()
def get_container() -> ApplicationContainer:
    container = ApplicationContainer(settings=get_settings())
    container.init_infrastructure()
    return container


__all__ = ["ApplicationContainer", "get_container"]
