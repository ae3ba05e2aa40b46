import json
from itertools import count
from typing import Any, AsyncGenerator, Optional, Sequence

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from coinbox.core.config import WalletServiceSettings
from coinbox.core.exceptions import CredentialsError, RemoteServiceError, ValidationError
from coinbox.db import models  # noqa: F401
from coinbox.infrastructure.database.base import Base
from coinbox.modules.transactions.models import ProposalOutput
from coinbox.modules.wallets.models import WalletBalance, WalletStatus
from coinbox.workflows.context import WorkflowContext
from coinbox.workflows.notifications import LoggingNotifier
from coinbox.workflows.scheduler import JobScheduler
from coinbox.workflows.triggers import register_jobs


# ---------------------------------------------------------------------------
# Remote wallet service double
# ---------------------------------------------------------------------------


class FakeWalletClient:
    """In-memory wallet client. ``fail`` maps a method name to the error it raises."""

    def __init__(self, wallet_id: str, wallet_name: str, network: str, *, pending_checks: int = 0) -> None:
        self._wallet_id = wallet_id
        self._wallet_name = wallet_name
        self._network = network
        self.pending_checks = pending_checks
        self.balance = WalletBalance(total_amount=100_000, available_amount=100_000)
        self.history: list[dict[str, Any]] = [{"txid": "tx-1", "action": "received", "amount": 100_000}]
        self.fail: dict[str, BaseException] = {}
        self.calls: list[str] = []
        self.addresses: list[str] = []
        self.proposals: dict[str, dict[str, Any]] = {}

    @property
    def wallet_id(self) -> Optional[str]:
        return self._wallet_id

    @property
    def wallet_name(self) -> Optional[str]:
        return self._wallet_name

    @property
    def network(self) -> str:
        return self._network

    def _record(self, name: str) -> None:
        self.calls.append(name)
        if name in self.fail:
            raise self.fail[name]

    def export(self) -> str:
        return json.dumps({"walletId": self._wallet_id, "walletName": self._wallet_name, "network": self._network})

    async def get_status(self) -> WalletStatus:
        self._record("get_status")
        if self.pending_checks > 0:
            self.pending_checks -= 1
            return WalletStatus(wallet_id=self._wallet_id, status="pending", joined_signers=0)
        return WalletStatus(wallet_id=self._wallet_id, status="complete", joined_signers=1)

    async def create_address(self) -> str:
        self._record("create_address")
        address = f"tb1q{self._wallet_id}{len(self.addresses)}"
        self.addresses.append(address)
        return address

    async def get_balance(self) -> WalletBalance:
        self._record("get_balance")
        return self.balance

    async def get_transaction_history(self) -> list[dict[str, Any]]:
        self._record("get_transaction_history")
        return list(self.history)

    async def create_proposal(self, outputs: Sequence[ProposalOutput], message: Optional[str]) -> str:
        self._record("create_proposal")
        proposal_id = f"txp-{len(self.proposals) + 1}"
        self.proposals[proposal_id] = {"outputs": list(outputs), "message": message, "status": "temporary"}
        return proposal_id

    async def publish_proposal(self, proposal_id: str) -> dict[str, Any]:
        self._record("publish_proposal")
        self.proposals[proposal_id]["status"] = "pending"
        return {"id": proposal_id, "status": "pending"}

    async def sign_proposal(self, proposal_id: str) -> dict[str, Any]:
        self._record("sign_proposal")
        self.proposals[proposal_id]["status"] = "accepted"
        return {"id": proposal_id, "status": "accepted"}

    async def broadcast_proposal(self, proposal_id: str) -> str:
        self._record("broadcast_proposal")
        self.proposals[proposal_id]["status"] = "broadcasted"
        return f"memo-{proposal_id}"


class FakeWalletService:
    def __init__(self, *, pending_checks: int = 0) -> None:
        self.pending_checks = pending_checks
        self.clients: dict[str, FakeWalletClient] = {}
        self.create_calls = 0
        self.fail_create: Optional[BaseException] = None
        self._ids = count(1)

    async def create_wallet(
        self,
        name: str,
        owner_email: str,
        *,
        required_signers: int,
        total_signers: int,
        network: str,
    ) -> tuple[Optional[str], FakeWalletClient]:
        self.create_calls += 1
        if self.fail_create is not None:
            raise self.fail_create
        if required_signers > total_signers:
            raise ValidationError("required_signers cannot exceed total_signers")
        wallet_id = f"w{next(self._ids)}"
        client = FakeWalletClient(wallet_id, name, network, pending_checks=self.pending_checks)
        self.clients[wallet_id] = client
        return (f"secret-{wallet_id}" if total_signers > 1 else None), client

    def import_credentials(self, blob: str) -> FakeWalletClient:
        try:
            data = json.loads(blob)
        except ValueError as exc:
            raise CredentialsError(f"Unreadable wallet credentials: {exc}") from exc
        if not isinstance(data, dict) or not data.get("walletId"):
            raise CredentialsError("Wallet credentials are not bound to a wallet")
        wallet_id = data["walletId"]
        if wallet_id not in self.clients:
            self.clients[wallet_id] = FakeWalletClient(wallet_id, data.get("walletName"), data.get("network", "testnet"))
        return self.clients[wallet_id]


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def test_engine(tmp_path):
    """File backed SQLite so concurrent sessions really use separate connections."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'coinbox-test.db'}", future=True)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


# ---------------------------------------------------------------------------
# Workflow collaborators
# ---------------------------------------------------------------------------


@pytest.fixture
def wallet_settings() -> WalletServiceSettings:
    return WalletServiceSettings(
        base_url="http://bws.test/bws/api",
        completion_attempts=3,
        completion_interval=0.0,
    )


@pytest.fixture
def wallet_service() -> FakeWalletService:
    return FakeWalletService()


@pytest.fixture
def notifier() -> LoggingNotifier:
    return LoggingNotifier()


@pytest.fixture
def workflow_context(wallet_service, session_factory, wallet_settings, notifier) -> WorkflowContext:
    return WorkflowContext(
        wallet_service=wallet_service,
        session_factory=session_factory,
        wallet_settings=wallet_settings,
        notifier=notifier,
    )


@pytest.fixture
def scheduler(session_factory, workflow_context) -> JobScheduler:
    return JobScheduler(session_factory, context=workflow_context, poll_interval=0.01)


@pytest.fixture
def job_scheduler(scheduler) -> JobScheduler:
    """Scheduler with the built-in jobs defined."""
    return register_jobs(scheduler)


@pytest.fixture
def remote_down() -> RemoteServiceError:
    return RemoteServiceError("wallet service unavailable")
