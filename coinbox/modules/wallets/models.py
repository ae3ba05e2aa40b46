"""Domain models for wallet records and their public views."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional

from coinbox.core.exceptions import ValidationError

if TYPE_CHECKING:
    from .remote import RemoteWalletClient


class Network(str, Enum):
    LIVENET = "livenet"
    TESTNET = "testnet"

    @classmethod
    def parse(cls, value: str) -> "Network":
        normalized = (value or "").strip().lower()
        if normalized == "mainnet":
            return cls.LIVENET
        try:
            return cls(normalized)
        except ValueError:
            raise ValidationError(f"Unknown network: {value!r}") from None


@dataclass(slots=True)
class WalletRecord:
    wallet_id: str
    user_id: str
    wallet_name: str
    network: Network
    credentials_blob: str = field(repr=False)
    initial_address: str
    is_default: bool = False
    currency: Optional[str] = None
    created_at: Optional[datetime] = None

    def to_view(self) -> "WalletView":
        return WalletView(
            wallet_id=self.wallet_id,
            user_id=self.user_id,
            wallet_name=self.wallet_name,
            network=self.network,
            initial_address=self.initial_address,
            is_default=self.is_default,
            currency=self.currency,
            created_at=self.created_at,
        )


@dataclass(slots=True)
class WalletView:
    """A wallet record as callers see it: never carries credentials."""

    wallet_id: str
    user_id: str
    wallet_name: str
    network: Network
    initial_address: str
    is_default: bool
    currency: Optional[str]
    created_at: Optional[datetime]


@dataclass(slots=True)
class WalletStatus:
    wallet_id: Optional[str]
    status: str
    required_signers: int = 1
    total_signers: int = 1
    joined_signers: int = 0

    @property
    def is_complete(self) -> bool:
        return bool(self.wallet_id) and self.status == "complete"


@dataclass(slots=True)
class WalletBalance:
    total_amount: int
    available_amount: int
    locked_amount: int = 0


@dataclass(slots=True)
class AggregatedWallet:
    """A persisted record paired with a client rebuilt from its credentials."""

    record: WalletRecord
    client: "RemoteWalletClient"

    @property
    def wallet_id(self) -> str:
        return self.record.wallet_id


@dataclass(slots=True)
class WalletOverview:
    wallet: WalletView
    balance: WalletBalance
    transactions: list[dict[str, Any]]
