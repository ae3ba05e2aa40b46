"""Wallet domain exports"""

from .aggregator import (
    WalletAggregation,
    WalletAggregator,
    describe_wallet,
    describe_wallets,
    get_by_wallet_id,
)
from .models import (
    AggregatedWallet,
    Network,
    WalletBalance,
    WalletOverview,
    WalletRecord,
    WalletStatus,
    WalletView,
)
from .remote import RemoteWalletClient, RemoteWalletService
from .service import WalletService

__all__ = [
    "AggregatedWallet",
    "Network",
    "RemoteWalletClient",
    "RemoteWalletService",
    "WalletAggregation",
    "WalletAggregator",
    "WalletBalance",
    "WalletOverview",
    "WalletRecord",
    "WalletService",
    "WalletStatus",
    "WalletView",
    "describe_wallet",
    "describe_wallets",
    "get_by_wallet_id",
]
