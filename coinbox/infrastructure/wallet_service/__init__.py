"""HTTP adapter for the remote wallet service."""

from .credentials import WalletCredentials
from .http import HttpWalletClient, HttpWalletService

__all__ = ["HttpWalletClient", "HttpWalletService", "WalletCredentials"]
