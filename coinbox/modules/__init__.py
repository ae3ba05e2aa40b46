"""Domain modules and their public exports."""

from . import jobs, transactions, wallets

__all__ = [
    "jobs",
    "transactions",
    "wallets",
]
