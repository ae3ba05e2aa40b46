"""SQLAlchemy-backed repository implementations."""

from .job_repository import SqlJobRepository
from .wallet_repository import SqlWalletRepository

__all__ = [
    "SqlJobRepository",
    "SqlWalletRepository",
]
