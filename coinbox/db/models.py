"""SQLAlchemy ORM models."""
import uuid

from sqlalchemy import Boolean, Column, DateTime, Index, Integer, String, Text
from sqlalchemy.sql import func

from coinbox.infrastructure.database.base import Base


def generate_uuid() -> str:
    return str(uuid.uuid4())


class Wallet(Base):
    __tablename__ = "wallets"

    wallet_id = Column(String(64), primary_key=True)
    user_id = Column(String(64), nullable=False, index=True)
    wallet_name = Column(String(100), nullable=False)
    network = Column(String(20), nullable=False)
    credentials_blob = Column(Text, nullable=False)
    initial_address = Column(String(128), nullable=False)
    is_default = Column(Boolean, nullable=False, default=False)
    currency = Column(String(10))
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # At most one default wallet per user.
    __table_args__ = (
        Index(
            "uq_wallets_default_per_user",
            user_id,
            unique=True,
            sqlite_where=is_default.is_(True),
            postgresql_where=is_default.is_(True),
        ),
    )


class JobInvocation(Base):
    __tablename__ = "job_invocations"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    job_name = Column(String(100), nullable=False, index=True)
    payload = Column(Text)
    status = Column(String(20), nullable=False, default="pending")  # pending, running, succeeded, failed
    attempts = Column(Integer, nullable=False, default=0)
    claim_count = Column(Integer, nullable=False, default=0)
    last_error = Column(Text)
    result = Column(Text)
    worker_id = Column(String(64))
    retry_of = Column(String(36))
    claimed_at = Column(DateTime(timezone=True))
    finished_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    __table_args__ = (Index("ix_job_invocations_status_created_at", "status", "created_at"),)
