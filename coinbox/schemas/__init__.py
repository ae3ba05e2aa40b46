"""Pydantic schemas used across the project."""
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class SignupEvent(BaseModel):
    user_id: str = Field(..., min_length=1, max_length=64)
    email: str = Field(..., min_length=3, max_length=254)
    display_name: Optional[str] = Field(default=None, max_length=100)
    confirmation_token: Optional[str] = None


class SignupQueuedResponse(BaseModel):
    provision: str
    confirmation_email: Optional[str] = None


class WalletCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., min_length=3, max_length=254)


class WalletResponse(BaseModel):
    wallet_id: str
    user_id: str
    wallet_name: str
    network: str
    initial_address: str
    is_default: bool
    currency: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class WalletBalanceResponse(BaseModel):
    total_amount: int
    available_amount: int
    locked_amount: int = 0

    model_config = ConfigDict(from_attributes=True)


class WalletDetailResponse(WalletResponse):
    balance: WalletBalanceResponse
    transactions: list[dict[str, Any]] = Field(default_factory=list)


class WalletListResponse(BaseModel):
    total: int
    wallets: list[WalletDetailResponse]
    unavailable: list[str] = Field(default_factory=list)


class OutputSpec(BaseModel):
    amount: int = Field(..., gt=0)
    destination_address: str = Field(..., min_length=1)


class SendFundsRequest(BaseModel):
    wallet_id: str
    outputs: list[OutputSpec] = Field(..., min_length=1)
    message: Optional[str] = Field(default=None, max_length=500)


class ProposalResponse(BaseModel):
    wallet_id: str
    proposal_id: Optional[str]
    stage: Optional[str]
    memo: Optional[str]


class JobQueuedResponse(BaseModel):
    invocation_id: str


class JobInvocationResponse(BaseModel):
    id: str
    job_name: str
    status: str
    attempts: int
    claim_count: int = 0
    last_error: Optional[str] = None
    result: Any = None
    retry_of: Optional[str] = None
    claimed_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
