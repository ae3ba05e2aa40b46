"""Serialized credentials for one copayer of one remote wallet."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from coinbox.core.exceptions import CredentialsError


class WalletCredentials(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    version: int = 1
    wallet_id: Optional[str] = Field(default=None, alias="walletId")
    wallet_name: Optional[str] = Field(default=None, alias="walletName")
    copayer_id: Optional[str] = Field(default=None, alias="copayerId")
    copayer_name: str = Field(alias="copayerName")
    network: str = "testnet"
    request_key: str = Field(alias="requestKey", min_length=16)
    required_signers: int = Field(default=1, alias="m", ge=1)
    total_signers: int = Field(default=1, alias="n", ge=1)

    @property
    def is_registered(self) -> bool:
        return bool(self.wallet_id and self.copayer_id)

    def export(self) -> str:
        return self.model_dump_json(by_alias=True)

    @classmethod
    def load(cls, blob: str) -> "WalletCredentials":
        try:
            credentials = cls.model_validate_json(blob)
        except (PydanticValidationError, TypeError, ValueError) as exc:
            raise CredentialsError(f"Unreadable wallet credentials: {exc}") from exc
        if not credentials.is_registered:
            raise CredentialsError("Wallet credentials are not bound to a wallet")
        return credentials
