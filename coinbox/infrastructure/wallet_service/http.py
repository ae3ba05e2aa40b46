"""Async HTTP client for a Bitcore-Wallet-Service style REST API.

Every request made on behalf of a wallet carries the copayer id in
``x-identity`` and an HMAC-SHA256 of ``METHOD|path|body`` keyed with the
copayer's request key in ``x-signature``. The request key is registered with
the service when the copayer joins and travels inside the exported
credentials.
"""

from __future__ import annotations

import hashlib
import hmac
import json
import logging
import secrets
from typing import Any, Optional, Sequence

import httpx

from coinbox.core.config import WalletServiceSettings
from coinbox.core.exceptions import NotFoundError, RemoteServiceError, ValidationError
from coinbox.modules.transactions.models import ProposalOutput
from coinbox.modules.wallets.models import WalletBalance, WalletStatus

from .credentials import WalletCredentials

logger = logging.getLogger(__name__)


def sign_request(method: str, path: str, body: str, request_key: str) -> str:
    message = f"{method.upper()}|{path}|{body}".encode("utf-8")
    return hmac.new(request_key.encode("utf-8"), message, hashlib.sha256).hexdigest()


class HttpWalletService:
    """Factory for per-wallet clients sharing one connection pool."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._http = httpx.AsyncClient(base_url=base_url.rstrip("/"), timeout=timeout, transport=transport)

    @classmethod
    def from_settings(cls, settings: WalletServiceSettings) -> "HttpWalletService":
        return cls(settings.base_url, timeout=settings.request_timeout)

    async def aclose(self) -> None:
        await self._http.aclose()

    async def create_wallet(
        self,
        name: str,
        owner_email: str,
        *,
        required_signers: int,
        total_signers: int,
        network: str,
    ) -> tuple[Optional[str], "HttpWalletClient"]:
        if required_signers > total_signers:
            raise ValidationError("required_signers cannot exceed total_signers")
        created = await _send(
            self._http,
            "POST",
            "/v2/wallets/",
            {"name": name, "m": required_signers, "n": total_signers, "network": network},
        )
        wallet_id = created.get("walletId")
        if not wallet_id:
            raise RemoteServiceError("Wallet service did not assign a wallet id")

        secret = created.get("secret")
        credentials = WalletCredentials(
            walletId=wallet_id,
            walletName=name,
            copayerName=owner_email,
            network=network,
            requestKey=secrets.token_hex(32),
            m=required_signers,
            n=total_signers,
        )
        joined = await _send(
            self._http,
            "POST",
            f"/v2/wallets/{wallet_id}/copayers/",
            {
                "walletId": wallet_id,
                "name": owner_email,
                "requestKey": credentials.request_key,
                "secret": secret,
            },
        )
        copayer_id = joined.get("copayerId")
        if not copayer_id:
            raise RemoteServiceError(f"Wallet service did not register a copayer for wallet {wallet_id}")
        credentials.copayer_id = copayer_id
        logger.info("Created remote wallet %s (%s-of-%s)", wallet_id, required_signers, total_signers)
        return (secret if total_signers > 1 else None), HttpWalletClient(self._http, credentials)

    def import_credentials(self, blob: str) -> "HttpWalletClient":
        return HttpWalletClient(self._http, WalletCredentials.load(blob))


class HttpWalletClient:
    def __init__(self, http: httpx.AsyncClient, credentials: WalletCredentials) -> None:
        self._http = http
        self._credentials = credentials

    @property
    def wallet_id(self) -> Optional[str]:
        return self._credentials.wallet_id

    @property
    def wallet_name(self) -> Optional[str]:
        return self._credentials.wallet_name

    @property
    def network(self) -> str:
        return self._credentials.network

    def export(self) -> str:
        return self._credentials.export()

    async def get_status(self) -> WalletStatus:
        data = await self._signed("GET", "/v3/wallets/")
        wallet = data.get("wallet") or {}
        return WalletStatus(
            wallet_id=wallet.get("id") or self.wallet_id,
            status=wallet.get("status", "pending"),
            required_signers=wallet.get("m", self._credentials.required_signers),
            total_signers=wallet.get("n", self._credentials.total_signers),
            joined_signers=len(wallet.get("copayers") or []),
        )

    async def create_address(self) -> str:
        data = await self._signed("POST", "/v4/addresses/", {})
        address = data.get("address")
        if not address:
            raise RemoteServiceError(f"Wallet service returned no address for wallet {self.wallet_id}")
        return address

    async def get_balance(self) -> WalletBalance:
        data = await self._signed("GET", "/v1/balance/")
        return WalletBalance(
            total_amount=int(data.get("totalAmount", 0)),
            available_amount=int(data.get("availableAmount", 0)),
            locked_amount=int(data.get("lockedAmount", 0)),
        )

    async def get_transaction_history(self) -> list[dict[str, Any]]:
        data = await self._signed("GET", "/v1/txhistory/")
        return list(data) if isinstance(data, list) else list(data.get("items", []))

    async def create_proposal(self, outputs: Sequence[ProposalOutput], message: Optional[str]) -> str:
        data = await self._signed(
            "POST",
            "/v3/txproposals/",
            {
                "outputs": [output.to_payload() for output in outputs],
                "message": message,
                "feeLevel": "normal",
            },
        )
        proposal_id = data.get("id")
        if not proposal_id:
            raise RemoteServiceError("Wallet service did not assign a proposal id")
        return proposal_id

    async def publish_proposal(self, proposal_id: str) -> dict[str, Any]:
        return await self._signed("POST", f"/v2/txproposals/{proposal_id}/publish/", {})

    async def sign_proposal(self, proposal_id: str) -> dict[str, Any]:
        return await self._signed("POST", f"/v1/txproposals/{proposal_id}/signatures/", {})

    async def broadcast_proposal(self, proposal_id: str) -> str:
        data = await self._signed("POST", f"/v1/txproposals/{proposal_id}/broadcast/", {})
        memo = data.get("memo") or data.get("txid")
        if not memo:
            raise RemoteServiceError(f"Broadcast of proposal {proposal_id} returned no confirmation")
        return memo

    async def _signed(self, method: str, path: str, body: Any = None) -> Any:
        if not self._credentials.is_registered:
            raise ValidationError("Wallet client is not bound to a registered copayer")
        encoded = json.dumps(body, separators=(",", ":")) if body is not None else ""
        headers = {
            "x-identity": self._credentials.copayer_id,
            "x-signature": sign_request(method, path, encoded, self._credentials.request_key),
        }
        return await _send(self._http, method, path, body, headers=headers, encoded=encoded)


async def _send(
    http: httpx.AsyncClient,
    method: str,
    path: str,
    body: Any = None,
    *,
    headers: dict[str, str] | None = None,
    encoded: str | None = None,
) -> Any:
    if encoded is None:
        encoded = json.dumps(body, separators=(",", ":")) if body is not None else ""
    request_headers = {"Content-Type": "application/json", **(headers or {})}
    try:
        response = await http.request(
            method,
            path,
            content=encoded.encode("utf-8") if encoded else None,
            headers=request_headers,
        )
    except httpx.HTTPError as exc:
        raise RemoteServiceError(f"{method} {path} failed: {exc}") from exc

    if response.status_code >= 500:
        raise RemoteServiceError(f"{method} {path} returned {response.status_code}: {_error_message(response)}")
    if response.status_code == 404:
        raise NotFoundError(f"{method} {path}: {_error_message(response)}")
    if response.status_code >= 400:
        raise ValidationError(f"{method} {path} rejected: {_error_message(response)}")
    if not response.content:
        return {}
    try:
        return response.json()
    except ValueError as exc:
        raise RemoteServiceError(f"{method} {path} returned invalid JSON") from exc


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(data, dict):
        return str(data.get("message") or data.get("code") or data)
    return str(data)
