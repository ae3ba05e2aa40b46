"""Tests for rebuilding a user's wallet set from stored credentials."""

import json

import pytest

from coinbox.core.exceptions import NotFoundError, RemoteServiceError
from coinbox.infrastructure.database.session import session_scope
from coinbox.modules.wallets import (
    Network,
    WalletAggregator,
    WalletService,
    describe_wallet,
    describe_wallets,
    get_by_wallet_id,
)


async def _store(session_factory, wallet_id, user_id="u1", blob=None, is_default=False):
    blob = blob if blob is not None else json.dumps({"walletId": wallet_id, "walletName": wallet_id})
    async with session_scope(session_factory) as session:
        return await WalletService.with_session(session).record_wallet(
            wallet_id=wallet_id,
            user_id=user_id,
            wallet_name=f"Wallet {wallet_id}",
            network=Network.TESTNET,
            credentials_blob=blob,
            initial_address=f"tb1q{wallet_id}",
            is_default=is_default,
        )


@pytest.mark.asyncio
@pytest.mark.integration
async def test_corrupted_credentials_are_skipped(session_factory, wallet_service):
    await _store(session_factory, "w1", is_default=True)
    await _store(session_factory, "w2", blob="{not json")
    await _store(session_factory, "w3")

    aggregation = await WalletAggregator(wallet_service, session_factory).load_wallets_for_user("u1")

    assert sorted(wallet.wallet_id for wallet in aggregation) == ["w1", "w3"]
    assert len(aggregation) == 2
    assert aggregation.is_partial
    assert [error.wallet_id for error in aggregation.errors] == ["w2"]
    for wallet in aggregation:
        assert wallet.client.wallet_id == wallet.wallet_id


@pytest.mark.asyncio
@pytest.mark.integration
async def test_no_loadable_wallet_is_a_remote_failure(session_factory, wallet_service):
    await _store(session_factory, "w1", blob=json.dumps({"walletName": "no id"}))

    with pytest.raises(RemoteServiceError):
        await WalletAggregator(wallet_service, session_factory).load_wallets_for_user("u1")


@pytest.mark.asyncio
@pytest.mark.integration
async def test_user_without_wallets_gets_empty_set(session_factory, wallet_service):
    await _store(session_factory, "w1", user_id="someone-else")

    aggregation = await WalletAggregator(wallet_service, session_factory).load_wallets_for_user("u1")

    assert list(aggregation) == []
    assert not aggregation.is_partial


@pytest.mark.asyncio
@pytest.mark.integration
async def test_lookup_is_pure_and_scoped(session_factory, wallet_service):
    await _store(session_factory, "w1")
    aggregation = await WalletAggregator(wallet_service, session_factory).load_wallets_for_user("u1")
    client = wallet_service.clients["w1"]
    client.calls.clear()

    assert get_by_wallet_id(aggregation, "w1").wallet_id == "w1"
    assert aggregation.get("w1").record.initial_address == "tb1qw1"
    with pytest.raises(NotFoundError):
        get_by_wallet_id(aggregation, "w9")
    assert client.calls == []


@pytest.mark.asyncio
@pytest.mark.integration
async def test_describe_wallets_adds_balance_and_history(session_factory, wallet_service, remote_down):
    await _store(session_factory, "w1")
    await _store(session_factory, "w2")
    aggregation = await WalletAggregator(wallet_service, session_factory).load_wallets_for_user("u1")

    overviews = await describe_wallets(aggregation)

    assert sorted(overview.wallet.wallet_id for overview in overviews) == ["w1", "w2"]
    assert overviews[0].balance.available_amount == 100_000
    assert overviews[0].transactions[0]["txid"] == "tx-1"

    wallet_service.clients["w1"].fail["get_balance"] = remote_down
    with pytest.raises(RemoteServiceError):
        await describe_wallet(aggregation.get("w1"))


@pytest.mark.asyncio
@pytest.mark.integration
async def test_recording_same_wallet_twice_keeps_first_credentials(session_factory):
    first = await _store(session_factory, "w1")
    again = await _store(session_factory, "w1", blob=json.dumps({"walletId": "w1", "walletName": "changed"}))

    assert again.credentials_blob == first.credentials_blob
    async with session_scope(session_factory) as session:
        assert len(await WalletService.with_session(session).list_for_owner("u1")) == 1


@pytest.mark.unit
def test_network_accepts_mainnet_alias():
    assert Network.parse("mainnet") is Network.LIVENET
    assert Network.parse(" TESTNET ") is Network.TESTNET
