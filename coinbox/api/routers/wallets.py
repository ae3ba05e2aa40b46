"""Wallet listing and creation endpoints."""

from fastapi import APIRouter, Depends, status

from coinbox.api.deps import get_current_user_id, get_workflow_context
from coinbox.modules.wallets import WalletOverview, WalletView, describe_wallet, describe_wallets
from coinbox.schemas import (
    WalletBalanceResponse,
    WalletCreateRequest,
    WalletDetailResponse,
    WalletListResponse,
    WalletResponse,
)
from coinbox.workflows.context import WorkflowContext
from coinbox.workflows.provisioning import create_named_wallet

router = APIRouter()


def _to_schema(view: WalletView) -> WalletResponse:
    return WalletResponse(
        wallet_id=view.wallet_id,
        user_id=view.user_id,
        wallet_name=view.wallet_name,
        network=view.network.value,
        initial_address=view.initial_address,
        is_default=view.is_default,
        currency=view.currency,
        created_at=view.created_at,
    )


def _to_detail(overview: WalletOverview) -> WalletDetailResponse:
    return WalletDetailResponse(
        **_to_schema(overview.wallet).model_dump(),
        balance=WalletBalanceResponse.model_validate(overview.balance),
        transactions=overview.transactions,
    )


@router.get("", response_model=WalletListResponse, summary="List the caller's wallets with balances")
async def list_wallets(
    user_id: str = Depends(get_current_user_id),
    context: WorkflowContext = Depends(get_workflow_context),
):
    aggregation = await context.aggregator().load_wallets_for_user(user_id)
    overviews = await describe_wallets(aggregation)
    return WalletListResponse(
        total=len(overviews),
        wallets=[_to_detail(overview) for overview in overviews],
        unavailable=[error.wallet_id for error in aggregation.errors],
    )


@router.get("/{wallet_id}", response_model=WalletDetailResponse, summary="Get one wallet with balance and history")
async def get_wallet(
    wallet_id: str,
    user_id: str = Depends(get_current_user_id),
    context: WorkflowContext = Depends(get_workflow_context),
):
    aggregation = await context.aggregator().load_wallets_for_user(user_id)
    overview = await describe_wallet(aggregation.get(wallet_id))
    return _to_detail(overview)


@router.post("", response_model=WalletResponse, status_code=status.HTTP_201_CREATED, summary="Create a named wallet")
async def create_wallet(
    payload: WalletCreateRequest,
    user_id: str = Depends(get_current_user_id),
    context: WorkflowContext = Depends(get_workflow_context),
):
    view = await create_named_wallet(context, user_id=user_id, email=payload.email, wallet_name=payload.name)
    return _to_schema(view)
