from fastapi import APIRouter

from coinbox.api.routers import jobs, signup, transactions, wallets


def create_api_router(prefix: str = "") -> APIRouter:
    router = APIRouter(prefix=prefix)
    router.include_router(signup.router, prefix="/signup-hooks", tags=["signup"])
    router.include_router(wallets.router, prefix="/wallets", tags=["wallets"])
    router.include_router(transactions.router, prefix="/transactions", tags=["transactions"])
    router.include_router(jobs.router, prefix="/jobs", tags=["jobs"])
    return router


__all__ = [
    "create_api_router",
]
