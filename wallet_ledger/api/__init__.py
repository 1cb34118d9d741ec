from fastapi import APIRouter

from wallet_ledger.interfaces.http.routers import wallets


def create_api_router(prefix: str = "") -> APIRouter:
    router = APIRouter(prefix=prefix)
    router.include_router(wallets.router, prefix="/admin/wallets", tags=["wallets"])
    return router


__all__ = [
    "create_api_router",
]
