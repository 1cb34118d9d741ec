"""Container and database session dependencies."""

from collections.abc import AsyncGenerator

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from wallet_ledger.core.container import ApplicationContainer, get_container


def get_app_container() -> ApplicationContainer:
    return get_container()


async def get_db_session(
    container: ApplicationContainer = Depends(get_app_container),
) -> AsyncGenerator[AsyncSession, None]:
    # services commit their own units of work
    async with container.session_factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
