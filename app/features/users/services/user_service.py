from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession
from uuid_extension import uuid7

from app.features.users.models.wallet_user import WalletUser
from app.platform.utils.wallet import normalize_address

_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


async def touch_user(db: AsyncSession, wallet_address: str) -> None:
    """
    Create the user for ``wallet_address`` or refresh its ``last_seen``.

    A single INSERT ... ON CONFLICT statement, so concurrent calls for the
    same wallet never produce two rows.
    """
    wallet_address = normalize_address(wallet_address)
    dialect = db.get_bind().dialect.name
    insert = _INSERTS.get(dialect)
    if insert is None:
        raise RuntimeError(f"Unsupported database dialect for upsert: {dialect}")

    stmt = insert(WalletUser).values(
        id=str(uuid7()),
        wallet_address=wallet_address,
        last_seen=func.now(),
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=["wallet_address"],
        set_={"last_seen": func.now(), "updated_at": func.now()},
    )
    await db.execute(stmt)
    await db.commit()


async def get_user(db: AsyncSession, wallet_address: str) -> Optional[WalletUser]:
    result = await db.execute(
        select(WalletUser)
        .where(WalletUser.wallet_address == normalize_address(wallet_address))
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()
