from sqlalchemy import func, select

from app.features.users.models.wallet_user import WalletUser
from app.features.users.services.user_service import get_user, touch_user

WALLET = "0x52908400098527886E0F7030069857D2E4169EE7"


class TestTouchUser:
    """Test suite for the lazy wallet-user upsert"""

    async def test_creates_user_on_first_touch(self, db_session):
        await touch_user(db_session, WALLET)

        user = await get_user(db_session, WALLET)
        assert user is not None
        assert user.wallet_address == WALLET.lower()
        assert user.last_seen is not None

    async def test_repeated_touch_keeps_single_row(self, db_session):
        await touch_user(db_session, WALLET)
        await touch_user(db_session, WALLET.lower())
        await touch_user(db_session, WALLET.upper().replace("0X", "0x"))

        count = await db_session.execute(select(func.count(WalletUser.id)))
        assert count.scalar_one() == 1

    async def test_get_user_is_case_insensitive(self, db_session):
        await touch_user(db_session, WALLET.lower())

        assert (await get_user(db_session, WALLET)) is not None

    async def test_unknown_wallet_has_no_user(self, db_session):
        assert (await get_user(db_session, WALLET)) is None
