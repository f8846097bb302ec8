import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, OperationalError

from app.features.referral.models.referral import Referral, ReferralStatus
from app.features.referral.services import referral_service
from app.features.referral.services.referral_service import ReferralService
from app.features.users.models.wallet_user import WalletUser
from app.platform.exceptions import StorageError, ValidationError

REFERRER = "0x52908400098527886e0f7030069857d2e4169ee7"
REFEREE = "0xfb6916095ca1df60bb79ce92ce3ea74c37c5d359"


def _count(client, wallet):
    response = client.get(f"/api/referral/count/{wallet}")
    assert response.status_code == 200
    return response.json()["data"]


class TestReferralRoutes:
    def test_log_referral(self, client, alice, bob):
        response = client.post("/api/referral/log", json=bob.auth(referrerAddress=alice.address))
        assert response.status_code == 201
        payload = response.json()
        assert payload["success"] is True
        assert payload["message"] == "Referral logged successfully"
        data = payload["data"]
        assert data["referrer"] == alice.address.lower()
        assert data["referee"] == bob.address.lower()
        assert data["status"] == "completed"
        assert data["timestamp"]

    def test_log_referral_is_idempotent(self, client, alice, bob):
        first = client.post("/api/referral/log", json=bob.auth(referrerAddress=alice.address))
        second = client.post("/api/referral/log", json=bob.auth(referrerAddress=alice.address.lower()))

        assert first.status_code == 201
        assert second.status_code == 200
        assert second.json()["message"] == "Referral already recorded"
        assert second.json()["data"]["id"] == first.json()["data"]["id"]

    def test_storage_failure_is_500_without_details(self, client, alice, bob, monkeypatch):
        async def broken_touch_user(db, wallet):
            raise OperationalError("INSERT INTO wallet_users ...", {}, Exception("password=hunter2"))

        monkeypatch.setattr(referral_service, "touch_user", broken_touch_user)
        response = client.post("/api/referral/log", json=bob.auth(referrerAddress=alice.address))

        assert response.status_code == 500
        assert response.json() == {"success": False, "message": "Failed to log referral", "error": "StorageError"}
        assert "hunter2" not in response.text
        assert _count(client, alice.address)["count"] == 1

    def test_self_referral_is_rejected(self, client, alice):
        response = client.post(
            "/api/referral/log", json=alice.auth(referrerAddress=alice.address.upper().replace("0X", "0x"))
        )
        assert response.status_code == 400
        payload = response.json()
        assert payload["error"] == "ValidationError.SelfReferral"
        assert payload["message"] == "Cannot refer yourself"
        assert _count(client, alice.address)["count"] == 0

    def test_missing_referrer_is_400(self, client, bob):
        response = client.post("/api/referral/log", json=bob.auth())
        assert response.status_code == 400
        assert response.json()["error"] == "ValidationError.MissingField"

    def test_count_is_case_insensitive(self, client, alice, bob):
        client.post("/api/referral/log", json=bob.auth(referrerAddress=alice.address))

        upper = _count(client, alice.address.upper().replace("0X", "0x"))
        lower = _count(client, alice.address.lower())
        assert upper == lower
        assert upper["count"] == 1
        assert upper["referrals"][0]["referee"] == bob.address.lower()
        assert upper["referrals"][0]["timestamp"]

    def test_count_lists_every_referee(self, client, alice, bob, carol):
        client.post("/api/referral/log", json=bob.auth(referrerAddress=alice.address))
        client.post("/api/referral/log", json=carol.auth(referrerAddress=alice.address))

        data = _count(client, alice.address)
        assert data["count"] == 2
        assert {r["referee"] for r in data["referrals"]} == {bob.address.lower(), carol.address.lower()}
        assert _count(client, bob.address) == {"count": 0, "referrals": []}

    def test_verify_connection(self, client, alice, bob):
        before = client.post("/api/referral/verify", json=bob.auth(referrerAddress=alice.address))
        assert before.status_code == 200
        assert before.json()["data"] == {"isReferred": False, "referral": None}

        client.post("/api/referral/log", json=bob.auth(referrerAddress=alice.address))

        after = client.post("/api/referral/verify", json=bob.auth(referrerAddress=alice.address))
        data = after.json()["data"]
        assert data["isReferred"] is True
        assert data["referral"]["referrer"] == alice.address.lower()
        assert data["referral"]["referee"] == bob.address.lower()

    def test_verify_connection_is_directional(self, client, alice, bob):
        # bob referred alice
        client.post("/api/referral/log", json=alice.auth(referrerAddress=bob.address))

        # alice did not refer bob
        response = client.post("/api/referral/verify", json=bob.auth(referrerAddress=alice.address))
        assert response.json()["data"]["isReferred"] is False

        # once both directions exist, each query sees only its own pair
        client.post("/api/referral/log", json=bob.auth(referrerAddress=alice.address))
        forward = client.post("/api/referral/verify", json=bob.auth(referrerAddress=alice.address)).json()["data"]
        reverse = client.post("/api/referral/verify", json=alice.auth(referrerAddress=bob.address)).json()["data"]
        assert forward["referral"]["id"] != reverse["referral"]["id"]
        assert forward["referral"]["referrer"] == alice.address.lower()
        assert reverse["referral"]["referrer"] == bob.address.lower()


class TestReferralService:
    async def test_log_referral_touches_both_users(self, db_session):
        await ReferralService(db_session).log_referral(REFERRER, REFEREE)

        result = await db_session.execute(select(WalletUser.wallet_address))
        assert set(result.scalars().all()) == {REFERRER, REFEREE}

    async def test_self_referral_performs_no_writes(self, db_session):
        with pytest.raises(ValidationError) as exc:
            await ReferralService(db_session).log_referral(REFERRER.upper().replace("0X", "0x"), REFERRER)
        assert exc.value.code == ValidationError.SELF_REFERRAL

        users = await db_session.execute(select(func.count(WalletUser.id)))
        referrals = await db_session.execute(select(func.count(Referral.id)))
        assert users.scalar_one() == 0
        assert referrals.scalar_one() == 0

    async def test_invalid_referrer_is_rejected(self, db_session):
        with pytest.raises(ValidationError) as exc:
            await ReferralService(db_session).log_referral("not-a-wallet", REFEREE)
        assert exc.value.code == ValidationError.INVALID_ADDRESS

    async def test_concurrent_log_resolves_to_winner(self, db_session, monkeypatch):
        service = ReferralService(db_session)
        winner, created = await service.log_referral(REFERRER, REFEREE)
        assert created is True

        real_lookup = service.get_referral
        calls = []

        async def stale_lookup(referrer, referee, status=None):
            calls.append((referrer, referee))
            if len(calls) == 1:
                return None
            return await real_lookup(referrer, referee, status)

        monkeypatch.setattr(service, "get_referral", stale_lookup)

        referral, created = await service.log_referral(REFERRER, REFEREE)
        assert created is False
        assert referral.id == winner.id

        count = await db_session.execute(select(func.count(Referral.id)))
        assert count.scalar_one() == 1

    async def test_store_rejects_duplicate_pair(self, db_session):
        db_session.add(Referral(referrer=REFERRER, referee=REFEREE, status=ReferralStatus.completed))
        await db_session.commit()

        db_session.add(Referral(referrer=REFERRER, referee=REFEREE, status=ReferralStatus.completed))
        with pytest.raises(IntegrityError):
            await db_session.commit()
        await db_session.rollback()

    async def test_store_rejects_self_referral(self, db_session):
        db_session.add(Referral(referrer=REFERRER, referee=REFERRER, status=ReferralStatus.completed))
        with pytest.raises(IntegrityError):
            await db_session.commit()
        await db_session.rollback()

    async def test_pending_referrals_are_not_counted(self, db_session):
        db_session.add(Referral(referrer=REFERRER, referee=REFEREE, status=ReferralStatus.pending))
        await db_session.commit()

        service = ReferralService(db_session)
        assert (await service.get_referral_count(REFERRER))["count"] == 0
        assert await service.verify_connection(REFERRER, REFEREE) is None

    async def test_read_failure_raises_storage_error(self, db_session, monkeypatch):
        async def broken_execute(*args, **kwargs):
            raise OperationalError("SELECT ...", {}, Exception("disk I/O error"))

        monkeypatch.setattr(db_session, "execute", broken_execute)
        with pytest.raises(StorageError) as exc:
            await ReferralService(db_session).get_referral_count(REFERRER)
        assert exc.value.status_code == 500
        assert exc.value.message == "Failed to get referral count"
