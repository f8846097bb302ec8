"""
Test configuration and fixtures for the SmartWhales API.

Every test gets its own SQLite database file and its own application
instance, so rate-limit counters and stored rows never leak between tests.
"""

import os
import tempfile
from typing import Generator, Optional

from dotenv import load_dotenv
from eth_account import Account
from eth_account.messages import encode_defunct

import pytest
from fastapi.testclient import TestClient

load_dotenv()

# Must be set before anything imports app.platform.config
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{tempfile.mktemp(suffix='.db')}"
os.environ["FORCE_IN_MEMORY_RATE_LIMITER"] = "true"

from app.main import create_app  # noqa: E402
from app.platform.db.session import Database  # noqa: E402
from app.platform.utils.wallet import generate_signature_message  # noqa: E402


class WalletSigner:
    """A throwaway wallet that signs sign-in messages like a browser wallet would."""

    def __init__(self):
        self.account = Account.create()

    @property
    def address(self) -> str:
        return self.account.address

    def sign(self, message: str) -> str:
        signed = self.account.sign_message(encode_defunct(text=message))
        return "0x" + bytes(signed.signature).hex()

    def auth(self, message: Optional[str] = None, **body) -> dict:
        """Request body carrying this wallet's credentials plus ``body``."""
        message = message or generate_signature_message(self.address)
        return {
            "walletAddress": self.address,
            "message": message,
            "signature": self.sign(message),
            **body,
        }


@pytest.fixture
def database(tmp_path) -> Database:
    return Database(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")


@pytest.fixture
def test_app(database):
    """Create FastAPI test application bound to the per-test database."""
    return create_app(database)


@pytest.fixture
def client(test_app) -> Generator[TestClient, None, None]:
    """
    Create a test client for making HTTP requests.
    Entering the client runs the lifespan, which creates the schema.
    """
    with TestClient(test_app) as test_client:
        yield test_client


@pytest.fixture
async def db_session(database):
    """AsyncSession on a fresh schema, for service-level tests."""
    await database.create_all()
    async with database.session_factory() as session:
        yield session
    await database.dispose()


@pytest.fixture
def alice() -> WalletSigner:
    return WalletSigner()


@pytest.fixture
def bob() -> WalletSigner:
    return WalletSigner()


@pytest.fixture
def carol() -> WalletSigner:
    return WalletSigner()
