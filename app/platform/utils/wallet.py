import re
import time
from typing import Optional

from eth_utils import is_address

from app.platform.config import settings

_TIMESTAMP = re.compile(r"Timestamp: (\d+)")
_NONCE = re.compile(r"Nonce: ([0-9a-f]+)")
_SIGNED_AS = re.compile(r"authenticate with .+? as (0x[0-9a-fA-F]{40})\b")


def normalize_address(address: Optional[str]) -> str:
    return (address or "").strip().lower()


def is_valid_address(address: Optional[str]) -> bool:
    """
    True for a ``0x``-prefixed 20-byte hex address.

    All-lowercase and all-uppercase forms are accepted as is; mixed case must
    carry a valid EIP-55 checksum.
    """
    if not isinstance(address, str) or not address.strip().startswith("0x"):
        return False
    return is_address(address.strip())


def generate_signature_message(
    wallet_address: str,
    timestamp_ms: Optional[int] = None,
    nonce: Optional[str] = None,
) -> str:
    """Build the text a wallet signs to authenticate."""
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    message = (
        f"I am signing this message to authenticate with {settings.AUTH_APP_NAME} "
        f"as {wallet_address}. Timestamp: {timestamp_ms}"
    )
    if nonce:
        message += f". Nonce: {nonce}"
    return message


def extract_timestamp_ms(message: str) -> Optional[int]:
    match = _TIMESTAMP.search(message or "")
    return int(match.group(1)) if match else None


def extract_nonce(message: str) -> Optional[str]:
    match = _NONCE.search(message or "")
    return match.group(1) if match else None


def extract_wallet_address(message: str) -> Optional[str]:
    """The wallet a sign-in message says it authenticates, if it names one."""
    match = _SIGNED_AS.search(message or "")
    return normalize_address(match.group(1)) if match else None


def parse_user_agent(user_agent: Optional[str]) -> dict:
    # Simple parsing, good enough for analytics logs
    user_agent = user_agent or ""
    browser = re.search(r"(chrome|safari|firefox|msie|trident)", user_agent, re.IGNORECASE)
    version = re.search(r"version/(\d+)", user_agent, re.IGNORECASE)
    mobile = re.search(r"mobile|android|iphone|ipad", user_agent, re.IGNORECASE) is not None

    return {
        "browser": browser.group(0).lower() if browser else "unknown",
        "version": version.group(1) if version else "unknown",
        "mobile": mobile,
    }
