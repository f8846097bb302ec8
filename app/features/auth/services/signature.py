"""
Wallet signature verification.

A caller proves control of a wallet by signing a text message with
``personal_sign`` (EIP-191 prefix, ECDSA over secp256k1). The signer is
recovered from (message, signature) and compared to the claimed address.
Only the recovered address is ever handed to downstream code.
"""
import re
import time
from typing import Optional

from eth_account import Account
from eth_account.messages import encode_defunct

from app.platform.config import settings
from app.platform.exceptions import AuthError
from app.platform.logger import get_logger
from app.platform.utils.wallet import extract_timestamp_ms, extract_wallet_address, normalize_address

logger = get_logger(__name__)

# 65 bytes: r (32) + s (32) + v (1)
_SIGNATURE = re.compile(r"^(0x)?[0-9a-fA-F]{130}$")
MAX_FUTURE_SKEW_MS = 60_000


def recover_signer(message: str, signature: str) -> str:
    """Return the lowercase address that produced ``signature`` over ``message``."""
    if not _SIGNATURE.match(signature.strip()):
        raise AuthError(
            "Authentication failed: Invalid signature format. Ensure it is a valid hex string.",
            AuthError.MALFORMED_SIGNATURE,
        )
    try:
        recovered = Account.recover_message(encode_defunct(text=message), signature=signature.strip())
    except Exception as exc:
        logger.warning(f"Signature recovery failed: {exc}")
        raise AuthError(
            "Authentication failed: Signature could not be decoded.",
            AuthError.MALFORMED_SIGNATURE,
        ) from exc
    return normalize_address(recovered)


def check_message_freshness(message: str, now_ms: Optional[int] = None) -> None:
    max_age = settings.AUTH_MESSAGE_MAX_AGE_SECONDS
    if max_age <= 0:
        return

    timestamp_ms = extract_timestamp_ms(message)
    if timestamp_ms is None:
        raise AuthError(
            "Authentication failed: Signed message carries no timestamp.",
            AuthError.EXPIRED_MESSAGE,
        )

    if now_ms is None:
        now_ms = int(time.time() * 1000)
    if now_ms - timestamp_ms > max_age * 1000 or timestamp_ms - now_ms > MAX_FUTURE_SKEW_MS:
        raise AuthError(
            "Authentication failed: Signed message has expired. Please sign a new one.",
            AuthError.EXPIRED_MESSAGE,
        )


def verify_wallet_signature(
    wallet_address: Optional[str],
    message: Optional[str],
    signature: Optional[str],
) -> str:
    """
    Verify that ``wallet_address`` signed ``message``.

    Returns the recovered (lowercase) address. Raises ``AuthError`` with
    ``MissingParameters``, ``MalformedSignature``, ``SignatureMismatch`` or
    ``ExpiredMessage``.
    """
    if not all(isinstance(value, str) and value.strip() for value in (wallet_address, message, signature)):
        logger.warning(
            "Auth failed: missing parameters "
            f"(walletAddress={bool(wallet_address)}, signature={bool(signature)}, message={bool(message)})"
        )
        raise AuthError(
            "Authentication failed: Missing required parameters (walletAddress, signature, message)",
            AuthError.MISSING_PARAMETERS,
        )

    recovered = recover_signer(message, signature)
    claimed = normalize_address(wallet_address)

    if recovered != claimed:
        logger.warning(f"Auth failed: signature mismatch. Recovered {recovered}, claimed {claimed}")
        raise AuthError("Authentication failed: Invalid signature", AuthError.SIGNATURE_MISMATCH)

    named = extract_wallet_address(message)
    if named is not None and named != claimed:
        logger.warning(f"Auth failed: message signed by {claimed} names wallet {named}")
        raise AuthError(
            "Authentication failed: Signed message is for a different wallet",
            AuthError.SIGNATURE_MISMATCH,
        )

    check_message_freshness(message)
    return recovered
