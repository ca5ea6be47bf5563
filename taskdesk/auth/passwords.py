"""
Secret hashing with bcrypt.

Hashing is CPU-bound, so both helpers run it in a worker thread to keep
the event loop free for other requests.
"""

import asyncio
import logging
from typing import Optional

import bcrypt

from config import settings

logger = logging.getLogger(__name__)


def _hash(secret: str, rounds: int) -> str:
    return bcrypt.hashpw(secret.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def _check(candidate: str, secret_hash: str) -> bool:
    try:
        return bcrypt.checkpw(candidate.encode("utf-8"), secret_hash.encode("utf-8"))
    except ValueError as e:
        # Malformed stored hash or over-long candidate
        logger.warning(f"Secret verification failed: {e}")
        return False


async def hash_secret(secret: str, rounds: Optional[int] = None) -> str:
    """Hash a plaintext secret for storage."""
    return await asyncio.to_thread(_hash, secret, rounds or settings.bcrypt_rounds)


async def verify_secret(candidate: str, secret_hash: Optional[str]) -> bool:
    """Check a plaintext candidate against a stored hash."""
    if not candidate or not secret_hash:
        return False
    return await asyncio.to_thread(_check, candidate, secret_hash)


_placeholder_hash: Optional[str] = None


def _get_placeholder_hash() -> str:
    global _placeholder_hash
    if _placeholder_hash is None:
        _placeholder_hash = _hash("taskdesk-placeholder-secret", settings.bcrypt_rounds)
    return _placeholder_hash


async def verify_missing_identity(candidate: str) -> bool:
    """
    Spend one bcrypt check on a placeholder hash and reject.

    Keeps an unknown email as slow to refuse as a wrong secret.
    """
    await asyncio.to_thread(lambda: _check(candidate or "", _get_placeholder_hash()))
    return False
