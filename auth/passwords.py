"""
Password hashing with bcrypt.

bcrypt is intentionally slow; async callers should use the ``*_async``
helpers, which run the work in Starlette's thread pool instead of on the
event loop.
"""
import os

import bcrypt
from dotenv import load_dotenv
from starlette.concurrency import run_in_threadpool

load_dotenv()

BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "12"))


def hash_password(password: str) -> str:
    """Hash a password with a fresh salt."""
    # bcrypt only considers the first 72 bytes
    password_bytes = password.encode("utf-8")[:72]
    hashed = bcrypt.hashpw(password_bytes, bcrypt.gensalt(rounds=BCRYPT_ROUNDS))
    return hashed.decode("utf-8")


def verify_password(plain_password: str, hashed_password: str | None) -> bool:
    """Check a password against a stored hash. A missing or malformed hash never matches."""
    if not hashed_password:
        return False
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8")[:72], hashed_password.encode("utf-8"))
    except ValueError:
        return False


async def hash_password_async(password: str) -> str:
    return await run_in_threadpool(hash_password, password)


async def verify_password_async(plain_password: str, hashed_password: str | None) -> bool:
    return await run_in_threadpool(verify_password, plain_password, hashed_password)
