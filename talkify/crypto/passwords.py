"""
passwords.py
------------

Argon2id hashing of user passwords before they reach the database.
"""

import argon2

from talkify.utils.logger_config import crypto_logger, log_error

ph = argon2.PasswordHasher(
    time_cost=3,           # iterations
    memory_cost=65536,     # KiB (64 MB)
    parallelism=4,
    hash_len=32,
    salt_len=16,
)


def hash_password(password: str) -> str:
    try:
        return ph.hash(password)
    except argon2.exceptions.HashingError as e:
        log_error(crypto_logger, "[ARGON2_HASH_ERROR] Password hashing failed", e)
        raise ValueError(f"Could not hash password: {e}") from e
