"""
encrypt_users.py
-----------------

One-off migration for databases created before encryption was enabled:
encrypts every user's email and phone that is not already ciphertext under
the configured key.

All rows are updated in a single transaction; any failure rolls the whole
batch back.
"""

import sys

from sqlalchemy import select

from talkify.config import ConfigError, load_config
from talkify.crypto import EncryptionManager, InvalidKeyError, KeyFileError, KeyManager
from talkify.database.connection import DatabaseConnectionError, connect
from talkify.database.models import User
from talkify.utils.db_utils import safe_db_operation
from talkify.utils.logger_config import database_logger as dblog
from talkify.utils.logger_config import init_logger


@safe_db_operation
def encrypt_users(db, encryptor: EncryptionManager) -> tuple[int, int]:
    """
    Seals plaintext email/phone values in place.

    Returns:
        (encrypted, skipped) user counts.
    """
    encrypted = skipped = 0
    for user in db.scalars(select(User)):
        changed = False
        for field in ("email", "phone"):
            value = getattr(user, field)
            if value and not encryptor.is_encrypted(value):
                setattr(user, field, encryptor.encrypt_string(value))
                changed = True
        if changed:
            encrypted += 1
        else:
            skipped += 1
    db.commit()
    dblog.info(f"[ENCRYPT_USERS] encrypted={encrypted} skipped={skipped}")
    return encrypted, skipped


def main() -> None:
    init_logger()
    try:
        config = load_config()
        encryptor = EncryptionManager(KeyManager(config.encryption.key_file).get_key())
        database = connect(config.database.dsn(), config.database.pool_size)
    except (ConfigError, KeyFileError, InvalidKeyError, DatabaseConnectionError) as e:
        print(f"❌ {e}", file=sys.stderr)
        raise SystemExit(1)

    with database:
        db = database.SessionLocal()
        try:
            encrypted, skipped = encrypt_users(db, encryptor)
        finally:
            db.close()

    print(f"🔐 Encrypted {encrypted} user(s), {skipped} already encrypted")


if __name__ == "__main__":
    main()
