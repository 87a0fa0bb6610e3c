"""
key_manager.py
--------------

Loads the symmetric key used to protect message content and user contact data.

The key file holds a single base64 line encoding 32 random bytes (AES-256).
A missing, unreadable or malformed file is fatal at startup; generate one with
`talkify-keygen [path]`.
"""

import base64
import binascii
import os
import secrets
import sys
from hashlib import sha256

from talkify.config import ConfigError, load_config
from talkify.utils.logger_config import crypto_logger, init_logger

KEY_SIZE = 32


class KeyFileError(Exception):
    """Raised when the key file is absent or does not contain a valid key."""


def fingerprint(key: bytes) -> str:
    """Short SHA-256 fingerprint, safe to log."""
    return sha256(key).hexdigest()[:16].upper()


class KeyManager:
    def __init__(self, key_file: str):
        self.key_file = key_file
        self._key = self._load(key_file)
        crypto_logger.info(f"[KEY_LOADED] {key_file} fingerprint={fingerprint(self._key)}")

    @staticmethod
    def _load(path: str) -> bytes:
        if not os.path.isfile(path):
            raise KeyFileError(f"Key file not found: {path}")
        try:
            with open(path, "r", encoding="utf-8") as f:
                encoded = f.read().strip()
        except (OSError, UnicodeDecodeError) as e:
            raise KeyFileError(f"Cannot read key file {path}: {e}") from e

        try:
            key = base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError) as e:
            raise KeyFileError(f"Key file {path} is not valid base64") from e

        if len(key) != KEY_SIZE:
            raise KeyFileError(f"Key must be {KEY_SIZE} bytes, file holds {len(key)}")
        return key

    def get_key(self) -> bytes:
        return self._key

    @staticmethod
    def generate(path: str) -> bytes:
        """Writes a fresh random key to path (mode 0600). Never overwrites."""
        if os.path.exists(path):
            raise KeyFileError(f"Refusing to overwrite existing key file: {path}")

        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        key = secrets.token_bytes(KEY_SIZE)
        with open(path, "w", encoding="utf-8") as key_file:
            key_file.write(base64.b64encode(key).decode() + "\n")
        os.chmod(path, 0o600)

        crypto_logger.info(f"[KEY_GENERATED] {path} fingerprint={fingerprint(key)}")
        return key


def main() -> None:
    """Entry point of talkify-keygen."""
    init_logger()
    try:
        path = sys.argv[1] if len(sys.argv) > 1 else load_config().encryption.key_file
        key = KeyManager.generate(path)
    except (ConfigError, KeyFileError) as e:
        print(f"❌ {e}", file=sys.stderr)
        raise SystemExit(1)
    print(f"🔑 Key written to {path} (fingerprint {fingerprint(key)})")


if __name__ == "__main__":
    main()
