"""
manager.py
----------

AES-256-GCM encryption of message content and user contact fields.

Ciphertext layout is nonce (12 bytes) || ciphertext || tag, and the string
helpers wrap it in base64 so it fits in TEXT columns.
"""

import base64
import binascii
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from talkify.crypto.key_manager import KEY_SIZE, fingerprint
from talkify.utils.logger_config import crypto_logger

NONCE_SIZE = 12


class InvalidKeyError(Exception):
    """The key cannot be used with AES-256-GCM."""


class DecryptionError(Exception):
    """Ciphertext is malformed, tampered with or sealed under another key."""


class EncryptionManager:
    def __init__(self, key: bytes):
        if not isinstance(key, (bytes, bytearray)) or len(key) != KEY_SIZE:
            raise InvalidKeyError(f"AES-256-GCM needs a {KEY_SIZE}-byte key")
        self._aead = AESGCM(bytes(key))
        self.fingerprint = fingerprint(bytes(key))
        crypto_logger.debug(f"[CIPHER_READY] AES-256-GCM key={self.fingerprint}")

    def encrypt(self, plaintext: bytes) -> bytes:
        nonce = os.urandom(NONCE_SIZE)
        return nonce + self._aead.encrypt(nonce, plaintext, None)

    def decrypt(self, blob: bytes) -> bytes:
        if len(blob) <= NONCE_SIZE:
            raise DecryptionError("Ciphertext too short")
        nonce, ciphertext = blob[:NONCE_SIZE], blob[NONCE_SIZE:]
        try:
            return self._aead.decrypt(nonce, ciphertext, None)
        except InvalidTag as e:
            raise DecryptionError("Authentication tag mismatch") from e

    def encrypt_string(self, value: str) -> str:
        if not value:
            return ""
        return base64.b64encode(self.encrypt(value.encode("utf-8"))).decode("ascii")

    def decrypt_string(self, value: str) -> str:
        if not value:
            return ""
        try:
            blob = base64.b64decode(value, validate=True)
        except (binascii.Error, ValueError) as e:
            raise DecryptionError("Ciphertext is not valid base64") from e
        return self.decrypt(blob).decode("utf-8")

    def is_encrypted(self, value: str) -> bool:
        """True when value decrypts under this key."""
        try:
            self.decrypt_string(value)
        except (DecryptionError, UnicodeDecodeError):
            return False
        return bool(value)
