from .key_manager import KeyFileError, KeyManager
from .manager import DecryptionError, EncryptionManager, InvalidKeyError

__all__ = ["KeyFileError", "KeyManager", "DecryptionError", "EncryptionManager", "InvalidKeyError"]
