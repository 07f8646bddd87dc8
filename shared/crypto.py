"""
Cryptography utilities for the admin session file.

Access and refresh tokens are kept encrypted at rest with a key derived
from machine-specific data, so the saved session is useless when copied to
another host.
"""

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
import base64
import binascii
import json
import logging
import os
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

KEY_SALT = b'cd-catalog-session-v1'
KDF_ITERATIONS = 100000


class CredentialManager:
    """Manager for encrypting/decrypting stored credentials."""

    @staticmethod
    def generate_key_from_password(password: str, salt: bytes) -> bytes:
        """
        Derive encryption key from password using PBKDF2.

        Args:
            password: Secret input for the derivation
            salt: Salt bytes for key derivation

        Returns:
            Derived Fernet key
        """
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=32,
            salt=salt,
            iterations=KDF_ITERATIONS,
        )
        return base64.urlsafe_b64encode(kdf.derive(password.encode()))

    @staticmethod
    def generate_machine_key() -> bytes:
        """Derive the key from the machine id and the current user name."""
        try:
            with open('/etc/machine-id', 'r') as f:
                machine_id = f.read().strip()
        except OSError:
            machine_id = os.getenv('HOSTNAME', 'default-machine')

        username = os.getenv('USER', 'default-user')
        return CredentialManager.generate_key_from_password(f"{machine_id}-{username}", KEY_SALT)

    @staticmethod
    def encrypt(data: str, key: Optional[bytes] = None) -> str:
        """
        Encrypt string data.

        Args:
            data: String to encrypt
            key: Encryption key (machine key if None)

        Returns:
            Base64-encoded encrypted string
        """
        if key is None:
            key = CredentialManager.generate_machine_key()

        encrypted = Fernet(key).encrypt(data.encode())
        return base64.urlsafe_b64encode(encrypted).decode()

    @staticmethod
    def decrypt(encrypted_data: str, key: Optional[bytes] = None) -> Optional[str]:
        """
        Decrypt data produced by encrypt().

        Returns:
            Decrypted string, or None if the key does not match or the data
            is damaged
        """
        if key is None:
            key = CredentialManager.generate_machine_key()
        try:
            encrypted_bytes = base64.urlsafe_b64decode(encrypted_data.encode())
            return Fernet(key).decrypt(encrypted_bytes).decode()
        except (InvalidToken, binascii.Error, ValueError) as e:
            logger.warning("Decryption failed: %s", e)
            return None

    @classmethod
    def encrypt_json(cls, payload: Dict[str, Any], key: Optional[bytes] = None) -> str:
        """Serialize payload to JSON and encrypt it."""
        return cls.encrypt(json.dumps(payload, sort_keys=True), key)

    @classmethod
    def decrypt_json(cls, encrypted_data: str, key: Optional[bytes] = None) -> Optional[Dict[str, Any]]:
        """
        Inverse of encrypt_json.

        Returns:
            The decoded object, or None if it cannot be decrypted or is not
            a JSON object
        """
        decrypted = cls.decrypt(encrypted_data, key)
        if decrypted is None:
            return None
        try:
            payload = json.loads(decrypted)
        except ValueError as e:
            logger.warning("Decrypted payload is not JSON: %s", e)
            return None
        return payload if isinstance(payload, dict) else None
