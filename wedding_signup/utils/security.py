# wedding_signup/utils/security.py
import logging
from typing import Optional
from cryptography.fernet import Fernet, InvalidToken
from base64 import urlsafe_b64decode

logger = logging.getLogger(__name__)


def generate_fernet_key() -> str:
    """Generates a new Fernet key suitable for CREDENTIAL_ENCRYPTION_KEY."""
    return Fernet.generate_key().decode('utf-8')


class FernetEncryptor:
    """
    Seals and unseals signup credentials with Fernet symmetric encryption.

    A paid signup must keep the owner's chosen credential until the payment
    completes; only the sealed token is ever written to a reservation.
    """

    def __init__(self, encryption_key: Optional[str]):
        self.fernet_instance: Optional[Fernet] = None
        self.key_valid = False

        if not encryption_key:
            logger.critical(
                "CREDENTIAL_ENCRYPTION_KEY is not set. "
                "Paid signups cannot hold credentials until payment completes."
            )
            return

        try:
            key_bytes = encryption_key.encode('utf-8')
            if len(urlsafe_b64decode(key_bytes)) != 32:
                logger.error("Invalid CREDENTIAL_ENCRYPTION_KEY: must decode to exactly 32 bytes.")
                return
            self.fernet_instance = Fernet(key_bytes)
            self.key_valid = True
            logger.info("FernetEncryptor initialized with a valid key.")
        except (ValueError, TypeError) as e:
            logger.error(f"Failed to initialize FernetEncryptor with provided key. Error: {e}")

    def encrypt(self, data: str) -> Optional[str]:
        """Return the sealed token, or None when no valid key is loaded."""
        if not self.fernet_instance or not self.key_valid:
            logger.error("Cannot seal credential: encryption key missing or invalid.")
            return None
        return self.fernet_instance.encrypt(data.encode('utf-8')).decode('utf-8')

    def decrypt(self, encrypted_data: str) -> Optional[str]:
        """
        Unseal a token produced by encrypt().

        Returns None when the key is missing or the token does not verify,
        e.g. after a key rotation.
        """
        if not self.fernet_instance or not self.key_valid:
            logger.error("Cannot unseal credential: encryption key missing or invalid.")
            return None
        try:
            return self.fernet_instance.decrypt(encrypted_data.encode('utf-8')).decode('utf-8')
        except InvalidToken:
            logger.error(
                "Unsealing failed: invalid token. "
                "This may be due to a rotated key or corrupted data."
            )
            return None
