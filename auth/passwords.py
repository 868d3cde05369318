"""Password hashing (argon2id)."""

import logging

from argon2 import PasswordHasher, Type
from argon2.exceptions import InvalidHash, VerificationError

logger = logging.getLogger(__name__)


class CredentialStore:
    """Hashes and verifies passwords. Plaintext never leaves this class."""

    def __init__(self, hasher: PasswordHasher | None = None):
        self._hasher = hasher or PasswordHasher(type=Type.ID)
        # Verified against when no account matches, so unknown emails cost the same as wrong passwords
        self._dummy_hash = self._hasher.hash("not-a-real-password")

    def hash(self, plaintext: str) -> str:
        return self._hasher.hash(plaintext)

    def verify(self, plaintext: str, password_hash: str) -> bool:
        """True iff plaintext matches. Malformed hashes count as a mismatch."""
        try:
            return self._hasher.verify(password_hash, plaintext)
        except InvalidHash:
            logger.warning("Stored password hash is not a valid argon2 hash")
            return False
        except VerificationError:
            return False

    def burn_verify(self, plaintext: str) -> None:
        """Spend one verification's worth of time without an account."""
        self.verify(plaintext, self._dummy_hash)
