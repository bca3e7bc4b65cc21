"""SB0 Pay Merchant Portal - Secret hashing for API keys."""

import bcrypt


class SecretHasher:
    """bcrypt hashing for secrets that are shown to the user only once.

    Usage:
        hasher = SecretHasher(rounds=12)
        hashed = hasher.hash(plaintext)
        ok = hasher.verify(plaintext, hashed)

    bcrypt only considers the first 72 bytes of input, API keys are 41 bytes.
    """

    def __init__(self, rounds: int = 12) -> None:
        if not 4 <= rounds <= 31:
            raise ValueError("bcrypt rounds must be between 4 and 31")
        self._rounds = rounds

    def hash(self, plaintext: str) -> str:
        """Hash plaintext with a fresh random salt.

        Args:
            plaintext: Secret to hash

        Returns:
            bcrypt hash string (``$2b$...``)
        """
        if not plaintext:
            raise ValueError("Secret must be a non-empty string")
        salt = bcrypt.gensalt(rounds=self._rounds)
        return bcrypt.hashpw(plaintext.encode("utf-8"), salt).decode("ascii")

    def verify(self, plaintext: str, hashed: str) -> bool:
        """Compare plaintext against a stored hash in constant time.

        Returns False for malformed hashes instead of raising.
        """
        if not plaintext or not hashed:
            return False
        try:
            return bcrypt.checkpw(plaintext.encode("utf-8"), hashed.encode("ascii"))
        except ValueError:
            return False


# Singleton hasher instance (initialized on first use)
_hasher: SecretHasher | None = None


def get_hasher() -> SecretHasher:
    """Get the process-wide hasher configured from settings."""
    global _hasher
    if _hasher is None:
        from src.core.config import get_settings

        _hasher = SecretHasher(rounds=get_settings().api_key_bcrypt_rounds)
    return _hasher
