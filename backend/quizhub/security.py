"""Password hashing.

New passwords are hashed with the configured passlib scheme
(`pbkdf2_sha256` by default). Unsalted `hex_sha256` digests, the format
the first version of the app stored, are still accepted on login and
reported as needing an update so they can be re-hashed.
"""

from passlib.context import CryptContext

LEGACY_SCHEMES = ("hex_sha256",)


class PasswordHasher:
    def __init__(self, scheme: str = "pbkdf2_sha256"):
        schemes = [scheme] + [s for s in LEGACY_SCHEMES if s != scheme]
        # everything but the first scheme is deprecated
        self._ctx = CryptContext(schemes=schemes, deprecated="auto")
        self.scheme = scheme

    def hash(self, password: str) -> str:
        return self._ctx.hash(password)

    def verify(self, password: str, password_hash: str) -> bool:
        """Return True if `password` matches `password_hash`.

        Hashes in an unknown format simply fail to verify.
        """
        try:
            return self._ctx.verify(password, password_hash)
        except ValueError:
            return False

    def needs_update(self, password_hash: str) -> bool:
        return self._ctx.needs_update(password_hash)
