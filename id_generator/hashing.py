"""Password-keyed one-way hashing of patient identifiers."""

import hashlib
import hmac

from id_generator.errors import InvalidKeyError


def validate_secret(secret: str) -> None:
    """Raise InvalidKeyError unless *secret* is a non-blank string."""
    if not isinstance(secret, str) or not secret.strip():
        raise InvalidKeyError("A non-empty password is required for hashing")


def digest(secret: str, plaintext: str) -> str:
    """Return the HMAC-SHA256 hex digest of *plaintext* keyed with *secret*.

    The same (secret, plaintext) pair always gives the same 64-character
    digest; changing either changes it.  There is no way back from the
    digest to the plaintext.
    """
    validate_secret(secret)
    mac = hmac.new(secret.encode("utf-8"), plaintext.encode("utf-8"), hashlib.sha256)
    return mac.hexdigest()
