"""Bearer token verification.

Tokens are minted by the external identity service; this module only checks
them and extracts the user id carried in the ``sub`` claim.
"""
from __future__ import annotations

from jose import JWTError, jwt

from huddle.core.settings import settings


class InvalidToken(Exception):
    """Raised when a bearer token cannot be verified."""


def decode_user_id(token: str) -> int:
    """Verify a bearer token and return the user id it identifies.

    Args:
        token: Encoded JWT presented by the client.

    Returns:
        The integer user id from the ``sub`` claim.

    Raises:
        InvalidToken: If the signature, expiry or subject is invalid.
    """
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError as err:
        raise InvalidToken("Could not validate credentials") from err

    subject = payload.get("sub")
    if subject is None:
        raise InvalidToken("Could not validate credentials")
    try:
        return int(subject)
    except (TypeError, ValueError) as err:
        raise InvalidToken("Could not validate credentials") from err
