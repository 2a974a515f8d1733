import secrets

from jose import JWTError, jwt
from bookkeeper.config import settings
from bookkeeper.core.exceptions import UnauthorizedException


def decode_jwt(token: str) -> dict:
    """
    Decode and validate JWT token using shared SECRET_KEY.

    Args:
        token: JWT access token from Authorization header

    Returns:
        Decoded token payload with 'sub' (user_id), 'exp', optional 'email'

    Raises:
        UnauthorizedException: If token invalid, expired, or malformed
    """
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])

        # Validate expiration (jose checks this automatically)
        exp = payload.get("exp")
        if exp is None:
            raise UnauthorizedException("Token missing expiration")

        # Extract user_id from 'sub' claim
        user_id: str = payload.get("sub")
        if user_id is None:
            raise UnauthorizedException("Token missing user identifier")

        return payload

    except JWTError as e:
        raise UnauthorizedException(f"Invalid token: {str(e)}")


def verify_shared_secret(provided: str | None, expected: str) -> bool:
    """
    Constant-time comparison for scheduler bearer secrets.

    An empty expected secret never matches, so unconfigured jobs stay closed.
    """
    if not expected or not provided:
        return False
    return secrets.compare_digest(provided.encode(), expected.encode())
