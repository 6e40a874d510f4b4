"""JWT token management for authentication."""

import uuid
from datetime import datetime, timedelta, timezone

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from pydantic import BaseModel

from vidshelf.core.config import settings
from vidshelf.core.exceptions import AuthError

ALGORITHM = "HS256"


class TokenPayload(BaseModel):
    """JWT token payload structure."""

    sub: str  # User ID
    exp: datetime
    iat: datetime
    type: str  # "access"
    jti: str


def create_token(
    user_id: uuid.UUID,
    token_type: str,
    expires_delta: timedelta,
) -> tuple[str, str]:
    """Create a JWT token.

    Args:
        user_id: User UUID
        token_type: Token type claim
        expires_delta: Token expiration time

    Returns:
        tuple[str, str]: (token, jti) - The encoded token and its unique ID
    """
    jti = str(uuid.uuid4())
    now = datetime.now(timezone.utc)
    expire = now + expires_delta

    payload = {
        "sub": str(user_id),
        "exp": expire,
        "iat": now,
        "type": token_type,
        "jti": jti,
    }

    token = jwt.encode(payload, settings.SECRET_KEY, algorithm=ALGORITHM)
    return token, jti


def create_access_token(
    user_id: uuid.UUID,
    expires_delta: timedelta | None = None,
) -> tuple[str, str]:
    """Create an access token.

    Args:
        user_id: User UUID
        expires_delta: Optional custom lifetime

    Returns:
        tuple[str, str]: (token, jti)
    """
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    return create_token(user_id, "access", expires_delta)


def decode_token(token: str) -> TokenPayload | None:
    """Decode and validate a JWT token.

    Expired tokens and bad signatures both decode to None.
    """
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[ALGORITHM])
        return TokenPayload(
            sub=payload["sub"],
            exp=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
            iat=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
            type=payload["type"],
            jti=payload["jti"],
        )
    except (JWTError, KeyError):
        return None


def validate_token(token: str, expected_type: str = "access") -> TokenPayload | None:
    """Validate a JWT token.

    Args:
        token: Encoded JWT token
        expected_type: Expected token type

    Returns:
        TokenPayload | None: Decoded payload if valid, None otherwise
    """
    payload = decode_token(token)

    if payload is None:
        return None

    if payload.type != expected_type:
        return None

    if payload.exp < datetime.now(timezone.utc):
        return None

    return payload


def get_user_id_from_token(token: str) -> uuid.UUID | None:
    """Extract user ID from a valid access token."""
    payload = validate_token(token, "access")
    if payload is None:
        return None

    try:
        return uuid.UUID(payload.sub)
    except ValueError:
        return None


# FastAPI dependencies
security = HTTPBearer(auto_error=False)


async def get_current_user_id(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> uuid.UUID:
    """Get the authenticated user's ID from the bearer token.

    Raises:
        AuthError: If the header is missing or the token is invalid
    """
    if credentials is None:
        raise AuthError("Couldn't find JWT")

    user_id = get_user_id_from_token(credentials.credentials)
    if user_id is None:
        raise AuthError("Couldn't validate JWT")

    return user_id
