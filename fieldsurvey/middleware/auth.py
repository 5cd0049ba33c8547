"""Bearer token authentication dependencies.

Tokens are HS256 JWTs signed with the configured secret key. Claims:

- sub: admin id or user id
- type: ADMIN or USER
- role: SURVEY_USER or QUALITY_ENGINEER (USER tokens only)
- exp: expiry

Issuing tokens at login belongs to the account service; `create_access_token`
exists for operators and tests.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional

import jwt
from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from fieldsurvey.config import get_settings
from fieldsurvey.models.user import UserRole
from fieldsurvey.services.errors import ForbiddenError
from fieldsurvey.logging_config import get_logger

logger = get_logger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


class ActorType(str, Enum):
    ADMIN = "ADMIN"
    USER = "USER"


@dataclass(frozen=True)
class AuthenticatedActor:
    """Identity decoded from a valid bearer token."""
    subject: str
    actor_type: ActorType
    role: Optional[str] = None

    @property
    def user_id(self) -> Optional[int]:
        """Numeric user id for USER tokens, None otherwise."""
        if self.actor_type != ActorType.USER or not self.subject.isdigit():
            return None
        return int(self.subject)


def create_access_token(
    subject: str,
    actor_type: ActorType,
    role: Optional[str] = None,
    expires_in: Optional[timedelta] = None,
) -> str:
    """Issue a signed bearer token.

    Args:
        subject: Admin id or user id
        actor_type: ADMIN or USER
        role: User role for USER tokens
        expires_in: Lifetime (defaults to access_token_ttl_minutes)

    Returns:
        Encoded JWT
    """
    settings = get_settings()
    lifetime = expires_in or timedelta(minutes=settings.access_token_ttl_minutes)
    claims = {
        "sub": str(subject),
        "type": ActorType(actor_type).value,
        "exp": datetime.now(timezone.utc) + lifetime,
    }
    if role is not None:
        claims["role"] = role
    return jwt.encode(claims, settings.secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> AuthenticatedActor:
    """Decode and verify a bearer token.

    Raises:
        jwt.InvalidTokenError: If the signature, expiry or claims are invalid
    """
    settings = get_settings()
    claims = jwt.decode(
        token,
        settings.secret_key,
        algorithms=[settings.jwt_algorithm],
        options={"require": ["sub", "type", "exp"]},
    )
    try:
        actor_type = ActorType(claims["type"])
    except ValueError:
        raise jwt.InvalidTokenError(f"Unknown token type {claims['type']!r}")
    return AuthenticatedActor(
        subject=str(claims["sub"]),
        actor_type=actor_type,
        role=claims.get("role"),
    )


async def get_current_actor(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> AuthenticatedActor:
    """FastAPI dependency resolving the caller from the Authorization header.

    Raises:
        HTTPException(401): If the token is missing or invalid
    """
    client_ip = request.client.host if request.client else "unknown"
    if credentials is None:
        logger.warning(f"Missing bearer token from IP: {client_ip}")
        raise HTTPException(
            status_code=401,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        return decode_access_token(credentials.credentials)
    except jwt.InvalidTokenError as e:
        logger.warning(
            f"Invalid bearer token from IP: {client_ip}",
            extra={"error_type": type(e).__name__}
        )
        raise HTTPException(
            status_code=401,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )


async def get_optional_actor(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[AuthenticatedActor]:
    """Decode a bearer token if one is supplied; never rejects the request."""
    if credentials is None:
        return None
    try:
        return decode_access_token(credentials.credentials)
    except jwt.InvalidTokenError:
        logger.debug("Ignoring invalid bearer token on public route")
        return None


async def require_admin(
    actor: AuthenticatedActor = Depends(get_current_actor),
) -> AuthenticatedActor:
    """Dependency admitting only ADMIN tokens.

    Raises:
        ForbiddenError: If the caller is not an admin
    """
    if actor.actor_type != ActorType.ADMIN:
        logger.warning(f"Admin route denied for {actor.actor_type.value} {actor.subject}")
        raise ForbiddenError("Admin access required.")
    return actor


async def require_quality_engineer(
    actor: AuthenticatedActor = Depends(get_current_actor),
) -> AuthenticatedActor:
    """Dependency admitting only USER tokens with the QUALITY_ENGINEER role.

    Raises:
        ForbiddenError: If the caller is not a quality engineer
    """
    if actor.actor_type != ActorType.USER or actor.role != UserRole.QUALITY_ENGINEER.value:
        logger.warning(f"Reviewer route denied for {actor.actor_type.value} {actor.subject}")
        raise ForbiddenError("Quality engineer access required.")
    return actor
