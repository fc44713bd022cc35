# hrms_notify/security/jwt_utils.py
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from hrms_notify.config import Settings
from hrms_notify.core.exceptions import Unauthenticated

ACCESS = "access"
REFRESH = "refresh"


def create_token(subject: str, settings: Settings, token_type: str = ACCESS,
                 now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    days = settings.refresh_token_days if token_type == REFRESH else settings.access_token_days
    payload = {
        "sub": subject,
        "typ": token_type,
        "iat": now,
        "exp": now + timedelta(days=days),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_alg)


def decode_token(token: str, settings: Settings, token_type: str = ACCESS) -> dict:
    """
    Decodes and validates the JWT (signature, expiry, subject, token type).
    Raises Unauthenticated if anything is off.
    """
    if not token:
        raise Unauthenticated("No token provided")
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_alg],
            options={"require": ["exp", "sub"]},
        )
    except jwt.ExpiredSignatureError:
        raise Unauthenticated("Token expired")
    except jwt.PyJWTError:
        raise Unauthenticated("Invalid token")

    if payload.get("typ", ACCESS) != token_type:
        raise Unauthenticated("Invalid token")
    return payload


def bearer_token(authorization_header: Optional[str]) -> str:
    """
    Takes the header: Authorization: Bearer <token>
    and returns the raw token.
    """
    if not authorization_header:
        raise Unauthenticated("No token provided")

    if not authorization_header.startswith("Bearer "):
        raise Unauthenticated("Invalid Authorization header format")

    token = authorization_header.removeprefix("Bearer ").strip()
    if not token:
        raise Unauthenticated("No token provided")
    return token
