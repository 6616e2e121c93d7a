"""
Request authentication.

Two credential kinds share the Authorization: Bearer header:
- admin dashboard sessions present a JWT issued by the identity provider
- merchants present an API key (publishable or secret tier)

Failure messages are deliberately generic.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from app import models
from app.config import ADMIN_JWT_ALGORITHM, ADMIN_JWT_SECRET, ADMIN_TOKEN_EXPIRE_MINUTES
from app.database import get_db
from app.errors import AuthError
from app.services import api_keys

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)

INVALID_API_KEY = "Invalid API key"


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=ADMIN_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, ADMIN_JWT_SECRET, algorithm=ADMIN_JWT_ALGORITHM)


def verify_token(token: str) -> Optional[dict]:
    try:
        return jwt.decode(token, ADMIN_JWT_SECRET, algorithms=[ADMIN_JWT_ALGORITHM])
    except JWTError:
        return None


def upsert_user(claims: dict, db: Session) -> models.User:
    """Mirror the identity provider's principal into the users table."""
    user = db.get(models.User, claims["sub"])
    if user is None:
        user = models.User(id=claims["sub"])
        db.add(user)
    for claim, field in (("email", "email"), ("first_name", "first_name"),
                         ("last_name", "last_name"), ("picture", "profile_image_url")):
        if claims.get(claim):
            setattr(user, field, claims[claim])
    db.commit()
    db.refresh(user)
    return user


def authenticate_token(token: Optional[str], db: Session) -> models.User:
    payload = verify_token(token) if token else None
    if not payload or not payload.get("sub"):
        raise AuthError("Not authenticated")
    return upsert_user(payload, db)


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> models.User:
    return authenticate_token(credentials.credentials if credentials else None, db)


def require_api_key(*tiers: str) -> Callable[..., models.ApiKey]:
    """
    Dependency factory accepting merchant keys of the given tiers only.

    The tier comes from the key prefix and is checked before any hash
    comparison, so malformed or wrong-tier keys never trigger a scan.
    """
    allowed = set(tiers)

    def dependency(
        credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
        db: Session = Depends(get_db),
    ) -> models.ApiKey:
        if credentials is None:
            raise AuthError("API key required")
        presented = credentials.credentials
        if api_keys.key_tier(presented) not in allowed:
            raise AuthError(INVALID_API_KEY)
        record = api_keys.validate_key(presented, db)
        if record is None:
            logger.warning("Rejected unknown or revoked %s API key", api_keys.key_tier(presented))
            raise AuthError(INVALID_API_KEY)
        return record

    return dependency
