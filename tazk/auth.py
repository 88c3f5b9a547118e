import logging
import secrets
from typing import Optional

from fastapi import Depends, Header, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError, jwt
from sqlalchemy.orm import Session

from .config import JWT_ALGORITHM, JWT_AUDIENCE, JWT_SECRET, SERVICE_ROLE_KEY
from .database import get_db
from .models import Profile

logger = logging.getLogger(__name__)

security = HTTPBearer()
optional_security = HTTPBearer(auto_error=False)


def verify_access_token(token: str) -> dict:
    """
    Verify an access token issued by the identity provider.
    Tokens are HS256 JWTs signed with the project's shared JWT secret.
    """
    try:
        payload = jwt.decode(
            token,
            JWT_SECRET,
            algorithms=[JWT_ALGORITHM],
            audience=JWT_AUDIENCE,
        )
    except ExpiredSignatureError as e:
        raise HTTPException(
            status_code=401,
            detail="Token has expired. Please refresh your session.",
            headers={"X-Token-Expired": "true"},
        ) from e
    except JWTError as e:
        logger.warning(f"⚠️ JWT verification failed: {e}")
        raise HTTPException(status_code=401, detail="Invalid token") from e

    if not payload.get("sub"):
        logger.error(f"❌ Token missing user ID claim. Available claims: {list(payload.keys())}")
        raise HTTPException(status_code=401, detail="Invalid token claims")

    return payload


def get_or_create_profile(db: Session, claims: dict) -> Profile:
    """Find the profile for the token subject, creating it on first sign-in"""
    from .domain.statuses.repository import StatusRepository

    user_id = claims["sub"]
    profile = db.query(Profile).filter(Profile.id == user_id).first()
    if profile:
        return profile

    email = (claims.get("email") or "").strip().lower()
    if not email:
        raise HTTPException(status_code=401, detail="Invalid token claims")

    metadata = claims.get("user_metadata") or {}
    logger.info(f"🆕 Creating profile for {email}")
    profile = Profile(
        id=user_id,
        email=email,
        full_name=metadata.get("full_name") or metadata.get("name"),
    )
    db.add(profile)
    try:
        db.flush()
        StatusRepository.seed_default_statuses(db, team_id=None, created_by=user_id)
        db.commit()
        db.refresh(profile)
    except Exception as e:
        db.rollback()
        if "unique" in str(e).lower() or "duplicate key" in str(e).lower():
            logger.error(f"❌ Email {email} already belongs to another profile")
            raise HTTPException(
                status_code=409,
                detail="This email is already registered with another account.",
            ) from e
        raise
    return profile


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> Profile:
    """Get current user profile from the bearer token"""

    if not credentials:
        raise HTTPException(
            status_code=401,
            detail="Not authenticated. Please provide a valid Bearer token in the Authorization header.",
        )

    token = credentials.credentials
    if len(token.split(".")) != 3:
        raise HTTPException(
            status_code=401, detail="Invalid token format. Expected a valid JWT token."
        )

    claims = verify_access_token(token)
    profile = get_or_create_profile(db, claims)
    logger.debug(f"✅ User authenticated: {profile.email}")
    return profile


def is_service_key(value: Optional[str]) -> bool:
    if not SERVICE_ROLE_KEY or not value:
        return False
    return secrets.compare_digest(value, SERVICE_ROLE_KEY)


async def require_service_or_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(optional_security),
    apikey: Optional[str] = Header(None),
    db: Session = Depends(get_db),
) -> Optional[Profile]:
    """
    Authorize a call to /functions/*.

    Trusted callers (worker, cron, other backends) present the service-role
    key as bearer token or `apikey` header and get None back. Anyone else
    must present a valid user token and gets their profile.
    """
    token = credentials.credentials if credentials else None

    if is_service_key(token) or is_service_key(apikey):
        return None

    if not token:
        raise HTTPException(status_code=401, detail="Not authenticated")

    claims = verify_access_token(token)
    return get_or_create_profile(db, claims)


async def require_service_key(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(optional_security),
    apikey: Optional[str] = Header(None),
) -> None:
    """Only trusted callers holding the service-role key"""
    token = credentials.credentials if credentials else None
    if is_service_key(token) or is_service_key(apikey):
        return
    raise HTTPException(status_code=401, detail="Service key required")
