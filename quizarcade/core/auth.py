"""
Caller identity: HS256 bearer tokens carrying an owner id and roles.

Sessions are scoped to the token's ``sub``; the ``admin`` role sees every
session. ``router`` exposes a development-only token endpoint.
"""
from datetime import datetime, timedelta, timezone
from typing import List, Optional

import jwt
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel

from quizarcade.core.config import settings

LEARNER_ROLES = ("student", "admin")


class Identity(BaseModel):
    sub: str
    roles: List[str] = []

    @property
    def is_admin(self) -> bool:
        return "admin" in self.roles

    def owner_scope(self) -> Optional[str]:
        """Owner id to filter sessions by, or None for unrestricted access."""
        return None if self.is_admin else self.sub


bearer = HTTPBearer()


def issue_token(user_id: str, roles: List[str], ttl_minutes: Optional[int] = None) -> str:
    issued = datetime.now(timezone.utc)
    expires = issued + timedelta(minutes=ttl_minutes if ttl_minutes is not None else settings.ACCESS_TOKEN_TTL_MINUTES)
    claims = {"sub": user_id, "roles": list(roles), "iat": int(issued.timestamp()), "exp": int(expires.timestamp())}
    return jwt.encode(claims, settings.APP_SECRET.get_secret_value(), algorithm=settings.JWT_ALGORITHM)


def current_identity(creds: HTTPAuthorizationCredentials = Depends(bearer)) -> Identity:
    try:
        claims = jwt.decode(creds.credentials, settings.APP_SECRET.get_secret_value(),
                            algorithms=[settings.JWT_ALGORITHM], options={"require": ["sub", "exp"]})
    except jwt.PyJWTError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired token")
    return Identity(sub=claims["sub"], roles=claims.get("roles") or [])


def require_roles(*allowed: str):
    def checker(who: Identity = Depends(current_identity)) -> Identity:
        if not set(who.roles) & set(allowed):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient role")
        return who
    return checker


learner = require_roles(*LEARNER_ROLES)


# ----- development token endpoint -----

router = APIRouter()


class MockLogin(BaseModel):
    user_id: str
    roles: List[str] = ["student"]


@router.post("/mock-login")
def mock_login(payload: MockLogin):
    """Issue a bearer token for any user id. Stand-in for the real identity provider."""
    return {"access_token": issue_token(payload.user_id, payload.roles), "token_type": "bearer", "roles": payload.roles}
