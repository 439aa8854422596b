"""
Intervention Engine - Identity Context
Staff identity from the portal's bearer token. No role checks are made here.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt

from .config import JWT_SECRET_KEY, JWT_ALGORITHM

ACCESS_TOKEN_EXPIRE_HOURS = 24

# Bearer token security
security = HTTPBearer()


@dataclass(frozen=True)
class StaffIdentity:
    """Who is acting. Used as staff_id/staff_name or case_manager_id/case_manager_name."""
    staff_id: str
    staff_name: str


def create_access_token(staff_id: str, staff_name: str) -> str:
    """Create a JWT access token for a staff member."""
    expire = datetime.utcnow() + timedelta(hours=ACCESS_TOKEN_EXPIRE_HOURS)
    to_encode = {
        "sub": staff_id,
        "name": staff_name,
        "exp": expire,
    }
    return jwt.encode(to_encode, JWT_SECRET_KEY, algorithm=JWT_ALGORITHM)


def decode_token(token: str) -> Optional[dict]:
    """Decode and validate a JWT token."""
    try:
        return jwt.decode(token, JWT_SECRET_KEY, algorithms=[JWT_ALGORITHM])
    except JWTError:
        return None


async def get_current_staff(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> StaffIdentity:
    """
    Dependency to get the acting staff member.
    Expired tokens are rejected by jose during decode.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    payload = decode_token(credentials.credentials)
    if payload is None:
        raise credentials_exception

    staff_id = payload.get("sub")
    if staff_id is None:
        raise credentials_exception

    return StaffIdentity(staff_id=staff_id, staff_name=payload.get("name") or staff_id)
