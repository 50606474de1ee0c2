# backend/spareparts/core/security.py
import os
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Annotated, Optional

from fastapi import Depends, HTTPException, status, Request
from fastapi.security import OAuth2PasswordBearer
from fastapi.security.utils import get_authorization_scheme_param
from jose import jwt, JWTError
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from .db import get_db
from ..domain.statuses import Role
from ..models.user import AppUser

# kept for the OpenAPI login form
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

SECRET_KEY = os.getenv("JWT_SECRET", "dev-secret-change-me")
ALGORITHM = os.getenv("JWT_ALG", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60"))


@dataclass(frozen=True)
class Actor:
    """Who is performing a procurement operation. Services take this, not AppUser."""
    user_id: int
    role: str
    party_id: Optional[int] = None
    technician_id: Optional[int] = None
    username: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN.value

    @property
    def is_party(self) -> bool:
        return self.role in (Role.SUPPLIER.value, Role.BUSINESS_PARTNER.value)

    @classmethod
    def from_user(cls, user: AppUser) -> "Actor":
        return cls(
            user_id=user.UserID,
            role=user.Role,
            party_id=user.PartyID,
            technician_id=user.TechnicianID,
            username=user.Username,
        )


# ---- password helpers ----
def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)

def hash_password(plain: str) -> str:
    return pwd_context.hash(plain)

# ---- JWT ----
def create_access_token(sub: str, role: str, expires_minutes: Optional[int] = None) -> str:
    expire = datetime.now(tz=timezone.utc) + timedelta(
        minutes=expires_minutes or ACCESS_TOKEN_EXPIRE_MINUTES
    )
    payload = {"sub": sub, "role": role, "exp": expire}
    return jwt.encode(payload, SECRET_KEY, algorithm=ALGORITHM)

# ---- tolerant Authorization header parsing ----
def _extract_bearer_token(request: Request) -> str:
    """
    Accepts the usual sloppy variants:
      - extra spaces:     "Bearer   <JWT>"
      - doubled scheme:   "Bearer Bearer <JWT>"
      - quoted value:     Authorization: "Bearer <JWT>"
    """
    auth = request.headers.get("Authorization")
    cred_exc = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Authentication required",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if not auth:
        raise cred_exc

    auth = str(auth).strip().strip('"').strip("'")
    scheme, param = get_authorization_scheme_param(auth)

    if not scheme or scheme.lower() != "bearer":
        raise cred_exc

    token = (param or "").strip()

    if token.lower().startswith("bearer "):
        token = token.split(None, 1)[1].strip()

    # a JWT never contains spaces
    token = token.replace(" ", "")

    if not token:
        raise cred_exc

    return token

# ---- token -> user ----
def get_current_user(
    db: Session = Depends(get_db),
    token: str = Depends(_extract_bearer_token),
) -> AppUser:
    cred_exc = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Authentication required",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        data = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        username = data.get("sub")
        if not username:
            raise cred_exc
    except JWTError:
        raise cred_exc

    user = db.query(AppUser).filter(AppUser.Username == username).first()
    if not user or not user.IsActive:
        raise cred_exc
    return user

# ---- role guard ----
def require_roles(*roles: str):
    UserDep = Annotated[AppUser, Depends(get_current_user)]
    def _dep(current: UserDep) -> AppUser:
        if current.Role not in roles:
            raise HTTPException(status_code=403, detail="You are not allowed to perform this action")
        return current
    return _dep

def get_actor(current: Annotated[AppUser, Depends(get_current_user)]) -> Actor:
    return Actor.from_user(current)
