from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session

from ..core.api import ok
from ..core.db import get_db
from ..core.security import (
    hash_password, verify_password, create_access_token, get_current_user, require_roles
)
from ..domain.statuses import Role
from ..models import AppUser, FulfillmentParty, Technician
from ..schemas.user import UserCreate, UserRead, Token

router = APIRouter(prefix="/auth", tags=["auth"])

PARTY_ROLES = {Role.SUPPLIER.value, Role.BUSINESS_PARTNER.value}

# ---- endpoints ----
@router.post("/register", status_code=status.HTTP_201_CREATED, dependencies=[Depends(require_roles("admin"))])
def register(payload: UserCreate, db: Session = Depends(get_db)):
    username = payload.username.strip()
    full_name = payload.full_name.strip() if payload.full_name else None
    email = (payload.email or None)
    if email:
        email = email.strip().lower()
    role = payload.role or Role.VIEWER.value

    if db.query(AppUser).filter(AppUser.Username == username).first():
        raise HTTPException(status_code=409, detail="username already exists")
    if email and db.query(AppUser).filter(AppUser.Email == email).first():
        raise HTTPException(status_code=409, detail="email already exists")

    # portal users must point at the record they act for
    if role in PARTY_ROLES:
        party = db.get(FulfillmentParty, payload.party_id) if payload.party_id else None
        if not party:
            raise HTTPException(status_code=422, detail=f"role '{role}' needs an existing party_id")
        expected = "supplier" if role == Role.SUPPLIER.value else "partner"
        if party.PartyType != expected:
            raise HTTPException(status_code=422, detail=f"party #{party.PartyID} is a {party.PartyType}")
    if role == Role.TECHNICIAN.value:
        if not payload.technician_id or not db.get(Technician, payload.technician_id):
            raise HTTPException(status_code=422, detail="role 'technician' needs an existing technician_id")

    user = AppUser(
        Username=username,
        FullName=full_name,
        Email=email,
        Role=role,
        PartyID=payload.party_id if role in PARTY_ROLES else None,
        TechnicianID=payload.technician_id if role == Role.TECHNICIAN.value else None,
        HashedPassword=hash_password(payload.password),
        IsActive=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return ok(UserRead.model_validate(user), status_code=status.HTTP_201_CREATED)

@router.post("/login", response_model=Token)
def login(form: OAuth2PasswordRequestForm = Depends(), db: Session = Depends(get_db)):
    username = form.username.strip()
    user = db.query(AppUser).filter(AppUser.Username == username).first()

    if (not user) or (not user.IsActive) or (not verify_password(form.password, user.HashedPassword)):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="invalid username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    token = create_access_token(sub=user.Username, role=user.Role)
    return {"access_token": token, "token_type": "bearer"}

@router.get("/me")
def me(current: AppUser = Depends(get_current_user)):
    return ok(UserRead.model_validate(current))
