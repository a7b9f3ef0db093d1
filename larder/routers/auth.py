from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from larder.db import get_db
from larder.deps import Identity, require_auth, resolve_profile
from larder.models.core import BusinessProfile, BusinessProfileUser, MemberRole, User
from larder.schemas.auth import LoginIn, MeOut, SignupIn
from larder.schemas.common import Token
from larder.util.security import create_token, hash_pw, verify_pw

router = APIRouter(prefix="/auth", tags=["auth"])

@router.post("/signup", response_model=Token)
def signup(body: SignupIn, db: Session = Depends(get_db)):
    email = body.email.strip().lower()
    if db.query(User).filter(User.email == email).first():
        raise HTTPException(status_code=409, detail="Email already registered")

    u = User(email=email, name=body.name, pass_hash=hash_pw(body.password))
    db.add(u); db.flush()
    bp = BusinessProfile(user_id=u.id, name=body.business_name, currency=body.currency.upper())
    db.add(bp); db.flush()
    db.add(BusinessProfileUser(business_profile_id=bp.id, user_id=u.id, role=MemberRole.OWNER))
    db.commit()
    return Token(access_token=create_token(u.id, bp.id), business_profile_id=bp.id)

@router.post("/login", response_model=Token)
def login(body: LoginIn, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.email == body.email.strip().lower()).first()
    if not user or not user.active or not verify_pw(user.pass_hash, body.password):
        raise HTTPException(status_code=401, detail="Invalid credentials")
    found = resolve_profile(db, user.id)
    bpid = found[0] if found else None
    return Token(access_token=create_token(user.id, bpid), business_profile_id=bpid)

@router.get("/me", response_model=MeOut)
def me(ident: Identity = Depends(require_auth), db: Session = Depends(get_db)):
    user = db.get(User, ident.user_id)
    if not user:
        raise HTTPException(status_code=401, detail="Not authenticated")
    found = resolve_profile(db, user.id, ident.profile_id)
    bp = db.get(BusinessProfile, found[0]) if found else None
    return MeOut(
        user_id=user.id, email=user.email, name=user.name,
        business_profile_id=bp.id if bp else None,
        business_name=bp.name if bp else None,
        role=found[1].value if found else None,
    )
