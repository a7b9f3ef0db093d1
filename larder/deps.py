from dataclasses import dataclass
from typing import Protocol

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from larder.db import get_db
from larder.errors import NotAuthenticated, ProfileNotFound
from larder.models.core import BusinessProfile, BusinessProfileUser, MemberRole
from larder.util.security import decode_token

auth_scheme = HTTPBearer(auto_error=False)

# owner > manager > staff
_ROLE_RANK = {MemberRole.STAFF: 0, MemberRole.MANAGER: 1, MemberRole.OWNER: 2}


@dataclass(frozen=True)
class Identity:
    user_id: str
    profile_id: str | None = None


@dataclass(frozen=True)
class ProfileContext:
    user_id: str
    profile_id: str
    role: MemberRole


class IdentityProvider(Protocol):
    def identify(self, token: str | None) -> Identity | None: ...


class JwtIdentityProvider:
    def identify(self, token: str | None) -> Identity | None:
        if not token:
            return None
        data = decode_token(token)
        if not data or "sub" not in data:
            return None
        return Identity(user_id=data["sub"], profile_id=data.get("bpid"))


class NoAuthIdentityProvider:
    """Identity provider for deployments without an auth backend.

    Every caller is anonymous: protected routes answer 401 and dashboard
    reads fall back to their empty defaults.
    """

    def identify(self, token: str | None) -> Identity | None:
        return None


def build_identity_provider(mode: str) -> IdentityProvider:
    if mode == "none":
        return NoAuthIdentityProvider()
    return JwtIdentityProvider()


def get_identity_provider(request: Request) -> IdentityProvider:
    provider = getattr(request.app.state, "identity_provider", None)
    if provider is None:
        raise RuntimeError("identity_provider not initialized. Check app startup wiring.")
    return provider


def current_identity(
    creds: HTTPAuthorizationCredentials | None = Depends(auth_scheme),
    provider: IdentityProvider = Depends(get_identity_provider),
) -> Identity | None:
    return provider.identify(creds.credentials if creds else None)


def require_auth(ident: Identity | None = Depends(current_identity)) -> Identity:
    if ident is None:
        raise NotAuthenticated("Not authenticated")
    return ident


def resolve_profile(db: Session, user_id: str, hint: str | None = None) -> tuple[str, MemberRole] | None:
    """Membership table first, then the newest profile the user created."""
    q = db.query(BusinessProfileUser).filter(BusinessProfileUser.user_id == user_id)
    if hint:
        q = q.filter(BusinessProfileUser.business_profile_id == hint)
    m = q.order_by(BusinessProfileUser.created_at.asc()).first()
    if m:
        return m.business_profile_id, m.role

    bp = (
        db.query(BusinessProfile)
          .filter(BusinessProfile.user_id == user_id, BusinessProfile.deleted_at.is_(None))
          .order_by(BusinessProfile.created_at.desc())
          .first()
    )
    if bp:
        return bp.id, MemberRole.OWNER
    return None


def optional_profile(
    ident: Identity | None = Depends(current_identity),
    db: Session = Depends(get_db),
) -> ProfileContext | None:
    if ident is None:
        return None
    found = resolve_profile(db, ident.user_id, ident.profile_id)
    if not found:
        return None
    return ProfileContext(user_id=ident.user_id, profile_id=found[0], role=found[1])


def require_profile(
    ident: Identity = Depends(require_auth),
    db: Session = Depends(get_db),
) -> ProfileContext:
    found = resolve_profile(db, ident.user_id, ident.profile_id)
    if not found:
        raise ProfileNotFound("Business profile not found")
    return ProfileContext(user_id=ident.user_id, profile_id=found[0], role=found[1])


def require_role(minimum: MemberRole):
    def _dep(ctx: ProfileContext = Depends(require_profile)) -> ProfileContext:
        if _ROLE_RANK[ctx.role] < _ROLE_RANK[minimum]:
            raise HTTPException(status_code=403, detail=f"Requires role: {minimum.value}")
        return ctx
    return _dep


def get_dashboard(request: Request):
    svc = getattr(request.app.state, "dashboard", None)
    if svc is None:
        raise RuntimeError("dashboard service not initialized. Check app startup wiring.")
    return svc
