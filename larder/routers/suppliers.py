from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from larder.db import get_db
from larder.deps import ProfileContext, require_profile, require_role
from larder.models.core import MemberRole, Supplier, SupplierStatus
from larder.schemas.suppliers import SupplierIn, SupplierOut, SupplierPatch

router = APIRouter(prefix="/suppliers", tags=["suppliers"])


def _supplier_out(s: Supplier) -> SupplierOut:
    return SupplierOut(
        id=s.id, name=s.name, contact_name=s.contact_name, email=s.email, phone=s.phone,
        address=s.address, categories=list(s.categories or ["OTHER"]),
        is_preferred=bool(s.is_preferred), status=s.status.value if s.status else "ACTIVE",
        rating=float(s.rating or 0), last_order_date=s.last_order_date, logo=s.logo,
    )


def _get_owned(db: Session, ctx: ProfileContext, supplier_id: str) -> Supplier:
    s = db.get(Supplier, supplier_id)
    if not s or s.deleted_at is not None or s.business_profile_id != ctx.profile_id:
        raise HTTPException(404, detail="supplier not found")
    return s


def _apply(s: Supplier, data: dict):
    for k, v in data.items():
        if k == "status" and v is not None:
            v = SupplierStatus(v)
        if k == "categories" and v is not None:
            v = [c.upper() for c in v]
        setattr(s, k, v)


@router.get("", response_model=List[SupplierOut])
def list_suppliers(
    status: Optional[str] = None,
    preferred: Optional[bool] = None,
    db: Session = Depends(get_db),
    ctx: ProfileContext = Depends(require_profile),
):
    q = db.query(Supplier).filter(Supplier.business_profile_id == ctx.profile_id, Supplier.deleted_at.is_(None))
    if status:
        try:
            q = q.filter(Supplier.status == SupplierStatus(status.upper()))
        except ValueError:
            raise HTTPException(400, detail="invalid status")
    if preferred is not None:
        q = q.filter(Supplier.is_preferred.is_(preferred))
    return [_supplier_out(s) for s in q.order_by(Supplier.name.asc()).all()]


@router.post("", response_model=SupplierOut)
def create_supplier(body: SupplierIn, db: Session = Depends(get_db), ctx: ProfileContext = Depends(require_profile)):
    s = Supplier(business_profile_id=ctx.profile_id)
    _apply(s, body.model_dump())
    db.add(s); db.commit(); db.refresh(s)
    return _supplier_out(s)


@router.get("/{supplier_id}", response_model=SupplierOut)
def get_supplier(supplier_id: str, db: Session = Depends(get_db), ctx: ProfileContext = Depends(require_profile)):
    return _supplier_out(_get_owned(db, ctx, supplier_id))


@router.patch("/{supplier_id}", response_model=SupplierOut)
def update_supplier(
    supplier_id: str,
    body: SupplierPatch,
    db: Session = Depends(get_db),
    ctx: ProfileContext = Depends(require_profile),
):
    s = _get_owned(db, ctx, supplier_id)
    _apply(s, body.model_dump(exclude_unset=True))
    db.commit(); db.refresh(s)
    return _supplier_out(s)


@router.post("/{supplier_id}/preferred", response_model=SupplierOut)
def set_preferred(
    supplier_id: str,
    value: bool = True,
    db: Session = Depends(get_db),
    ctx: ProfileContext = Depends(require_profile),
):
    s = _get_owned(db, ctx, supplier_id)
    s.is_preferred = bool(value)
    db.commit(); db.refresh(s)
    return _supplier_out(s)


@router.delete("/{supplier_id}")
def delete_supplier(
    supplier_id: str,
    db: Session = Depends(get_db),
    ctx: ProfileContext = Depends(require_role(MemberRole.MANAGER)),
):
    s = _get_owned(db, ctx, supplier_id)
    s.deleted_at = datetime.now(timezone.utc)
    db.commit()
    return {"ok": True, "id": supplier_id}
