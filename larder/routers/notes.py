from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from larder.db import get_db
from larder.deps import ProfileContext, require_profile
from larder.errors import NotFound, ValidationFailed
from larder.models.core import Note, NoteEntity, NoteTag
from larder.schemas.notes import NoteIn, NoteOut, NotePatch, NoteTagIn, NoteTagOut

router = APIRouter(prefix="/notes", tags=["notes"])


def _note_out(n: Note) -> NoteOut:
    return NoteOut(
        id=n.id, content=n.content, tags=list(n.tags or []),
        entity_type=n.entity_type.value if n.entity_type else "general", entity_id=n.entity_id,
        created_by=n.created_by, created_at=n.created_at, updated_at=n.updated_at,
    )


def _clean_tags(tags: list[str]) -> list[str]:
    out: list[str] = []
    for t in tags:
        t = t.strip()
        if t and t not in out:
            out.append(t)
    return out


def _get_owned(db: Session, ctx: ProfileContext, note_id: str) -> Note:
    n = db.get(Note, note_id)
    if not n or n.deleted_at is not None or n.business_profile_id != ctx.profile_id:
        raise NotFound("note not found")
    return n


# ---------- tags (before /{note_id}) ----------

@router.get("/tags", response_model=List[NoteTagOut])
def list_tags(db: Session = Depends(get_db), ctx: ProfileContext = Depends(require_profile)):
    rows = (db.query(NoteTag)
              .filter(NoteTag.business_profile_id == ctx.profile_id, NoteTag.deleted_at.is_(None))
              .order_by(NoteTag.name.asc()).all())
    return [NoteTagOut(id=t.id, name=t.name, color=t.color) for t in rows]


@router.post("/tags", response_model=NoteTagOut)
def create_tag(body: NoteTagIn, db: Session = Depends(get_db), ctx: ProfileContext = Depends(require_profile)):
    name = body.name.strip()
    exists = (db.query(NoteTag)
                .filter(NoteTag.business_profile_id == ctx.profile_id, NoteTag.deleted_at.is_(None),
                        NoteTag.name == name)
                .first())
    if exists:
        raise ValidationFailed(f"tag already exists: {name}")
    t = NoteTag(business_profile_id=ctx.profile_id, name=name, color=body.color)
    db.add(t); db.commit(); db.refresh(t)
    return NoteTagOut(id=t.id, name=t.name, color=t.color)


# ---------- notes ----------

@router.get("", response_model=List[NoteOut])
def list_notes(
    entity_type: Optional[str] = None,
    entity_id: Optional[str] = None,
    tag: Optional[str] = None,
    db: Session = Depends(get_db),
    ctx: ProfileContext = Depends(require_profile),
):
    q = db.query(Note).filter(Note.business_profile_id == ctx.profile_id, Note.deleted_at.is_(None))
    if entity_type:
        try:
            q = q.filter(Note.entity_type == NoteEntity(entity_type.lower()))
        except ValueError:
            raise ValidationFailed("invalid entity type")
    if entity_id:
        q = q.filter(Note.entity_id == entity_id)
    rows = q.order_by(Note.created_at.desc()).all()
    # JSON containment differs per dialect; filter tags here
    if tag:
        rows = [n for n in rows if tag in (n.tags or [])]
    return [_note_out(n) for n in rows]


@router.post("", response_model=NoteOut)
def create_note(body: NoteIn, db: Session = Depends(get_db), ctx: ProfileContext = Depends(require_profile)):
    if body.entity_type != "general" and not body.entity_id:
        raise ValidationFailed("entity_id is required for non-general notes")
    n = Note(
        business_profile_id=ctx.profile_id,
        content=body.content,
        tags=_clean_tags(body.tags),
        entity_type=NoteEntity(body.entity_type),
        entity_id=body.entity_id,
        created_by=ctx.user_id,
    )
    db.add(n); db.commit(); db.refresh(n)
    return _note_out(n)


@router.patch("/{note_id}", response_model=NoteOut)
def update_note(
    note_id: str,
    body: NotePatch,
    db: Session = Depends(get_db),
    ctx: ProfileContext = Depends(require_profile),
):
    n = _get_owned(db, ctx, note_id)
    if body.content is not None:
        n.content = body.content
    if body.tags is not None:
        n.tags = _clean_tags(body.tags)
    db.commit(); db.refresh(n)
    return _note_out(n)


@router.delete("/{note_id}")
def delete_note(note_id: str, db: Session = Depends(get_db), ctx: ProfileContext = Depends(require_profile)):
    n = _get_owned(db, ctx, note_id)
    n.deleted_at = datetime.now(timezone.utc)
    db.commit()
    return {"ok": True, "id": note_id}
