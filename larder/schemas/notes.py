from datetime import datetime
from typing import Literal, Optional
from pydantic import Field
from larder.schemas.common import CamelModel

NoteEntityLiteral = Literal["inventory", "supplier", "sale", "dish", "general"]

class NoteIn(CamelModel):
    content: str = Field(min_length=1)
    tags: list[str] = []
    entity_type: NoteEntityLiteral = "general"
    entity_id: Optional[str] = None

class NotePatch(CamelModel):
    content: Optional[str] = Field(default=None, min_length=1)
    tags: Optional[list[str]] = None

class NoteOut(NoteIn):
    id: str
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

class NoteTagIn(CamelModel):
    name: str = Field(min_length=1, max_length=60)
    color: str = "#6b7280"

class NoteTagOut(NoteTagIn):
    id: str
