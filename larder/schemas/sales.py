from datetime import date as date_t, datetime
from typing import Literal, Optional
from pydantic import Field
from larder.schemas.common import CamelModel

ShiftLiteral = Literal["All", "Breakfast", "Lunch", "Dinner"]

class SaleOut(CamelModel):
    id: str
    dish_id: str
    dish_name: str
    quantity: float
    total_amount: float
    date: date_t
    shift: str
    notes: Optional[str] = None
    user_id: Optional[str] = None
    created_at: Optional[datetime] = None

class SalePatch(CamelModel):
    quantity: Optional[float] = Field(default=None, gt=0)
    date: Optional[date_t] = None
    shift: Optional[ShiftLiteral] = None
    notes: Optional[str] = None

class SalesFormIn(CamelModel):
    # kept as a string: an unparseable date is a validation notice, not a 422
    entries: dict[str, float] = {}
    date_string: str = Field(default="", validation_alias="date", serialization_alias="date")
    shift: ShiftLiteral = "All"
    track_inventory: Optional[bool] = None

class ImpactOut(CamelModel):
    ingredient_id: str
    name: str
    quantity_used: float
    unit: str
    current_stock: Optional[float] = None
    minimum_stock: Optional[float] = None
    remaining: Optional[float] = None
    is_low_stock: bool
    is_out_of_stock: bool
    status: str

class SalesPreviewOut(CamelModel):
    total: float
    impact: list[ImpactOut]
    status_counts: dict[str, int]
    low_stock_alerts: list[str]

class NoticeOut(CamelModel):
    level: str
    title: str
    description: Optional[str] = None

class SubmissionOut(CamelModel):
    ok: bool
    state: str
    notices: list[NoticeOut]
    sales: list[SaleOut] = []
    low_stock: list[dict] = []
    inventory_failures: list[str] = []
    entries: dict[str, float] = {}
