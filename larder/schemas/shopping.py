from datetime import datetime
from typing import Optional
from pydantic import Field
from larder.schemas.common import CamelModel

class ShoppingItemIn(CamelModel):
    name: str
    quantity: float = Field(gt=0)
    unit: str
    category: str = "Other"
    estimated_cost: float = Field(default=0, ge=0)
    inventory_item_id: Optional[str] = None

class ShoppingItemPatch(CamelModel):
    name: Optional[str] = None
    quantity: Optional[float] = Field(default=None, gt=0)
    unit: Optional[str] = None
    category: Optional[str] = None
    estimated_cost: Optional[float] = Field(default=None, ge=0)
    is_purchased: Optional[bool] = None

class ShoppingItemOut(ShoppingItemIn):
    id: str
    is_auto_generated: bool
    is_purchased: bool
    added_at: Optional[datetime] = None
    purchased_at: Optional[datetime] = None
