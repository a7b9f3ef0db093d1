from datetime import date
from typing import Optional
from pydantic import Field
from larder.schemas.common import CamelModel

class IngredientIn(CamelModel):
    name: str
    unit: str
    quantity: float = Field(default=0, ge=0)
    cost: float = Field(default=0, ge=0)
    category: str = "Other"
    description: Optional[str] = None
    reorder_level: Optional[float] = Field(default=None, ge=0)
    minimum_stock_level: Optional[float] = Field(default=None, ge=0)
    supplier_id: Optional[str] = None
    location: Optional[str] = None
    expiry_date: Optional[date] = None

class IngredientPatch(CamelModel):
    name: Optional[str] = None
    unit: Optional[str] = None
    quantity: Optional[float] = Field(default=None, ge=0)
    cost: Optional[float] = Field(default=None, ge=0)
    category: Optional[str] = None
    description: Optional[str] = None
    reorder_level: Optional[float] = Field(default=None, ge=0)
    minimum_stock_level: Optional[float] = Field(default=None, ge=0)
    supplier_id: Optional[str] = None
    location: Optional[str] = None
    expiry_date: Optional[date] = None

class IngredientOut(IngredientIn):
    id: str

class StockAdjustIn(CamelModel):
    delta: float
    reason: Optional[str] = None

class LowStockOut(CamelModel):
    id: str
    name: str
    quantity: float
    unit: str
    reorder_level: float
    category: Optional[str] = None
