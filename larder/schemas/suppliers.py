from datetime import date
from typing import Literal, Optional
from pydantic import Field
from larder.schemas.common import CamelModel

SupplierStatusLiteral = Literal["ACTIVE", "INACTIVE"]

class SupplierIn(CamelModel):
    name: str
    contact_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    categories: list[str] = ["OTHER"]
    is_preferred: bool = False
    status: SupplierStatusLiteral = "ACTIVE"
    rating: float = Field(default=0, ge=0, le=5)
    last_order_date: Optional[date] = None
    logo: Optional[str] = None

class SupplierPatch(CamelModel):
    name: Optional[str] = None
    contact_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    categories: Optional[list[str]] = None
    is_preferred: Optional[bool] = None
    status: Optional[SupplierStatusLiteral] = None
    rating: Optional[float] = Field(default=None, ge=0, le=5)
    last_order_date: Optional[date] = None
    logo: Optional[str] = None

class SupplierOut(SupplierIn):
    id: str
