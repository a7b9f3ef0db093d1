from sqlalchemy import (
    String, ForeignKey, Boolean, Numeric, Enum, Text, Date, DateTime, JSON
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from enum import Enum as PyEnum
import datetime as dt
from larder.db import Base
from larder.models.common import IdMixin, TSMMixin, ProfileScopedMixin

# qty columns come back as float, not Decimal
QTY = Numeric(12, 3, asdecimal=False)
MONEY = Numeric(12, 2, asdecimal=False)

# ── Enums ───────────────────────────────────────────────────────────────────
class MemberRole(PyEnum):
    OWNER = "owner"
    MANAGER = "manager"
    STAFF = "staff"

class StockMoveType(PyEnum):
    PURCHASE = "PURCHASE"
    SALE = "SALE"
    ADJUST = "ADJUST"

class SupplierStatus(PyEnum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"

class Shift(PyEnum):
    ALL = "All"
    BREAKFAST = "Breakfast"
    LUNCH = "Lunch"
    DINNER = "Dinner"

# ── Identity & tenancy ──────────────────────────────────────────────────────
class User(Base, IdMixin, TSMMixin):
    __tablename__ = "user"
    email: Mapped[str] = mapped_column(String(160), unique=True)
    name: Mapped[str] = mapped_column(String(160))
    pass_hash: Mapped[str] = mapped_column(String(200))
    active: Mapped[bool] = mapped_column(Boolean, default=True)

class BusinessProfile(Base, IdMixin, TSMMixin):
    __tablename__ = "business_profile"
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("user.id"))  # creator
    name: Mapped[str] = mapped_column(String(200))
    currency: Mapped[str] = mapped_column(String(3), default="USD")

class BusinessProfileUser(Base, TSMMixin):
    __tablename__ = "business_profile_user"
    business_profile_id: Mapped[str] = mapped_column(String(36), ForeignKey("business_profile.id"), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("user.id"), primary_key=True)
    role: Mapped[MemberRole] = mapped_column(Enum(MemberRole), default=MemberRole.STAFF)

# ── Inventory ───────────────────────────────────────────────────────────────
class Supplier(Base, IdMixin, TSMMixin, ProfileScopedMixin):
    __tablename__ = "supplier"
    name: Mapped[str] = mapped_column(String(160))
    contact_name: Mapped[str | None] = mapped_column(String(160))
    email: Mapped[str | None] = mapped_column(String(160))
    phone: Mapped[str | None] = mapped_column(String(40))
    address: Mapped[str | None] = mapped_column(Text)
    categories: Mapped[list] = mapped_column(JSON, default=list)  # e.g. ["MEAT", "DAIRY"]
    is_preferred: Mapped[bool] = mapped_column(Boolean, default=False)
    status: Mapped[SupplierStatus] = mapped_column(Enum(SupplierStatus), default=SupplierStatus.ACTIVE)
    rating: Mapped[float] = mapped_column(Numeric(3, 1, asdecimal=False), default=0)
    last_order_date: Mapped[dt.date | None] = mapped_column(Date)
    logo: Mapped[str | None] = mapped_column(String(400))

class Ingredient(Base, IdMixin, TSMMixin, ProfileScopedMixin):
    __tablename__ = "ingredient"
    name: Mapped[str] = mapped_column(String(160))
    description: Mapped[str | None] = mapped_column(Text)
    category: Mapped[str] = mapped_column(String(60), default="Other")
    quantity: Mapped[float] = mapped_column(QTY, default=0)  # current stock
    unit: Mapped[str] = mapped_column(String(20))  # e.g. g, kg, ml, l, pcs
    cost: Mapped[float] = mapped_column(MONEY, default=0)  # per unit
    reorder_level: Mapped[float | None] = mapped_column(QTY)
    minimum_stock_level: Mapped[float | None] = mapped_column(QTY)
    supplier_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("supplier.id"))
    location: Mapped[str | None] = mapped_column(String(120))
    expiry_date: Mapped[dt.date | None] = mapped_column(Date)

class StockMove(Base, IdMixin, TSMMixin):
    __tablename__ = "stock_move"
    ingredient_id: Mapped[str] = mapped_column(String(36), ForeignKey("ingredient.id"))
    type: Mapped[StockMoveType] = mapped_column(Enum(StockMoveType))
    qty_change: Mapped[float] = mapped_column(QTY)
    reason: Mapped[str | None] = mapped_column(Text)
    ref_sale_id: Mapped[str | None] = mapped_column(String(36))

# ── Menu ────────────────────────────────────────────────────────────────────
class Dish(Base, IdMixin, TSMMixin, ProfileScopedMixin):
    __tablename__ = "dish"
    name: Mapped[str] = mapped_column(String(160))
    description: Mapped[str | None] = mapped_column(Text)
    category: Mapped[str | None] = mapped_column(String(60))
    price: Mapped[float] = mapped_column(MONEY, default=0)
    food_cost: Mapped[float | None] = mapped_column(MONEY)
    image_url: Mapped[str | None] = mapped_column(String(400))
    is_archived: Mapped[bool] = mapped_column(Boolean, default=False)
    ingredients: Mapped[list["DishIngredient"]] = relationship(
        back_populates="dish", cascade="all, delete-orphan", lazy="selectin"
    )

class DishIngredient(Base, TSMMixin):
    __tablename__ = "dish_ingredient"
    dish_id: Mapped[str] = mapped_column(String(36), ForeignKey("dish.id"), primary_key=True)
    ingredient_id: Mapped[str] = mapped_column(String(36), ForeignKey("ingredient.id"), primary_key=True)
    quantity: Mapped[float] = mapped_column(QTY)  # consumed per one dish sold
    dish: Mapped[Dish] = relationship(back_populates="ingredients")
    ingredient: Mapped[Ingredient] = relationship(lazy="joined")

# ── Sales ───────────────────────────────────────────────────────────────────
class Sale(Base, IdMixin, TSMMixin, ProfileScopedMixin):
    __tablename__ = "sale"
    user_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("user.id"))
    dish_id: Mapped[str] = mapped_column(String(36), ForeignKey("dish.id"))
    dish_name: Mapped[str] = mapped_column(String(160))
    quantity: Mapped[float] = mapped_column(QTY)
    total_amount: Mapped[float] = mapped_column(MONEY)
    date: Mapped[dt.date] = mapped_column(Date, index=True)
    shift: Mapped[Shift] = mapped_column(Enum(Shift, values_callable=lambda e: [m.value for m in e]), default=Shift.ALL)
    notes: Mapped[str | None] = mapped_column(Text)

# ── Shopping list ───────────────────────────────────────────────────────────
class ShoppingListItem(Base, IdMixin, TSMMixin, ProfileScopedMixin):
    __tablename__ = "shopping_list_item"
    user_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("user.id"))
    name: Mapped[str] = mapped_column(String(160))
    quantity: Mapped[float] = mapped_column(QTY)
    unit: Mapped[str] = mapped_column(String(20))
    category: Mapped[str] = mapped_column(String(60), default="Other")
    estimated_cost: Mapped[float] = mapped_column(MONEY, default=0)
    is_auto_generated: Mapped[bool] = mapped_column(Boolean, default=False)
    is_purchased: Mapped[bool] = mapped_column(Boolean, default=False)
    inventory_item_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("ingredient.id"))
    added_at: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True))
    purchased_at: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True))

# ── Notes ───────────────────────────────────────────────────────────────────
class NoteEntity(PyEnum):
    INVENTORY = "inventory"
    SUPPLIER = "supplier"
    SALE = "sale"
    DISH = "dish"
    GENERAL = "general"

class Note(Base, IdMixin, TSMMixin, ProfileScopedMixin):
    __tablename__ = "note"
    content: Mapped[str] = mapped_column(Text)
    tags: Mapped[list] = mapped_column(JSON, default=list)  # tag names
    entity_type: Mapped[NoteEntity] = mapped_column(
        Enum(NoteEntity, values_callable=lambda e: [m.value for m in e]), default=NoteEntity.GENERAL, index=True
    )
    entity_id: Mapped[str | None] = mapped_column(String(36), index=True)  # not a FK: points at any entity table
    created_by: Mapped[str | None] = mapped_column(String(36), ForeignKey("user.id"))

class NoteTag(Base, IdMixin, TSMMixin, ProfileScopedMixin):
    __tablename__ = "note_tag"
    name: Mapped[str] = mapped_column(String(60))
    color: Mapped[str] = mapped_column(String(9), default="#6b7280")
