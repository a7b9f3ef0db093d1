# Importing the module registers tables with Base for create_all()
from .core import (  # noqa: F401
    # Enums
    MemberRole, StockMoveType, SupplierStatus, Shift,

    # Identity & tenancy
    User, BusinessProfile, BusinessProfileUser,

    # Inventory
    Supplier, Ingredient, StockMove,

    # Menu
    Dish, DishIngredient,

    # Sales & purchasing
    Sale, ShoppingListItem,

    # Notes
    NoteEntity, Note, NoteTag,
)

__all__ = [
    "MemberRole", "StockMoveType", "SupplierStatus", "Shift",
    "User", "BusinessProfile", "BusinessProfileUser",
    "Supplier", "Ingredient", "StockMove",
    "Dish", "DishIngredient",
    "Sale", "ShoppingListItem",
    "NoteEntity", "Note", "NoteTag",
]
