from typing import Optional
from pydantic import AliasChoices, Field
from larder.schemas.common import CamelModel

class DishIngredientIn(CamelModel):
    # recipe payloads name the foreign key either way
    ingredient_id: str = Field(validation_alias=AliasChoices(
        "ingredientId", "ingredient_id", "inventoryItemId", "inventory_item_id"))
    quantity: float = Field(gt=0)

class DishIngredientOut(CamelModel):
    ingredient_id: str
    name: Optional[str] = None
    unit: Optional[str] = None
    quantity: float

class DishIn(CamelModel):
    name: str
    price: float = Field(default=0, ge=0, validation_alias=AliasChoices(
        "price", "sellingPrice", "selling_price"))
    category: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = Field(default=None, validation_alias=AliasChoices(
        "imageUrl", "image_url", "image"))
    food_cost: Optional[float] = None
    ingredients: list[DishIngredientIn] = []

class DishPatch(CamelModel):
    name: Optional[str] = None
    price: Optional[float] = Field(default=None, ge=0, validation_alias=AliasChoices(
        "price", "sellingPrice", "selling_price"))
    category: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = Field(default=None, validation_alias=AliasChoices(
        "imageUrl", "image_url", "image"))
    food_cost: Optional[float] = None
    ingredients: Optional[list[DishIngredientIn]] = None

class DishOut(CamelModel):
    id: str
    name: str
    price: float
    category: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    food_cost: Optional[float] = None
    is_archived: bool = False
    ingredients: list[DishIngredientOut] = []

class RecipeOut(CamelModel):
    """Shape of the /api/recipes feed."""
    id: str
    name: str
    price: float
    selling_price: float
    category: Optional[str] = None
    description: Optional[str] = None
    image: Optional[str] = None
    ingredients: list[DishIngredientOut] = []
