from datetime import date as date_t
from typing import Optional
from larder.schemas.common import CamelModel

class DaySalesOut(CamelModel):
    date: date_t
    sales: float
    costs: float

class SalesMetricsOut(CamelModel):
    total_sales: float
    avg_daily_sales: float
    total_orders: int
    avg_order_value: float
    gross_profit: float
    profit_margin: float

class SalesReportOut(CamelModel):
    start: date_t
    end: date_t
    days: list[DaySalesOut]
    metrics: SalesMetricsOut

class TopDishOut(CamelModel):
    dish_id: str
    name: str
    total: float
    quantity: float
    share: int

class UsageDayOut(CamelModel):
    date: date_t
    quantity: float

class IngredientUsageOut(CamelModel):
    ingredient_id: str
    name: str
    unit: str
    category: Optional[str] = None
    total: float
    daily: list[UsageDayOut]

class DishCostLineOut(CamelModel):
    ingredient_id: str
    name: str
    quantity: float
    unit: str
    cost: float
    category: str

class DietaryOut(CamelModel):
    vegetarian: bool
    vegan: bool
    gluten_free: bool
    dairy_free: bool

class DishSummaryOut(CamelModel):
    id: str
    name: str
    price: float
    ingredients: list[DishCostLineOut]
    dietary: DietaryOut

class DishMetricsOut(CamelModel):
    total_quantity: float
    total_revenue: float
    total_cost: float
    profit: float
    profit_margin: float
    cost_percentage: float
    ingredient_cost_per_unit: float

class DishPerformanceOut(CamelModel):
    dish: DishSummaryOut
    metrics: DishMetricsOut
    daily: list[UsageDayOut]
