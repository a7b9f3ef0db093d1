from typing import Optional
from larder.schemas.common import CamelModel

class DashboardStatsOut(CamelModel):
    total_inventory_value: float
    low_stock_items: int
    monthly_sales: float
    sales_growth: float

class MonthSalesOut(CamelModel):
    month: str
    key: str
    sales: float

class MonthlySalesOut(CamelModel):
    current_month_sales: float
    monthly_sales_data: list[MonthSalesOut]

class TopSellingOut(CamelModel):
    name: str
    quantity: float

class RecentSaleOut(CamelModel):
    id: str
    date: Optional[str] = None
    amount: float
    dish_name: Optional[str] = None

class InventoryAlertOut(CamelModel):
    id: str
    name: str
    current_stock: float
    reorder_level: float
    expiry_date: Optional[str] = None
    type: str

class CategoryStatOut(CamelModel):
    name: str
    count: int
