from datetime import datetime
from decimal import Decimal
from typing import Optional, List
from pydantic import BaseModel

from bakery.models import OrderStatus


class OrderItemResponse(BaseModel):
    id: int
    product_id: str
    product_name: Optional[str] = None
    quantity: int

    class Config:
        from_attributes = True


class OrderResponse(BaseModel):
    """Заказ в панели персонала: позиции, оплата, способ получения."""
    id: str
    order_number: str
    status: str
    total: Decimal
    payment_method: str
    paid: bool
    delivery_method: str
    delivery_address: Optional[str] = None
    notes: Optional[str] = None
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    created_at: datetime
    stock_consumed: bool = False
    items: List[OrderItemResponse] = []

    class Config:
        from_attributes = True


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class OrderStatusResponse(BaseModel):
    order_id: str
    order_number: str
    status: str


class VerifyPaymentBody(BaseModel):
    approve: bool


class VerifyPaymentResponse(OrderStatusResponse):
    paid: bool
