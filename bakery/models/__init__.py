from bakery.core.database import Base
from bakery.models.profile import Profile, ProfileRole
from bakery.models.product import Product
from bakery.models.order import (
    DeliveryMethod,
    Order,
    OrderItem,
    OrderStatus,
    PaymentMethod,
    TERMINAL_STATUSES,
)
from bakery.models.prepared_stock import PreparedStock

__all__ = [
    "Base",
    "DeliveryMethod",
    "Order",
    "OrderItem",
    "OrderStatus",
    "PaymentMethod",
    "PreparedStock",
    "Product",
    "Profile",
    "ProfileRole",
    "TERMINAL_STATUSES",
]
