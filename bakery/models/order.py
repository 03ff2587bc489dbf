import enum
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional
from sqlalchemy import String, Enum, Boolean, Numeric, DateTime, ForeignKey, Integer, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bakery.core.database import Base


class OrderStatus(str, enum.Enum):
    PENDING_VERIFICATION = "pending_verification"
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


TERMINAL_STATUSES = frozenset((OrderStatus.COMPLETED, OrderStatus.CANCELLED))


class PaymentMethod(str, enum.Enum):
    CASH = "cash"
    BCA = "bca"


class DeliveryMethod(str, enum.Enum):
    PICKUP = "pickup"
    DELIVERY = "delivery"


def _str_enum(enum_cls):
    # В БД храним значения ("pending"), а не имена членов
    return Enum(enum_cls, values_callable=lambda e: [m.value for m in e], native_enum=False)


class Order(Base):
    __tablename__ = "orders"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    order_number: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    user_id: Mapped[Optional[str]] = mapped_column(ForeignKey("profiles.id"), nullable=True)
    status: Mapped[OrderStatus] = mapped_column(
        _str_enum(OrderStatus), default=OrderStatus.PENDING, nullable=False
    )
    total: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0, nullable=False)
    payment_method: Mapped[PaymentMethod] = mapped_column(
        _str_enum(PaymentMethod), default=PaymentMethod.CASH, nullable=False
    )
    paid: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    delivery_method: Mapped[DeliveryMethod] = mapped_column(
        _str_enum(DeliveryMethod), default=DeliveryMethod.PICKUP, nullable=False
    )
    delivery_address: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )
    # Отметка списания из пула: ставится один раз при переходе в completed
    stock_consumed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    profile = relationship("Profile", back_populates="orders")
    items = relationship(
        "OrderItem",
        back_populates="order",
        order_by="OrderItem.position",
        cascade="all, delete-orphan",
    )


class OrderItem(Base):
    """Позиция заказа: сколько единиц продукта нужно заказу."""
    __tablename__ = "order_items"
    __table_args__ = (UniqueConstraint("order_id", "product_id", name="uq_order_items_order_product"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    order_id: Mapped[str] = mapped_column(ForeignKey("orders.id", ondelete="CASCADE"), nullable=False)
    product_id: Mapped[str] = mapped_column(ForeignKey("products.id"), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    # Порядок позиций в заказе (важен для FIFO внутри заказа)
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    order = relationship("Order", back_populates="items")
    product = relationship("Product")
