"""Пул приготовленного: сколько единиц каждого продукта испечено и ещё не выдано."""
from datetime import datetime
from sqlalchemy import Integer, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from bakery.core.database import Base


class PreparedStock(Base):
    """Одна строка на продукт — текущий остаток (не журнал)."""
    __tablename__ = "prepared_inventory"

    product_id: Mapped[str] = mapped_column(
        ForeignKey("products.id", ondelete="CASCADE"), primary_key=True
    )
    quantity: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )
