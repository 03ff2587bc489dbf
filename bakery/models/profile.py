import enum
from datetime import datetime
from typing import Optional
from sqlalchemy import String, Enum, DateTime
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bakery.core.database import Base


class ProfileRole(str, enum.Enum):
    USER = "user"
    STAFF = "staff"
    ADMIN = "admin"


class Profile(Base):
    """Профиль пользователя; id совпадает с subject токена провайдера идентификации."""
    __tablename__ = "profiles"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    full_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    role: Mapped[ProfileRole] = mapped_column(
        Enum(ProfileRole, values_callable=lambda e: [m.value for m in e], native_enum=False),
        default=ProfileRole.USER,
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    orders = relationship("Order", back_populates="profile")
