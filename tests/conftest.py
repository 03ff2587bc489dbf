"""Фикстуры для тестов: временная SQLite-база на тест, клиент API, токены."""
import asyncio
import os
from datetime import datetime, timedelta
from decimal import Decimal

# Движок по умолчанию не должен смотреть в прод-БД
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import async_sessionmaker

from bakery.core.database import Base, get_db, get_session_maker, make_engine, session_dependency
from bakery.models import (
    DeliveryMethod,
    Order,
    OrderItem,
    OrderStatus,
    PaymentMethod,
    Product,
    Profile,
    ProfileRole,
)
from bakery.services.auth_service import create_access_token

T0 = datetime(2026, 10, 18, 8, 0, 0)


def at(minutes: int) -> datetime:
    return T0 + timedelta(minutes=minutes)


def make_order(
    order_id: str,
    created_at: datetime,
    items,
    status: OrderStatus = OrderStatus.PREPARING,
    payment_method: PaymentMethod = PaymentMethod.CASH,
    paid: bool = False,
    delivery_method: DeliveryMethod = DeliveryMethod.PICKUP,
) -> Order:
    order = Order(
        id=order_id,
        order_number=f"ORD-{order_id.upper()}",
        created_at=created_at,
        status=status,
        total=Decimal("0"),
        payment_method=payment_method,
        paid=paid,
        delivery_method=delivery_method,
    )
    order.items = [
        OrderItem(product_id=product_id, quantity=qty, position=pos)
        for pos, (product_id, qty) in enumerate(items)
    ]
    return order


def run(coro):
    return asyncio.run(coro)


@pytest.fixture
def db_maker(tmp_path):
    engine = make_engine(f"sqlite+aiosqlite:///{tmp_path / 'bakery.db'}")

    async def _create():
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    run(_create())
    yield async_sessionmaker(engine, expire_on_commit=False)
    run(engine.dispose())


@pytest.fixture
def seed(db_maker):
    """Записать объекты в базу одной транзакцией."""
    def _seed(*objects):
        async def _go():
            async with db_maker() as session:
                session.add_all(objects)
                await session.commit()
        run(_go())
    return _seed


@pytest.fixture
def in_session(db_maker):
    """Выполнить async-функцию с сессией и закоммитить."""
    def _call(fn, *args, **kwargs):
        async def _go():
            async with db_maker() as session:
                result = await fn(session, *args, **kwargs)
                await session.commit()
                return result
        return run(_go())
    return _call


@pytest.fixture
def products(seed):
    seed(
        Product(id="croissant", name="Croissant", price=Decimal("3.50"), category="Pastry"),
        Product(id="brownie", name="Brownie", price=Decimal("4.00"), category="Cakes"),
        Product(id="flan", name="Flan", price=Decimal("5.00"), category="Desserts"),
    )
    return ["croissant", "brownie", "flan"]


@pytest.fixture
def client(db_maker):
    """Тестовый клиент приложения на временной базе."""
    from bakery.main import app

    app.dependency_overrides[get_db] = session_dependency(db_maker)
    app.dependency_overrides[get_session_maker] = lambda: db_maker
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def staff_headers(seed):
    seed(Profile(id="staff-1", full_name="Staff One", role=ProfileRole.STAFF))
    return {"Authorization": f"Bearer {create_access_token('staff-1')}"}


@pytest.fixture
def customer_headers(seed):
    seed(Profile(id="user-1", full_name="Customer", role=ProfileRole.USER))
    return {"Authorization": f"Bearer {create_access_token('user-1')}"}
