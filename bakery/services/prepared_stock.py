"""
Пул приготовленного: пополнение партией, удаление позиции, очистка, списание
при выдаче заказа. Все изменения — атомарные операторы на стороне БД
(quantity = quantity ± n), без чтения-изменения-записи на клиенте.
"""
import math
from datetime import datetime

from sqlalchemy import case, delete, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from bakery.core.events import TOPIC_PREPARED, mark_changed
from bakery.core.logging_config import get_logger
from bakery.models import Order, PreparedStock, Product
from bakery.services.errors import ProductNotFound

logger = get_logger(__name__)


def clamp_quantity(value) -> int:
    """Неотрицательное целое: мусор, NaN/inf и отрицательные числа дают 0."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    if not math.isfinite(number):
        return 0
    return max(0, math.floor(number))


def _increment_stmt(dialect: str, product_id: str, amount: int):
    """INSERT ... ON CONFLICT DO UPDATE: одна строка на продукт, прибавка на стороне БД."""
    if dialect == "postgresql":
        insert = pg_insert
    elif dialect == "sqlite":
        insert = sqlite_insert
    else:
        raise NotImplementedError(f"Пул поддерживает PostgreSQL и SQLite, не {dialect}")
    now = datetime.utcnow()
    stmt = insert(PreparedStock).values(product_id=product_id, quantity=amount, updated_at=now)
    return stmt.on_conflict_do_update(
        index_elements=[PreparedStock.product_id],
        set_={"quantity": PreparedStock.quantity + stmt.excluded.quantity, "updated_at": now},
    )


async def get_quantity(db: AsyncSession, product_id: str) -> int:
    r = await db.execute(
        select(PreparedStock.quantity).where(PreparedStock.product_id == product_id)
    )
    return int(r.scalar_one_or_none() or 0)


async def add_batch(db: AsyncSession, product_id: str, qty) -> int:
    """Добавить испечённую партию. Возвращает новый остаток по продукту."""
    amount = clamp_quantity(qty)
    if amount != qty:
        logger.warning("Партия %s: количество %r приведено к %s", product_id, qty, amount)
    if await db.get(Product, product_id) is None:
        raise ProductNotFound(product_id)
    if amount == 0:
        return await get_quantity(db, product_id)

    dialect = db.get_bind().dialect.name
    await db.execute(_increment_stmt(dialect, product_id, amount))
    mark_changed(db, TOPIC_PREPARED)
    total = await get_quantity(db, product_id)
    logger.info("Партия добавлена: продукт %s +%s, остаток %s", product_id, amount, total)
    return total


async def remove(db: AsyncSession, product_id: str) -> bool:
    """Удалить позицию пула (ручная корректировка)."""
    result = await db.execute(delete(PreparedStock).where(PreparedStock.product_id == product_id))
    removed = result.rowcount > 0
    if removed:
        mark_changed(db, TOPIC_PREPARED)
        logger.info("Позиция пула удалена: продукт %s", product_id)
    return removed


async def clear_all(db: AsyncSession) -> int:
    """Очистить пул целиком (начало нового цикла, например нового дня)."""
    result = await db.execute(delete(PreparedStock))
    mark_changed(db, TOPIC_PREPARED)
    logger.info("Пул приготовленного очищен, удалено позиций: %s", result.rowcount)
    return result.rowcount


def order_needs(order: Order) -> dict[str, int]:
    needs: dict[str, int] = {}
    for item in order.items:
        if item.quantity > 0:
            needs[item.product_id] = needs.get(item.product_id, 0) + item.quantity
    return needs


async def consume_for_order(db: AsyncSession, order: Order) -> dict[str, int]:
    """
    Списать из пула то, что забирает выданный заказ. Остаток не уходит в минус.
    Защиты от повторного вызова здесь нет: она в переходе в completed.
    """
    needs = order_needs(order)
    for product_id, need in needs.items():
        await db.execute(
            update(PreparedStock)
            .where(PreparedStock.product_id == product_id)
            .values(
                quantity=case(
                    (PreparedStock.quantity > need, PreparedStock.quantity - need),
                    else_=0,
                ),
                updated_at=datetime.utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
    if needs:
        mark_changed(db, TOPIC_PREPARED)
        logger.info("Списание из пула: заказ %s, %s", order.order_number, needs)
    return needs


async def list_pool(db: AsyncSession, lock: bool = False) -> list[PreparedStock]:
    q = (
        select(PreparedStock)
        .where(PreparedStock.quantity > 0)
        .order_by(PreparedStock.updated_at.desc(), PreparedStock.product_id)
        .execution_options(populate_existing=True)
    )
    if lock:
        q = q.with_for_update()
    r = await db.execute(q)
    return list(r.scalars().all())


async def pool_snapshot(db: AsyncSession, lock: bool = False) -> dict[str, int]:
    return {row.product_id: row.quantity for row in await list_pool(db, lock=lock)}
