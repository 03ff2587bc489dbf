"""
Выдача заказов: рабочий набор заказов, применение FIFO и смена статусов.

Заказ выдан (completed) — ровно одно списание из пула: переход делается
условным UPDATE по stock_consumed_at IS NULL, повтор ничего не списывает.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from bakery.config import settings
from bakery.core.database import supports_row_locks
from bakery.core.events import TOPIC_ORDERS, mark_changed
from bakery.core.logging_config import get_logger
from bakery.models import (
    DeliveryMethod,
    Order,
    OrderItem,
    OrderStatus,
    PaymentMethod,
    TERMINAL_STATUSES,
)
from bakery.services.allocation import (
    Allocation,
    LineSnapshot,
    OrderSnapshot,
    allocate_fifo,
    allocation_totals,
    satisfied_order_ids,
)
from bakery.services.errors import InvalidTransition, OrderNotFound, VerificationNotAllowed
from bakery.services.order_status import can_transition
from bakery.services.prepared_stock import consume_for_order, pool_snapshot

logger = get_logger(__name__)

SCOPE_OPEN = "open"
SCOPE_PREPARING = "preparing"
PROMOTION_SCOPES = (SCOPE_OPEN, SCOPE_PREPARING)

# Позиции с продуктами и профиль покупателя — для ответа панели без ленивых загрузок
_ORDER_LOAD = (
    selectinload(Order.items).selectinload(OrderItem.product),
    selectinload(Order.profile),
)


@dataclass
class FifoResult:
    allocation: Allocation = field(default_factory=dict)
    prepared: dict[str, int] = field(default_factory=dict)
    satisfied_ids: list[str] = field(default_factory=list)
    promoted_ids: list[str] = field(default_factory=list)

    @property
    def totals(self) -> dict[str, int]:
        return allocation_totals(self.allocation)


def _transfer_methods() -> list[PaymentMethod]:
    methods = []
    for value in settings.transfer_methods:
        try:
            methods.append(PaymentMethod(value))
        except ValueError:
            logger.warning("Неизвестный способ оплаты в TRANSFER_PAYMENT_METHODS: %s", value)
    return methods


def to_snapshot(order: Order) -> OrderSnapshot:
    return OrderSnapshot(
        id=order.id,
        created_at=order.created_at,
        status=order.status,
        items=tuple(LineSnapshot(i.product_id, i.quantity) for i in order.items),
    )


async def get_order(db: AsyncSession, order_id: str) -> Optional[Order]:
    result = await db.execute(
        select(Order).options(*_ORDER_LOAD).where(Order.id == order_id)
    )
    return result.scalar_one_or_none()


async def load_working_set(
    db: AsyncSession,
    delivery_method: Optional[DeliveryMethod] = None,
    lock: bool = False,
) -> list[Order]:
    """Незавершённые заказы, старые первыми. Неоплаченные переводы персоналу не видны."""
    q = (
        select(Order)
        .options(*_ORDER_LOAD)
        .where(Order.status.notin_(list(TERMINAL_STATUSES)))
        .where(or_(Order.paid == True, Order.payment_method.notin_(_transfer_methods())))  # noqa: E712
        .order_by(Order.created_at)
    )
    if delivery_method is not None:
        q = q.where(Order.delivery_method == delivery_method)
    if lock:
        q = q.with_for_update(of=Order)
    result = await db.execute(q)
    return list(result.scalars().all())


async def list_completed(
    db: AsyncSession,
    delivery_method: Optional[DeliveryMethod] = None,
    limit: int = 50,
) -> list[Order]:
    q = (
        select(Order)
        .options(*_ORDER_LOAD)
        .where(Order.status == OrderStatus.COMPLETED)
        .order_by(Order.updated_at.desc())
        .limit(limit)
    )
    if delivery_method is not None:
        q = q.where(Order.delivery_method == delivery_method)
    result = await db.execute(q)
    return list(result.scalars().all())


def _promotable(order: Order, scope: str) -> bool:
    if order.status == OrderStatus.READY or not can_transition(order.status, OrderStatus.READY):
        return False
    if scope == SCOPE_PREPARING:
        return order.status == OrderStatus.PREPARING
    return True


async def preview_fifo(db: AsyncSession) -> FifoResult:
    """Распределение без записи: что получил бы каждый заказ прямо сейчас."""
    prepared = await pool_snapshot(db)
    orders = [to_snapshot(o) for o in await load_working_set(db)]
    allocation = allocate_fifo(orders, prepared)
    return FifoResult(
        allocation=allocation,
        prepared=prepared,
        satisfied_ids=satisfied_order_ids(orders, allocation) if prepared else [],
    )


async def apply_fifo(db: AsyncSession, scope: Optional[str] = None) -> FifoResult:
    """
    Прочитать пул и заказы, распределить, перевести покрытые заказы в ready —
    в одной транзакции. На PostgreSQL строки пула и заказов блокируются до commit.
    """
    scope = scope or settings.fifo_promotion_scope
    if scope not in PROMOTION_SCOPES:
        raise ValueError(f"Неизвестная область FIFO: {scope}")
    lock = supports_row_locks(db)
    prepared = await pool_snapshot(db, lock=lock)
    if not prepared:
        logger.info("FIFO: пул пуст, распределять нечего")
        return FifoResult()

    orders = await load_working_set(db, lock=lock)
    snapshots = [to_snapshot(o) for o in orders]
    allocation = allocate_fifo(snapshots, prepared)
    satisfied = set(satisfied_order_ids(snapshots, allocation))

    promoted = []
    for order in orders:
        if order.id not in satisfied or not _promotable(order, scope):
            continue
        order.status = OrderStatus.READY
        promoted.append(order.id)
    if promoted:
        await db.flush()
        mark_changed(db, TOPIC_ORDERS)
    logger.info(
        "FIFO: заказов %s, покрыто %s, переведено в ready %s",
        len(orders), len(satisfied), len(promoted),
    )
    return FifoResult(
        allocation=allocation,
        prepared=prepared,
        satisfied_ids=[s.id for s in snapshots if s.id in satisfied],
        promoted_ids=promoted,
    )


async def _complete(db: AsyncSession, order: Order) -> Order:
    previous = order.status
    result = await db.execute(
        update(Order)
        .where(
            Order.id == order.id,
            Order.status == previous,
            Order.stock_consumed_at.is_(None),
        )
        .values(status=OrderStatus.COMPLETED, stock_consumed_at=datetime.utcnow(), updated_at=datetime.utcnow())
        .execution_options(synchronize_session=False)
    )
    await db.refresh(order, attribute_names=["status", "stock_consumed_at", "updated_at"])
    if result.rowcount == 0:
        # Заказ успела изменить другая сессия
        if order.status == OrderStatus.COMPLETED:
            logger.warning("Заказ %s уже выдан, повторного списания нет", order.order_number)
            return order
        raise InvalidTransition(order.status, OrderStatus.COMPLETED)
    await consume_for_order(db, order)
    return order


async def change_status(db: AsyncSession, order_id: str, new_status: OrderStatus) -> Order:
    order = await get_order(db, order_id)
    if order is None:
        raise OrderNotFound(order_id)
    if order.status == new_status:
        return order
    if not can_transition(order.status, new_status):
        logger.warning(
            "Отклонён переход заказа %s: %s -> %s",
            order.order_number, order.status.value, new_status.value,
        )
        raise InvalidTransition(order.status, new_status)

    if new_status == OrderStatus.COMPLETED:
        await _complete(db, order)
    else:
        order.status = new_status
        await db.flush()
    mark_changed(db, TOPIC_ORDERS)
    logger.info("Заказ %s: статус %s", order.order_number, order.status.value)
    return order


async def verify_payment(db: AsyncSession, order_id: str, approve: bool) -> Order:
    """Проверка оплаты переводом: подтверждение открывает заказ персоналу, отказ — отменяет."""
    order = await get_order(db, order_id)
    if order is None:
        raise OrderNotFound(order_id)
    if order.payment_method not in _transfer_methods():
        raise VerificationNotAllowed(order_id, "оплата не переводом")
    if order.paid or order.status not in (OrderStatus.PENDING_VERIFICATION, OrderStatus.PENDING):
        raise VerificationNotAllowed(order_id, f"проверка не требуется (статус {order.status.value})")

    if approve:
        order.paid = True
        order.status = OrderStatus.CONFIRMED
    else:
        order.paid = False
        order.status = OrderStatus.CANCELLED
    await db.flush()
    mark_changed(db, TOPIC_ORDERS)
    logger.info("Оплата заказа %s %s", order.order_number, "подтверждена" if approve else "отклонена")
    return order
