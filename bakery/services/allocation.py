"""
Распределение приготовленного по заказам в порядке поступления (FIFO).

Функции чистые: работают со снимком заказов и пула, ничего не пишут и не
меняют переданные данные. Повторный вызов на том же снимке даёт тот же результат.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, Mapping, Union

from bakery.models.order import OrderStatus, TERMINAL_STATUSES

# order_id -> product_id -> выделено единиц
Allocation = dict[str, dict[str, int]]


@dataclass(frozen=True)
class LineSnapshot:
    product_id: str
    quantity: int


@dataclass(frozen=True)
class OrderSnapshot:
    id: str
    created_at: datetime
    status: OrderStatus = OrderStatus.PREPARING
    items: tuple[LineSnapshot, ...] = field(default_factory=tuple)


PreparedInput = Union[Mapping[str, int], Iterable[tuple[str, int]]]


def _remaining_from(prepared: PreparedInput) -> dict[str, int]:
    pairs = prepared.items() if isinstance(prepared, Mapping) else prepared
    remaining: dict[str, int] = {}
    for product_id, qty in pairs:
        remaining[product_id] = remaining.get(product_id, 0) + int(qty)
    return remaining


def allocate_fifo(orders: Iterable[OrderSnapshot], prepared: PreparedInput) -> Allocation:
    """
    Раздаёт пул по заказам: сначала самые ранние (created_at), при равенстве —
    в порядке входа. Внутри заказа — по порядку позиций. Частичная выдача
    допускается и попадает в результат; нулевые выдачи не записываются.
    Продукт, которого нет в пуле, считается нулевым остатком.
    """
    remaining = _remaining_from(prepared)
    fifo_orders = sorted(orders, key=lambda o: o.created_at)

    allocation: Allocation = {}
    for order in fifo_orders:
        if order.status in TERMINAL_STATUSES:
            continue
        for item in order.items:
            available = remaining.get(item.product_id, 0)
            need = item.quantity
            if available <= 0 or need <= 0:
                continue
            give = min(need, available)
            per_order = allocation.setdefault(order.id, {})
            per_order[item.product_id] = per_order.get(item.product_id, 0) + give
            remaining[item.product_id] = available - give
    return allocation


def order_satisfied(order: OrderSnapshot, allocation: Allocation) -> bool:
    """Каждая позиция покрыта полностью. Заказ без позиций считается удовлетворённым."""
    got = allocation.get(order.id, {})
    return all(got.get(item.product_id, 0) >= item.quantity for item in order.items)


def satisfied_order_ids(orders: Iterable[OrderSnapshot], allocation: Allocation) -> list[str]:
    return [o.id for o in orders if order_satisfied(o, allocation)]


def allocation_totals(allocation: Allocation) -> dict[str, int]:
    """Сколько всего выделено по каждому продукту."""
    totals: dict[str, int] = {}
    for per_order in allocation.values():
        for product_id, qty in per_order.items():
            totals[product_id] = totals.get(product_id, 0) + qty
    return totals
