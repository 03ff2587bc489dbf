"""Распределение FIFO: чистые функции, без базы."""
import random

from conftest import at

from bakery.models import OrderStatus
from bakery.services.allocation import (
    LineSnapshot,
    OrderSnapshot,
    allocate_fifo,
    allocation_totals,
    order_satisfied,
    satisfied_order_ids,
)


def snap(order_id, minute, *items, status=OrderStatus.PREPARING):
    return OrderSnapshot(
        id=order_id,
        created_at=at(minute),
        status=status,
        items=tuple(LineSnapshot(p, q) for p, q in items),
    )


def test_earlier_order_is_filled_first():
    """P=10, A(t=1) и B(t=2) хотят по 6: A получает 6, B — 4."""
    a = snap("A", 1, ("P", 6))
    b = snap("B", 2, ("P", 6))
    allocation = allocate_fifo([b, a], {"P": 10})
    assert allocation == {"A": {"P": 6}, "B": {"P": 4}}
    assert order_satisfied(a, allocation)
    assert not order_satisfied(b, allocation)


def test_equal_timestamps_keep_input_order():
    first = snap("first", 5, ("P", 3))
    second = snap("second", 5, ("P", 3))
    allocation = allocate_fifo([first, second], {"P": 4})
    assert allocation == {"first": {"P": 3}, "second": {"P": 1}}
    allocation = allocate_fifo([second, first], {"P": 4})
    assert allocation == {"second": {"P": 3}, "first": {"P": 1}}


def test_missing_product_gets_nothing():
    order = snap("A", 1, ("P", 2), ("Q", 1))
    allocation = allocate_fifo([order], {"P": 5})
    assert allocation == {"A": {"P": 2}}
    assert not order_satisfied(order, allocation)


def test_zero_allocations_are_not_recorded():
    allocation = allocate_fifo([snap("A", 1, ("P", 2))], {"P": 0, "Q": 3})
    assert allocation == {}


def test_non_positive_need_is_skipped():
    allocation = allocate_fifo([snap("A", 1, ("P", 0)), snap("B", 2, ("P", 2))], {"P": 2})
    assert allocation == {"B": {"P": 2}}


def test_terminal_orders_are_skipped():
    done = snap("done", 0, ("P", 5), status=OrderStatus.COMPLETED)
    cancelled = snap("cancelled", 0, ("P", 5), status=OrderStatus.CANCELLED)
    live = snap("live", 1, ("P", 5))
    assert allocate_fifo([done, cancelled, live], {"P": 5}) == {"live": {"P": 5}}


def test_input_pool_is_not_mutated_and_result_is_repeatable():
    orders = [snap("A", 1, ("P", 3)), snap("B", 2, ("P", 3), ("Q", 1))]
    prepared = {"P": 4, "Q": 1}
    first = allocate_fifo(orders, prepared)
    second = allocate_fifo(orders, prepared)
    assert prepared == {"P": 4, "Q": 1}
    assert first == second


def test_prepared_pairs_with_same_product_are_summed():
    allocation = allocate_fifo([snap("A", 1, ("P", 5))], [("P", 2), ("P", 3)])
    assert allocation == {"A": {"P": 5}}


def test_order_without_items_is_satisfied():
    # Текущее поведение: пустой заказ считается покрытым. Вопрос открыт (см. DESIGN.md).
    empty = snap("empty", 1)
    assert order_satisfied(empty, {})
    assert satisfied_order_ids([empty], allocate_fifo([empty], {"P": 1})) == ["empty"]


def test_allocation_never_exceeds_pool():
    rng = random.Random(20261018)
    products = ["P", "Q", "R"]
    for _ in range(200):
        orders = [
            snap(
                f"o{i}",
                rng.randint(0, 30),
                *[(p, rng.randint(0, 6)) for p in rng.sample(products, rng.randint(0, 3))],
            )
            for i in range(rng.randint(0, 8))
        ]
        prepared = {p: rng.randint(0, 12) for p in products if rng.random() > 0.2}
        totals = allocation_totals(allocate_fifo(orders, prepared))
        for product_id, total in totals.items():
            assert total <= prepared.get(product_id, 0)


def test_earlier_order_fully_served_before_later_gets_any():
    rng = random.Random(7)
    for _ in range(100):
        need_a, need_b = rng.randint(1, 10), rng.randint(1, 10)
        pool = rng.randint(0, need_a + need_b - 1)
        allocation = allocate_fifo(
            [snap("late", 2, ("P", need_b)), snap("early", 1, ("P", need_a))], {"P": pool}
        )
        got_early = allocation.get("early", {}).get("P", 0)
        got_late = allocation.get("late", {}).get("P", 0)
        assert got_early == min(need_a, pool)
        if got_late:
            assert got_early == need_a


def test_satisfaction_is_monotonic():
    order = snap("A", 1, ("P", 2), ("Q", 1))
    allocation = {"A": {"P": 2, "Q": 1}}
    assert order_satisfied(order, allocation)
    assert order_satisfied(order, {"A": {"P": 5, "Q": 3, "R": 1}})
