"""
Панель персонала поверх API: локальный снимок заказов и пула.

Смена статуса применяется к снимку сразу (с флагом «ждёт подтверждения»),
флаг снимается только после успешного ответа. При любой ошибке записи
локальное значение отбрасывается и заказы перечитываются с сервера.
"""
from datetime import datetime
from typing import Optional

import httpx

from bakery.config import settings
from bakery.core.logging_config import get_logger
from bakery.models import OrderStatus
from bakery.services.allocation import (
    Allocation,
    LineSnapshot,
    OrderSnapshot,
    allocate_fifo,
    order_satisfied,
)
from bakery.services.prepared_stock import clamp_quantity

logger = get_logger(__name__)

COMPLETED = "completed"


def _error_message(exc: Exception) -> str:
    if isinstance(exc, httpx.HTTPStatusError):
        try:
            detail = exc.response.json().get("detail")
        except ValueError:
            detail = None
        return str(detail or exc.response.text or exc.response.status_code)
    return str(exc) or exc.__class__.__name__


def _parse_dt(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def order_snapshot(order: dict) -> OrderSnapshot:
    return OrderSnapshot(
        id=order["id"],
        created_at=_parse_dt(order["created_at"]),
        status=OrderStatus(order["status"]),
        items=tuple(LineSnapshot(i["product_id"], int(i["quantity"])) for i in order.get("items", [])),
    )


class StaffBoard:
    def __init__(self, client: httpx.AsyncClient, delivery_filter: Optional[str] = None):
        self._client = client
        self.delivery_filter = delivery_filter
        self.orders: list[dict] = []
        self.prepared: dict[str, int] = {}
        self.prepared_rows: list[dict] = []
        self.allocation: Allocation = {}
        self.pending: dict[str, str] = {}
        self.error: Optional[str] = None

    @classmethod
    def connect(cls, token: str, base_url: Optional[str] = None, **kwargs) -> "StaffBoard":
        client = httpx.AsyncClient(
            base_url=base_url or settings.api_base_url,
            headers={"Authorization": f"Bearer {token}"},
            timeout=10.0,
        )
        return cls(client, **kwargs)

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    # ---- чтение ----

    async def refresh_orders(self) -> bool:
        params = {"include_completed": "true"}
        if self.delivery_filter:
            params["delivery_method"] = self.delivery_filter
        try:
            r = await self._client.get("/staff/orders", params=params)
            r.raise_for_status()
        except httpx.HTTPError as e:
            logger.error("Не удалось загрузить заказы: %s", e)
            self.orders = []
            self.error = _error_message(e)
            return False
        self.orders = r.json()
        self.error = None
        return True

    async def refresh_prepared(self) -> bool:
        try:
            r = await self._client.get("/prepared")
            r.raise_for_status()
        except httpx.HTTPError as e:
            # Пул остаётся прежним: ручное обновление доступно
            logger.error("Не удалось загрузить пул: %s", e)
            self.error = _error_message(e)
            return False
        self.prepared_rows = [row for row in r.json() if row.get("quantity", 0) > 0]
        self.prepared = {row["product_id"]: int(row["quantity"]) for row in self.prepared_rows}
        return True

    async def refresh(self) -> bool:
        orders_ok = await self.refresh_orders()
        prepared_ok = await self.refresh_prepared()
        return orders_ok and prepared_ok

    # ---- статусы ----

    def _set_local_status(self, order_id: str, status: str) -> None:
        for order in self.orders:
            if order["id"] == order_id:
                order["status"] = status

    async def set_status(self, order_id: str, status: str) -> bool:
        self.pending[order_id] = status
        self._set_local_status(order_id, status)
        try:
            r = await self._client.patch(f"/staff/orders/{order_id}/status", json={"status": status})
            r.raise_for_status()
        except httpx.HTTPError as e:
            logger.error("Смена статуса %s -> %s не удалась: %s", order_id, status, e)
            self.pending.pop(order_id, None)
            await self.refresh_orders()
            self.error = _error_message(e)
            return False
        self.pending.pop(order_id, None)
        await self.refresh_orders()
        return True

    async def complete(self, order_id: str) -> bool:
        """Выдать заказ: списание пула делает сервер, здесь — обновить пул и убрать распределение."""
        ok = await self.set_status(order_id, COMPLETED)
        await self.refresh_prepared()
        if ok:
            self.allocation.pop(order_id, None)
        return ok

    def display_status(self, order: dict) -> str:
        return self.pending.get(order["id"], order["status"])

    # ---- пул ----

    async def add_batch(self, product_id: str, qty) -> bool:
        amount = clamp_quantity(qty)
        if not product_id or amount <= 0:
            return False
        try:
            r = await self._client.post("/prepared/add", json={"product_id": product_id, "quantity": amount})
            r.raise_for_status()
        except httpx.HTTPError as e:
            logger.error("Партия %s не добавлена: %s", product_id, e)
            self.error = _error_message(e)
            await self.refresh_prepared()
            return False
        await self.refresh_prepared()
        return True

    async def remove_prepared(self, product_id: str) -> bool:
        self.prepared.pop(product_id, None)
        self.prepared_rows = [row for row in self.prepared_rows if row["product_id"] != product_id]
        try:
            r = await self._client.delete(f"/prepared/{product_id}")
            r.raise_for_status()
        except httpx.HTTPError as e:
            logger.error("Позиция пула %s не удалена: %s", product_id, e)
            self.error = _error_message(e)
            await self.refresh_prepared()
            return False
        return True

    async def clear_prepared(self) -> bool:
        ok = True
        try:
            r = await self._client.delete("/prepared")
            r.raise_for_status()
        except httpx.HTTPError as e:
            logger.error("Пул не очищен: %s", e)
            self.error = _error_message(e)
            ok = False
        self.allocation = {}
        await self.refresh_prepared()
        return ok

    # ---- FIFO ----

    async def apply_fifo(self) -> Optional[dict]:
        if not self.prepared:
            return None
        try:
            r = await self._client.post("/staff/fifo/apply")
            r.raise_for_status()
        except httpx.HTTPError as e:
            logger.error("FIFO не применён: %s", e)
            self.error = _error_message(e)
            await self.refresh_orders()
            return None
        data = r.json()
        self.allocation = data.get("allocation", {})
        await self.refresh_orders()
        return data

    def local_allocation(self) -> Allocation:
        """То же распределение по локальному снимку, без запроса к серверу."""
        open_orders = [order_snapshot(o) for o in self.orders if o["status"] != COMPLETED]
        return allocate_fifo(open_orders, self.prepared)

    def ready_by_fifo(self, order: dict) -> bool:
        if order["id"] not in self.allocation:
            return False
        return order_satisfied(order_snapshot(order), self.allocation)

    # ---- секции ----

    @property
    def pickup_orders(self) -> list[dict]:
        return [o for o in self.orders if o["status"] != COMPLETED and o["delivery_method"] == "pickup"]

    @property
    def delivery_orders(self) -> list[dict]:
        return [o for o in self.orders if o["status"] != COMPLETED and o["delivery_method"] == "delivery"]

    @property
    def completed_orders(self) -> list[dict]:
        return [o for o in self.orders if o["status"] == COMPLETED]

    # ---- уведомления ----

    async def watch(self, max_events: Optional[int] = None) -> int:
        """Слушать /staff/events и перечитывать то, о чём пришёл сигнал."""
        handled = 0
        async with self._client.stream("GET", "/staff/events", timeout=None) as r:
            r.raise_for_status()
            async for line in r.aiter_lines():
                if not line.startswith("event:"):
                    continue
                topic = line.split(":", 1)[1].strip()
                if topic == "prepared":
                    await self.refresh_prepared()
                elif topic == "orders":
                    await self.refresh_orders()
                handled += 1
                if max_events is not None and handled >= max_events:
                    break
        return handled
