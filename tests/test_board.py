"""Панель персонала: оптимистичные изменения и сверка с сервером."""
import asyncio
import json

import httpx

from bakery.client.board import StaffBoard


class FakeApi:
    """Имитация API: состояние в памяти, отказ записи по флагу."""

    def __init__(self):
        self.orders = [
            {
                "id": "a", "order_number": "ORD-A", "status": "preparing", "delivery_method": "pickup",
                "created_at": "2026-10-18T08:01:00", "items": [{"product_id": "P", "quantity": 6}],
            },
            {
                "id": "b", "order_number": "ORD-B", "status": "preparing", "delivery_method": "delivery",
                "created_at": "2026-10-18T08:02:00", "items": [{"product_id": "P", "quantity": 6}],
            },
        ]
        self.pool = {"P": 10}
        self.fail_writes = False
        self.calls = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.calls.append((request.method, path))
        if request.method == "GET" and path == "/staff/orders":
            return httpx.Response(200, json=self.orders)
        if request.method == "GET" and path == "/prepared":
            return httpx.Response(200, json=[
                {"product_id": p, "quantity": q, "updated_at": None} for p, q in self.pool.items()
            ])
        if self.fail_writes:
            return httpx.Response(500, json={"detail": "Внутренняя ошибка сервера"})
        if request.method == "PATCH" and path.endswith("/status"):
            order_id = path.split("/")[3]
            status = json.loads(request.content)["status"]
            for o in self.orders:
                if o["id"] == order_id:
                    if status == "completed" and o["status"] != "completed":
                        self.pool["P"] = max(0, self.pool["P"] - o["items"][0]["quantity"])
                    o["status"] = status
            return httpx.Response(200, json={"order_id": order_id, "status": status})
        if request.method == "POST" and path == "/prepared/add":
            body = json.loads(request.content)
            self.pool[body["product_id"]] = self.pool.get(body["product_id"], 0) + body["quantity"]
            return httpx.Response(200, json={"quantity": self.pool[body["product_id"]]})
        if request.method == "DELETE" and path.startswith("/prepared/"):
            self.pool.pop(path.rsplit("/", 1)[1], None)
            return httpx.Response(200, json={"removed": True})
        if request.method == "DELETE" and path == "/prepared":
            self.pool.clear()
            return httpx.Response(200, json={"removed": 1})
        if request.method == "POST" and path == "/staff/fifo/apply":
            self.orders[0]["status"] = "ready"
            return httpx.Response(200, json={
                "allocation": {"a": {"P": 6}, "b": {"P": 4}}, "prepared": self.pool,
                "totals": {"P": 10}, "satisfied": ["a"], "promoted": ["a"],
            })
        if request.method == "GET" and path == "/staff/events":
            return httpx.Response(
                200,
                text=": connected\n\nevent: prepared\ndata: {}\n\n",
                headers={"Content-Type": "text/event-stream"},
            )
        return httpx.Response(404)


def _board(api: FakeApi) -> StaffBoard:
    client = httpx.AsyncClient(transport=httpx.MockTransport(api.handler), base_url="http://test")
    return StaffBoard(client)


def test_refresh_and_sections():
    api = FakeApi()

    async def _go():
        async with _board(api) as board:
            assert await board.refresh()
            return board

    board = asyncio.run(_go())
    assert board.prepared == {"P": 10}
    assert [o["id"] for o in board.pickup_orders] == ["a"]
    assert [o["id"] for o in board.delivery_orders] == ["b"]
    assert board.completed_orders == []


def test_local_allocation_matches_fifo():
    api = FakeApi()

    async def _go():
        async with _board(api) as board:
            await board.refresh()
            return board.local_allocation()

    assert asyncio.run(_go()) == {"a": {"P": 6}, "b": {"P": 4}}


def test_failed_status_write_is_rolled_back_by_refresh():
    api = FakeApi()

    async def _go():
        async with _board(api) as board:
            await board.refresh()
            api.fail_writes = True
            ok = await board.set_status("b", "ready")
            return ok, board

    ok, board = asyncio.run(_go())
    assert ok is False
    assert board.pending == {}
    assert [o["status"] for o in board.orders] == ["preparing", "preparing"]
    assert board.error == "Внутренняя ошибка сервера"


def test_apply_then_complete():
    api = FakeApi()

    async def _go():
        async with _board(api) as board:
            await board.refresh()
            data = await board.apply_fifo()
            assert data["promoted"] == ["a"]
            ready = {o["id"]: board.ready_by_fifo(o) for o in board.orders}
            assert await board.complete("a")
            return ready, board

    ready, board = asyncio.run(_go())
    assert ready == {"a": True, "b": False}
    assert board.prepared == {"P": 4}
    assert "a" not in board.allocation
    assert [o["id"] for o in board.completed_orders] == ["a"]
    assert board.display_status(board.orders[0]) == "completed"


def test_add_batch_ignores_non_positive():
    api = FakeApi()

    async def _go():
        async with _board(api) as board:
            assert await board.add_batch("P", -5) is False
            assert await board.add_batch("P", 2.7) is True
            return board

    board = asyncio.run(_go())
    assert ("POST", "/prepared/add") in api.calls
    assert api.calls.count(("POST", "/prepared/add")) == 1
    assert board.prepared == {"P": 12}


def test_failed_remove_restores_pool():
    api = FakeApi()

    async def _go():
        async with _board(api) as board:
            await board.refresh_prepared()
            api.fail_writes = True
            ok = await board.remove_prepared("P")
            return ok, board

    ok, board = asyncio.run(_go())
    assert ok is False
    assert board.prepared == {"P": 10}


def test_clear_drops_allocation():
    api = FakeApi()

    async def _go():
        async with _board(api) as board:
            await board.refresh()
            await board.apply_fifo()
            await board.clear_prepared()
            return board

    board = asyncio.run(_go())
    assert board.allocation == {}
    assert board.prepared == {}


def test_apply_fifo_skipped_with_empty_pool():
    api = FakeApi()
    api.pool = {}

    async def _go():
        async with _board(api) as board:
            await board.refresh()
            return await board.apply_fifo()

    assert asyncio.run(_go()) is None
    assert ("POST", "/staff/fifo/apply") not in api.calls


def test_watch_refreshes_signalled_topic():
    api = FakeApi()

    async def _go():
        async with _board(api) as board:
            handled = await board.watch(max_events=1)
            return board, handled

    board, handled = asyncio.run(_go())
    assert handled == 1
    assert board.prepared == {"P": 10}
    assert ("GET", "/prepared") in api.calls
    assert ("GET", "/staff/orders") not in api.calls


def test_connect_builds_authorized_client():
    async def _go():
        board = StaffBoard.connect("tok", base_url="http://api.test", delivery_filter="pickup")
        client = board._client
        await board.close()
        return board, client

    board, client = asyncio.run(_go())
    assert str(client.base_url).rstrip("/") == "http://api.test"
    assert client.headers["Authorization"] == "Bearer tok"
    assert board.delivery_filter == "pickup"
    assert client.is_closed
