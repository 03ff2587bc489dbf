"""Server-Sent Events: сигнал панели персонала перечитать пул или заказы."""
import asyncio

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from bakery.api.auth import RequireOrdersStream, UserInfo
from bakery.config import settings
from bakery.core.events import notifier

router = APIRouter(prefix="/staff/events", tags=["events"])


async def event_stream(request: Request, keepalive: float):
    async with notifier.subscribe() as queue:
        yield ": connected\n\n"
        while True:
            if await request.is_disconnected():
                break
            try:
                topic = await asyncio.wait_for(queue.get(), timeout=keepalive)
            except asyncio.TimeoutError:
                yield ": keep-alive\n\n"
                continue
            yield f"event: {topic}\ndata: {{}}\n\n"


@router.get("")
async def staff_events(
    request: Request,
    _user: UserInfo = Depends(RequireOrdersStream),
):
    return StreamingResponse(
        event_stream(request, settings.events_keepalive_seconds),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
