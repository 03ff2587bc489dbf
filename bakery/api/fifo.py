"""Распределение приготовленного по заказам (FIFO)."""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from bakery.api.auth import RequireFifoAccess, UserInfo
from bakery.core.database import get_db
from bakery.schemas.fifo import FifoResponse
from bakery.services import fulfillment
from bakery.services.fulfillment import PROMOTION_SCOPES, FifoResult

router = APIRouter(prefix="/staff/fifo", tags=["fifo"])


def _to_response(result: FifoResult) -> FifoResponse:
    return FifoResponse(
        allocation=result.allocation,
        prepared=result.prepared,
        totals=result.totals,
        satisfied=result.satisfied_ids,
        promoted=result.promoted_ids,
    )


@router.get("", response_model=FifoResponse)
async def preview_fifo(
    db: AsyncSession = Depends(get_db),
    _user: UserInfo = Depends(RequireFifoAccess),
):
    """Что получил бы каждый заказ сейчас (без смены статусов)."""
    return _to_response(await fulfillment.preview_fifo(db))


@router.post("/apply", response_model=FifoResponse)
async def apply_fifo(
    scope: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    _user: UserInfo = Depends(RequireFifoAccess),
):
    """Распределить пул и перевести полностью покрытые заказы в ready."""
    if scope is not None and scope not in PROMOTION_SCOPES:
        raise HTTPException(status_code=400, detail=f"scope должен быть одним из: {', '.join(PROMOTION_SCOPES)}")
    return _to_response(await fulfillment.apply_fifo(db, scope=scope))
