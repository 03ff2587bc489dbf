"""Пул приготовленного: остатки, пополнение партией, удаление, очистка."""
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bakery.api.auth import RequireClearPool, RequirePreparedAccess, UserInfo
from bakery.core.database import get_db
from bakery.models import Product
from bakery.schemas.prepared import AddBatchBody, AddBatchResponse, ClearPoolResponse, PreparedRow
from bakery.services import prepared_stock
from bakery.services.errors import ProductNotFound

router = APIRouter(prefix="/prepared", tags=["prepared"])


@router.get("", response_model=List[PreparedRow])
async def get_prepared(
    db: AsyncSession = Depends(get_db),
    _user: UserInfo = Depends(RequirePreparedAccess),
):
    """Текущий пул: только позиции с остатком больше нуля, свежие сверху."""
    rows = await prepared_stock.list_pool(db)
    names = {}
    if rows:
        r = await db.execute(
            select(Product.id, Product.name).where(Product.id.in_([row.product_id for row in rows]))
        )
        names = dict(r.all())
    return [
        PreparedRow(
            product_id=row.product_id,
            product_name=names.get(row.product_id),
            quantity=row.quantity,
            updated_at=row.updated_at,
        )
        for row in rows
    ]


@router.post("/add", response_model=AddBatchResponse)
async def add_batch(
    body: AddBatchBody,
    db: AsyncSession = Depends(get_db),
    _user: UserInfo = Depends(RequirePreparedAccess),
):
    """Добавить испечённую партию. Отрицательное или некорректное количество — 0, без ошибки."""
    added = prepared_stock.clamp_quantity(body.quantity)
    try:
        total = await prepared_stock.add_batch(db, body.product_id, body.quantity)
    except ProductNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    return AddBatchResponse(product_id=body.product_id, added=added, quantity=total)


@router.delete("/{product_id}")
async def remove_prepared(
    product_id: str,
    db: AsyncSession = Depends(get_db),
    _user: UserInfo = Depends(RequirePreparedAccess),
):
    """Удалить позицию пула (ручная корректировка)."""
    removed = await prepared_stock.remove(db, product_id)
    return {"product_id": product_id, "removed": removed}


@router.delete("", response_model=ClearPoolResponse)
async def clear_prepared(
    db: AsyncSession = Depends(get_db),
    _user: UserInfo = Depends(RequireClearPool),
):
    """Очистить пул (новый день)."""
    return ClearPoolResponse(removed=await prepared_stock.clear_all(db))
