from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bakery.api.auth import RequirePreparedAccess, UserInfo
from bakery.core.database import get_db
from bakery.models import Product

router = APIRouter(prefix="/products", tags=["products"])


def _row_to_dict(row: Product) -> dict:
    return {
        "id": row.id,
        "name": row.name,
        "price": float(row.price) if row.price is not None else 0,
        "category": row.category,
    }


@router.get("")
async def list_products(
    db: AsyncSession = Depends(get_db),
    _user: UserInfo = Depends(RequirePreparedAccess),
):
    """Продукты для выбора партии (по имени)."""
    r = await db.execute(select(Product).order_by(Product.name, Product.id))
    return [_row_to_dict(row) for row in r.scalars().all()]
