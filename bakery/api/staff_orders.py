"""Заказы в панели персонала: рабочий набор, смена статуса, проверка перевода."""
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from bakery.api.auth import RequireOrdersAccess, RequireVerificationAccess, UserInfo
from bakery.core.database import get_db
from bakery.core.logging_config import get_logger
from bakery.models import DeliveryMethod, Order
from bakery.schemas.order import (
    OrderItemResponse,
    OrderResponse,
    OrderStatusResponse,
    OrderStatusUpdate,
    VerifyPaymentBody,
    VerifyPaymentResponse,
)
from bakery.services import fulfillment
from bakery.services.errors import InvalidTransition, OrderNotFound, VerificationNotAllowed

logger = get_logger(__name__)

router = APIRouter(prefix="/staff/orders", tags=["staff-orders"])


def order_to_response(o: Order) -> OrderResponse:
    profile = o.profile
    return OrderResponse(
        id=o.id,
        order_number=o.order_number,
        status=o.status.value,
        total=o.total,
        payment_method=o.payment_method.value,
        paid=o.paid,
        delivery_method=o.delivery_method.value,
        delivery_address=o.delivery_address,
        notes=o.notes,
        customer_name=profile.full_name if profile else None,
        customer_phone=profile.phone if profile else None,
        created_at=o.created_at,
        stock_consumed=o.stock_consumed_at is not None,
        items=[
            OrderItemResponse(
                id=i.id,
                product_id=i.product_id,
                product_name=i.product.name if i.product else None,
                quantity=i.quantity,
            )
            for i in o.items
        ],
    )


@router.get("", response_model=List[OrderResponse])
async def list_staff_orders(
    delivery_method: Optional[DeliveryMethod] = None,
    include_completed: bool = False,
    db: AsyncSession = Depends(get_db),
    _user: UserInfo = Depends(RequireOrdersAccess),
):
    """Незавершённые заказы (старые первыми); include_completed — плюс последние выданные."""
    orders = await fulfillment.load_working_set(db, delivery_method=delivery_method)
    if include_completed:
        orders += await fulfillment.list_completed(db, delivery_method=delivery_method)
    return [order_to_response(o) for o in orders]


@router.get("/{order_id}", response_model=OrderResponse)
async def get_staff_order(
    order_id: str,
    db: AsyncSession = Depends(get_db),
    _user: UserInfo = Depends(RequireOrdersAccess),
):
    order = await fulfillment.get_order(db, order_id)
    if not order:
        raise HTTPException(status_code=404, detail="Заказ не найден")
    return order_to_response(order)


@router.patch("/{order_id}/status", response_model=OrderStatusResponse)
async def update_order_status(
    order_id: str,
    body: OrderStatusUpdate,
    db: AsyncSession = Depends(get_db),
    user: UserInfo = Depends(RequireOrdersAccess),
):
    """Ручная смена статуса. При выдаче (completed) пул списывается один раз."""
    try:
        order = await fulfillment.change_status(db, order_id, body.status)
    except OrderNotFound:
        raise HTTPException(status_code=404, detail="Заказ не найден")
    except InvalidTransition as e:
        raise HTTPException(status_code=400, detail=str(e))
    logger.info("Статус заказа %s изменён сотрудником %s", order.order_number, user.id)
    return OrderStatusResponse(order_id=order.id, order_number=order.order_number, status=order.status.value)


@router.post("/{order_id}/verify", response_model=VerifyPaymentResponse)
async def verify_order_payment(
    order_id: str,
    body: VerifyPaymentBody,
    db: AsyncSession = Depends(get_db),
    _user: UserInfo = Depends(RequireVerificationAccess),
):
    """Проверка оплаты переводом: подтвердить или отклонить."""
    try:
        order = await fulfillment.verify_payment(db, order_id, body.approve)
    except OrderNotFound:
        raise HTTPException(status_code=404, detail="Заказ не найден")
    except VerificationNotAllowed as e:
        raise HTTPException(status_code=400, detail=str(e))
    return VerifyPaymentResponse(
        order_id=order.id,
        order_number=order.order_number,
        status=order.status.value,
        paid=order.paid,
    )
