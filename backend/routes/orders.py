"""
Order endpoints: buyer checkout, seller fulfilment, cancellation.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from db_models import User
from deps import require_auth, require_feature
from domain.responses import success_response
from models import OrderOut, dump, dump_all
from services import order_service

logger = logging.getLogger(__name__)
router = APIRouter(
    prefix="/api/orders",
    tags=["orders"],
    dependencies=[Depends(require_feature("cart"))],
)


class OrderDetails(BaseModel):
    customer_name: str = Field(..., alias="customerName", min_length=1, max_length=100)
    customer_phone: str = Field(..., alias="customerPhone", min_length=4, max_length=32)
    delivery_address: str = Field(..., alias="deliveryAddress", min_length=1, max_length=500)
    notes: Optional[str] = Field(default=None, max_length=1000)


class OrderItemRequest(BaseModel):
    product_id: int = Field(..., alias="productId", gt=0)
    quantity: int = Field(1, ge=1, le=100)


class OrderCreateRequest(BaseModel):
    order: OrderDetails
    items: List[OrderItemRequest] = Field(..., min_length=1)


class StatusUpdateRequest(BaseModel):
    status: str


class CancelRequest(BaseModel):
    reason: Optional[str] = Field(default=None, max_length=500)


@router.post("")
async def create_order(
    request: OrderCreateRequest,
    user: User = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    order = await order_service.create_order(
        db,
        user,
        customer_name=request.order.customer_name,
        customer_phone=request.order.customer_phone,
        delivery_address=request.order.delivery_address,
        notes=request.order.notes,
        items=[{"product_id": i.product_id, "quantity": i.quantity} for i in request.items],
    )
    await db.commit()
    return success_response(data=dump(OrderOut, order))


@router.get("/user")
async def buyer_orders(
    user: User = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    orders = await order_service.list_buyer_orders(db, user_id=user.id)
    return success_response(data=dump_all(OrderOut, orders), meta={"total": len(orders)})


@router.get("/seller")
async def seller_orders(
    status: Optional[str] = Query(None),
    user: User = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    orders = await order_service.list_seller_orders(db, user_id=user.id, status=status)
    return success_response(data=dump_all(OrderOut, orders), meta={"total": len(orders)})


@router.get("/{order_id}")
async def get_order(
    order_id: int,
    user: User = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    return success_response(data=dump(OrderOut, await order_service.get_order_for_party(db, order_id=order_id, user=user)))


@router.put("/{order_id}/status")
async def update_status(
    order_id: int,
    request: StatusUpdateRequest,
    user: User = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    order = await order_service.update_status(db, order_id=order_id, actor=user, status=request.status)
    await db.commit()
    return success_response(data=dump(OrderOut, order))


@router.put("/{order_id}/cancel")
async def cancel_order(
    order_id: int,
    request: CancelRequest,
    user: User = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    order = await order_service.cancel_order(db, order_id=order_id, actor=user, reason=request.reason)
    await db.commit()
    return success_response(data=dump(OrderOut, order))
