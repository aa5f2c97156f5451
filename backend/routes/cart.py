"""
Cart endpoints. Gated by the ``cart`` flag.
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from db_models import User
from deps import require_auth, require_feature
from domain.responses import success_response
from models import ProductOut, dump
from services import order_service

router = APIRouter(
    prefix="/api/cart",
    tags=["cart"],
    dependencies=[Depends(require_feature("cart"))],
)


class CartAddRequest(BaseModel):
    product_id: int = Field(..., alias="productId", gt=0)
    quantity: int = Field(1, ge=1, le=100)


class CartUpdateRequest(BaseModel):
    # validated by the service so zero/negative values get the domain error
    quantity: int


async def _cart_payload(db: AsyncSession, user_id: int) -> dict:
    rows = await order_service.get_cart(db, user_id=user_id)
    items = [
        {
            "id": item.id,
            "productId": product.id,
            "quantity": item.quantity,
            "product": dump(ProductOut, product),
            "lineTotal": round(product.price * item.quantity, 2),
        }
        for item, product in rows
    ]
    return {
        "items": items,
        "itemCount": sum(i["quantity"] for i in items),
        "total": round(sum(i["lineTotal"] for i in items), 2),
    }


@router.get("")
async def get_cart(
    user: User = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    return success_response(data=await _cart_payload(db, user.id))


@router.post("")
async def add_to_cart(
    request: CartAddRequest,
    user: User = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    await order_service.add_to_cart(db, user_id=user.id, product_id=request.product_id, quantity=request.quantity)
    await db.commit()
    return success_response(data=await _cart_payload(db, user.id))


@router.delete("")
async def clear_cart(
    user: User = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    removed = await order_service.clear_cart(db, user_id=user.id)
    await db.commit()
    return success_response(data={"removed": removed})


@router.put("/{product_id}")
async def update_quantity(
    product_id: int,
    request: CartUpdateRequest,
    user: User = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    await order_service.update_cart_quantity(db, user_id=user.id, product_id=product_id, quantity=request.quantity)
    await db.commit()
    return success_response(data=await _cart_payload(db, user.id))


@router.delete("/{product_id}")
async def remove_item(
    product_id: int,
    user: User = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    await order_service.remove_from_cart(db, user_id=user.id, product_id=product_id)
    await db.commit()
    return success_response(data=await _cart_payload(db, user.id))
