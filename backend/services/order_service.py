"""
Cart and order service.

Orders are priced server-side from the catalog (client prices are ignored),
contain items from a single store, reserve stock when placed and give it back
when cancelled. Status moves only along ORDER_TRANSITIONS:

    pending -> confirmed -> prepared -> delivered
    pending -> cancelled
"""

import logging

from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from db_models import CartItem, Order, OrderItem, Product, User, Vendor, utcnow
from domain.enums import ORDER_TRANSITIONS, NotificationType, OrderStatus, VendorStatus
from domain.errors import (
    ConflictError, InvalidTransitionError, NotFoundError, PermissionDeniedError, ValidationError,
)
from services import notification_service
from services.marketplace_service import get_product

logger = logging.getLogger(__name__)

STATUS_TIMESTAMPS = {
    OrderStatus.CONFIRMED: "confirmed_at",
    OrderStatus.PREPARED: "prepared_at",
    OrderStatus.DELIVERED: "delivered_at",
    OrderStatus.CANCELLED: "cancelled_at",
}

STATUS_MESSAGES = {
    OrderStatus.CONFIRMED: "Your order #{id} was confirmed",
    OrderStatus.PREPARED: "Your order #{id} is ready",
    OrderStatus.DELIVERED: "Your order #{id} was delivered",
    OrderStatus.CANCELLED: "Your order #{id} was cancelled",
}


# ── Cart ────────────────────────────────────────────────────────────

async def get_cart(db: AsyncSession, *, user_id: int) -> list[tuple[CartItem, Product]]:
    res = await db.execute(
        select(CartItem, Product)
        .join(Product, Product.id == CartItem.product_id)
        .where(CartItem.user_id == user_id)
        .order_by(CartItem.added_at)
    )
    return res.all()


async def add_to_cart(db: AsyncSession, *, user_id: int, product_id: int, quantity: int = 1) -> CartItem:
    """Adding a product already in the cart increases its quantity."""
    if quantity <= 0:
        raise ValidationError("Quantity must be positive", field="quantity")
    await get_product(db, product_id)

    res = await db.execute(
        select(CartItem).where(CartItem.user_id == user_id, CartItem.product_id == product_id)
    )
    item = res.scalar_one_or_none()
    if item is None:
        item = CartItem(user_id=user_id, product_id=product_id, quantity=quantity)
        db.add(item)
    else:
        item.quantity += quantity
    await db.flush()
    return item


async def update_cart_quantity(db: AsyncSession, *, user_id: int, product_id: int, quantity: int) -> CartItem:
    if quantity <= 0:
        raise ValidationError("Quantity must be positive", field="quantity")
    res = await db.execute(
        select(CartItem).where(CartItem.user_id == user_id, CartItem.product_id == product_id)
    )
    item = res.scalar_one_or_none()
    if item is None:
        raise NotFoundError("Cart item", product_id)
    item.quantity = quantity
    await db.flush()
    return item


async def remove_from_cart(db: AsyncSession, *, user_id: int, product_id: int) -> bool:
    res = await db.execute(
        delete(CartItem).where(CartItem.user_id == user_id, CartItem.product_id == product_id)
    )
    return bool(res.rowcount)


async def clear_cart(db: AsyncSession, *, user_id: int) -> int:
    res = await db.execute(delete(CartItem).where(CartItem.user_id == user_id))
    return res.rowcount or 0


# ── Orders ──────────────────────────────────────────────────────────

async def create_order(
    db: AsyncSession,
    buyer: User,
    *,
    customer_name: str,
    customer_phone: str,
    delivery_address: str,
    items: list[dict],
    notes: str | None = None,
) -> Order:
    """
    items: [{"product_id": int, "quantity": int}]
    """
    if not items:
        raise ValidationError("Order has no items", field="items")
    if not delivery_address.strip():
        raise ValidationError("Delivery address is required", field="deliveryAddress")

    quantities: dict[int, int] = {}
    for item in items:
        if item["quantity"] <= 0:
            raise ValidationError("Quantity must be positive", field="quantity")
        quantities[item["product_id"]] = quantities.get(item["product_id"], 0) + item["quantity"]

    products = [await get_product(db, pid) for pid in quantities]
    vendor_ids = {p.vendor_id for p in products}
    if len(vendor_ids) != 1:
        raise ValidationError("All items in an order must come from the same store", field="items")

    vendor = await db.get(Vendor, vendor_ids.pop())
    if vendor is None or vendor.status != VendorStatus.APPROVED.value:
        raise ConflictError("This store is not accepting orders")
    if vendor.user_id == buyer.id:
        raise ValidationError("You cannot order from your own store")

    order_items = []
    total = 0.0
    for product in products:
        qty = quantities[product.id]
        if product.stock_quantity is not None:
            if product.stock_quantity < qty:
                raise ConflictError(
                    f"Insufficient stock for {product.name}",
                    details={"productId": product.id, "available": product.stock_quantity},
                )
            product.stock_quantity -= qty
        line_total = round(product.price * qty, 2)
        total += line_total
        order_items.append(OrderItem(
            product_id=product.id,
            product_name=product.name,
            quantity=qty,
            unit_price=product.price,
            line_total=line_total,
        ))

    order = Order(
        buyer_id=buyer.id,
        seller_id=vendor.user_id,
        vendor_id=vendor.id,
        status=OrderStatus.PENDING.value,
        customer_name=customer_name.strip(),
        customer_phone=customer_phone.strip(),
        delivery_address=delivery_address.strip(),
        notes=notes,
        total_amount=round(total, 2),
        items=order_items,
    )
    db.add(order)
    await clear_cart(db, user_id=buyer.id)
    await db.flush()

    await notification_service.create_notification(
        db,
        user_id=vendor.user_id,
        type=NotificationType.ORDER,
        actor_id=buyer.id,
        title="New order",
        message=f"New order #{order.id} from {order.customer_name}",
    )
    logger.info(f"Order {order.id} placed by {buyer.id} at store {vendor.id} total={order.total_amount}")
    return order


async def get_order(db: AsyncSession, order_id: int) -> Order:
    res = await db.execute(select(Order).where(Order.id == order_id))
    order = res.scalar_one_or_none()
    if order is None:
        raise NotFoundError("Order", order_id)
    return order


async def get_order_for_party(db: AsyncSession, *, order_id: int, user: User) -> Order:
    """Only the buyer, the seller or an admin may see an order."""
    order = await get_order(db, order_id)
    if user.id not in (order.buyer_id, order.seller_id) and not user.is_admin:
        raise PermissionDeniedError("You do not have access to this order")
    return order


async def list_buyer_orders(db: AsyncSession, *, user_id: int) -> list[Order]:
    res = await db.execute(
        select(Order).where(Order.buyer_id == user_id).order_by(Order.created_at.desc(), Order.id.desc())
    )
    return res.scalars().all()


async def list_seller_orders(db: AsyncSession, *, user_id: int, status: str | None = None) -> list[Order]:
    query = select(Order).where(Order.seller_id == user_id).order_by(Order.created_at.desc(), Order.id.desc())
    if status:
        query = query.where(Order.status == status)
    res = await db.execute(query)
    return res.scalars().all()


async def _apply_transition(db: AsyncSession, order: Order, new_status: OrderStatus, actor: User) -> Order:
    current = OrderStatus(order.status)
    if new_status not in ORDER_TRANSITIONS[current]:
        raise InvalidTransitionError("Order", current.value, new_status.value)

    now = utcnow()
    order.status = new_status.value
    setattr(order, STATUS_TIMESTAMPS[new_status], now)
    order.updated_at = now

    if new_status == OrderStatus.CANCELLED:
        for item in order.items:
            if item.product_id is None:
                continue
            product = await db.get(Product, item.product_id)
            if product is not None and product.stock_quantity is not None:
                product.stock_quantity += item.quantity

    if actor.id != order.buyer_id:
        await notification_service.create_notification(
            db,
            user_id=order.buyer_id,
            type=NotificationType.ORDER,
            actor_id=actor.id,
            title="Order update",
            message=STATUS_MESSAGES[new_status].format(id=order.id),
        )
    await db.flush()
    logger.info(f"Order {order.id}: {current.value} -> {new_status.value} by user {actor.id}")
    return order


async def update_status(db: AsyncSession, *, order_id: int, actor: User, status: str) -> Order:
    """Seller (or admin) moves the order forward. Cancelling goes through cancel_order."""
    try:
        new_status = OrderStatus(status)
    except ValueError:
        raise ValidationError(f"Unknown order status: {status}", field="status")
    if new_status == OrderStatus.CANCELLED:
        raise ValidationError("Use the cancel endpoint with a reason to cancel an order", field="status")

    order = await get_order(db, order_id)
    if actor.id != order.seller_id and not actor.is_admin:
        raise PermissionDeniedError("Only the seller can update this order")
    return await _apply_transition(db, order, new_status, actor)


async def cancel_order(db: AsyncSession, *, order_id: int, actor: User, reason: str | None) -> Order:
    if not reason or not reason.strip():
        raise ValidationError("A cancellation reason is required", field="reason")

    order = await get_order(db, order_id)
    if actor.id not in (order.buyer_id, order.seller_id) and not actor.is_admin:
        raise PermissionDeniedError("Only the buyer or seller can cancel this order")

    order.cancellation_reason = reason.strip()
    return await _apply_transition(db, order, OrderStatus.CANCELLED, actor)


async def admin_list_orders(
    db: AsyncSession,
    *,
    status: str | None = None,
    search: str | None = None,
    limit: int = 20,
    offset: int = 0,
) -> tuple[list[Order], int]:
    filters = []
    if status:
        filters.append(Order.status == status)
    if search:
        pattern = f"%{search.strip()}%"
        filters.append(or_(
            Order.customer_name.ilike(pattern),
            Order.customer_phone.ilike(pattern),
            Order.delivery_address.ilike(pattern),
        ))

    total = (await db.execute(select(func.count(Order.id)).where(*filters))).scalar_one()
    res = await db.execute(
        select(Order).where(*filters).order_by(Order.created_at.desc(), Order.id.desc()).limit(limit).offset(offset)
    )
    return res.scalars().all(), total
