"""
Tests for cart and order lifecycle.

Tests: server-side pricing, single-store rule, stock reservation and
restoration, status transitions, access control, HTTP checkout flow.
"""
import os, sys
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

import pytest
from sqlalchemy import select

from db_models import CartItem, Product, SocialNotification, Vendor
from domain.errors import (
    ConflictError, InvalidTransitionError, PermissionDeniedError, ValidationError,
)
from services import order_service

DETAILS = dict(customer_name="Alice", customer_phone="+966500000001", delivery_address="King Fahd Rd 1")


async def _place(db, buyer, product, quantity=2):
    return await order_service.create_order(
        db, buyer, items=[{"product_id": product.id, "quantity": quantity}], **DETAILS
    )


class TestCart:

    @pytest.mark.asyncio
    async def test_adding_twice_increments(self, db_session, alice, product):
        await order_service.add_to_cart(db_session, user_id=alice.id, product_id=product.id, quantity=1)
        item = await order_service.add_to_cart(db_session, user_id=alice.id, product_id=product.id, quantity=2)
        assert item.quantity == 3
        assert len(await order_service.get_cart(db_session, user_id=alice.id)) == 1

    @pytest.mark.asyncio
    async def test_zero_quantity_rejected(self, db_session, alice, product):
        await order_service.add_to_cart(db_session, user_id=alice.id, product_id=product.id)
        with pytest.raises(ValidationError):
            await order_service.update_cart_quantity(db_session, user_id=alice.id, product_id=product.id, quantity=0)

    @pytest.mark.asyncio
    async def test_remove_and_clear(self, db_session, alice, product):
        await order_service.add_to_cart(db_session, user_id=alice.id, product_id=product.id)
        assert await order_service.remove_from_cart(db_session, user_id=alice.id, product_id=product.id) is True
        assert await order_service.remove_from_cart(db_session, user_id=alice.id, product_id=product.id) is False
        assert await order_service.clear_cart(db_session, user_id=alice.id) == 0


class TestCreateOrder:

    @pytest.mark.asyncio
    async def test_prices_from_catalog_and_reserves_stock(self, db_session, alice, bob, product):
        order = await _place(db_session, alice, product, quantity=2)

        assert order.status == "pending"
        assert order.seller_id == bob.id
        assert order.total_amount == 25.0
        assert [(i.product_name, i.quantity, i.unit_price) for i in order.items] == [("Date cake", 2, 12.5)]
        assert product.stock_quantity == 3

    @pytest.mark.asyncio
    async def test_clears_cart_and_notifies_seller(self, db_session, alice, bob, product):
        await order_service.add_to_cart(db_session, user_id=alice.id, product_id=product.id)
        await _place(db_session, alice, product, quantity=1)

        cart = (await db_session.execute(select(CartItem).where(CartItem.user_id == alice.id))).scalars().all()
        assert cart == []
        notes = (await db_session.execute(
            select(SocialNotification).where(SocialNotification.user_id == bob.id)
        )).scalars().all()
        assert [n.type for n in notes] == ["order"]

    @pytest.mark.asyncio
    async def test_insufficient_stock(self, db_session, alice, product):
        with pytest.raises(ConflictError) as exc_info:
            await _place(db_session, alice, product, quantity=6)
        assert exc_info.value.details["available"] == 5

    @pytest.mark.asyncio
    async def test_items_from_two_stores_rejected(self, db_session, alice, make_user, product):
        other_owner = await make_user(name="Carol")
        other_store = Vendor(user_id=other_owner.id, business_name="Carol's", status="approved")
        db_session.add(other_store)
        await db_session.flush()
        other_product = Product(vendor_id=other_store.id, name="Tea", price=3.0)
        db_session.add(other_product)
        await db_session.flush()

        with pytest.raises(ValidationError, match="same store"):
            await order_service.create_order(
                db_session,
                alice,
                items=[{"product_id": product.id, "quantity": 1}, {"product_id": other_product.id, "quantity": 1}],
                **DETAILS,
            )

    @pytest.mark.asyncio
    async def test_pending_store_rejects_orders(self, db_session, alice, store, product):
        store.status = "pending"
        await db_session.flush()
        with pytest.raises(ConflictError):
            await _place(db_session, alice, product)

    @pytest.mark.asyncio
    async def test_cannot_order_from_own_store(self, db_session, bob, product):
        with pytest.raises(ValidationError):
            await _place(db_session, bob, product)


class TestTransitions:

    @pytest.mark.asyncio
    async def test_seller_moves_order_forward(self, db_session, alice, bob, product):
        order = await _place(db_session, alice, product)
        for status in ("confirmed", "prepared", "delivered"):
            order = await order_service.update_status(db_session, order_id=order.id, actor=bob, status=status)
        assert order.status == "delivered"
        assert order.confirmed_at and order.prepared_at and order.delivered_at

    @pytest.mark.asyncio
    async def test_skipping_a_step_is_409(self, db_session, alice, bob, product):
        order = await _place(db_session, alice, product)
        with pytest.raises(InvalidTransitionError) as exc_info:
            await order_service.update_status(db_session, order_id=order.id, actor=bob, status="delivered")
        assert exc_info.value.status_code == 409
        assert exc_info.value.details == {"current": "pending", "requested": "delivered"}

    @pytest.mark.asyncio
    async def test_buyer_cannot_update_status(self, db_session, alice, product):
        order = await _place(db_session, alice, product)
        with pytest.raises(PermissionDeniedError):
            await order_service.update_status(db_session, order_id=order.id, actor=alice, status="confirmed")

    @pytest.mark.asyncio
    async def test_cancel_requires_reason(self, db_session, alice, product):
        order = await _place(db_session, alice, product)
        with pytest.raises(ValidationError):
            await order_service.cancel_order(db_session, order_id=order.id, actor=alice, reason="  ")

    @pytest.mark.asyncio
    async def test_cancel_restores_stock(self, db_session, alice, product):
        order = await _place(db_session, alice, product, quantity=2)
        assert product.stock_quantity == 3
        order = await order_service.cancel_order(db_session, order_id=order.id, actor=alice, reason="Changed my mind")
        assert order.status == "cancelled"
        assert order.cancellation_reason == "Changed my mind"
        assert product.stock_quantity == 5

    @pytest.mark.asyncio
    async def test_confirmed_order_cannot_be_cancelled(self, db_session, alice, bob, product):
        order = await _place(db_session, alice, product)
        await order_service.update_status(db_session, order_id=order.id, actor=bob, status="confirmed")
        with pytest.raises(InvalidTransitionError):
            await order_service.cancel_order(db_session, order_id=order.id, actor=alice, reason="late")

    @pytest.mark.asyncio
    async def test_stranger_cannot_view_order(self, db_session, alice, make_user, product):
        order = await _place(db_session, alice, product)
        stranger = await make_user(name="Eve")
        with pytest.raises(PermissionDeniedError):
            await order_service.get_order_for_party(db_session, order_id=order.id, user=stranger)


class TestOrderEndpoints:

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_checkout_flow(self, client, alice, bob, product, auth_headers):
        buyer = await auth_headers(alice)
        seller = await auth_headers(bob)

        added = await client.post("/api/cart", headers=buyer, json={"productId": product.id, "quantity": 2})
        assert added.status_code == 200, added.text
        assert added.json()["data"]["total"] == 25.0

        placed = await client.post(
            "/api/orders",
            headers=buyer,
            json={
                "order": {"customerName": "Alice", "customerPhone": "+966500000001", "deliveryAddress": "Street 1"},
                "items": [{"productId": product.id, "quantity": 2}],
            },
        )
        assert placed.status_code == 200, placed.text
        order = placed.json()["data"]
        assert order["status"] == "pending"
        assert order["totalAmount"] == 25.0

        incoming = await client.get("/api/orders/seller", headers=seller)
        assert [o["id"] for o in incoming.json()["data"]] == [order["id"]]

        confirmed = await client.put(f"/api/orders/{order['id']}/status", headers=seller, json={"status": "confirmed"})
        assert confirmed.json()["data"]["status"] == "confirmed"

        bad = await client.put(f"/api/orders/{order['id']}/status", headers=seller, json={"status": "pending"})
        assert bad.status_code == 409
        assert bad.json()["error"]["code"] == "invalidtransition"

        cart = await client.get("/api/cart", headers=buyer)
        assert cart.json()["data"]["items"] == []
