"""
Tests for stores, products and user profile endpoints.
"""
import os, sys
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

import pytest
from sqlalchemy import func, select

from db_models import Order, OrderItem, Post, Product, Vendor, VendorCategory
from domain.errors import ConflictError, NotFoundError, PermissionDeniedError, ValidationError
from services import marketplace_service, order_service, user_service


class TestStores:

    @pytest.mark.asyncio
    async def test_seeding_is_idempotent(self, db_session):
        first = await marketplace_service.seed_vendor_categories(db_session)
        assert first > 0
        assert await marketplace_service.seed_vendor_categories(db_session) == 0
        assert len(await marketplace_service.list_categories(db_session)) == first

    @pytest.mark.asyncio
    async def test_new_store_is_pending_and_hidden(self, db_session, alice):
        vendor = await marketplace_service.create_vendor(db_session, alice, business_name="  Alice Crafts ")
        assert vendor.status == "pending"
        assert vendor.business_name == "Alice Crafts"
        assert vendor.phone == alice.phone_number
        assert await marketplace_service.list_stores(db_session) == []

    @pytest.mark.asyncio
    async def test_one_store_per_user(self, db_session, bob, store):
        with pytest.raises(ConflictError):
            await marketplace_service.create_vendor(db_session, bob, business_name="Second")

    @pytest.mark.asyncio
    async def test_category_filter(self, db_session, store):
        category = VendorCategory(name="Food", name_ar="طعام", sort_order=1)
        db_session.add(category)
        await db_session.flush()
        store.category_id = category.id
        await db_session.flush()
        assert [v.id for v in await marketplace_service.list_stores(db_session, category_id=category.id)] == [store.id]


class TestProducts:

    @pytest.mark.asyncio
    async def test_product_requires_store(self, db_session, alice):
        with pytest.raises(PermissionDeniedError):
            await marketplace_service.create_product(db_session, alice, name="Tea", price=3.0)

    @pytest.mark.asyncio
    async def test_price_must_be_positive(self, db_session, bob, store):
        with pytest.raises(ValidationError):
            await marketplace_service.create_product(db_session, bob, name="Free", price=0)

    @pytest.mark.asyncio
    async def test_products_of_suspended_store_hidden(self, db_session, store, product):
        assert [p.id for p in await marketplace_service.list_products(db_session)] == [product.id]
        await marketplace_service.set_vendor_status(db_session, vendor_id=store.id, status="suspended")
        assert await marketplace_service.list_products(db_session) == []


class TestAccountDeletion:

    @pytest.mark.asyncio
    async def test_deleted_owner_store_stops_selling(self, db_session, alice, bob, store, product):
        product_id = product.id
        placed = await order_service.create_order(
            db_session, alice, items=[{"product_id": product_id, "quantity": 1}],
            customer_name="Alice", customer_phone="+966500000001", delivery_address="King Fahd Rd 1",
        )
        db_session.add(Post(user_id=bob.id, content="Fresh bread"))
        await db_session.commit()
        order_id = placed.id

        await user_service.delete_account(db_session, bob)
        await db_session.commit()

        assert await marketplace_service.list_stores(db_session) == []
        assert await marketplace_service.list_products(db_session) == []
        with pytest.raises(NotFoundError):
            await order_service.create_order(
                db_session, alice, items=[{"product_id": product_id, "quantity": 1}],
                customer_name="Alice", customer_phone="+966500000001", delivery_address="King Fahd Rd 1",
            )

        for model in (Vendor, Product, Post, Order, OrderItem):
            count = await db_session.scalar(select(func.count()).select_from(model))
            assert count == 0, model.__name__
        assert await db_session.get(Order, order_id) is None

    @pytest.mark.asyncio
    async def test_buyer_deletion_keeps_store(self, db_session, alice, store, product):
        await user_service.delete_account(db_session, alice)
        await db_session.commit()
        assert [v.id for v in await marketplace_service.list_stores(db_session)] == [store.id]


class TestProfileEndpoints:

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_update_profile_and_search(self, client, alice, bob, auth_headers):
        headers = await auth_headers(alice)
        updated = await client.put(
            "/api/user/profile", headers=headers, json={"name": "Alice A", "location": "Dammam", "bio": "hi"}
        )
        assert updated.status_code == 200, updated.text
        assert updated.json()["data"]["location"] == "Dammam"

        found = await client.get("/api/users/search", headers=headers, params={"q": "bo"})
        assert [u["name"] for u in found.json()["data"]] == ["Bob"]

        current = await client.get("/api/user/current", headers=headers)
        assert current.json()["data"]["name"] == "Alice A"

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_delete_account_ends_session(self, client, alice, auth_headers):
        headers = await auth_headers(alice)
        deleted = await client.delete("/api/user/delete-account", headers=headers)
        assert deleted.json()["data"] == {"deleted": True}
        after = await client.get("/api/user/current", headers=headers)
        assert after.status_code == 401
