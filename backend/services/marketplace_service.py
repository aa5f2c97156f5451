"""
Marketplace: vendor categories, stores and their products.

Only what cart and orders need: no catalog search, ratings or promotions.
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from db_models import Product, User, Vendor, VendorCategory, utcnow
from domain.constants import DEFAULT_VENDOR_CATEGORIES
from domain.enums import VendorStatus
from domain.errors import ConflictError, InvalidTransitionError, NotFoundError, PermissionDeniedError, ValidationError

logger = logging.getLogger(__name__)


async def seed_vendor_categories(db: AsyncSession) -> int:
    res = await db.execute(select(VendorCategory.name))
    existing = set(res.scalars().all())
    added = 0
    for name, name_ar, icon, sort_order in DEFAULT_VENDOR_CATEGORIES:
        if name in existing:
            continue
        db.add(VendorCategory(name=name, name_ar=name_ar, icon=icon, sort_order=sort_order))
        added += 1
    if added:
        await db.flush()
        logger.info(f"Seeded {added} vendor categor{'y' if added == 1 else 'ies'}")
    return added


async def list_categories(db: AsyncSession) -> list[VendorCategory]:
    res = await db.execute(
        select(VendorCategory)
        .where(VendorCategory.is_active == True)  # noqa: E712
        .order_by(VendorCategory.sort_order)
    )
    return res.scalars().all()


async def create_vendor(
    db: AsyncSession,
    owner: User,
    *,
    business_name: str,
    category_id: int | None = None,
    description: str | None = None,
    location: str | None = None,
    address: str | None = None,
    phone: str | None = None,
    logo: str | None = None,
) -> Vendor:
    res = await db.execute(select(Vendor).where(Vendor.user_id == owner.id))
    if res.scalar_one_or_none() is not None:
        raise ConflictError("You already have a store")
    if not business_name.strip():
        raise ValidationError("Business name is required", field="businessName")
    if category_id is not None and await db.get(VendorCategory, category_id) is None:
        raise NotFoundError("Vendor category", category_id)

    vendor = Vendor(
        user_id=owner.id,
        business_name=business_name.strip(),
        display_name=business_name.strip(),
        category_id=category_id,
        description=description,
        location=location or owner.location,
        address=address,
        phone=phone or owner.phone_number,
        logo=logo,
        status=VendorStatus.PENDING.value,
    )
    db.add(vendor)
    await db.flush()
    logger.info(f"Store {vendor.id} '{vendor.business_name}' created by user {owner.id}")
    return vendor


async def get_vendor(db: AsyncSession, vendor_id: int) -> Vendor:
    vendor = await db.get(Vendor, vendor_id)
    if vendor is None:
        raise NotFoundError("Store", vendor_id)
    return vendor


async def get_user_vendor(db: AsyncSession, user_id: int) -> Vendor | None:
    res = await db.execute(select(Vendor).where(Vendor.user_id == user_id))
    return res.scalar_one_or_none()


async def list_stores(
    db: AsyncSession,
    *,
    status: str | None = VendorStatus.APPROVED.value,
    location: str | None = None,
    category_id: int | None = None,
) -> list[Vendor]:
    query = select(Vendor).order_by(Vendor.is_featured.desc(), Vendor.created_at.desc())
    if status:
        query = query.where(Vendor.status == status)
    if location:
        query = query.where(Vendor.location == location)
    if category_id is not None:
        query = query.where(Vendor.category_id == category_id)
    res = await db.execute(query)
    return res.scalars().all()


async def set_vendor_status(db: AsyncSession, *, vendor_id: int, status: str) -> Vendor:
    try:
        new_status = VendorStatus(status)
    except ValueError:
        raise ValidationError(f"Unknown store status: {status}", field="status")
    vendor = await get_vendor(db, vendor_id)
    if vendor.status == new_status.value:
        raise InvalidTransitionError("Store", vendor.status, new_status.value)
    vendor.status = new_status.value
    vendor.updated_at = utcnow()
    await db.flush()
    logger.info(f"Store {vendor_id} status -> {new_status.value}")
    return vendor


async def create_product(
    db: AsyncSession,
    owner: User,
    *,
    name: str,
    price: float,
    description: str | None = None,
    image_url: str | None = None,
    category: str | None = None,
    stock_quantity: int | None = None,
) -> Product:
    vendor = await get_user_vendor(db, owner.id)
    if vendor is None:
        raise PermissionDeniedError("Create a store before adding products")
    if price <= 0:
        raise ValidationError("Price must be positive", field="price")

    product = Product(
        vendor_id=vendor.id,
        name=name.strip(),
        price=price,
        description=description,
        image_url=image_url,
        category=category,
        stock_quantity=stock_quantity,
    )
    db.add(product)
    await db.flush()
    return product


async def get_product(db: AsyncSession, product_id: int, *, active_only: bool = True) -> Product:
    product = await db.get(Product, product_id)
    if product is None or (active_only and not product.is_active):
        raise NotFoundError("Product", product_id)
    return product


async def list_products(db: AsyncSession, *, vendor_id: int | None = None, limit: int = 50, offset: int = 0) -> list[Product]:
    query = (
        select(Product)
        .join(Vendor, Vendor.id == Product.vendor_id)
        .where(Product.is_active == True, Vendor.status == VendorStatus.APPROVED.value)  # noqa: E712
        .order_by(Product.created_at.desc())
        .limit(limit)
        .offset(offset)
    )
    if vendor_id is not None:
        query = query.where(Product.vendor_id == vendor_id)
    res = await db.execute(query)
    return res.scalars().all()
