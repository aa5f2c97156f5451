"""
Marketplace endpoints: vendor categories, stores and products.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from db_models import User
from deps import require_auth, require_feature
from domain.responses import success_response
from models import ProductOut, VendorCategoryOut, VendorOut, dump, dump_all
from services import marketplace_service

logger = logging.getLogger(__name__)
router = APIRouter(
    prefix="/api",
    tags=["marketplace"],
    dependencies=[Depends(require_feature("marketplace"))],
)


class VendorCreateRequest(BaseModel):
    business_name: str = Field(..., alias="businessName", min_length=1, max_length=150)
    category_id: Optional[int] = Field(default=None, alias="categoryId")
    description: Optional[str] = Field(default=None, max_length=2000)
    location: Optional[str] = Field(default=None, max_length=100)
    address: Optional[str] = None
    phone: Optional[str] = Field(default=None, max_length=32)
    logo: Optional[str] = None


class ProductCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    price: float = Field(..., gt=0)
    description: Optional[str] = Field(default=None, max_length=2000)
    image_url: Optional[str] = Field(default=None, alias="imageUrl")
    category: Optional[str] = Field(default=None, max_length=100)
    stock_quantity: Optional[int] = Field(default=None, alias="stockQuantity", ge=0)


@router.get("/vendor-categories")
async def list_categories(db: AsyncSession = Depends(get_db)):
    return success_response(data=dump_all(VendorCategoryOut, await marketplace_service.list_categories(db)))


@router.post("/vendors")
async def create_vendor(
    request: VendorCreateRequest,
    user: User = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    vendor = await marketplace_service.create_vendor(
        db,
        user,
        business_name=request.business_name,
        category_id=request.category_id,
        description=request.description,
        location=request.location,
        address=request.address,
        phone=request.phone,
        logo=request.logo,
    )
    await db.commit()
    return success_response(data=dump(VendorOut, vendor))


@router.get("/user/vendor")
async def my_vendor(
    user: User = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    vendor = await marketplace_service.get_user_vendor(db, user.id)
    return success_response(data=dump(VendorOut, vendor) if vendor else None)


@router.get("/stores")
async def list_stores(
    location: Optional[str] = Query(None, max_length=100),
    category_id: Optional[int] = Query(None, alias="categoryId"),
    db: AsyncSession = Depends(get_db),
):
    stores = await marketplace_service.list_stores(db, location=location, category_id=category_id)
    return success_response(data=dump_all(VendorOut, stores), meta={"total": len(stores)})


@router.get("/vendors/{vendor_id}")
async def get_vendor(vendor_id: int, db: AsyncSession = Depends(get_db)):
    return success_response(data=dump(VendorOut, await marketplace_service.get_vendor(db, vendor_id)))


@router.get("/vendors/{vendor_id}/products")
async def vendor_products(vendor_id: int, db: AsyncSession = Depends(get_db)):
    products = await marketplace_service.list_products(db, vendor_id=vendor_id)
    return success_response(data=dump_all(ProductOut, products))


@router.post("/products")
async def create_product(
    request: ProductCreateRequest,
    user: User = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    product = await marketplace_service.create_product(
        db,
        user,
        name=request.name,
        price=request.price,
        description=request.description,
        image_url=request.image_url,
        category=request.category,
        stock_quantity=request.stock_quantity,
    )
    await db.commit()
    return success_response(data=dump(ProductOut, product))


@router.get("/products")
async def list_products(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
):
    products = await marketplace_service.list_products(db, limit=limit, offset=offset)
    return success_response(data=dump_all(ProductOut, products), meta={"limit": limit, "offset": offset})


@router.get("/products/{product_id}")
async def get_product(product_id: int, db: AsyncSession = Depends(get_db)):
    return success_response(data=dump(ProductOut, await marketplace_service.get_product(db, product_id)))
