# app/routers/admin/products_router.py
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.schemas.product_schemas import (
    ProductCreate,
    ProductListResponse,
    ProductResponse,
    ProductUpdate,
)
from app.services import product_service
from app.utils.check_roles import ADMIN_ROLES, ALL_ROLES, require_role
from app.utils.get_user import get_tenant

router = APIRouter(prefix="/products", tags=["Products"])


# --------------------------
# Create Product
# --------------------------
@router.post("", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
@require_role(ALL_ROLES)
async def create_product_route(
    product: ProductCreate,
    db: AsyncSession = Depends(get_db),
    _ctx=Depends(get_tenant)
):
    return await product_service.create_product(db, _ctx, product)


# --------------------------
# List Products
# --------------------------
@router.get("", response_model=ProductListResponse)
@require_role(ALL_ROLES)
async def list_products_route(
    db: AsyncSession = Depends(get_db),
    _ctx=Depends(get_tenant),
    search: Optional[str] = Query(None, description="Name, description or unit type"),
    limit: int = Query(200, ge=1, le=500),
):
    return await product_service.list_products(db, _ctx, search, limit)


# --------------------------
# Get Product
# --------------------------
@router.get("/{product_id}", response_model=ProductResponse)
@require_role(ALL_ROLES)
async def get_product_route(
    product_id: str,
    db: AsyncSession = Depends(get_db),
    _ctx=Depends(get_tenant)
):
    return await product_service.get_product(db, _ctx, product_id)


# --------------------------
# Update Product
# --------------------------
@router.put("/{product_id}", response_model=ProductResponse)
@require_role(ALL_ROLES)
async def update_product_route(
    product_id: str,
    product: ProductUpdate,
    db: AsyncSession = Depends(get_db),
    _ctx=Depends(get_tenant)
):
    return await product_service.update_product(db, _ctx, product_id, product)


# --------------------------
# Delete Product
# --------------------------
@router.delete("/{product_id}", response_model=ProductResponse)
@require_role(ADMIN_ROLES)
async def delete_product_route(
    product_id: str,
    db: AsyncSession = Depends(get_db),
    _ctx=Depends(get_tenant)
):
    return await product_service.delete_product(db, _ctx, product_id)
