# app/services/product_service.py
from typing import Optional

from fastapi import HTTPException
from sqlalchemy import desc, func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from app.core.config import DEFAULT_CURRENCY
from app.models.product_models import Product
from app.schemas.product_schemas import (
    ProductCreate,
    ProductListResponse,
    ProductOut,
    ProductResponse,
    ProductUpdate,
)
from app.utils.activity_helpers import log_tenant_activity

SEARCH_MAX_LEN = 80


def escape_like(term: str) -> str:
    """Make % and _ match literally inside an ILIKE pattern."""
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def product_to_line_item(product: Product) -> dict:
    """Copy a catalog entry into a quote line; later catalog edits never reach the quote."""
    return {
        "product_id": product.id,
        "name": product.name or "",
        "description": product.description or "",
        "unit_type": product.unit_type or "Each",
        "show_qty_unit_price": bool(product.show_qty_unit_price),
        "qty": 1,
        "unit_price_cents": int(product.price_per_unit_cents or 0),
        "taxable": True,
    }


async def _get_owned(db: AsyncSession, ctx, product_id: str) -> Product:
    product = await db.get(Product, product_id)
    if not product or product.company_id != ctx.company_id:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


# --------------------------
# Create Product
# --------------------------
async def create_product(db: AsyncSession, ctx, data: ProductCreate) -> ProductResponse:
    values = data.model_dump()
    values["currency"] = values.get("currency") or ctx.company.default_currency or DEFAULT_CURRENCY
    values["description"] = values.get("description") or None
    product = Product(**values, company_id=ctx.company_id)
    db.add(product)
    await log_tenant_activity(db, ctx, f"Created product '{product.name}'")
    await db.commit()
    await db.refresh(product)
    return ProductResponse(message="Product created successfully", data=ProductOut.model_validate(product))


# --------------------------
# Get Product
# --------------------------
async def get_product(db: AsyncSession, ctx, product_id: str) -> ProductResponse:
    product = await _get_owned(db, ctx, product_id)
    return ProductResponse(message="Product retrieved successfully", data=ProductOut.model_validate(product))


# --------------------------
# List Products
# --------------------------
async def list_products(db: AsyncSession, ctx, search: Optional[str] = None, limit: int = 200) -> ProductListResponse:
    query = select(Product).where(Product.company_id == ctx.company_id)

    term = (search or "").strip()[:SEARCH_MAX_LEN]
    if term:
        pattern = f"%{escape_like(term)}%"
        query = query.where(
            or_(
                Product.name.ilike(pattern, escape="\\"),
                Product.description.ilike(pattern, escape="\\"),
                Product.unit_type.ilike(pattern, escape="\\"),
            )
        )

    total_result = await db.execute(select(func.count()).select_from(query.subquery()))
    total = total_result.scalar() or 0

    result = await db.execute(query.order_by(desc(Product.updated_at), desc(Product.created_at)).limit(limit))
    products = result.scalars().all()

    return ProductListResponse(
        message="Products retrieved successfully",
        total=total,
        data=[ProductOut.model_validate(p) for p in products],
    )


# --------------------------
# Update Product
# --------------------------
async def update_product(db: AsyncSession, ctx, product_id: str, data: ProductUpdate) -> ProductResponse:
    product = await _get_owned(db, ctx, product_id)
    changes = data.model_dump(exclude_unset=True)
    # Required columns ignore explicit nulls
    for required in ("name", "unit_type", "price_per_unit_cents", "currency", "show_qty_unit_price"):
        if required in changes and changes[required] in (None, ""):
            changes.pop(required)
    for key, value in changes.items():
        setattr(product, key, value)

    await log_tenant_activity(db, ctx, f"Updated product '{product.name}'")
    await db.commit()
    await db.refresh(product)
    return ProductResponse(message="Product updated successfully", data=ProductOut.model_validate(product))


# --------------------------
# Delete Product
# --------------------------
async def delete_product(db: AsyncSession, ctx, product_id: str) -> ProductResponse:
    product = await _get_owned(db, ctx, product_id)
    response = ProductResponse(message="Product deleted successfully", data=ProductOut.model_validate(product))
    await db.delete(product)
    await log_tenant_activity(db, ctx, f"Deleted product '{product.name}'")
    await db.commit()
    return response
