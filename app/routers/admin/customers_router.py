# app/routers/admin/customers_router.py
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.schemas.customer_schema import (
    CustomerCreate,
    CustomerListResponse,
    CustomerQuotesResponse,
    CustomerResponse,
    CustomerUpdate,
)
from app.services import customer_service
from app.utils.check_roles import ADMIN_ROLES, ALL_ROLES, require_role
from app.utils.get_user import get_tenant

router = APIRouter(prefix="/customers", tags=["Customers"])

# CREATE
@router.post("", response_model=CustomerResponse, status_code=status.HTTP_201_CREATED)
@require_role(ALL_ROLES)
async def create_customer_route(
    customer: CustomerCreate,
    db: AsyncSession = Depends(get_db),
    _ctx=Depends(get_tenant)
):
    return await customer_service.create_customer(db, _ctx, customer)


# GET ALL WITH SEARCH
@router.get("", response_model=CustomerListResponse)
@require_role(ALL_ROLES)
async def list_customers_route(
    db: AsyncSession = Depends(get_db),
    _ctx=Depends(get_tenant),
    search: Optional[str] = Query(None, description="Name, company, email, phone or address"),
    limit: int = Query(50, ge=1, le=500, description="Limit number of results"),
):
    return await customer_service.list_customers(db, _ctx, search, limit)


# GET SINGLE
@router.get("/{customer_id}", response_model=CustomerResponse)
@require_role(ALL_ROLES)
async def get_customer_route(
    customer_id: str,
    db: AsyncSession = Depends(get_db),
    _ctx=Depends(get_tenant)
):
    return await customer_service.get_customer(db, _ctx, customer_id)


# QUOTE HISTORY
@router.get("/{customer_id}/quotes", response_model=CustomerQuotesResponse)
@require_role(ALL_ROLES)
async def customer_quotes_route(
    customer_id: str,
    db: AsyncSession = Depends(get_db),
    _ctx=Depends(get_tenant)
):
    return await customer_service.get_customer_quotes(db, _ctx, customer_id)


# UPDATE
@router.put("/{customer_id}", response_model=CustomerResponse)
@require_role(ALL_ROLES)
async def update_customer_route(
    customer_id: str,
    customer: CustomerUpdate,
    db: AsyncSession = Depends(get_db),
    _ctx=Depends(get_tenant)
):
    return await customer_service.update_customer(db, _ctx, customer_id, customer)


# DELETE
@router.delete("/{customer_id}", response_model=CustomerResponse)
@require_role(ADMIN_ROLES)
async def delete_customer_route(
    customer_id: str,
    db: AsyncSession = Depends(get_db),
    _ctx=Depends(get_tenant)
):
    return await customer_service.delete_customer(db, _ctx, customer_id)
