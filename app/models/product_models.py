# app/models/product_models.py
from sqlalchemy import (
    Column, Integer, String, Boolean, CheckConstraint, Index,
    ForeignKey, DateTime, func
)
from app.core.db import Base
from app.models._mixins import new_uuid, utcnow


class Product(Base):
    __tablename__ = "products"

    id = Column(String(36), primary_key=True, default=new_uuid)
    company_id = Column(String(36), ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), index=True, nullable=False)
    description = Column(String, nullable=True)
    unit_type = Column(String(50), nullable=False, default="Each")
    price_per_unit_cents = Column(Integer, default=0, nullable=False)
    currency = Column(String(3), nullable=False, default="CAD")
    # False collapses the qty x unit price breakdown to a single line total
    show_qty_unit_price = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    __table_args__ = (
        CheckConstraint(price_per_unit_cents >= 0, name="check_product_price_non_negative"),
        Index("ix_product_company_name", "company_id", "name"),
    )

    def __repr__(self):
        return f"<Product(id={self.id}, name='{self.name}')>"
