from sqlalchemy import Column, String, DateTime, ForeignKey, Index
from sqlalchemy.sql import func
from app.core.db import Base
from app.models._mixins import new_uuid, utcnow


class Customer(Base):
    __tablename__ = "customers"

    id = Column(String(36), primary_key=True, default=new_uuid)
    company_id = Column(String(36), ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    first_name = Column(String(120), nullable=False)
    last_name = Column(String(120), nullable=True)
    company_name = Column(String(255), nullable=True)
    billing_address = Column(String, nullable=True)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    created_by = Column(String(36), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=utcnow)

    __table_args__ = (
        Index("ix_customer_company_email", "company_id", "email"),
    )

    @property
    def display_name(self) -> str:
        full = f"{self.first_name or ''} {self.last_name or ''}".strip()
        return full or (self.company_name or "").strip() or (self.email or "").strip()
