# app/models/quote_models.py
from sqlalchemy import (
    Column, Integer, String, DateTime, ForeignKey, JSON, UniqueConstraint, Index, func
)
from app.core.db import Base
from app.models._mixins import new_uuid, utcnow


# ==================================================
# QUOTE MODEL
# ==================================================
class Quote(Base):
    __tablename__ = "quotes"

    id = Column(String(36), primary_key=True, default=new_uuid)
    company_id = Column(String(36), ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    quote_no = Column(Integer, nullable=False)

    customer_id = Column(String(36), ForeignKey("customers.id", ondelete="SET NULL"), nullable=True, index=True)
    customer_name = Column(String(255), nullable=False)
    customer_email = Column(String(255), nullable=True)

    # Stored as written; compare through app.utils.quote_status.normalize_status
    status = Column(String(20), nullable=False, default="Draft")

    # Always equal to data["computed"]["total_cents"] at last save
    total_cents = Column(Integer, nullable=False, default=0)
    currency = Column(String(3), nullable=False, default="CAD")
    data = Column(JSON, nullable=False, default=dict)

    # Lineage root of a "new version" chain, never an intermediate copy
    version_of = Column(String(36), ForeignKey("quotes.id", ondelete="SET NULL"), nullable=True, index=True)

    created_by = Column(String(36), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=utcnow)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint("company_id", "quote_no", name="uq_quote_company_number"),
        Index("ix_quote_company_created", "company_id", "created_at"),
    )

    @property
    def quote_code(self) -> str:
        return f"Q-{self.quote_no}" if self.quote_no else ""

    def __repr__(self):
        return f"<Quote(id={self.id}, quote_no={self.quote_no}, status='{self.status}')>"
