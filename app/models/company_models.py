# app/models/company_models.py
from sqlalchemy import (
    Column, String, Float, DateTime, ForeignKey, UniqueConstraint, CheckConstraint, func
)
from sqlalchemy.orm import relationship
from app.core.db import Base
from app.models._mixins import new_uuid, utcnow

MEMBER_ROLES = ("owner", "admin", "sales")


# ==================================================
# COMPANY (one per tenant)
# ==================================================
class Company(Base):
    __tablename__ = "companies"

    id = Column(String(36), primary_key=True, default=new_uuid)
    name = Column(String(255), nullable=False)
    # One bootstrapped company per owner; a racing first login hits this key
    owner_user_id = Column(String(36), nullable=True, unique=True, index=True)

    # Contact / letterhead
    phone = Column(String(50), nullable=True)
    website = Column(String(255), nullable=True)
    address = Column(String, nullable=True)
    billing_email = Column(String(255), nullable=True)
    owner_email = Column(String(255), nullable=True)

    # Quote defaults
    default_currency = Column(String(3), nullable=False, default="CAD")
    brand_color = Column(String(7), nullable=True)
    logo_url = Column(String, nullable=True)
    payment_terms = Column(String, nullable=True)
    tax_name = Column(String(50), nullable=True)
    tax_rate = Column(Float, nullable=True)

    plan = Column(String(50), nullable=False, default="free")

    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=utcnow)

    members = relationship(
        "CompanyMember",
        back_populates="company",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (
        CheckConstraint("tax_rate IS NULL OR (tax_rate >= 0 AND tax_rate <= 100)", name="check_company_tax_rate"),
    )

    def __repr__(self):
        return f"<Company(id={self.id}, name='{self.name}')>"


# ==================================================
# MEMBERSHIP (user x company x role)
# ==================================================
class CompanyMember(Base):
    __tablename__ = "company_members"

    id = Column(String(36), primary_key=True, default=new_uuid)
    company_id = Column(String(36), ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(36), nullable=False, index=True)
    email = Column(String(255), nullable=True)
    role = Column(String(20), nullable=False, default="sales")
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())

    company = relationship("Company", back_populates="members")

    __table_args__ = (
        UniqueConstraint("company_id", "user_id", name="uq_company_member"),
    )
