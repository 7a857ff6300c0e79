# app/models/activity_models.py
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.sql import func
from app.core.db import Base
from app.models._mixins import utcnow


class UserActivity(Base):
    __tablename__ = "user_activity"

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(String(36), ForeignKey("companies.id", ondelete="CASCADE"), nullable=True, index=True)
    user_id = Column(String(36), nullable=True)
    username = Column(String, nullable=False)

    message = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
