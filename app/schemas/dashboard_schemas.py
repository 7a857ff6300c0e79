# app/schemas/dashboard_schemas.py
from typing import List, Optional

from pydantic import BaseModel

from app.schemas.quote_schema import QuoteSummaryOut


class DashboardKpis(BaseModel):
    draft_count: int = 0
    sent_count: int = 0
    accepted_count: int = 0
    pipeline_cents: int = 0
    accepted_cents: int = 0
    close_rate: Optional[int] = None


class DashboardSummaryResponse(BaseModel):
    message: str
    kpis: DashboardKpis
    recent: List[QuoteSummaryOut]
