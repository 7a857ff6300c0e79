# app/services/dashboard_service.py
from sqlalchemy import desc
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from app.models.quote_models import Quote
from app.schemas.dashboard_schemas import DashboardKpis, DashboardSummaryResponse
from app.schemas.quote_schema import QuoteSummaryOut
from app.utils.quote_calculator import round_half_up
from app.utils.quote_status import QuoteStatus, normalize_status

RECENT_LIMIT = 8


def compute_kpis(quotes) -> DashboardKpis:
    """
    Open pipeline is Draft + Sent + Viewed; Accepted counts toward value
    and close rate; Cancelled is ignored everywhere.
    """
    kpis = DashboardKpis()
    for quote in quotes:
        status = normalize_status(quote.status)
        total = int(quote.total_cents or 0)
        if status == QuoteStatus.accepted:
            kpis.accepted_count += 1
            kpis.accepted_cents += total
        elif status in (QuoteStatus.sent, QuoteStatus.viewed):
            kpis.sent_count += 1
            kpis.pipeline_cents += total
        elif status == QuoteStatus.draft:
            kpis.draft_count += 1
            kpis.pipeline_cents += total

    denom = kpis.accepted_count + kpis.sent_count + kpis.draft_count
    kpis.close_rate = round_half_up(kpis.accepted_count / denom * 100) if denom else None
    return kpis


async def get_summary(db: AsyncSession, ctx) -> DashboardSummaryResponse:
    result = await db.execute(
        select(Quote)
        .where(Quote.company_id == ctx.company_id)
        .order_by(desc(Quote.created_at), desc(Quote.quote_no))
    )
    quotes = result.scalars().all()

    return DashboardSummaryResponse(
        message="Dashboard summary retrieved successfully",
        kpis=compute_kpis(quotes),
        recent=[QuoteSummaryOut.model_validate(q) for q in quotes[:RECENT_LIMIT]],
    )
