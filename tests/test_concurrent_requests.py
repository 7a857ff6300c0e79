"""Overlapping requests against a file-backed database, one session per request."""
import asyncio

import pytest
from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.future import select
from sqlalchemy.orm import sessionmaker

from app.core.db import init_models
from app.models.company_models import Company, CompanyMember
from app.models.quote_models import Quote
from app.schemas.public_schemas import AcceptQuoteRequest
from app.schemas.quote_schema import QuoteCreate
from app.services.quote_services import acceptance_service, public_service, quote_service
from app.services.tenant_service import resolve_tenant
from tests.conftest import FakeEmailClient, make_user

FIRST_SIGNATURE = "data:image/png;base64,AAAA"
SECOND_SIGNATURE = "data:image/png;base64,BBBB"


@pytest.fixture
async def file_session_factory(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'quotes.db'}")
    await init_models(engine)
    yield sessionmaker(bind=engine, class_=AsyncSession, autoflush=False, expire_on_commit=False)
    await engine.dispose()


async def _count(factory, model):
    async with factory() as session:
        return (await session.execute(select(func.count()).select_from(model))).scalar()


async def _seed_quote(factory, user, status="Sent"):
    async with factory() as session:
        ctx = await resolve_tenant(session, user)
        quote = (await quote_service.create_quote(
            session, ctx, QuoteCreate(customer_name="Pat Customer", customer_email="pat@example.com")
        )).data
        row = await session.get(Quote, quote.id)
        row.status = status
        await session.commit()
        return quote.id


class TestFirstLogin:
    async def test_overlapping_first_requests_share_one_company(self, file_session_factory):
        user = make_user(company_name="RoofCo")

        async def first_request():
            async with file_session_factory() as session:
                ctx = await resolve_tenant(session, user)
                return ctx.company_id, ctx.role

        results = await asyncio.gather(first_request(), first_request())

        assert results[0] == results[1]
        assert results[0][1] == "owner"
        assert await _count(file_session_factory, Company) == 1
        assert await _count(file_session_factory, CompanyMember) == 1


class TestQuoteNumbers:
    async def test_overlapping_creates_get_distinct_numbers(self, file_session_factory):
        user = make_user(company_name="RoofCo")
        async with file_session_factory() as session:
            await resolve_tenant(session, user)

        async def create(name):
            async with file_session_factory() as session:
                ctx = await resolve_tenant(session, user)
                response = await quote_service.create_quote(session, ctx, QuoteCreate(customer_name=name))
                return response.data.quote_no

        numbers = await asyncio.gather(create("A"), create("B"))

        assert sorted(numbers) == [1, 2]


class TestAcceptance:
    async def test_overlapping_accepts_sign_once(self, file_session_factory):
        quote_id = await _seed_quote(file_session_factory, make_user(company_name="RoofCo"))
        email_client = FakeEmailClient()

        async def accept(signature):
            async with file_session_factory() as session:
                payload = AcceptQuoteRequest(quote_id=quote_id, signature_data_url=signature)
                return await acceptance_service.accept_quote(session, payload, email_client, "https://quotes.example.com")

        results = await asyncio.gather(accept(FIRST_SIGNATURE), accept(SECOND_SIGNATURE))

        winners = [r for r in results if not r.already_accepted]
        assert len(winners) == 1
        assert results[0].accepted_at == results[1].accepted_at
        # One admin and one customer notification, from the winner only
        assert len(email_client.sent) == 2

        async with file_session_factory() as session:
            row = await session.get(Quote, quote_id)
        assert row.status == "Accepted"
        assert row.data["acceptance"]["accepted_at"] == winners[0].accepted_at
        assert row.data["acceptance"]["signature_image_data_url"] in (FIRST_SIGNATURE, SECOND_SIGNATURE)

    async def test_stale_view_does_not_undo_acceptance(self, file_session_factory):
        quote_id = await _seed_quote(file_session_factory, make_user(company_name="RoofCo"))

        async with file_session_factory() as viewer:
            stale = await viewer.get(Quote, quote_id)
            assert stale.status == "Sent"

            async with file_session_factory() as signer:
                payload = AcceptQuoteRequest(quote_id=quote_id, signature_data_url=FIRST_SIGNATURE)
                await acceptance_service.accept_quote(signer, payload, None, "")

            moved = await public_service.mark_viewed(viewer, stale)

            assert moved is False
            assert stale.status == "Accepted"

        async with file_session_factory() as session:
            row = await session.get(Quote, quote_id)
        assert row.status == "Accepted"
