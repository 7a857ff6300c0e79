import json
import os
import time
from urllib.parse import unquote

# Configuration is read at import time, so the environment is fixed up first
os.environ["DB_TYPE"] = "sqlite"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["AUTO_CREATE_TABLES"] = "false"
os.environ["SUPABASE_JWT_SECRET"] = "test-jwt-secret"
os.environ["SUPABASE_URL"] = ""
os.environ["SUPABASE_SERVICE_ROLE_KEY"] = ""
os.environ["POSTMARK_SERVER_TOKEN"] = ""
os.environ["POSTMARK_FROM_EMAIL"] = ""
os.environ["ADMIN_NOTIFY_EMAIL"] = "alerts@example.com"
os.environ["REPLY_TO_EMAIL"] = ""
os.environ["PUBLIC_BASE_URL"] = "https://quotes.example.com"
os.environ["DEFAULT_TIMEZONE"] = "America/Toronto"

import httpx
import pytest
from httpx import ASGITransport
from jose import jwt
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.db import get_db, init_models
from app.core.exceptions import UpstreamError
from app.services.email_service import get_email_client
from app.services.supabase_admin import SupabaseAdmin, get_supabase_admin
from app.services.tenant_service import resolve_tenant
from app.utils.get_user import AuthUser
from main import app

SUPABASE_TEST_URL = "https://project.supabase.test"


# --------------------------
# Database
# --------------------------
@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _fk_on(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    await init_models(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, class_=AsyncSession, autoflush=False, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


# --------------------------
# Callers
# --------------------------
def make_user(user_id="user-owner", email="jacob.docherty@example.com", **metadata) -> AuthUser:
    return AuthUser(id=user_id, email=email, user_metadata=metadata)


def make_token(user_id="user-owner", email="jacob.docherty@example.com", metadata=None, expires_in=3600) -> str:
    claims = {
        "sub": user_id,
        "email": email,
        "aud": "authenticated",
        "exp": int(time.time()) + expires_in,
        "user_metadata": metadata or {},
    }
    return jwt.encode(claims, os.environ["SUPABASE_JWT_SECRET"], algorithm="HS256")


def auth_headers(user_id="user-owner", email="jacob.docherty@example.com", metadata=None) -> dict:
    return {"Authorization": f"Bearer {make_token(user_id, email, metadata)}"}


@pytest.fixture
async def owner_ctx(db):
    return await resolve_tenant(db, make_user(company_name="RoofCo"))


@pytest.fixture
async def other_ctx(db):
    return await resolve_tenant(db, make_user("user-rival", "boss@rival.com", company_name="Rival Roofing"))


# --------------------------
# External services
# --------------------------
class FakeEmailClient:
    """Stands in for PostmarkClient; records what would have been sent."""

    def __init__(self):
        self.sent = []
        self.fail = False

    async def send(self, message):
        if self.fail:
            raise UpstreamError("postmark", "422 Inactive recipient", 422)
        self.sent.append(message)


class FakeSupabaseBackend:
    """In-memory Storage + Auth admin API served through httpx.MockTransport."""

    def __init__(self):
        self.objects = {}
        self.remote = {}
        self.invites = []
        self.invite_status = 200

    def put(self, bucket, path, content, content_type="image/png"):
        self.objects[(bucket, path)] = (content, content_type)

    def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        if url in self.remote:
            content, content_type = self.remote[url]
            return httpx.Response(200, content=content, headers={"content-type": content_type})

        path = unquote(request.url.path)
        if path == "/auth/v1/admin/generate_link":
            body = json.loads(request.content)
            self.invites.append(body)
            if self.invite_status >= 400:
                return httpx.Response(self.invite_status, json={"msg": "User not allowed"})
            return httpx.Response(
                200,
                json={
                    "id": f"invited-{body['email']}",
                    "email": body["email"],
                    "action_link": "https://project.supabase.test/auth/v1/verify?token=abc&type=invite",
                },
            )

        if path.startswith("/storage/v1/object/list/"):
            bucket = path.rsplit("/", 1)[1]
            prefix = json.loads(request.content)["prefix"].rstrip("/") + "/"
            names = sorted(p[len(prefix):] for (b, p) in self.objects if b == bucket and p.startswith(prefix))
            return httpx.Response(200, json=[{"name": n} for n in names])

        if path.startswith("/storage/v1/object/"):
            bucket, obj = path[len("/storage/v1/object/"):].split("/", 1)
            if request.method == "POST":
                self.put(bucket, obj, request.content, request.headers.get("content-type"))
                return httpx.Response(200, json={"Key": f"{bucket}/{obj}"})
            hit = self.objects.get((bucket, obj))
            if hit is None:
                return httpx.Response(400, json={"error": "not_found"})
            return httpx.Response(200, content=hit[0], headers={"content-type": hit[1]})

        return httpx.Response(404)


@pytest.fixture
def email_client():
    return FakeEmailClient()


@pytest.fixture
def supabase_backend():
    return FakeSupabaseBackend()


@pytest.fixture
def supabase_admin(supabase_backend):
    return SupabaseAdmin(SUPABASE_TEST_URL, "service-role-key", transport=httpx.MockTransport(supabase_backend.handler))


# --------------------------
# HTTP client
# --------------------------
@pytest.fixture
async def client(session_factory, email_client, supabase_admin):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_email_client] = lambda: email_client
    app.dependency_overrides[get_supabase_admin] = lambda: supabase_admin

    async with httpx.AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as ac:
        yield ac

    app.dependency_overrides.clear()
