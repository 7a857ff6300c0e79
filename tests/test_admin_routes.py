"""Authenticated workspace routes: company, team, customers, products, quotes, dashboard."""
from app.models.company_models import CompanyMember
from app.models.quote_models import Quote
from app.services.email_service import get_email_client
from main import app
from tests.conftest import auth_headers, make_token

OWNER = auth_headers(metadata={"company_name": "RoofCo"})
SALES = auth_headers("user-sales", "sales@example.com")
RIVAL = auth_headers("user-rival", "boss@rival.com", {"company_name": "Rival Roofing"})


async def _company_id(client):
    response = await client.get("/company", headers=OWNER)
    assert response.status_code == 200
    return response.json()["data"]["id"]


async def _add_member(session_factory, company_id, user_id="user-sales", email="sales@example.com", role="sales"):
    async with session_factory() as session:
        session.add(CompanyMember(company_id=company_id, user_id=user_id, email=email, role=role))
        await session.commit()


async def _set_status(session_factory, quote_id, status):
    async with session_factory() as session:
        quote = await session.get(Quote, quote_id)
        quote.status = status
        await session.commit()


async def _quote(client, headers=OWNER, items=None, **body):
    body.setdefault("customer_name", "Pat Customer")
    response = await client.post("/quotes", json=body, headers=headers)
    assert response.status_code == 201
    quote = response.json()["data"]
    if items:
        response = await client.put(f"/quotes/{quote['id']}", json={"items": items}, headers=headers)
        quote = response.json()["data"]
    return quote


class TestAuth:
    async def test_missing_and_bad_tokens(self, client):
        assert (await client.get("/company")).status_code == 401
        response = await client.get("/company", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid or expired token"

    async def test_expired_token(self, client):
        token = make_token(expires_in=-60)
        response = await client.get("/company", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    async def test_token_header_is_accepted(self, client):
        response = await client.get("/company", headers={"token": make_token(metadata={"company_name": "RoofCo"})})
        assert response.status_code == 200


class TestCompany:
    async def test_first_call_bootstraps_workspace(self, client):
        response = await client.get("/company", headers=OWNER)
        body = response.json()
        assert body["role"] == "owner"
        assert body["data"]["name"] == "RoofCo"
        assert body["data"]["default_currency"] == "CAD"

    async def test_update_normalizes_settings(self, client):
        response = await client.put(
            "/company",
            json={"brand_color": "#abc", "tax_rate": 150, "phone": "555-0100", "address": "1 Main St\nSuite 2\nToronto"},
            headers=OWNER,
        )
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["brand_color"] == "#AABBCC"
        assert data["tax_rate"] == 100
        assert data["phone"] == "555-0100"

        quote = await _quote(client)
        assert quote["data"]["company"]["addr1"] == "1 Main St"
        assert quote["data"]["company"]["addr2"] == "Suite 2, Toronto"
        assert quote["data"]["company"]["brand_color"] == "#AABBCC"
        assert quote["data"]["tax_rate"] == 100

    async def test_invalid_brand_color(self, client):
        response = await client.put("/company", json={"brand_color": "blue"}, headers=OWNER)
        assert response.status_code == 400

    async def test_only_owner_can_update(self, client, session_factory):
        await _add_member(session_factory, await _company_id(client), role="admin")
        assert (await client.get("/company", headers=SALES)).json()["role"] == "admin"
        response = await client.put("/company", json={"phone": "1"}, headers=SALES)
        assert response.status_code == 403

    async def test_logo_upload(self, client, supabase_backend):
        company_id = await _company_id(client)
        response = await client.put(
            "/company/logo", content=b"\x89PNG-bytes", headers={**OWNER, "Content-Type": "image/png"}
        )
        assert response.status_code == 200
        logo_url = response.json()["data"]["logo_url"]
        assert logo_url.startswith(
            f"https://project.supabase.test/storage/v1/object/public/company-logos/{company_id}/logo.png?v="
        )
        assert supabase_backend.objects[("company-logos", f"{company_id}/logo.png")][0] == b"\x89PNG-bytes"

    async def test_logo_upload_rejects_bad_input(self, client):
        response = await client.put("/company/logo", content=b"hello", headers={**OWNER, "Content-Type": "text/plain"})
        assert response.status_code == 400
        response = await client.put("/company/logo", content=b"", headers={**OWNER, "Content-Type": "image/png"})
        assert response.status_code == 400


class TestTeam:
    async def test_role_changes(self, client, session_factory):
        await _add_member(session_factory, await _company_id(client))

        team = (await client.get("/team", headers=OWNER)).json()
        assert team["total"] == 2

        response = await client.put("/team/user-sales", json={"role": "Admin"}, headers=OWNER)
        assert response.status_code == 200
        assert response.json()["data"]["role"] == "admin"

        assert (await client.put("/team/user-owner", json={"role": "sales"}, headers=OWNER)).status_code == 400
        assert (await client.put("/team/user-sales", json={"role": "owner"}, headers=OWNER)).status_code == 400
        assert (await client.put("/team/nobody", json={"role": "sales"}, headers=OWNER)).status_code == 404

    async def test_sales_cannot_manage_team(self, client, session_factory):
        await _add_member(session_factory, await _company_id(client))
        assert (await client.get("/team", headers=SALES)).status_code == 200
        assert (await client.delete("/team/user-owner", headers=SALES)).status_code == 403

    async def test_remove_member(self, client, session_factory):
        await _add_member(session_factory, await _company_id(client))
        assert (await client.delete("/team/user-owner", headers=OWNER)).status_code == 400

        response = await client.delete("/team/user-sales", headers=OWNER)
        assert response.status_code == 200
        assert (await client.get("/team", headers=OWNER)).json()["total"] == 1

    async def test_invite_creates_membership_and_sends(self, client, supabase_backend, email_client):
        response = await client.post("/invite-user", json={"email": "New.Hire@Example.com"}, headers=OWNER)
        assert response.status_code == 200
        body = response.json()
        assert body == {"ok": True, "user_id": "invited-new.hire@example.com", "role": "sales", "email_sent": True}

        invite = supabase_backend.invites[0]
        assert invite["type"] == "invite"
        assert invite["redirect_to"] == "https://quotes.example.com/index.html"

        message = email_client.sent[0]
        assert message.to == "new.hire@example.com"
        assert message.subject == "You're invited to RoofCo"
        assert "verify?token=abc" in message.text_body

        members = (await client.get("/team", headers=OWNER)).json()["data"]
        assert {m["user_id"]: m["role"] for m in members}["invited-new.hire@example.com"] == "sales"

    async def test_invite_errors(self, client, supabase_backend):
        assert (await client.post("/invite-user", json={"email": ""}, headers=OWNER)).status_code == 400
        assert (await client.post("/invite-user", json={"email": "a@example.com", "role": "owner"}, headers=OWNER)).status_code == 400

        supabase_backend.invite_status = 422
        response = await client.post("/invite-user", json={"email": "a@example.com"}, headers=OWNER)
        assert response.status_code == 502
        assert "User not allowed" in response.json()["detail"]

    async def test_invite_without_email_provider(self, client):
        app.dependency_overrides[get_email_client] = lambda: None
        response = await client.post("/invite-user", json={"email": "a@example.com", "role": "admin"}, headers=OWNER)
        assert response.status_code == 200
        assert response.json()["email_sent"] is False
        assert response.json()["role"] == "admin"


class TestCustomers:
    async def test_crud_and_search(self, client):
        created = await client.post(
            "/customers",
            json={"first_name": "Riley", "last_name": "Stone", "email": "riley@example.com", "phone": " "},
            headers=OWNER,
        )
        assert created.status_code == 201
        customer = created.json()["data"]
        assert customer["display_name"] == "Riley Stone"
        assert customer["phone"] is None

        await client.post("/customers", json={"first_name": "Alex", "company_name": "Stonework Ltd"}, headers=OWNER)
        await client.post("/customers", json={"first_name": "Jordan"}, headers=OWNER)

        found = (await client.get("/customers", params={"search": "ston"}, headers=OWNER)).json()
        assert found["total"] == 2

        updated = await client.put(f"/customers/{customer['id']}", json={"phone": "555-0100"}, headers=OWNER)
        assert updated.json()["data"]["phone"] == "555-0100"
        assert updated.json()["data"]["last_name"] == "Stone"

        assert (await client.get(f"/customers/{customer['id']}", headers=RIVAL)).status_code == 404

    async def test_validation(self, client):
        assert (await client.post("/customers", json={"first_name": " "}, headers=OWNER)).status_code == 422
        assert (await client.post("/customers", json={"first_name": "A", "email": "nope"}, headers=OWNER)).status_code == 422

    async def test_quote_history_includes_unlinked_rows_by_email(self, client, session_factory):
        customer = (
            await client.post("/customers", json={"first_name": "Riley", "email": "riley@example.com"}, headers=OWNER)
        ).json()["data"]

        linked = await _quote(
            client, customer_name="Riley", customer_id=customer["id"],
            items=[{"name": "Roof", "qty": 1, "unit_price_cents": 10000}],
        )
        await _quote(
            client, customer_name="Riley", customer_email="RILEY@example.com",
            items=[{"name": "Repair", "qty": 1, "unit_price_cents": 1000}],
        )
        await _quote(client, customer_name="Someone", customer_email="someone@example.com")
        await _set_status(session_factory, linked["id"], "Accepted")

        body = (await client.get(f"/customers/{customer['id']}/quotes", headers=OWNER)).json()
        assert len(body["data"]) == 2
        assert body["kpis"]["quote_count"] == 2
        assert body["kpis"]["accepted_count"] == 1
        assert body["kpis"]["accepted_cents"] == 11300
        assert body["kpis"]["pipeline_cents"] == 1130
        assert body["kpis"]["last_quote_at"] is not None

    async def test_delete_unlinks_quotes(self, client, session_factory):
        await _add_member(session_factory, await _company_id(client))
        customer = (await client.post("/customers", json={"first_name": "Riley"}, headers=OWNER)).json()["data"]
        quote = await _quote(client, customer_name="Riley", customer_id=customer["id"])

        assert (await client.delete(f"/customers/{customer['id']}", headers=SALES)).status_code == 403
        assert (await client.delete(f"/customers/{customer['id']}", headers=OWNER)).status_code == 200

        reloaded = (await client.get(f"/quotes/{quote['id']}", headers=OWNER)).json()["data"]
        assert reloaded["customer_id"] is None
        assert reloaded["customer_name"] == "Riley"
        assert (await client.get(f"/customers/{customer['id']}", headers=OWNER)).status_code == 404


class TestProducts:
    async def test_crud(self, client):
        created = await client.post(
            "/products", json={"name": "Ridge vent", "price_per_unit_cents": 2500, "currency": "usd"}, headers=OWNER
        )
        assert created.status_code == 201
        product = created.json()["data"]
        assert product["unit_type"] == "Each"
        assert product["currency"] == "USD"
        assert product["show_qty_unit_price"] is True

        updated = await client.put(
            f"/products/{product['id']}", json={"name": None, "price_per_unit_cents": 2600}, headers=OWNER
        )
        assert updated.json()["data"]["name"] == "Ridge vent"
        assert updated.json()["data"]["price_per_unit_cents"] == 2600

        assert (await client.get(f"/products/{product['id']}", headers=RIVAL)).status_code == 404
        assert (await client.delete(f"/products/{product['id']}", headers=OWNER)).status_code == 200
        assert (await client.get(f"/products/{product['id']}", headers=OWNER)).status_code == 404

    async def test_validation(self, client):
        assert (await client.post("/products", json={"name": ""}, headers=OWNER)).status_code == 422
        negative = {"name": "Refund", "price_per_unit_cents": -100}
        assert (await client.post("/products", json=negative, headers=OWNER)).status_code == 422

    async def test_search_treats_wildcards_literally(self, client):
        await client.post("/products", json={"name": "50% off flashing"}, headers=OWNER)
        await client.post("/products", json={"name": "500 sheets underlayment"}, headers=OWNER)
        await client.post("/products", json={"name": "Drip_edge"}, headers=OWNER)

        assert (await client.get("/products", params={"search": "50%"}, headers=OWNER)).json()["total"] == 1
        assert (await client.get("/products", params={"search": "p_e"}, headers=OWNER)).json()["total"] == 1
        assert (await client.get("/products", params={"search": "50"}, headers=OWNER)).json()["total"] == 2

    async def test_add_product_to_quote(self, client):
        product = (
            await client.post("/products", json={"name": "Ridge vent", "price_per_unit_cents": 2500}, headers=OWNER)
        ).json()["data"]
        quote = await _quote(client)

        response = await client.post(
            f"/quotes/{quote['id']}/items", json={"product_id": product["id"], "qty": "2"}, headers=OWNER
        )
        assert response.status_code == 200
        assert response.json()["data"]["total_cents"] == 5650


class TestQuotes:
    async def test_lifecycle(self, client):
        quote = await _quote(client, customer_email="pat@example.com")
        listing = (await client.get("/quotes", headers=OWNER)).json()
        assert listing["total"] == 1

        copy = await client.post(f"/quotes/{quote['id']}/duplicate", headers=OWNER)
        assert copy.status_code == 201
        assert copy.json()["data"]["version_of"] == quote["id"]

        cancelled = await client.post(f"/quotes/{quote['id']}/cancel", headers=OWNER)
        assert cancelled.json()["data"]["status"] == "Cancelled"
        assert (await client.post(f"/quotes/{quote['id']}/cancel", headers=OWNER)).status_code == 400

        drafts = (await client.get("/quotes", params={"status": "draft"}, headers=OWNER)).json()
        assert [q["id"] for q in drafts["data"]] == [copy.json()["data"]["id"]]

    async def test_isolated_between_companies(self, client):
        quote = await _quote(client)
        assert (await client.get(f"/quotes/{quote['id']}", headers=RIVAL)).status_code == 404
        assert (await client.get("/quotes", headers=RIVAL)).json()["total"] == 0

    async def test_create_requires_customer_name(self, client):
        assert (await client.post("/quotes", json={"customer_name": "  "}, headers=OWNER)).status_code == 422


class TestDashboardAndActivity:
    async def test_dashboard_summary(self, client, session_factory):
        items = [{"name": "Repair", "qty": 1, "unit_price_cents": 1000}]
        accepted = await _quote(client, items=items)
        sent = await _quote(client, items=items)
        cancelled = await _quote(client, items=items)
        await _set_status(session_factory, accepted["id"], "signed")
        await _set_status(session_factory, sent["id"], "Sent")
        await _set_status(session_factory, cancelled["id"], "Cancelled")

        body = (await client.get("/dashboard/summary", headers=OWNER)).json()
        assert body["kpis"] == {
            "draft_count": 0,
            "sent_count": 1,
            "accepted_count": 1,
            "pipeline_cents": 1130,
            "accepted_cents": 1130,
            "close_rate": 50,
        }
        assert len(body["recent"]) == 3
        assert body["recent"][0]["status"] == "Cancelled"

    async def test_empty_dashboard(self, client):
        body = (await client.get("/dashboard/summary", headers=OWNER)).json()
        assert body["kpis"]["close_rate"] is None
        assert body["recent"] == []

    async def test_activity_log(self, client, session_factory):
        await _quote(client)
        await _add_member(session_factory, await _company_id(client))

        body = (await client.get("/activity", headers=OWNER)).json()
        messages = [entry["message"] for entry in body["data"]]
        assert any(m.startswith("Created quote Q-1") for m in messages)
        assert body["total"] >= 2

        assert (await client.get("/activity", headers=SALES)).status_code == 403
        assert (await client.get("/activity", headers=RIVAL)).json()["total"] == 1
