import pytest

from app.schemas.company_schemas import clamp_tax_rate, normalize_brand_color
from app.services.company_service import company_to_snapshot, logo_extension
from app.services.customer_service import clean_search
from app.services.product_service import escape_like
from app.services.quote_services.public_service import initials_from_name, svg_placeholder
from app.services.supabase_admin import mime_from_path, parse_storage_url
from app.models.company_models import Company


class TestBrandSettings:
    @pytest.mark.parametrize(
        "raw, expected",
        [("#abc", "#AABBCC"), ("1a2b3c", "#1A2B3C"), ("  #FFFFFF ", "#FFFFFF"), ("", None), (None, None)],
    )
    def test_brand_color(self, raw, expected):
        assert normalize_brand_color(raw) == expected

    @pytest.mark.parametrize("raw", ["blue", "#12345", "#GGGGGG"])
    def test_brand_color_rejects(self, raw):
        with pytest.raises(ValueError):
            normalize_brand_color(raw)

    def test_tax_rate_clamped(self):
        assert clamp_tax_rate("13%") == 13
        assert clamp_tax_rate(-4) == 0
        assert clamp_tax_rate(250) == 100

    def test_logo_types(self):
        assert logo_extension("image/jpeg") == "jpg"
        assert logo_extension("image/svg+xml; charset=utf-8") == "svg"


class TestSnapshot:
    def test_company_snapshot(self):
        company = Company(
            id="c-1",
            name="RoofCo",
            address="1 Main St\n\nSuite 2\nToronto",
            owner_email="owner@example.com",
            default_currency="CAD",
        )
        snap = company_to_snapshot(company)
        assert snap["addr1"] == "1 Main St"
        assert snap["addr2"] == "Suite 2, Toronto"
        assert snap["email"] == "owner@example.com"
        assert snap["brand_color"] == "#000000"


class TestSearchTerms:
    def test_clean_search(self):
        assert clean_search(" smith, john ") == "smith  john"
        assert len(clean_search("x" * 200)) == 80
        assert clean_search(None) == ""

    def test_escape_like(self):
        assert escape_like("50%_off") == "50\\%\\_off"
        assert escape_like("a\\b") == "a\\\\b"


class TestStorageHelpers:
    def test_parse_storage_url(self):
        url = "https://p.supabase.co/storage/v1/object/public/company-logos/c-1/logo%20v2.png?v=17"
        assert parse_storage_url(url) == ("company-logos", "c-1/logo v2.png")
        assert parse_storage_url("https://p.supabase.co/storage/v1/object/sign/b/x.png?token=t") == ("b", "x.png")
        assert parse_storage_url("https://cdn.example.com/logo.png") is None
        assert parse_storage_url("") is None

    def test_mime_from_path(self):
        assert mime_from_path("a/logo.JPG") == "image/jpeg"
        assert mime_from_path("a/logo.svg") == "image/svg+xml"
        assert mime_from_path("a/logo") == "image/png"


class TestLogoPlaceholder:
    @pytest.mark.parametrize(
        "name, expected",
        [("Endura Metal Roofing", "ER"), ("Acme", "AC"), ("  ", "LOGO"), ("x", "X")],
    )
    def test_initials(self, name, expected):
        assert initials_from_name(name) == expected

    def test_svg_is_escaped(self):
        svg = svg_placeholder("a&b<")
        assert b"A&amp;B&lt;" in svg
        assert svg.startswith(b"<?xml")
