"""The typed quote snapshot tolerates older and hand-edited rows."""
from app.schemas.quote_schema import LineItem, QuoteData, QuoteSummaryOut


class TestLineItem:
    def test_legacy_keys_are_folded(self):
        item = LineItem.model_validate(
            {"desc": "Ice and water shield", "unitType": "Roll", "price_per_unit_cents": "1500", "qty": "2"}
        )
        assert item.description == "Ice and water shield"
        assert item.unit_type == "Roll"
        assert item.unit_price_cents == 1500
        assert item.qty == 2.0

    def test_non_boolean_flags_fall_back_to_defaults(self):
        item = LineItem.model_validate({"name": "Labour", "taxable": "yes", "show_qty_unit_price": None})
        assert item.taxable is True
        assert item.show_qty_unit_price is True

    def test_garbage_numbers_parse_to_zero(self):
        item = LineItem.model_validate({"name": "Tear-off", "qty": "lots", "unit_price_cents": "-40"})
        assert item.qty == 0.0
        assert item.unit_price_cents == 0
        assert item.unit_type == "Each"

    def test_blank_detection(self):
        assert LineItem().is_blank()
        assert LineItem(unit_price_cents=0, name="  ").is_blank()
        assert not LineItem(name="Flashing").is_blank()
        assert not LineItem(unit_price_cents=100).is_blank()


class TestQuoteData:
    def test_empty_snapshot_gets_defaults(self):
        data = QuoteData.model_validate({})
        assert data.items == []
        assert data.tax_name == "Tax"
        assert data.tax_rate == 13
        assert data.deposit_mode == "auto"
        assert data.acceptance is None

    def test_unknown_keys_are_dropped(self):
        data = QuoteData.model_validate(
            {"legacy_field": 1, "meta": {"quote_date": "2026-01-05", "old_flag": True}, "company": {"name": "RoofCo", "fax": "x"}}
        )
        dumped = data.model_dump()
        assert "legacy_field" not in dumped
        assert "old_flag" not in dumped["meta"]
        assert "fax" not in dumped["company"]
        assert dumped["company"]["name"] == "RoofCo"

    def test_loose_values_are_normalized(self):
        data = QuoteData.model_validate(
            {
                "items": "not a list",
                "tax_rate": "13%",
                "fees_cents": "250.4",
                "deposit_mode": "CUSTOM",
                "deposit_cents": None,
                "tax_name": "  ",
                "notes": None,
            }
        )
        assert data.items == []
        assert data.tax_rate == 13.0
        assert data.fees_cents == 250
        assert data.deposit_mode == "custom"
        assert data.deposit_cents == 0
        assert data.tax_name == "Tax"
        assert data.notes == ""

    def test_acceptance_round_trip(self):
        data = QuoteData.model_validate(
            {"acceptance": {"accepted_at": "2026-03-14T22:10:00+00:00", "accepted_date": "2026-03-14", "name": "Pat"}}
        )
        assert data.acceptance.accepted_date == "2026-03-14"
        assert data.model_dump(mode="json")["acceptance"]["name"] == "Pat"


def test_summary_reports_canonical_status():
    out = QuoteSummaryOut(
        id="q1",
        quote_no=4,
        quote_code="Q-4",
        customer_name="Pat",
        status="signed",
        total_cents=100,
        currency="CAD",
    )
    assert out.status == "Accepted"
