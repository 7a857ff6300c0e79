import pytest

from app.core.exceptions import QuoteStateError
from app.utils.quote_status import (
    QuoteStatus,
    advance,
    can_edit,
    cancel,
    is_open,
    normalize_status,
)


class TestNormalizeStatus:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("draft", QuoteStatus.draft),
            ("SENT", QuoteStatus.sent),
            (" Viewed ", QuoteStatus.viewed),
            ("signed", QuoteStatus.accepted),
            ("Accepted", QuoteStatus.accepted),
            ("canceled", QuoteStatus.cancelled),
            ("archived", QuoteStatus.draft),
            (None, QuoteStatus.draft),
            ("", QuoteStatus.draft),
        ],
    )
    def test_folds_to_canonical(self, raw, expected):
        assert normalize_status(raw) == expected

    def test_enum_value_passes_through(self):
        assert normalize_status(QuoteStatus.viewed) is QuoteStatus.viewed


class TestTransitions:
    """Forward-only movement along Draft -> Sent -> Viewed -> Accepted."""

    def test_advance_moves_forward(self):
        assert advance("Draft", QuoteStatus.sent) == QuoteStatus.sent
        assert advance("sent", QuoteStatus.viewed) == QuoteStatus.viewed
        assert advance("Viewed", QuoteStatus.accepted) == QuoteStatus.accepted

    def test_advance_never_regresses(self):
        assert advance("Viewed", QuoteStatus.sent) == QuoteStatus.viewed
        assert advance("Accepted", QuoteStatus.viewed) == QuoteStatus.accepted
        assert advance("Sent", QuoteStatus.sent) == QuoteStatus.sent

    def test_nothing_leaves_cancelled(self):
        with pytest.raises(QuoteStateError):
            advance("Cancelled", QuoteStatus.sent)

    def test_cancel_rules(self):
        assert cancel("Draft") == QuoteStatus.cancelled
        assert cancel("viewed") == QuoteStatus.cancelled
        with pytest.raises(QuoteStateError) as exc:
            cancel("Accepted")
        assert exc.value.status == "Accepted"
        with pytest.raises(QuoteStateError):
            cancel("cancelled")

    def test_advance_to_cancelled_uses_cancel_rules(self):
        assert advance("Sent", QuoteStatus.cancelled) == QuoteStatus.cancelled
        with pytest.raises(QuoteStateError):
            advance("signed", QuoteStatus.cancelled)

    def test_predicates(self):
        assert is_open("Draft") and is_open("Sent") and is_open("Viewed")
        assert not is_open("Accepted")
        assert not is_open("Cancelled")
        assert can_edit("Accepted")
        assert not can_edit("Canceled")
