# app/utils/quote_status.py
import enum
from typing import Any

from app.core.exceptions import QuoteStateError


class QuoteStatus(str, enum.Enum):
    draft = "Draft"
    sent = "Sent"
    viewed = "Viewed"
    accepted = "Accepted"
    cancelled = "Cancelled"


_ALIASES = {
    "draft": QuoteStatus.draft,
    "sent": QuoteStatus.sent,
    "viewed": QuoteStatus.viewed,
    "accepted": QuoteStatus.accepted,
    "signed": QuoteStatus.accepted,
    "cancelled": QuoteStatus.cancelled,
    "canceled": QuoteStatus.cancelled,
}

# Forward order of the open lifecycle; cancelled sits outside it
_RANK = {
    QuoteStatus.draft: 0,
    QuoteStatus.sent: 1,
    QuoteStatus.viewed: 2,
    QuoteStatus.accepted: 3,
}


def normalize_status(value: Any) -> QuoteStatus:
    """Fold any stored status string to its canonical value (unknown -> Draft)."""
    if isinstance(value, QuoteStatus):
        return value
    return _ALIASES.get(str(value or "").strip().lower(), QuoteStatus.draft)


def is_open(value: Any) -> bool:
    return normalize_status(value) in (QuoteStatus.draft, QuoteStatus.sent, QuoteStatus.viewed)


def can_edit(value: Any) -> bool:
    return normalize_status(value) != QuoteStatus.cancelled


def advance(current: Any, target: QuoteStatus) -> QuoteStatus:
    """
    Move forward along Draft -> Sent -> Viewed -> Accepted.

    A target at or behind the current position leaves the status unchanged,
    so re-sending a viewed quote does not demote it. Nothing leaves Cancelled.
    """
    status = normalize_status(current)
    if target == QuoteStatus.cancelled:
        return cancel(status)
    if status == QuoteStatus.cancelled:
        raise QuoteStateError("This quote has been cancelled.", status.value)
    return target if _RANK[target] > _RANK[status] else status


def cancel(current: Any) -> QuoteStatus:
    status = normalize_status(current)
    if status == QuoteStatus.accepted:
        raise QuoteStateError("An accepted quote cannot be cancelled.", status.value)
    if status == QuoteStatus.cancelled:
        raise QuoteStateError("Quote is already cancelled.", status.value)
    return QuoteStatus.cancelled
