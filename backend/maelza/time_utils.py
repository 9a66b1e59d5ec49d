"""
Time handling for documents.

Every datetime the order core stores is naive UTC. Clients may send a
document date as a calendar day ("2026-03-01") or a full ISO-8601
timestamp; offsets are folded into UTC on the way in, and a trailing Z is
added on the way out.
"""
from __future__ import annotations

from datetime import date, datetime, time, timezone
from typing import Optional


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_naive_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment
    return moment.astimezone(timezone.utc).replace(tzinfo=None)


def parse_document_date(value: str, *, end_of_day: bool = False) -> datetime:
    """
    Parse a document date or a date filter bound.

    "YYYY-MM-DD" is that day at 00:00 UTC, or at 23:59:59.999999 when
    end_of_day is set (inclusive upper bound of a date range). Anything
    else must be an ISO-8601 datetime.

    Raises ValueError on blank or unparseable input.
    """
    text = value.strip()
    if not text:
        raise ValueError("empty date")

    if len(text) == 10:
        day = date.fromisoformat(text)
        return datetime.combine(day, time.max if end_of_day else time.min)

    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return as_naive_utc(datetime.fromisoformat(text))


def numbering_year(moment: datetime) -> str:
    """Scope key of the yearly sale sequence ("2026")."""
    return f"{moment.year:04d}"


def to_utc_z(moment: Optional[datetime]) -> Optional[str]:
    """Second-precision ISO-8601 with a trailing 'Z'; naive input is UTC."""
    if moment is None:
        return None
    stamp = as_naive_utc(moment).replace(microsecond=0)
    return stamp.isoformat() + "Z"
