"""
Cycle Verifier - Checks a scholarship deadline against the academic cycle.

Academic years run July 1 to June 30 and are named by the year they end in
(2025-07-01 .. 2026-06-30 is AY2026). The deadline is read from the page
text, anchored on words like "deadline" or "apply by":

    no deadline found                       ambiguous_deadline
    deadline before today                   potentially_expired
    ahead, outside current or next cycle    needs_manual_review
    ahead, in current or next cycle         verified

No year is hardcoded; everything is relative to ``today``.
"""

import re
from collections.abc import Callable
from datetime import date

from tuitionlift.discovery.base import CycleCheck, CycleVerifier
from tuitionlift.schemas.profile import DiscoveryResult, VerificationStatus

_MONTHS = {
    "jan": 1,
    "feb": 2,
    "mar": 3,
    "apr": 4,
    "may": 5,
    "jun": 6,
    "jul": 7,
    "aug": 8,
    "sep": 9,
    "oct": 10,
    "nov": 11,
    "dec": 12,
}

_MONTH_WORD = (
    r"(?:jan(?:uary)?|feb(?:ruary)?|mar(?:ch)?|apr(?:il)?|may|june?|july?"
    r"|aug(?:ust)?|sep(?:t(?:ember)?)?|oct(?:ober)?|nov(?:ember)?|dec(?:ember)?)"
)

_DEADLINE = re.compile(
    r"(?:deadline|due|apply by|applications?\s+close[sd]?|closes)\b[^.\n]{0,40}?"
    r"(?:(?P<iso>\d{4}-\d{1,2}-\d{1,2})"
    r"|(?P<us>\d{1,2}/\d{1,2}/\d{4})"
    rf"|(?P<long>{_MONTH_WORD}\.?\s+\d{{1,2}}(?:st|nd|rd|th)?,?\s+\d{{4}}))",
    re.IGNORECASE,
)

_LONG_PARTS = re.compile(r"([a-z]+)\.?\s+(\d{1,2})(?:st|nd|rd|th)?,?\s+(\d{4})", re.IGNORECASE)


def academic_year(day: date) -> int:
    """Academic year a date falls in, named by its ending year."""
    return day.year + 1 if day.month >= 7 else day.year


def _to_date(year: str, month: str | int, day: str) -> date | None:
    try:
        return date(int(year), int(month), int(day))
    except ValueError:
        return None


def parse_deadline(raw: str | None) -> date | None:
    """Parse an ISO date string; ``None`` when missing or invalid."""
    if not raw:
        return None
    try:
        return date.fromisoformat(raw.strip())
    except ValueError:
        return None


def extract_deadline(text: str) -> date | None:
    """
    Find the first deadline mentioned in ``text``.

    Supports ``2027-03-01``, ``03/01/2027`` and ``March 1, 2027`` after a
    deadline keyword. Impossible dates are skipped.
    """
    for match in _DEADLINE.finditer(text):
        if match.group("iso"):
            year, month, day = match.group("iso").split("-")
            found = _to_date(year, month, day)
        elif match.group("us"):
            month, day, year = match.group("us").split("/")
            found = _to_date(year, month, day)
        else:
            parts = _LONG_PARTS.match(match.group("long"))
            found = None
            if parts:
                month_number = _MONTHS.get(parts.group(1)[:3].lower())
                if month_number:
                    found = _to_date(parts.group(3), month_number, parts.group(2))
        if found is not None:
            return found
    return None


class AcademicCycleVerifier(CycleVerifier):
    """
    Verifies deadlines relative to the current academic year.

    Args:
        today: Clock returning the current date (injectable for tests)
    """

    def __init__(self, today: Callable[[], date] = date.today):
        self._today = today

    def verify(self, result: DiscoveryResult) -> CycleCheck:
        deadline = parse_deadline(result.deadline) or extract_deadline(
            f"{result.title}\n{result.content}"
        )
        if deadline is None:
            return CycleCheck(VerificationStatus.AMBIGUOUS_DEADLINE)

        today = self._today()
        if deadline < today:
            return CycleCheck(VerificationStatus.POTENTIALLY_EXPIRED, deadline)

        current = academic_year(today)
        if academic_year(deadline) not in (current, current + 1):
            return CycleCheck(VerificationStatus.NEEDS_MANUAL_REVIEW, deadline)

        return CycleCheck(VerificationStatus.VERIFIED, deadline)
