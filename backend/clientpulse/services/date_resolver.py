"""Best-effort parsing of meeting dates out of section titles."""
import re
from datetime import date
from typing import Optional

# Month tokens are looked up by their first three letters.
MONTHS = {
    "jan": 1,
    "fev": 2,
    "feb": 2,
    "mar": 3,
    "abr": 4,
    "apr": 4,
    "mai": 5,
    "may": 5,
    "jun": 6,
    "jul": 7,
    "ago": 8,
    "aug": 8,
    "set": 9,
    "sep": 9,
    "out": 10,
    "oct": 10,
    "nov": 11,
    "dez": 12,
    "dec": 12,
}

DAY_MONTH_NAME_PATTERN = re.compile(r"(\d{1,2})\s*(?:de\s+)?([^\W\d_]{3,})", re.IGNORECASE)
NUMERIC_DATE_PATTERN = re.compile(r"(?<!\d)(\d{1,2})[/.\-](\d{1,2})(?:[/.\-](\d{2,4}))?(?!\d)")
YEAR_PATTERN = re.compile(r"(?<!\d)((?:19|20)\d{2})(?!\d)")


def _build_date(year: int, month: int, day: int) -> Optional[date]:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _match_month_name(title: str, today: date) -> Optional[date]:
    year_match = YEAR_PATTERN.search(title)
    year = int(year_match.group(1)) if year_match else today.year

    for match in DAY_MONTH_NAME_PATTERN.finditer(title):
        month = MONTHS.get(match.group(2).lower()[:3])
        if month is None:
            continue
        resolved = _build_date(year, month, int(match.group(1)))
        if resolved:
            return resolved
    return None


def _match_numeric(title: str, today: date) -> Optional[date]:
    for match in NUMERIC_DATE_PATTERN.finditer(title):
        day, month, raw_year = match.groups()
        if raw_year is None:
            year = today.year
        elif len(raw_year) == 2:
            year = 2000 + int(raw_year)
        elif len(raw_year) == 4:
            year = int(raw_year)
        else:
            continue
        resolved = _build_date(year, int(month), int(day))
        if resolved:
            return resolved
    return None


def resolve_section_date(title: Optional[str], today: Optional[date] = None) -> Optional[date]:
    """
    Resolve a free-text section title such as ``"14 de janeiro"`` or
    ``"Reunião 02/03/24"`` into a calendar date.

    Day + month-name forms are tried first, then numeric ``day/month[/year]``
    forms with ``/``, ``.`` or ``-`` separators. Titles without a year assume
    the year of ``today``; two-digit years are read as 2000+year.

    Returns:
        The resolved date, or None when the title carries no usable date.
    """
    if not title:
        return None

    today = today or date.today()
    cleaned = title.strip()
    return _match_month_name(cleaned, today) or _match_numeric(cleaned, today)
