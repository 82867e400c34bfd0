"""Chronological ordering of document sections."""
from datetime import date, datetime, timezone
from typing import Iterable, List, Optional

from clientpulse.models.schemas import RawSection, Section
from clientpulse.services.date_resolver import resolve_section_date
from clientpulse.services.text_extractor import extract_text_from_body


def date_sort_key(resolved: Optional[date]) -> int:
    """Epoch milliseconds of the date at UTC midnight; 0 when undated."""
    if resolved is None:
        return 0
    midnight = datetime(resolved.year, resolved.month, resolved.day, tzinfo=timezone.utc)
    # Pre-1970 dates must still sort after undated sections
    return max(1, int(midnight.timestamp() * 1000))


def build_section(raw: RawSection, today: Optional[date] = None) -> Section:
    resolved = resolve_section_date(raw.title, today=today)
    return Section(
        title=raw.title,
        resolved_date=resolved,
        sort_key=date_sort_key(resolved),
        raw_text=extract_text_from_body(raw.body),
    )


def order_sections(sections: Iterable[Section]) -> List[Section]:
    """
    Sort sections oldest first.

    Undated sections carry key 0 and land before every dated one. Python's
    sort is stable, so equal keys keep document order.
    """
    return sorted(sections, key=lambda section: section.sort_key)


def build_sections(raw_sections: Iterable[RawSection], today: Optional[date] = None) -> List[Section]:
    """Extract, date and order the sections of a fetched document."""
    return order_sections(build_section(raw, today=today) for raw in raw_sections)
