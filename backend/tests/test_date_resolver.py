"""Unit tests for section title date parsing."""
from datetime import date

import pytest

from clientpulse.services.date_resolver import resolve_section_date

TODAY = date(2025, 6, 1)


class TestMonthNameTitles:
    @pytest.mark.parametrize("title,expected", [
        ("14 jan", date(2025, 1, 14)),
        ("02 fev", date(2025, 2, 2)),
        ("14 de janeiro de 2024", date(2024, 1, 14)),
        ("Reunião 05 de Março 2023", date(2023, 3, 5)),
        ("3 DEZ", date(2025, 12, 3)),
        ("Weekly 7 Sep", date(2025, 9, 7)),
    ])
    def test_day_and_month_name(self, title, expected):
        assert resolve_section_date(title, today=TODAY) == expected

    def test_skips_words_that_are_not_months(self):
        # "2 reuniões" is not a month, the second match is
        assert resolve_section_date("2 reuniões - 9 out", today=TODAY) == date(2025, 10, 9)


class TestNumericTitles:
    @pytest.mark.parametrize("title,expected", [
        ("02/03/24", date(2024, 3, 2)),
        ("12-10-2023", date(2023, 10, 12)),
        ("5.6", date(2025, 6, 5)),
        ("Sync 21/11", date(2025, 11, 21)),
    ])
    def test_numeric_day_month_year(self, title, expected):
        assert resolve_section_date(title, today=TODAY) == expected

    def test_out_of_range_values_are_undated(self):
        assert resolve_section_date("31/02/2024", today=TODAY) is None


class TestUndatedTitles:
    @pytest.mark.parametrize("title", ["sem data", "Kickoff", "", None])
    def test_returns_none(self, title):
        assert resolve_section_date(title, today=TODAY) is None
