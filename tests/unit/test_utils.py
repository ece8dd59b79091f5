"""Unit tests for utils module - date parsing, calendar arithmetic and coercions.

Tests cover:
- Strict YYYY-MM-DD parsing (no rollover, no padding)
- Month arithmetic with end-of-month clamping
- Whole ages in years, months and weeks
- Numeric coercion used by the rule set compiler

Real-world significance:
- Every due date and age bound is computed from these helpers
- An off-by-one day flips a vaccine between DUE_SOON and OVERDUE
"""

from __future__ import annotations

from datetime import date

import pytest

from eligibility import utils


@pytest.mark.unit
class TestParseIsoDate:
    """Unit tests for parse_iso_date."""

    def test_valid_date(self) -> None:
        """Verify a well-formed date parses."""
        assert utils.parse_iso_date("2026-02-20") == date(2026, 2, 20)

    def test_surrounding_whitespace_ignored(self) -> None:
        """Verify whitespace around the date is ignored.

        Real-world significance:
        - Form inputs often carry trailing spaces
        """
        assert utils.parse_iso_date(" 2026-02-20\n") == date(2026, 2, 20)

    @pytest.mark.parametrize(
        "value",
        ["2025-02-29", "2025-13-01", "2025-2-3", "20250203", "2025-02-03T10:00", "", None, 20250203],
    )
    def test_invalid_values_rejected(self, value) -> None:
        """Verify impossible dates and other formats are rejected.

        Real-world significance:
        - "2025-02-29" must not silently roll over to March 1
        """
        assert utils.parse_iso_date(value) is None

    def test_leap_day_accepted_in_leap_year(self) -> None:
        """Verify Feb 29 parses in a leap year."""
        assert utils.parse_iso_date("2024-02-29") == date(2024, 2, 29)


@pytest.mark.unit
class TestCalendarArithmetic:
    """Unit tests for day and month arithmetic."""

    def test_add_months_clamps_to_month_end(self) -> None:
        """Verify Jan 31 + 1 month lands on the last day of February.

        Real-world significance:
        - Milestones from end-of-month birthdays must not overflow
        """
        assert utils.add_months_clamped(date(2025, 1, 31), 1) == date(2025, 2, 28)
        assert utils.add_months_clamped(date(2024, 1, 31), 1) == date(2024, 2, 29)

    def test_add_months_crosses_years(self) -> None:
        """Verify multi-year month offsets."""
        assert utils.add_months_clamped(date(2022, 3, 5), 48) == date(2026, 3, 5)
        assert utils.add_months_clamped(date(2025, 11, 15), 3) == date(2026, 2, 15)

    def test_add_days(self) -> None:
        """Verify day offsets across month ends."""
        assert utils.add_days(date(2025, 1, 10), 180) == date(2025, 7, 9)

    def test_days_between_signed(self) -> None:
        """Verify days_between is end minus start."""
        assert utils.days_between(date(2026, 2, 20), date(2026, 3, 5)) == 13
        assert utils.days_between(date(2026, 3, 5), date(2026, 2, 20)) == -13


@pytest.mark.unit
class TestAges:
    """Unit tests for whole-age computations."""

    def test_age_in_years_before_birthday(self) -> None:
        """Verify years are decremented before the birthday."""
        assert utils.age_in_years(date(2012, 3, 1), date(2026, 2, 20)) == 13
        assert utils.age_in_years(date(2012, 3, 1), date(2026, 3, 1)) == 14

    def test_age_in_months_before_day_of_month(self) -> None:
        """Verify months are decremented before the day of month."""
        assert utils.age_in_months(date(2022, 3, 5), date(2026, 2, 20)) == 47
        assert utils.age_in_months(date(2022, 3, 5), date(2026, 3, 4)) == 47
        assert utils.age_in_months(date(2022, 3, 5), date(2026, 3, 5)) == 48

    def test_age_in_weeks_floors(self) -> None:
        """Verify weeks are whole weeks since birth."""
        assert utils.age_in_weeks(date(2026, 1, 1), date(2026, 1, 14)) == 1
        assert utils.age_in_weeks(date(2026, 1, 1), date(2026, 1, 15)) == 2


@pytest.mark.unit
class TestCoercions:
    """Unit tests for numeric and string coercions."""

    def test_finite_number_rejects_bool_and_nan(self) -> None:
        """Verify booleans, NaN and strings are not numbers.

        Real-world significance:
        - A YAML `true` in a numeric bound is a mistake, not the number 1
        """
        assert utils.finite_number(True) is None
        assert utils.finite_number(float("nan")) is None
        assert utils.finite_number(float("inf")) is None
        assert utils.finite_number("5") is None
        assert utils.finite_number(5) == 5
        assert utils.finite_number(2.5) == 2.5

    def test_optional_int_truncates(self) -> None:
        """Verify floats are truncated to int."""
        assert utils.optional_int(2.9) == 2
        assert utils.optional_int(None) is None

    def test_string_tuple(self) -> None:
        """Verify list coercion and rejection of non-lists."""
        assert utils.string_tuple(["A", 1]) == ("A", "1")
        assert utils.string_tuple("A") is None

    def test_string_or_empty(self) -> None:
        """Verify None becomes an empty string and values are stripped."""
        assert utils.string_or_empty(None) == ""
        assert utils.string_or_empty("  HPV ") == "HPV"
