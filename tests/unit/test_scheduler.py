"""Unit tests for scheduler module - next dose due dates.

Tests cover:
- Lifetime dose cap
- Milestone dates (months before weeks)
- Minimum interval after a prior dose
- Due-now fallback
- Booster scheduling after a complete series

Real-world significance:
- The due date drives OVERDUE and DUE_SOON reminders
- Strategy precedence must be stable so reminders do not flip
"""

from __future__ import annotations

from datetime import date

import pytest

from eligibility.data_models import (
    DoseIndex,
    DoseMilestone,
    DoseTally,
    SeriesDefinition,
    VaccineRule,
)
from eligibility.profile import normalize_profile
from eligibility.scheduler import compute_next_dose
from tests.fixtures.sample_input import create_test_profile

AS_OF = date(2026, 2, 20)
RULE = VaccineRule(vaccine_key="V", display_name="V")


def _schedule(series: SeriesDefinition, required: int, count: int = 0, last=None, dob="2022-03-05"):
    profile = normalize_profile(create_test_profile(dob), AS_OF.isoformat())
    index = DoseIndex(tallies={"V": DoseTally(count=count, last_dose=last)})
    return compute_next_dose(RULE, None, profile, index, series, required, AS_OF)


@pytest.mark.unit
class TestLifetimeCap:
    """Unit tests for the lifetime dose cap."""

    def test_cap_reached_schedules_nothing(self) -> None:
        """Verify nothing is scheduled once the cap is reached.

        Real-world significance:
        - One-time vaccines (e.g. PCV20) must never be offered again
        """
        series = SeriesDefinition(max_lifetime_doses=1, repeat_every_days=365)

        result = _schedule(series, required=3, count=1, last=date(2025, 1, 1))

        assert result.remaining_doses == 0
        assert result.due_date is None
        assert result.next_dose_number is None
        assert result.reason == "Max lifetime doses reached"


@pytest.mark.unit
class TestPrimarySeries:
    """Unit tests for incomplete primary series."""

    def test_milestone_months(self) -> None:
        """Verify a months milestone is birth date plus months.

        Real-world significance:
        - Second MMR dose is due at 4 years of age
        """
        series = SeriesDefinition(
            dose_milestones=(DoseMilestone(dose_number=2, earliest_age_months=48),),
            min_interval_days_default=28,
        )

        result = _schedule(series, required=2, count=1, last=date(2023, 3, 5))

        assert result.due_date == date(2026, 3, 5)
        assert result.next_dose_number == 2
        assert result.remaining_doses == 1
        assert result.reason == "Dose milestone: DOB + 48 months (dose 2)"

    def test_months_checked_before_weeks(self) -> None:
        """Verify months win when a milestone has both ages."""
        series = SeriesDefinition(
            dose_milestones=(
                DoseMilestone(dose_number=1, earliest_age_months=12, earliest_age_weeks=8),
            )
        )

        result = _schedule(series, required=1)

        assert result.due_date == date(2023, 3, 5)

    def test_milestone_weeks(self) -> None:
        """Verify a weeks milestone is birth date plus 7 days per week."""
        series = SeriesDefinition(
            dose_milestones=(DoseMilestone(dose_number=1, earliest_age_weeks=8),)
        )

        result = _schedule(series, required=3, dob="2026-01-01")

        assert result.due_date == date(2026, 2, 26)
        assert result.reason == "Dose milestone: DOB + 8 weeks (dose 1)"

    def test_milestone_without_age_due_now(self) -> None:
        """Verify a milestone with no age makes the dose due on the as-of date."""
        series = SeriesDefinition(dose_milestones=(DoseMilestone(dose_number=1),))

        result = _schedule(series, required=1)

        assert result.due_date == AS_OF
        assert result.reason.startswith("Milestone found for dose 1")

    def test_interval_after_prior_dose(self) -> None:
        """Verify the interval applies from the last dose.

        Real-world significance:
        - Second HPV dose is due 180 days after the first
        """
        series = SeriesDefinition(min_interval_days_default=180)

        result = _schedule(series, required=2, count=1, last=date(2025, 1, 10))

        assert result.due_date == date(2025, 7, 9)
        assert result.next_dose_number == 2
        assert result.reason == "Min interval: last dose + 180 days (dose 2)"

    def test_interval_ignored_without_prior_dose(self) -> None:
        """Verify the first dose is due now even when an interval is set."""
        series = SeriesDefinition(min_interval_days_default=28)

        result = _schedule(series, required=2)

        assert result.due_date == AS_OF
        assert result.next_dose_number == 1
        assert "defaulting due date" in result.reason

    def test_milestone_for_other_dose_falls_back_to_interval(self) -> None:
        """Verify milestones apply only to their own dose number."""
        series = SeriesDefinition(
            dose_milestones=(DoseMilestone(dose_number=1, earliest_age_months=12),),
            min_interval_days_default=28,
        )

        result = _schedule(series, required=2, count=1, last=date(2026, 2, 1))

        assert result.due_date == date(2026, 3, 1)


@pytest.mark.unit
class TestCompleteSeries:
    """Unit tests for complete primary series."""

    def test_booster_after_last_dose(self) -> None:
        """Verify boosters are scheduled from the last dose.

        Real-world significance:
        - Annual influenza vaccine is due a year after the last one
        """
        series = SeriesDefinition(repeat_every_days=365)

        result = _schedule(series, required=1, count=1, last=date(2025, 10, 10))

        assert result.due_date == date(2026, 10, 10)
        assert result.remaining_doses == 0
        assert result.next_dose_number is None
        assert result.reason == "Repeat schedule: last dose + 365 days"

    def test_booster_without_any_prior_dose_due_now(self) -> None:
        """Verify a booster-only schedule with no recorded dose is due now."""
        series = SeriesDefinition(repeat_every_days=365)

        result = _schedule(series, required=0)

        assert result.due_date == AS_OF
        assert result.reason == "Repeat schedule: no prior dose; due now"

    def test_series_complete_without_booster(self) -> None:
        """Verify nothing is scheduled when there is no booster rule."""
        result = _schedule(SeriesDefinition(), required=2, count=2, last=date(2024, 1, 1))

        assert result.due_date is None
        assert result.remaining_doses == 0
        assert result.reason == "Series complete; no booster rule"

    def test_extra_doses_never_negative(self) -> None:
        """Verify extra recorded doses leave zero remaining."""
        result = _schedule(SeriesDefinition(), required=1, count=4, last=date(2024, 1, 1))

        assert result.remaining_doses == 0
