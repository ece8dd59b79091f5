"""Next-dose scheduling for an eligible vaccine.

Due-date precedence while the primary series is incomplete:

A. a dose milestone for the next dose number: birth date + earliest age in
   months (checked first) or weeks; a milestone with neither is due on the
   evaluation date
B. the default minimum interval, when a prior dose exists: last dose + days
C. otherwise due on the evaluation date

Once the primary series is complete, ``repeat_every_days`` schedules a
booster (due now when no dose was ever recorded). Without a booster interval
nothing further is scheduled. A reached lifetime cap overrides everything.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from .data_models import (
    DoseIndex,
    EligibilityClause,
    NextDose,
    NormalizedProfile,
    SeriesDefinition,
    VaccineRule,
)
from .utils import add_days, add_months_clamped

LOG = logging.getLogger(__name__)


def _primary_series_due(
    series: SeriesDefinition,
    profile: NormalizedProfile,
    next_dose_number: int,
    taken: int,
    last_dose: Optional[date],
    remaining: int,
    as_of: date,
) -> NextDose:
    milestone = series.milestone_for(next_dose_number)
    if milestone is not None:
        if milestone.earliest_age_months is not None:
            return NextDose(
                remaining_doses=remaining,
                next_dose_number=next_dose_number,
                due_date=add_months_clamped(profile.date_of_birth, milestone.earliest_age_months),
                reason=(
                    f"Dose milestone: DOB + {milestone.earliest_age_months} months "
                    f"(dose {next_dose_number})"
                ),
            )
        if milestone.earliest_age_weeks is not None:
            return NextDose(
                remaining_doses=remaining,
                next_dose_number=next_dose_number,
                due_date=add_days(profile.date_of_birth, milestone.earliest_age_weeks * 7),
                reason=(
                    f"Dose milestone: DOB + {milestone.earliest_age_weeks} weeks "
                    f"(dose {next_dose_number})"
                ),
            )
        return NextDose(
            remaining_doses=remaining,
            next_dose_number=next_dose_number,
            due_date=as_of,
            reason=(
                f"Milestone found for dose {next_dose_number}, but no earliest age "
                "provided; defaulting due date to as-of date"
            ),
        )

    interval = series.min_interval_days_default
    if interval is not None and taken > 0 and last_dose is not None:
        return NextDose(
            remaining_doses=remaining,
            next_dose_number=next_dose_number,
            due_date=add_days(last_dose, interval),
            reason=f"Min interval: last dose + {interval} days (dose {next_dose_number})",
        )

    return NextDose(
        remaining_doses=remaining,
        next_dose_number=next_dose_number,
        due_date=as_of,
        reason=(
            "No milestone/interval available; defaulting due date to as-of date "
            f"(dose {next_dose_number})"
        ),
    )


def compute_next_dose(
    rule: VaccineRule,
    clause: Optional[EligibilityClause],
    profile: NormalizedProfile,
    dose_index: DoseIndex,
    series: SeriesDefinition,
    required_doses: int,
    as_of: date,
) -> NextDose:
    """Compute remaining doses and the next due date for one vaccine.

    Parameters
    ----------
    rule : VaccineRule
        Vaccine rule being scheduled.
    clause : EligibilityClause | None
        Matched clause; used for logging only.
    profile : NormalizedProfile
        Normalized profile (birth date for milestones).
    dose_index : DoseIndex
        Dose tallies for the rule's vaccine key.
    series : SeriesDefinition
        Effective series from ``resolve_series``.
    required_doses : int
        Effective required dose count from ``resolve_series``.
    as_of : date
        Evaluation date.

    Returns
    -------
    NextDose
        Remaining doses, next dose number, due date and a reason string.
    """
    vaccine_key = rule.vaccine_key
    taken = dose_index.taken(vaccine_key)
    last_dose = dose_index.last_dose(vaccine_key)

    if series.max_lifetime_doses is not None and taken >= series.max_lifetime_doses:
        result = NextDose(
            remaining_doses=0,
            next_dose_number=None,
            due_date=None,
            reason="Max lifetime doses reached",
        )
    else:
        remaining = max(0, required_doses - taken)
        if remaining > 0:
            result = _primary_series_due(
                series, profile, taken + 1, taken, last_dose, remaining, as_of
            )
        elif series.repeat_every_days is not None:
            if last_dose is None:
                result = NextDose(
                    remaining_doses=0,
                    next_dose_number=None,
                    due_date=as_of,
                    reason="Repeat schedule: no prior dose; due now",
                )
            else:
                result = NextDose(
                    remaining_doses=0,
                    next_dose_number=None,
                    due_date=add_days(last_dose, series.repeat_every_days),
                    reason=f"Repeat schedule: last dose + {series.repeat_every_days} days",
                )
        else:
            result = NextDose(
                remaining_doses=0,
                next_dose_number=None,
                due_date=None,
                reason="Series complete; no booster rule",
            )

    LOG.debug(
        "%s (clause %s): %s",
        vaccine_key,
        clause.clause_id if clause is not None else "-",
        result.reason,
    )
    return result
