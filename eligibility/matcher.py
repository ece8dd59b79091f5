"""Clause matching: does one eligibility clause apply to this profile?

Checks run in a fixed order and the first failing check short-circuits:

1. age in years (min inclusive, max exclusive)
2. age in months (min inclusive, max exclusive)
3. age in weeks (min inclusive, max exclusive)
4. birth year (min and max both inclusive)
5. required risk tags (any of)
6. forbidden risk tags (any of)
7. required chronic conditions (any of)
8. forbidden chronic conditions (any of)
9. dose count strictly less than
10. dose count at least
11. minimum days since the last dose (requires a prior dose)

Maximum ages model "under N" windows, hence exclusive; birth-year bounds
name calendar years a patient may be born in, hence inclusive.
"""

from __future__ import annotations

from typing import FrozenSet, Optional

from .data_models import DoseIndex, EligibilityClause, NormalizedProfile, VaccineRule
from .utils import days_between


def _within(value: int, minimum, maximum) -> bool:
    """Min inclusive, max exclusive; None bounds never constrain."""
    if minimum is not None and value < minimum:
        return False
    if maximum is not None and value >= maximum:
        return False
    return True


def _requires_any(required: Optional[FrozenSet[str]], present: FrozenSet[str]) -> bool:
    if not required:
        return True
    return not required.isdisjoint(present)


def _forbids_any(forbidden: Optional[FrozenSet[str]], present: FrozenSet[str]) -> bool:
    if not forbidden:
        return True
    return forbidden.isdisjoint(present)


def matches_clause(
    clause: EligibilityClause,
    profile: NormalizedProfile,
    dose_index: DoseIndex,
    vaccine_key: str,
) -> bool:
    """Evaluate one clause against the profile and dose index.

    Parameters
    ----------
    clause : EligibilityClause
        Clause to test.
    profile : NormalizedProfile
        Normalized profile (ages, tags, evaluation date).
    dose_index : DoseIndex
        Dose tallies; looked up by ``vaccine_key``.
    vaccine_key : str
        Vaccine whose dose count and last dose apply.

    Returns
    -------
    bool
        True when every configured constraint holds.
    """
    if not _within(profile.age_years, clause.min_age_years, clause.max_age_years):
        return False
    if not _within(profile.age_months, clause.min_age_months, clause.max_age_months):
        return False
    if not _within(profile.age_weeks, clause.min_age_weeks, clause.max_age_weeks):
        return False

    if clause.birth_year_min is not None and profile.birth_year < clause.birth_year_min:
        return False
    if clause.birth_year_max is not None and profile.birth_year > clause.birth_year_max:
        return False

    if not _requires_any(clause.require_risk_tags_any, profile.risk_tags):
        return False
    if not _forbids_any(clause.forbid_risk_tags_any, profile.risk_tags):
        return False
    if not _requires_any(clause.require_chronic_any, profile.chronic_conditions):
        return False
    if not _forbids_any(clause.forbid_chronic_any, profile.chronic_conditions):
        return False

    taken = dose_index.taken(vaccine_key)
    if clause.require_doses_less_than is not None and not taken < clause.require_doses_less_than:
        return False
    if clause.require_doses_at_least is not None and not taken >= clause.require_doses_at_least:
        return False

    if clause.min_days_since_last_dose is not None:
        last_dose = dose_index.last_dose(vaccine_key)
        if last_dose is None:
            return False
        if days_between(last_dose, profile.as_of) < clause.min_days_since_last_dose:
            return False

    return True


def find_matching_clause(
    rule: VaccineRule, profile: NormalizedProfile, dose_index: DoseIndex
) -> Optional[EligibilityClause]:
    """Return the first clause (in compiled order) that matches, or None."""
    for clause in rule.clauses:
        if matches_clause(clause, profile, dose_index, rule.vaccine_key):
            return clause
    return None
