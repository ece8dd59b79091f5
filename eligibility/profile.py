"""Profile normalization for the vaccine eligibility engine.

Converts a raw patient record plus an explicit evaluation date into a
``NormalizedProfile``: whole ages in years, months and weeks, birth year,
tag sets and a cleaned, date-sorted vaccination history.

**Input Contract:**
- ``dateOfBirth`` as a strict ``YYYY-MM-DD`` string (required)
- Optional ``riskTags``, ``chronicConditions`` lists and a
  ``vaccinationHistory`` list of ``{vaccineKey, date}`` rows
- Evaluation date as a strict ``YYYY-MM-DD`` string

**Error Handling:**
- Missing/malformed evaluation date or birth date raise ``ProfileError``
- A birth date after the evaluation date is evaluated as given, with a warning
- Malformed history rows are dropped with a warning; the rest still count
- Non-list collections are treated as empty with a warning
"""

from __future__ import annotations

import logging
from typing import Any, FrozenSet, List, Mapping, Optional

from .data_models import HistoryEntry, NormalizedProfile
from .errors import ProfileError
from .utils import (
    age_in_months,
    age_in_weeks,
    age_in_years,
    parse_iso_date,
    string_or_empty,
    string_tuple,
)

LOG = logging.getLogger(__name__)

DEFAULT_GENDER = "PREFER_NOT_TO_SAY"


def _string_set(
    raw: Mapping[str, Any], key: str, warnings: List[str]
) -> FrozenSet[str]:
    value = raw.get(key)
    if value is None:
        return frozenset()
    items = string_tuple(value)
    if items is None:
        message = f"Profile {key} is not a list; treating as empty"
        LOG.warning(message)
        warnings.append(message)
        return frozenset()
    return frozenset(items)


def normalize_history(raw_history: Any, warnings: List[str]) -> tuple:
    """Clean raw vaccination history rows.

    Each row needs a non-empty ``vaccineKey`` (legacy ``vaccine`` accepted)
    and a valid ``date`` (legacy ``timestamp`` accepted). Rows failing either
    check are dropped; duplicates are kept.

    Parameters
    ----------
    raw_history : Any
        Raw ``vaccinationHistory`` value.
    warnings : List[str]
        Collector for dropped-row messages.

    Returns
    -------
    tuple[HistoryEntry, ...]
        Valid rows sorted ascending by date (stable for equal dates).
    """
    if raw_history is None:
        return ()
    if not isinstance(raw_history, (list, tuple)):
        message = "Profile vaccinationHistory is not a list; treating as empty"
        LOG.warning(message)
        warnings.append(message)
        return ()

    entries: List[HistoryEntry] = []
    for index, row in enumerate(raw_history):
        if not isinstance(row, Mapping):
            message = f"Dropping history row {index}: not a mapping"
            LOG.warning(message)
            warnings.append(message)
            continue
        vaccine_key = string_or_empty(row.get("vaccineKey") or row.get("vaccine"))
        raw_date = row.get("date") or row.get("timestamp")
        given = parse_iso_date(raw_date)
        if not vaccine_key or given is None:
            message = (
                f"Dropping history row {index}: "
                f"vaccineKey={vaccine_key!r}, date={raw_date!r}"
            )
            LOG.warning(message)
            warnings.append(message)
            continue
        entries.append(HistoryEntry(vaccine_key=vaccine_key, date=given))

    entries.sort(key=lambda entry: entry.date)
    return tuple(entries)


def normalize_profile(raw: Mapping[str, Any], as_of_iso: str) -> NormalizedProfile:
    """Build the normalized snapshot used by every downstream step.

    Parameters
    ----------
    raw : Mapping[str, Any]
        Raw profile record from the host application.
    as_of_iso : str
        Evaluation date, ``YYYY-MM-DD``.

    Returns
    -------
    NormalizedProfile
        Immutable snapshot; created fresh for every evaluation.

    Raises
    ------
    ProfileError
        If the profile is not a mapping, the evaluation date or birth date is
        missing or malformed.

    Examples
    --------
    >>> p = normalize_profile({"dateOfBirth": "2012-03-01"}, "2026-02-20")
    >>> (p.age_years, p.age_months, p.birth_year)
    (13, 167, 2012)
    """
    if not isinstance(raw, Mapping):
        raise ProfileError(f"Profile must be a mapping, got {type(raw).__name__}")

    as_of = parse_iso_date(as_of_iso)
    if as_of is None:
        raise ProfileError(f"Evaluation date must be YYYY-MM-DD, got {as_of_iso!r}")

    date_of_birth = parse_iso_date(raw.get("dateOfBirth"))
    if date_of_birth is None:
        raise ProfileError(
            f"Profile dateOfBirth must be YYYY-MM-DD, got {raw.get('dateOfBirth')!r}"
        )

    warnings: List[str] = []
    if date_of_birth > as_of:
        message = (
            f"Profile dateOfBirth {date_of_birth.isoformat()} is after "
            f"evaluation date {as_of.isoformat()}; ages will be negative"
        )
        LOG.warning(message)
        warnings.append(message)

    history = normalize_history(raw.get("vaccinationHistory"), warnings)

    profile_id: Optional[str] = string_or_empty(raw.get("userId") or raw.get("profileId")) or None

    return NormalizedProfile(
        as_of=as_of,
        date_of_birth=date_of_birth,
        age_years=age_in_years(date_of_birth, as_of),
        age_months=age_in_months(date_of_birth, as_of),
        age_weeks=age_in_weeks(date_of_birth, as_of),
        birth_year=date_of_birth.year,
        risk_tags=_string_set(raw, "riskTags", warnings),
        chronic_conditions=_string_set(raw, "chronicConditions", warnings),
        history=history,
        profile_id=profile_id,
        gender=string_or_empty(raw.get("gender")) or DEFAULT_GENDER,
        warnings=tuple(warnings),
    )
