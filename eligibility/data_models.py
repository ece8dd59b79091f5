"""Unified data models for the vaccine eligibility engine.

This module provides all core dataclasses passed between engine steps. Every
model is frozen: a compiled rule set is shared read-only across evaluations,
and per-evaluation objects (normalized profile, dose index, results) are never
mutated after construction.

Optional fields use ``None`` to mean "not configured". An empty collection is
a different thing from ``None`` and is preserved as such.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from datetime import date
from typing import Any, Dict, FrozenSet, List, Optional, Tuple, Union

from .enums import Status
from .utils import format_iso_date

Number = Union[int, float]


@dataclass(frozen=True)
class DoseMilestone:
    """Earliest eligible age for a specific dose number.

    Fields
    ------
    dose_number : int
        Dose in the primary series this milestone applies to (1-based).
    earliest_age_months : int, optional
        Earliest age in months; checked before weeks.
    earliest_age_weeks : int, optional
        Earliest age in weeks; used when months is not set.
    """

    dose_number: int
    earliest_age_months: Optional[int] = None
    earliest_age_weeks: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"doseNumber": self.dose_number}
        if self.earliest_age_months is not None:
            payload["earliestAgeMonths"] = self.earliest_age_months
        if self.earliest_age_weeks is not None:
            payload["earliestAgeWeeks"] = self.earliest_age_weeks
        return payload


@dataclass(frozen=True)
class SeriesDefinition:
    """Dosing series definition; every field is independently optional.

    Due-date strategies are tried in a fixed precedence by the scheduler:
    dose milestones, then the minimum interval, then "due now". Once the
    primary series is complete, ``repeat_every_days`` schedules boosters.

    Fields
    ------
    doses_required_default : int, optional
        Number of doses in the primary series.
    max_lifetime_doses : int, optional
        Lifetime cap; once reached nothing further is scheduled.
    dose_milestones : Tuple[DoseMilestone, ...], optional
        Age-anchored due dates per dose number.
    min_interval_days_default : int, optional
        Minimum days between consecutive doses.
    repeat_every_days : int, optional
        Booster interval once the primary series is complete.
    """

    doses_required_default: Optional[int] = None
    max_lifetime_doses: Optional[int] = None
    dose_milestones: Optional[Tuple[DoseMilestone, ...]] = None
    min_interval_days_default: Optional[int] = None
    repeat_every_days: Optional[int] = None

    def overridden_by(self, override: Optional["SeriesDefinition"]) -> "SeriesDefinition":
        """Apply a clause-level override field by field.

        A field set on ``override`` replaces the same field here; a field left
        unset on ``override`` keeps this definition's value.

        Parameters
        ----------
        override : SeriesDefinition | None
            Override from a matched clause. None returns self unchanged.

        Returns
        -------
        SeriesDefinition
            The effective series definition.
        """
        if override is None:
            return self
        changes = {
            f.name: getattr(override, f.name)
            for f in fields(override)
            if getattr(override, f.name) is not None
        }
        return replace(self, **changes)

    def milestone_for(self, dose_number: int) -> Optional[DoseMilestone]:
        """Return the first milestone configured for ``dose_number``, if any."""
        for milestone in self.dose_milestones or ():
            if milestone.dose_number == dose_number:
                return milestone
        return None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {}
        if self.doses_required_default is not None:
            payload["dosesRequiredDefault"] = self.doses_required_default
        if self.max_lifetime_doses is not None:
            payload["maxLifetimeDoses"] = self.max_lifetime_doses
        if self.dose_milestones is not None:
            payload["doseMilestones"] = [m.to_dict() for m in self.dose_milestones]
        if self.min_interval_days_default is not None:
            payload["minIntervalDaysDefault"] = self.min_interval_days_default
        if self.repeat_every_days is not None:
            payload["repeatEveryDays"] = self.repeat_every_days
        return payload


# Clause field name -> raw camelCase key, for the numeric bounds.
CLAUSE_BOUND_KEYS: Tuple[Tuple[str, str], ...] = (
    ("min_age_years", "minAgeYears"),
    ("max_age_years", "maxAgeYears"),
    ("min_age_months", "minAgeMonths"),
    ("max_age_months", "maxAgeMonths"),
    ("min_age_weeks", "minAgeWeeks"),
    ("max_age_weeks", "maxAgeWeeks"),
    ("birth_year_min", "birthYearMin"),
    ("birth_year_max", "birthYearMax"),
    ("require_doses_less_than", "requireDosesLessThan"),
    ("require_doses_at_least", "requireDosesAtLeast"),
    ("min_days_since_last_dose", "minDaysSinceLastDose"),
)

CLAUSE_TAG_KEYS: Tuple[Tuple[str, str], ...] = (
    ("require_risk_tags_any", "requireRiskTagsAny"),
    ("forbid_risk_tags_any", "forbidRiskTagsAny"),
    ("require_chronic_any", "requireChronicAny"),
    ("forbid_chronic_any", "forbidChronicAny"),
)


@dataclass(frozen=True)
class EligibilityClause:
    """A named, prioritized eligibility predicate within a vaccine rule.

    Every bound is optional and an absent bound never constrains. Maximum
    ages are exclusive ("under N") while birth-year bounds are inclusive.
    Tag sets are ``None`` when not configured; an empty set is kept as an
    explicit (and vacuous) constraint.
    """

    clause_id: str
    priority: Number
    min_age_years: Optional[Number] = None
    max_age_years: Optional[Number] = None
    min_age_months: Optional[Number] = None
    max_age_months: Optional[Number] = None
    min_age_weeks: Optional[Number] = None
    max_age_weeks: Optional[Number] = None
    birth_year_min: Optional[Number] = None
    birth_year_max: Optional[Number] = None
    require_risk_tags_any: Optional[FrozenSet[str]] = None
    forbid_risk_tags_any: Optional[FrozenSet[str]] = None
    require_chronic_any: Optional[FrozenSet[str]] = None
    forbid_chronic_any: Optional[FrozenSet[str]] = None
    require_doses_less_than: Optional[Number] = None
    require_doses_at_least: Optional[Number] = None
    min_days_since_last_dose: Optional[Number] = None
    series_override: Optional[SeriesDefinition] = None
    required_doses_override: Optional[int] = None
    reasons: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "clauseId": self.clause_id,
            "priority": self.priority,
        }
        for attr, key in CLAUSE_BOUND_KEYS:
            value = getattr(self, attr)
            if value is not None:
                payload[key] = value
        for attr, key in CLAUSE_TAG_KEYS:
            value = getattr(self, attr)
            if value is not None:
                payload[key] = sorted(value)
        if self.series_override is not None:
            payload["seriesOverride"] = self.series_override.to_dict()
        if self.required_doses_override is not None:
            payload["requiredDosesOverride"] = self.required_doses_override
        payload["reasons"] = list(self.reasons)
        return payload


@dataclass(frozen=True)
class VaccineRule:
    """Eligibility rule for a single vaccine.

    Fields
    ------
    vaccine_key : str
        Unique key within the rule set (e.g. 'HPV').
    display_name : str
        Human-readable name; defaults to the vaccine key.
    aliases_for_dose_counting : Tuple[str, ...]
        Other vaccine keys whose recorded doses also count toward this one
        (e.g. 'MMRV' counting toward both 'MMR' and 'VAR').
    series : SeriesDefinition
        Default dosing series.
    clauses : Tuple[EligibilityClause, ...]
        Clauses in evaluation order: (priority, clause_id, declaration order).
    """

    vaccine_key: str
    display_name: str
    aliases_for_dose_counting: Tuple[str, ...] = ()
    series: SeriesDefinition = field(default_factory=SeriesDefinition)
    clauses: Tuple[EligibilityClause, ...] = ()

    @property
    def dose_keys(self) -> FrozenSet[str]:
        """History keys that count as a dose of this vaccine (own key + aliases)."""
        keys = {self.vaccine_key}
        keys.update(alias.strip() for alias in self.aliases_for_dose_counting if alias.strip())
        return frozenset(keys)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "vaccineKey": self.vaccine_key,
            "displayName": self.display_name,
            "aliasesForDoseCounting": list(self.aliases_for_dose_counting),
            "series": self.series.to_dict(),
            "clauses": [clause.to_dict() for clause in self.clauses],
        }


@dataclass(frozen=True)
class CompiledRuleSet:
    """Validated, deterministically ordered rule set.

    Built once per rule-set version by ``compile_rule_set`` and shared by
    reference across evaluations. ``warnings`` records recoverable problems
    found while compiling (skipped rules, dropped clauses) and does not take
    part in equality.
    """

    due_soon_window_days: Number
    vaccine_rules: Tuple[VaccineRule, ...]
    rules_by_key: Dict[str, VaccineRule] = field(default_factory=dict, compare=False, repr=False)
    warnings: Tuple[str, ...] = field(default=(), compare=False)

    def get(self, vaccine_key: str) -> Optional[VaccineRule]:
        """Look up a rule by vaccine key."""
        return self.rules_by_key.get(vaccine_key)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize back into the raw rule-set shape accepted by the compiler."""
        return {
            "dueSoonWindowDays": self.due_soon_window_days,
            "vaccineRules": [rule.to_dict() for rule in self.vaccine_rules],
        }


@dataclass(frozen=True)
class HistoryEntry:
    """One cleaned vaccination history row."""

    vaccine_key: str
    date: date


@dataclass(frozen=True)
class NormalizedProfile:
    """Computed demographic snapshot of a patient as of the evaluation date.

    Fields
    ------
    as_of : date
        Evaluation date.
    date_of_birth : date
        Birth date.
    age_years, age_months, age_weeks : int
        Whole ages as of ``as_of``.
    birth_year : int
        Year of birth.
    risk_tags, chronic_conditions : FrozenSet[str]
        Unordered membership sets.
    history : Tuple[HistoryEntry, ...]
        Valid history rows sorted ascending by date; duplicates are kept.
    profile_id : str, optional
        Caller's identifier for the profile, passed through.
    gender : str
        Passed through; defaults to 'PREFER_NOT_TO_SAY'.
    warnings : Tuple[str, ...]
        Dropped history rows and other recoverable problems.
    """

    as_of: date
    date_of_birth: date
    age_years: int
    age_months: int
    age_weeks: int
    birth_year: int
    risk_tags: FrozenSet[str]
    chronic_conditions: FrozenSet[str]
    history: Tuple[HistoryEntry, ...]
    profile_id: Optional[str] = None
    gender: str = "PREFER_NOT_TO_SAY"
    warnings: Tuple[str, ...] = field(default=(), compare=False)


@dataclass(frozen=True)
class DoseTally:
    """Dose count and most recent dose date for one vaccine."""

    count: int = 0
    last_dose: Optional[date] = None


@dataclass(frozen=True)
class DoseIndex:
    """Per-vaccine dose tallies for every vaccine key in the rule set."""

    tallies: Dict[str, DoseTally]

    def taken(self, vaccine_key: str) -> int:
        tally = self.tallies.get(vaccine_key)
        return tally.count if tally else 0

    def last_dose(self, vaccine_key: str) -> Optional[date]:
        tally = self.tallies.get(vaccine_key)
        return tally.last_dose if tally else None


@dataclass(frozen=True)
class ResolvedSeries:
    """Effective series and required dose count for a matched clause."""

    series: SeriesDefinition
    required_doses: int


@dataclass(frozen=True)
class NextDose:
    """Scheduler output for one vaccine.

    Fields
    ------
    remaining_doses : int
        Doses left in the primary series (0 when complete or capped).
    next_dose_number : int, optional
        Number of the next primary-series dose; None for boosters.
    due_date : date, optional
        When the next dose or booster is due; None when nothing is scheduled.
    reason : str
        How the due date was computed.
    """

    remaining_doses: int
    next_dose_number: Optional[int]
    due_date: Optional[date]
    reason: str


@dataclass(frozen=True)
class VaccineResult:
    """Evaluation outcome for one vaccine rule and one profile.

    ``to_dict`` returns the record handed to the host application for
    storage and display; reasons keep their explanation order.
    """

    vaccine_key: str
    display_name: str
    status: Status
    due_date: Optional[date]
    next_dose_number: Optional[int]
    remaining_doses: int
    taken_doses: int
    required_doses: int
    last_dose_date: Optional[date]
    matched_clause_id: Optional[str]
    computation_reason: str
    reasons: Tuple[str, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "vaccineKey": self.vaccine_key,
            "displayName": self.display_name,
            "status": self.status.value,
            "dueDate": format_iso_date(self.due_date),
            "nextDoseNumber": self.next_dose_number,
            "remainingDoses": self.remaining_doses,
            "takenDoses": self.taken_doses,
            "requiredDoses": self.required_doses,
            "lastDoseDate": format_iso_date(self.last_dose_date),
            "matchedClauseId": self.matched_clause_id,
            "computationReason": self.computation_reason,
            "reasons": list(self.reasons),
        }


def results_to_dicts(results: List[VaccineResult]) -> List[Dict[str, Any]]:
    """Serialize a result list for the caller's storage/transport layer."""
    return [result.to_dict() for result in results]
