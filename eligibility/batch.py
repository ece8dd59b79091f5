"""Batch evaluation of many patient profiles against one rule set.

Clinic dashboards list many patients at once; this module evaluates them
against a single compiled rule set and flattens the outcome into a tabular
summary.

**Input Contract:**
- A sequence of ``(profile_id, raw_profile)`` pairs
- One rule set (compiled once up front and shared by every evaluation)

**Output Contract:**
- One ``ProfileOutcome`` per input profile, in input order
- ``results_to_frame`` yields one row per profile and vaccine, plus one row
  per failed profile carrying its error message
- ``write_summary`` writes the frame as CSV

**Error Handling:**
- A malformed rule set raises immediately (infrastructure error)
- A fatal profile error (bad birth date, non-mapping profile) is logged and
  recorded on that profile's outcome; the remaining profiles continue
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

import pandas as pd

from .compiler import compile_rule_set
from .data_models import CompiledRuleSet, VaccineResult
from .errors import ProfileError
from .orchestrator import evaluate_all_vaccines
from .utils import format_iso_date, string_or_empty

LOG = logging.getLogger(__name__)

SUMMARY_COLUMNS = [
    "profileId",
    "vaccineKey",
    "displayName",
    "status",
    "dueDate",
    "nextDoseNumber",
    "remainingDoses",
    "takenDoses",
    "requiredDoses",
    "lastDoseDate",
    "matchedClauseId",
    "computationReason",
    "error",
]


@dataclass(frozen=True)
class ProfileOutcome:
    """Results for one profile, or the error that stopped its evaluation."""

    profile_id: str
    results: Tuple[VaccineResult, ...] = ()
    error: Optional[str] = None


def profiles_with_ids(raw_profiles: Sequence[Any]) -> List[Tuple[str, Any]]:
    """Pair raw profiles with identifiers.

    Uses the profile's ``userId`` or ``profileId`` when present, otherwise
    its 1-based position (``profile-<n>``).
    """
    pairs = []
    for position, raw in enumerate(raw_profiles, start=1):
        profile_id = ""
        if isinstance(raw, Mapping):
            profile_id = string_or_empty(raw.get("userId")) or string_or_empty(raw.get("profileId"))
        pairs.append((profile_id or f"profile-{position}", raw))
    return pairs


def evaluate_profiles(
    profiles: Iterable[Tuple[str, Any]],
    rule_set: Union[CompiledRuleSet, Mapping[str, Any]],
    as_of_iso: str,
    due_soon_window_days=None,
    sort_results: bool = True,
) -> List[ProfileOutcome]:
    """Evaluate each profile, recording per-profile failures.

    Parameters
    ----------
    profiles : Iterable[Tuple[str, Any]]
        ``(profile_id, raw_profile)`` pairs.
    rule_set : CompiledRuleSet | Mapping[str, Any]
        Rule set; a raw one is compiled once before the loop.
    as_of_iso : str
        Evaluation date as ``YYYY-MM-DD``.
    due_soon_window_days : int | float, optional
        Overrides the rule set's window when numeric.
    sort_results : bool, default True
        Sort each profile's results by status, due date and vaccine key.

    Returns
    -------
    List[ProfileOutcome]
        One outcome per profile, in input order.

    Raises
    ------
    RuleSetError
        If the rule set cannot be compiled.
    """
    compiled = compile_rule_set(rule_set)

    outcomes: List[ProfileOutcome] = []
    for profile_id, raw_profile in profiles:
        try:
            results = evaluate_all_vaccines(
                raw_profile,
                compiled,
                as_of_iso,
                due_soon_window_days=due_soon_window_days,
                sort_results=sort_results,
            )
        except ProfileError as exc:
            LOG.warning("Skipping profile %s: %s", profile_id, exc)
            outcomes.append(ProfileOutcome(profile_id=profile_id, error=str(exc)))
            continue
        outcomes.append(ProfileOutcome(profile_id=profile_id, results=tuple(results)))

    failed = sum(1 for outcome in outcomes if outcome.error is not None)
    LOG.info("Evaluated %d profile(s); %d failed", len(outcomes), failed)
    return outcomes


def results_to_frame(outcomes: Sequence[ProfileOutcome]) -> pd.DataFrame:
    """Flatten batch outcomes into one row per profile and vaccine.

    Failed profiles contribute a single row with only ``profileId`` and
    ``error`` filled in.
    """
    rows = []
    for outcome in outcomes:
        if outcome.error is not None:
            rows.append({"profileId": outcome.profile_id, "error": outcome.error})
            continue
        for result in outcome.results:
            rows.append(
                {
                    "profileId": outcome.profile_id,
                    "vaccineKey": result.vaccine_key,
                    "displayName": result.display_name,
                    "status": result.status.value,
                    "dueDate": format_iso_date(result.due_date),
                    "nextDoseNumber": result.next_dose_number,
                    "remainingDoses": result.remaining_doses,
                    "takenDoses": result.taken_doses,
                    "requiredDoses": result.required_doses,
                    "lastDoseDate": format_iso_date(result.last_dose_date),
                    "matchedClauseId": result.matched_clause_id,
                    "computationReason": result.computation_reason,
                    "error": None,
                }
            )

    frame = pd.DataFrame(rows, columns=SUMMARY_COLUMNS)
    # Keep dose numbers integral even when some rows have none
    frame["nextDoseNumber"] = frame["nextDoseNumber"].astype("Int64")
    return frame


def write_summary(frame: pd.DataFrame, output_path: Path) -> Path:
    """Write a batch summary frame to CSV, creating parent directories."""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    frame.to_csv(output_path, index=False)
    LOG.info("Batch summary written to %s (%d row(s))", output_path, len(frame))
    return output_path
