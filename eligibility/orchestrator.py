"""Vaccine eligibility evaluation orchestrator.

Runs every engine step for one profile: normalize the profile once, index the
dose history once, then match, resolve, schedule and classify each vaccine
rule in rule-set order. Also provides the ``vaccine-eligibility`` command.

**Error Handling Philosophy:**

- **Fatal input errors** (malformed evaluation date, missing or malformed
  birth date, malformed rule set) raise immediately:
  - No partial results; the caller gets the error or the full result list
  - The command exits with code 1

- **Recoverable data errors** (bad history rows, malformed clauses or
  fields) are logged and skipped:
  - The remaining data is evaluated normally
  - Warnings are kept on the compiled rule set and normalized profile

**Exit Codes:**
- 0: Evaluation completed successfully
- 1: Evaluation failed (bad input file, bad configuration or fatal input error)
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import date
from pathlib import Path
from typing import Any, List, Mapping, Optional, Union

import yaml

from .compiler import compile_rule_set, load_rule_set
from .config_loader import (
    DEFAULT_CONFIG_PATH,
    get_evaluation_settings,
    get_log_level,
    load_config,
    resolve_rule_set_path,
)
from .data_models import (
    CompiledRuleSet,
    DoseIndex,
    NextDose,
    NormalizedProfile,
    VaccineResult,
    VaccineRule,
    results_to_dicts,
)
from .dose_index import build_dose_index
from .errors import EligibilityError
from .logger_config import configure_logging
from .matcher import find_matching_clause
from .profile import normalize_profile
from .scheduler import compute_next_dose
from .series import resolve_series
from .status import build_reasons, determine_status
from .utils import finite_number

LOG = logging.getLogger(__name__)

NOT_ELIGIBLE_REASON = "Not eligible"


def evaluate_vaccine(
    rule: VaccineRule,
    profile: NormalizedProfile,
    dose_index: DoseIndex,
    as_of: date,
    due_soon_window_days,
) -> VaccineResult:
    """Evaluate a single vaccine rule for a normalized profile.

    Parameters
    ----------
    rule : VaccineRule
        Compiled vaccine rule.
    profile : NormalizedProfile
        Normalized profile.
    dose_index : DoseIndex
        Dose tallies built from the profile's history.
    as_of : date
        Evaluation date.
    due_soon_window_days : int | float
        Window used to classify DUE_SOON.

    Returns
    -------
    VaccineResult
        Status, scheduling detail and explanation trail for the vaccine.
    """
    taken = dose_index.taken(rule.vaccine_key)
    last_dose = dose_index.last_dose(rule.vaccine_key)
    clause = find_matching_clause(rule, profile, dose_index)

    if clause is None:
        next_dose = NextDose(
            remaining_doses=0,
            next_dose_number=None,
            due_date=None,
            reason=NOT_ELIGIBLE_REASON,
        )
        required_doses = 0
    else:
        resolved = resolve_series(rule, clause)
        required_doses = resolved.required_doses
        next_dose = compute_next_dose(
            rule, clause, profile, dose_index, resolved.series, required_doses, as_of
        )

    status = determine_status(clause is not None, next_dose.due_date, as_of, due_soon_window_days)
    reasons = build_reasons(rule.vaccine_key, clause, taken, required_doses, next_dose, status)

    return VaccineResult(
        vaccine_key=rule.vaccine_key,
        display_name=rule.display_name,
        status=status,
        due_date=next_dose.due_date,
        next_dose_number=next_dose.next_dose_number,
        remaining_doses=next_dose.remaining_doses,
        taken_doses=taken,
        required_doses=required_doses,
        last_dose_date=last_dose,
        matched_clause_id=clause.clause_id if clause is not None else None,
        computation_reason=next_dose.reason,
        reasons=tuple(reasons),
    )


def result_sort_key(result: VaccineResult):
    """Status rank, then due date (missing last), then vaccine key."""
    return (
        result.status.rank,
        result.due_date is None,
        result.due_date or date.min,
        result.vaccine_key,
    )


def evaluate_all_vaccines(
    raw_profile: Mapping[str, Any],
    rule_set: Union[CompiledRuleSet, Mapping[str, Any]],
    as_of_iso: str,
    due_soon_window_days=None,
    sort_results: bool = True,
) -> List[VaccineResult]:
    """Evaluate every vaccine rule for one patient profile.

    Parameters
    ----------
    raw_profile : Mapping[str, Any]
        Raw profile (``dateOfBirth``, ``riskTags``, ``chronicConditions``,
        ``vaccinationHistory``, ...).
    rule_set : CompiledRuleSet | Mapping[str, Any]
        Compiled rule set; a raw rule set is compiled on the fly.
    as_of_iso : str
        Evaluation date as ``YYYY-MM-DD``.
    due_soon_window_days : int | float, optional
        Overrides the rule set's window when numeric.
    sort_results : bool, default True
        Order by status rank, due date and vaccine key; otherwise keep
        rule-set order.

    Returns
    -------
    List[VaccineResult]
        One result per vaccine rule.

    Raises
    ------
    ProfileError
        If the evaluation date or birth date is missing or malformed.
    RuleSetError
        If a raw rule set cannot be compiled.

    Examples
    --------
    >>> rules = {"vaccineRules": [{"vaccineKey": "FLU", "clauses": [{"clauseId": "all"}]}]}
    >>> [r.status.value for r in evaluate_all_vaccines(
    ...     {"dateOfBirth": "1990-01-01"}, rules, "2026-01-01")]
    ['DUE_SOON']
    """
    compiled = compile_rule_set(rule_set)
    profile = normalize_profile(raw_profile, as_of_iso)
    dose_index = build_dose_index(profile, compiled)

    window = finite_number(due_soon_window_days)
    if window is None:
        window = compiled.due_soon_window_days

    results = [
        evaluate_vaccine(rule, profile, dose_index, profile.as_of, window)
        for rule in compiled.vaccine_rules
    ]

    if sort_results:
        results.sort(key=result_sort_key)

    LOG.debug(
        "Evaluated %d vaccine(s) for profile %s as of %s",
        len(results),
        profile.profile_id or "<unnamed>",
        as_of_iso,
    )
    return results


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Evaluate vaccine eligibility for one or more patient profiles",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s profile.json --as-of 2026-02-20
  %(prog)s clinic_profiles.json --output summary.csv
        """,
    )

    parser.add_argument(
        "profile_file",
        type=Path,
        help="JSON file holding one profile object or a list of profiles",
    )
    parser.add_argument(
        "--as-of",
        type=str,
        default=None,
        dest="as_of",
        help="Evaluation date YYYY-MM-DD (default: today)",
    )
    parser.add_argument(
        "--rules",
        type=Path,
        default=None,
        dest="rules_path",
        help="Rule set file (.yaml, .yml or .json); default from configuration",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_CONFIG_PATH,
        dest="config_path",
        help=f"Configuration file (default: {DEFAULT_CONFIG_PATH})",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        dest="output_path",
        help="Write results here (CSV for a list of profiles, JSON otherwise)",
    )
    parser.add_argument(
        "--no-sort",
        action="store_false",
        dest="sort_results",
        default=None,
        help="Keep rule-set order instead of sorting by status and due date",
    )

    return parser.parse_args()


def validate_args(args: argparse.Namespace) -> None:
    """Validate command-line arguments and raise errors if invalid."""
    if not args.profile_file.exists():
        raise FileNotFoundError(f"Profile file not found: {args.profile_file}")
    if args.rules_path is not None and not args.rules_path.exists():
        raise FileNotFoundError(f"Rule set file not found: {args.rules_path}")
    if args.as_of is None:
        args.as_of = date.today().isoformat()


def _load_profiles(path: Path) -> Any:
    with path.open("r", encoding="utf-8") as f:
        return json.load(f)


def _run_single(
    raw_profile: Mapping[str, Any],
    rule_set: CompiledRuleSet,
    as_of_iso: str,
    window,
    sort_results: bool,
    output_path: Optional[Path],
) -> None:
    results = evaluate_all_vaccines(raw_profile, rule_set, as_of_iso, window, sort_results)
    payload = json.dumps(results_to_dicts(results), indent=2)
    if output_path is None:
        print(payload)
    else:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(payload + "\n", encoding="utf-8")
        LOG.info("Wrote %d result(s) to %s", len(results), output_path)


def _run_batch(
    raw_profiles: List[Any],
    rule_set: CompiledRuleSet,
    as_of_iso: str,
    window,
    sort_results: bool,
    output_path: Optional[Path],
) -> None:
    from . import batch

    outcomes = batch.evaluate_profiles(
        batch.profiles_with_ids(raw_profiles),
        rule_set,
        as_of_iso,
        due_soon_window_days=window,
        sort_results=sort_results,
    )
    frame = batch.results_to_frame(outcomes)
    if output_path is None:
        print(frame.to_csv(index=False), end="")
    else:
        batch.write_summary(frame, output_path)

    failed = sum(1 for outcome in outcomes if outcome.error is not None)
    print(
        f"Evaluated {len(outcomes) - failed} of {len(outcomes)} profile(s); {failed} failed.",
        file=sys.stderr,
    )


def main() -> int:
    """Run the eligibility command."""
    try:
        args = parse_args()
        validate_args(args)
    except (ValueError, FileNotFoundError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    try:
        config = load_config(args.config_path)
    except (FileNotFoundError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    configure_logging(get_log_level(config))
    settings = get_evaluation_settings(config)
    sort_results = settings["sort_results"] if args.sort_results is None else args.sort_results
    rules_path = args.rules_path or resolve_rule_set_path(config)

    try:
        rule_set = load_rule_set(rules_path)
        raw_profiles = _load_profiles(args.profile_file)

        if isinstance(raw_profiles, list):
            _run_batch(
                raw_profiles,
                rule_set,
                args.as_of,
                settings["due_soon_window_days"],
                sort_results,
                args.output_path,
            )
        else:
            _run_single(
                raw_profiles,
                rule_set,
                args.as_of,
                settings["due_soon_window_days"],
                sort_results,
                args.output_path,
            )
        return 0

    except (EligibilityError, OSError, ValueError, yaml.YAMLError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
