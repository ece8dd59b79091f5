"""Status classification and explanation trail."""

from __future__ import annotations

from datetime import date
from typing import List, Optional

from .data_models import EligibilityClause, NextDose
from .enums import Status
from .utils import days_between, format_iso_date


def determine_status(
    eligible: bool,
    due_date: Optional[date],
    as_of: date,
    due_soon_window_days,
) -> Status:
    """Classify one vaccine into the status lattice.

    Parameters
    ----------
    eligible : bool
        Whether any clause matched.
    due_date : date | None
        Next due date from the scheduler.
    as_of : date
        Evaluation date.
    due_soon_window_days : int | float
        Days before the due date that count as DUE_SOON (inclusive).

    Returns
    -------
    Status
        NOT_ELIGIBLE without a match; ELIGIBLE with nothing scheduled;
        otherwise OVERDUE (due before as-of), DUE_SOON (0..window days) or
        ELIGIBLE (beyond the window).
    """
    if not eligible:
        return Status.NOT_ELIGIBLE
    if due_date is None:
        return Status.ELIGIBLE

    days_until = days_between(as_of, due_date)
    if days_until < 0:
        return Status.OVERDUE
    if days_until <= due_soon_window_days:
        return Status.DUE_SOON
    return Status.ELIGIBLE


def build_reasons(
    vaccine_key: str,
    clause: Optional[EligibilityClause],
    taken: int,
    required_doses: int,
    next_dose: NextDose,
    status: Status,
) -> List[str]:
    """Build the ordered explanation trail for one result.

    Order is fixed because downstream consumers read policy reasons before
    scheduling detail:

    1. the matched clause's declared reasons
    2. which clause matched (or that none did)
    3. dose progress
    4. due date line and schedule logic (eligible results only)
    5. a status summary
    """
    reasons: List[str] = []

    if clause is not None:
        reasons.extend(clause.reasons)
        reasons.append(f"Matched eligibility rule: {clause.clause_id}")
    else:
        reasons.append(f"No eligibility rule matched for {vaccine_key}")

    if required_doses > 0:
        reasons.append(
            f"Dose history: {min(taken, required_doses)}/{required_doses} documented dose(s)."
        )
    else:
        reasons.append(f"Dose history: {taken} documented dose(s).")

    if status is not Status.NOT_ELIGIBLE:
        if next_dose.due_date is not None:
            reasons.append(f"Next dose due date: {format_iso_date(next_dose.due_date)}.")
        else:
            reasons.append("No next dose due date (series complete or no booster rule).")
        reasons.append(f"Schedule logic: {next_dose.reason}")

    reasons.append(f"Status: {status.value}.")
    return reasons
