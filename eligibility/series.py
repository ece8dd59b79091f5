"""Series resolution for a matched clause."""

from __future__ import annotations

from .data_models import EligibilityClause, ResolvedSeries, VaccineRule

FALLBACK_REQUIRED_DOSES = 1


def resolve_series(rule: VaccineRule, clause: EligibilityClause) -> ResolvedSeries:
    """Determine the effective series and required dose count.

    The clause's ``series_override`` is applied field by field on top of the
    rule's default series. The required dose count is the clause's
    ``required_doses_override`` when positive, else the effective series'
    ``doses_required_default`` when positive, else one dose.

    Parameters
    ----------
    rule : VaccineRule
        Rule whose clause matched.
    clause : EligibilityClause
        The matched clause.

    Returns
    -------
    ResolvedSeries
        Effective series definition and required dose count.
    """
    series = rule.series.overridden_by(clause.series_override)

    override = clause.required_doses_override
    if override is not None and override > 0:
        required = override
    elif series.doses_required_default is not None and series.doses_required_default > 0:
        required = series.doses_required_default
    else:
        required = FALLBACK_REQUIRED_DOSES

    return ResolvedSeries(series=series, required_doses=required)
