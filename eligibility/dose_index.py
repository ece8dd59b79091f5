"""Dose history aggregation per vaccine rule.

For every vaccine key in the compiled rule set, counts history rows recorded
under the vaccine's own key or any of its configured aliases, and keeps the
most recent dose date. A combination-vaccine row (e.g. 'MMRV') therefore
contributes to every rule that lists it as an alias, and to no other rule.
"""

from __future__ import annotations

import logging
from typing import Dict

from .data_models import CompiledRuleSet, DoseIndex, DoseTally, NormalizedProfile

LOG = logging.getLogger(__name__)


def build_dose_index(profile: NormalizedProfile, rule_set: CompiledRuleSet) -> DoseIndex:
    """Aggregate the normalized history into per-vaccine dose tallies.

    Parameters
    ----------
    profile : NormalizedProfile
        Normalized profile with a cleaned, date-sorted history.
    rule_set : CompiledRuleSet
        Compiled rule set; every vaccine key gets an entry, even with zero doses.

    Returns
    -------
    DoseIndex
        Dose count and most recent dose date per vaccine key.
    """
    tallies: Dict[str, DoseTally] = {}
    for rule in rule_set.vaccine_rules:
        dose_keys = rule.dose_keys
        count = 0
        last_dose = None
        for entry in profile.history:
            if entry.vaccine_key not in dose_keys:
                continue
            count += 1
            if last_dose is None or entry.date > last_dose:
                last_dose = entry.date
        tallies[rule.vaccine_key] = DoseTally(count=count, last_dose=last_dose)

    LOG.debug(
        "Built dose index for %d vaccine(s) from %d history row(s)",
        len(tallies),
        len(profile.history),
    )
    return DoseIndex(tallies=tallies)
