"""Rule set compilation for the vaccine eligibility engine.

Validates a raw rule set (plain mappings, as loaded from YAML/JSON or handed
over by the host application) and converts it into an immutable
``CompiledRuleSet`` with deterministically ordered clauses.

**Input Contract:**
- A mapping with an optional ``dueSoonWindowDays`` number and a
  ``vaccineRules`` list of vaccine rule mappings (camelCase keys)

**Output Contract:**
- ``CompiledRuleSet`` with unique vaccine keys, typed optional fields and
  clauses sorted by (priority, clauseId, declaration order)
- Compilation is idempotent: compiling a compiled set (or its ``to_dict()``)
  yields an equal structure

**Error Handling:**
- Duplicate vaccine keys and non-mapping rule sets raise ``RuleSetError``
- Rules without a vaccine key, malformed clauses and malformed fields are
  dropped with a logged warning (also collected on ``warnings``)
- Missing priority, window and collections fall back to documented defaults

Compile once per rule-set version and share the result; nothing downstream
mutates it.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

import yaml

from .data_models import (
    CLAUSE_BOUND_KEYS,
    CLAUSE_TAG_KEYS,
    CompiledRuleSet,
    DoseMilestone,
    EligibilityClause,
    SeriesDefinition,
    VaccineRule,
)
from .errors import RuleSetError
from .utils import finite_number, optional_int, string_or_empty, string_tuple

LOG = logging.getLogger(__name__)

DEFAULT_DUE_SOON_WINDOW_DAYS = 30
UNPRIORITIZED = 999_999

RULE_SET_SUFFIXES = (".yaml", ".yml", ".json")


def _record(warnings: List[str], message: str) -> None:
    LOG.warning(message)
    warnings.append(message)


def _optional_number_field(
    raw: Mapping[str, Any], key: str, context: str, warnings: List[str], as_int: bool = False
):
    """Read an optional numeric field; a malformed value counts as absent."""
    value = raw.get(key)
    if value is None:
        return None
    coerced = optional_int(value) if as_int else finite_number(value)
    if coerced is None:
        _record(warnings, f"{context}: ignoring non-numeric {key}={value!r}")
    return coerced


def _compile_milestones(
    raw_milestones: Any, context: str, warnings: List[str]
) -> Optional[tuple]:
    if raw_milestones is None:
        return None
    if not isinstance(raw_milestones, list):
        _record(warnings, f"{context}: doseMilestones must be a list; ignoring")
        return None

    milestones = []
    for index, raw in enumerate(raw_milestones):
        if not isinstance(raw, Mapping):
            _record(warnings, f"{context}: dropping malformed milestone at index {index}")
            continue
        dose_number = optional_int(raw.get("doseNumber"))
        if dose_number is None:
            _record(warnings, f"{context}: dropping milestone at index {index} (missing doseNumber)")
            continue
        milestone_context = f"{context} milestone for dose {dose_number}"
        milestone = DoseMilestone(
            dose_number=dose_number,
            earliest_age_months=_optional_number_field(
                raw, "earliestAgeMonths", milestone_context, warnings, as_int=True
            ),
            earliest_age_weeks=_optional_number_field(
                raw, "earliestAgeWeeks", milestone_context, warnings, as_int=True
            ),
        )
        if milestone.earliest_age_months is None and milestone.earliest_age_weeks is None:
            # Still kept; the scheduler treats it as due on the as-of date.
            _record(
                warnings,
                f"{milestone_context}: no earliestAgeMonths or earliestAgeWeeks; "
                "dose will be due on the evaluation date",
            )
        milestones.append(milestone)
    return tuple(milestones)


def compile_series(raw: Any, context: str, warnings: List[str]) -> SeriesDefinition:
    """Convert a raw series mapping into a SeriesDefinition.

    Parameters
    ----------
    raw : Any
        Raw series mapping (``dosesRequiredDefault``, ``maxLifetimeDoses``,
        ``doseMilestones``, ``minIntervalDaysDefault``, ``repeatEveryDays``).
        Anything that is not a mapping yields an empty definition.
    context : str
        Label used in warning messages (e.g. "HPV series").
    warnings : List[str]
        Collector for recoverable problems.

    Returns
    -------
    SeriesDefinition
        Series with unset fields left as None.
    """
    if raw is None:
        return SeriesDefinition()
    if not isinstance(raw, Mapping):
        _record(warnings, f"{context}: series must be a mapping; using empty series")
        return SeriesDefinition()

    return SeriesDefinition(
        doses_required_default=_optional_number_field(
            raw, "dosesRequiredDefault", context, warnings, as_int=True
        ),
        max_lifetime_doses=_optional_number_field(
            raw, "maxLifetimeDoses", context, warnings, as_int=True
        ),
        dose_milestones=_compile_milestones(raw.get("doseMilestones"), context, warnings),
        min_interval_days_default=_optional_number_field(
            raw, "minIntervalDaysDefault", context, warnings, as_int=True
        ),
        repeat_every_days=_optional_number_field(
            raw, "repeatEveryDays", context, warnings, as_int=True
        ),
    )


def compile_clause(
    raw: Any, index: int, vaccine_key: str, warnings: List[str]
) -> Optional[EligibilityClause]:
    """Convert one raw clause mapping into an EligibilityClause.

    Returns None (with a warning) when the clause is not a mapping. Missing
    clause ids become ``<vaccineKey>__clause_<index>`` and missing priorities
    become ``UNPRIORITIZED`` so they sort last.
    """
    if not isinstance(raw, Mapping):
        _record(warnings, f"{vaccine_key}: dropping malformed clause at index {index}")
        return None

    clause_id = string_or_empty(raw.get("clauseId")) or f"{vaccine_key}__clause_{index}"
    context = f"{vaccine_key} clause {clause_id}"

    priority = finite_number(raw.get("priority"))
    if priority is None:
        priority = UNPRIORITIZED

    values: Dict[str, Any] = {}
    for attr, key in CLAUSE_BOUND_KEYS:
        values[attr] = _optional_number_field(raw, key, context, warnings)

    for attr, key in CLAUSE_TAG_KEYS:
        raw_tags = raw.get(key)
        tags = string_tuple(raw_tags)
        if tags is None and raw_tags is not None:
            _record(warnings, f"{context}: {key} must be a list; ignoring")
        values[attr] = frozenset(tags) if tags is not None else None

    raw_override = raw.get("seriesOverride")
    series_override = None
    if raw_override is not None:
        if isinstance(raw_override, Mapping):
            series_override = compile_series(raw_override, f"{context} seriesOverride", warnings)
        else:
            _record(warnings, f"{context}: seriesOverride must be a mapping; ignoring")

    return EligibilityClause(
        clause_id=clause_id,
        priority=priority,
        series_override=series_override,
        required_doses_override=_optional_number_field(
            raw, "requiredDosesOverride", context, warnings, as_int=True
        ),
        reasons=string_tuple(raw.get("reasons")) or (),
        **values,
    )


def compile_rule(raw: Any, index: int, warnings: List[str]) -> Optional[VaccineRule]:
    """Convert one raw vaccine rule; returns None if it has no vaccine key."""
    if not isinstance(raw, Mapping):
        _record(warnings, f"Skipping vaccine rule at index {index} (not a mapping)")
        return None

    vaccine_key = string_or_empty(raw.get("vaccineKey"))
    if not vaccine_key:
        _record(warnings, f"Skipping vaccine rule at index {index} (missing vaccineKey)")
        return None

    raw_aliases = raw.get("aliasesForDoseCounting")
    alias_names = string_tuple(raw_aliases)
    if alias_names is None and raw_aliases is not None:
        _record(warnings, f"{vaccine_key}: aliasesForDoseCounting must be a list; ignoring")
    aliases = tuple(alias.strip() for alias in (alias_names or ()) if alias.strip())

    raw_clauses = raw.get("clauses")
    if raw_clauses is None:
        raw_clauses = []
    elif not isinstance(raw_clauses, list):
        _record(warnings, f"{vaccine_key}: clauses must be a list; using no clauses")
        raw_clauses = []

    indexed = []
    for clause_index, raw_clause in enumerate(raw_clauses):
        clause = compile_clause(raw_clause, clause_index, vaccine_key, warnings)
        if clause is not None:
            indexed.append((clause, clause_index))

    # Total order: priority, then clause id, then declaration order.
    indexed.sort(key=lambda item: (item[0].priority, item[0].clause_id, item[1]))

    return VaccineRule(
        vaccine_key=vaccine_key,
        display_name=string_or_empty(raw.get("displayName")) or vaccine_key,
        aliases_for_dose_counting=aliases,
        series=compile_series(raw.get("series"), f"{vaccine_key} series", warnings),
        clauses=tuple(clause for clause, _ in indexed),
    )


def compile_rule_set(raw: Union[Mapping[str, Any], CompiledRuleSet]) -> CompiledRuleSet:
    """Validate and normalize a raw rule set.

    Parameters
    ----------
    raw : Mapping[str, Any] | CompiledRuleSet
        Raw rule set, or an already compiled one (returned unchanged).

    Returns
    -------
    CompiledRuleSet
        Immutable compiled rule set with a key -> rule lookup map.

    Raises
    ------
    RuleSetError
        If ``raw`` is not a mapping or a vaccine key appears more than once.

    Examples
    --------
    >>> compiled = compile_rule_set({"vaccineRules": [{"vaccineKey": "FLU"}]})
    >>> compiled.due_soon_window_days
    30
    """
    if isinstance(raw, CompiledRuleSet):
        return raw
    if not isinstance(raw, Mapping):
        raise RuleSetError(
            f"Rule set must be a mapping, got {type(raw).__name__}"
        )

    warnings: List[str] = []

    window = finite_number(raw.get("dueSoonWindowDays"))
    if window is None:
        window = DEFAULT_DUE_SOON_WINDOW_DAYS

    raw_rules = raw.get("vaccineRules")
    if not isinstance(raw_rules, list):
        _record(warnings, "Rule set vaccineRules is not a list; treating as empty")
        raw_rules = []

    rules: List[VaccineRule] = []
    rules_by_key: Dict[str, VaccineRule] = {}
    for index, raw_rule in enumerate(raw_rules):
        rule = compile_rule(raw_rule, index, warnings)
        if rule is None:
            continue
        if rule.vaccine_key in rules_by_key:
            raise RuleSetError(f"Duplicate vaccineKey '{rule.vaccine_key}' in rule set")
        rules_by_key[rule.vaccine_key] = rule
        rules.append(rule)

    LOG.info(
        "Compiled rule set: %d vaccine rule(s), %d warning(s)", len(rules), len(warnings)
    )
    return CompiledRuleSet(
        due_soon_window_days=window,
        vaccine_rules=tuple(rules),
        rules_by_key=rules_by_key,
        warnings=tuple(warnings),
    )


def read_rule_set_file(path: Path) -> Dict[str, Any]:
    """Read a raw rule set from a YAML or JSON file.

    Parameters
    ----------
    path : Path
        Path to a ``.yaml``, ``.yml`` or ``.json`` file.

    Returns
    -------
    Dict[str, Any]
        Parsed raw rule set (empty dict for an empty YAML file).

    Raises
    ------
    FileNotFoundError
        If the file does not exist.
    ValueError
        If the file extension is not supported.
    yaml.YAMLError, json.JSONDecodeError
        If the file content cannot be parsed.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Rule set file not found: {path}")

    suffix = path.suffix.lower()
    if suffix not in RULE_SET_SUFFIXES:
        raise ValueError(
            f"Unsupported rule set file type: {suffix}. "
            f"Valid options: {', '.join(RULE_SET_SUFFIXES)}"
        )

    text = path.read_text(encoding="utf-8")
    if suffix == ".json":
        return json.loads(text)
    return yaml.safe_load(text) or {}


def load_rule_set(path: Path) -> CompiledRuleSet:
    """Read and compile a rule set file."""
    raw = read_rule_set_file(path)
    compiled = compile_rule_set(raw)
    LOG.info("Loaded rule set from %s", path)
    return compiled
