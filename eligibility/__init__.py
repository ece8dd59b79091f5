"""Deterministic vaccine eligibility evaluation."""

from .compiler import compile_rule_set, load_rule_set
from .data_models import CompiledRuleSet, VaccineResult, results_to_dicts
from .enums import Status
from .errors import EligibilityError, ProfileError, RuleSetError
from .orchestrator import evaluate_all_vaccines, evaluate_vaccine

__all__ = [
    "CompiledRuleSet",
    "EligibilityError",
    "ProfileError",
    "RuleSetError",
    "Status",
    "VaccineResult",
    "compile_rule_set",
    "evaluate_all_vaccines",
    "evaluate_vaccine",
    "load_rule_set",
    "results_to_dicts",
]
