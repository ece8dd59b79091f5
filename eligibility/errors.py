"""Typed errors raised at the engine's validation boundaries.

Fatal input problems (duplicate vaccine keys, malformed evaluation or birth
dates) abort the call and surface to the caller as one of these errors. They
subclass ValueError so callers that already catch ValueError for bad input
keep working.
"""


class EligibilityError(ValueError):
    """Base class for fatal eligibility engine input errors."""


class RuleSetError(EligibilityError):
    """Raised when a rule set cannot be compiled (e.g. duplicate vaccine key)."""


class ProfileError(EligibilityError):
    """Raised when a profile cannot be normalized (e.g. malformed birth date)."""
