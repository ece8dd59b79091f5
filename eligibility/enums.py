"""Enumerations for the vaccine eligibility engine."""

from enum import Enum


class Status(Enum):
    """Eligibility status reported for one vaccine in one evaluation.

    Exactly one status is produced per vaccine per evaluation call. Statuses
    are computed fresh every time; nothing about a previous evaluation is
    carried over.

    Attributes
    ----------
    OVERDUE : str
        A clause matched and the next due date is strictly before the as-of date.
    DUE_SOON : str
        A clause matched and the due date falls within the due-soon window
        (0 through window days inclusive).
    ELIGIBLE : str
        A clause matched and either nothing is scheduled (series complete) or
        the due date lies beyond the due-soon window.
    NOT_ELIGIBLE : str
        No clause of the vaccine rule matched the profile.
    """

    OVERDUE = "OVERDUE"
    DUE_SOON = "DUE_SOON"
    ELIGIBLE = "ELIGIBLE"
    NOT_ELIGIBLE = "NOT_ELIGIBLE"

    @property
    def rank(self) -> int:
        """Sort rank used when ordering results (most urgent first)."""
        return _STATUS_RANK[self]

    @classmethod
    def from_string(cls, value: str | None) -> "Status":
        """Convert string to Status.

        Parameters
        ----------
        value : str | None
            Status name ('ELIGIBLE', 'DUE_SOON', 'OVERDUE', 'NOT_ELIGIBLE').
            Case-insensitive.

        Returns
        -------
        Status
            Corresponding Status enum value.

        Raises
        ------
        ValueError
            If value is None or not a valid status name.

        Examples
        --------
        >>> Status.from_string("overdue")
        <Status.OVERDUE: 'OVERDUE'>
        """
        if value is None:
            raise ValueError(
                "Status value is required. "
                f"Valid options: {', '.join(s.value for s in cls)}"
            )

        value_upper = value.strip().upper()
        for status in cls:
            if status.value == value_upper:
                return status

        raise ValueError(
            f"Unknown status: {value}. "
            f"Valid options: {', '.join(s.value for s in cls)}"
        )

    @classmethod
    def all_values(cls) -> set[str]:
        """Get set of all status values."""
        return {status.value for status in cls}


_STATUS_RANK = {
    Status.OVERDUE: 0,
    Status.DUE_SOON: 1,
    Status.ELIGIBLE: 2,
    Status.NOT_ELIGIBLE: 3,
}
