"""Submission status enumeration.

Only membership is enforced. There is no transition graph: an operator may
move a claim from any status to any other (pending -> paid, paid -> pending).
"""

from __future__ import annotations

from enum import Enum

from gcx.errors import BadRequestError


class SubmissionStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    PAID = "paid"
    CLOSED = "closed"


ALLOWED_STATUSES: tuple[str, ...] = tuple(s.value for s in SubmissionStatus)


def is_valid_status(value: object) -> bool:
    """Return True if value names one of the five statuses (case-sensitive)."""
    return isinstance(value, str) and value in ALLOWED_STATUSES


def parse_status(value: object) -> SubmissionStatus:
    """Validate a requested status at the API boundary.

    Raises:
        BadRequestError: If the value is not a member, with the allowed list in details.
    """
    if not is_valid_status(value):
        msg = f"Invalid status. Must be one of: {', '.join(ALLOWED_STATUSES)}"
        raise BadRequestError(msg, details={"allowed": list(ALLOWED_STATUSES)})
    return SubmissionStatus(value)
