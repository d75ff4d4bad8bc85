"""
Canonical job states and the mapping from the free-form state strings reported
by job-execution agents.
"""
from enum import Enum
from typing import Dict

from support.errors import UnknownStateError


class JobState(str, Enum):
    """Lifecycle states published on the exchange."""
    SUBMITTED = "Submitted"
    RUNNING = "Running"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"

    def __str__(self) -> str:
        return self.value


# Keys are lowercase; every JobState must be reachable from at least one key.
STATE_ALIASES: Dict[str, JobState] = {
    "submitted": JobState.SUBMITTED,
    "running": JobState.RUNNING,
    "completed": JobState.SUCCEEDED,
    "succeeded": JobState.SUCCEEDED,
    "failed": JobState.FAILED,
}


def normalize_state(value: str) -> JobState:
    """
    Map a reported state string onto a JobState, ignoring case.

    :param value: The state string as sent by the caller.
    :return: The canonical JobState.
    :raises UnknownStateError: If the string is not a recognized state.
    """
    try:
        return STATE_ALIASES[value.lower()]
    except (KeyError, AttributeError):
        raise UnknownStateError(value) from None
