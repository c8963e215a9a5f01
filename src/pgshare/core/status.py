"""Decoding ``pg_ctl status`` exit codes.

PostgreSQL has changed what ``pg_ctl status`` returns over the years, and
the same code can mean different things in different releases. Guessing
wrong could turn a permissions problem into "not running", so only codes
documented for a release are decoded; anything else is an error.

    9.0, 9.1   1  not running, or data directory missing or inaccessible
    9.2, 9.3   3  not running, or data directory missing
    9.4+, 10+  3  data directory present and accessible, not running
               4  data directory missing or inaccessible

Code 4 is only "not running" once we've checked the directory really is
missing; if it exists we can't see into it, so we can't say.
"""

from collections.abc import Callable
from enum import Enum

from ..errors import IndeterminateState, UnsupportedVersion
from ..models import Version


class StatusEra(str, Enum):
    """Groups of PostgreSQL releases sharing pg_ctl status exit codes."""

    PG_9_0 = "9.0"
    PG_9_2 = "9.2"
    PG_9_4 = "9.4"
    PG_10 = "10"


class StatusOutcome(str, Enum):
    """What a non-zero pg_ctl status exit code means."""

    NOT_RUNNING = "not-running"
    NOT_RUNNING_IF_ABSENT = "not-running-if-absent"


# https://www.postgresql.org/docs/9.0/static/app-pg-ctl.html
# https://www.postgresql.org/docs/9.2/static/app-pg-ctl.html
# https://www.postgresql.org/docs/9.4/static/app-pg-ctl.html
# https://www.postgresql.org/docs/10/static/app-pg-ctl.html
STATUS_CODES: dict[StatusEra, dict[int, StatusOutcome]] = {
    StatusEra.PG_9_0: {1: StatusOutcome.NOT_RUNNING},
    StatusEra.PG_9_2: {3: StatusOutcome.NOT_RUNNING},
    StatusEra.PG_9_4: {
        3: StatusOutcome.NOT_RUNNING,
        4: StatusOutcome.NOT_RUNNING_IF_ABSENT,
    },
    StatusEra.PG_10: {
        3: StatusOutcome.NOT_RUNNING,
        4: StatusOutcome.NOT_RUNNING_IF_ABSENT,
    },
}


def status_era(version: Version) -> StatusEra:
    """Find the exit code table for a runtime version.

    Raises:
        UnsupportedVersion: For releases before 9.0
    """
    if not version.is_pre10:
        return StatusEra.PG_10
    if version.major == 9:
        if version.minor >= 4:
            return StatusEra.PG_9_4
        if version.minor >= 2:
            return StatusEra.PG_9_2
        return StatusEra.PG_9_0
    raise UnsupportedVersion(version)


def decode_status(
    version: Version,
    returncode: int,
    datadir_exists: Callable[[], bool],
    output: str = "",
) -> bool:
    """Decide from a pg_ctl status exit code whether the server is running.

    Args:
        version: Version of the runtime that ran pg_ctl
        returncode: Exit status; negative if killed by a signal
        datadir_exists: Called only when a code needs disambiguating
        output: Captured output, kept on errors for diagnostics

    Returns:
        True if definitely running, False if definitely not

    Raises:
        IndeterminateState: The code doesn't tell us either way
        UnsupportedVersion: No table exists for this version
    """
    if returncode < 0:
        raise IndeterminateState(version, returncode, output)
    if returncode == 0:
        return True
    outcome = STATUS_CODES[status_era(version)].get(returncode)
    if outcome is StatusOutcome.NOT_RUNNING:
        return False
    if outcome is StatusOutcome.NOT_RUNNING_IF_ABSENT and not datadir_exists():
        return False
    raise IndeterminateState(version, returncode, output)
