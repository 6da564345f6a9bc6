"""Signal delivery to a child's whole process group (POSIX only)."""

from __future__ import annotations

import os
import signal

import structlog

logger = structlog.get_logger(__name__)


def signal_process_group(pid: int, signum: signal.Signals) -> bool:
    """Send `signum` to the process group led by `pid`; return whether it landed.

    Children are started in their own session, so the group id equals the
    child's pid and grandchildren that kept the group are reached too.
    """

    try:
        pgid = os.getpgid(pid)
    except ProcessLookupError:
        return False
    if pgid != pid:
        # Never signal a group the child does not lead (e.g. our own).
        logger.debug("Child is not a group leader; skipping group signal.", pid=pid, pgid=pgid)
        return False
    try:
        os.killpg(pgid, signum)
    except ProcessLookupError:
        return False
    except PermissionError:
        # Only zombies left in the group (macOS reports EPERM).
        logger.debug("Process group not signalable.", pgid=pgid, signal=signum.name)
        return False
    return True
