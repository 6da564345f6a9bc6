"""Signal classification for process exit events."""

from __future__ import annotations

import signal
from typing import Final

# Signals that stop, continue, resize or report on a child rather than kill
# it. Seeing one of these as the exit signal is not a termination.
NON_TERMINAL_SIGNALS: Final[frozenset[str]] = frozenset(
    {
        "SIGCHLD",
        "SIGCLD",
        "SIGCONT",
        "SIGSTOP",
        "SIGTSTP",
        "SIGTTIN",
        "SIGTTOU",
        "SIGURG",
        "SIGWINCH",
    }
)


def is_terminal_signal(name: str | None) -> bool:
    """Return whether a reported exit signal means the process was killed."""

    if name is None:
        return False
    return name not in NON_TERMINAL_SIGNALS


def signal_name(signum: int) -> str:
    """Map a signal number to its canonical `SIG*` name."""

    try:
        return signal.Signals(signum).name
    except ValueError:
        return f"SIG{signum}"


def resolve_signal(name: str) -> signal.Signals:
    """Map a `SIG*` name back to the platform's signal enum."""

    try:
        return signal.Signals[name]
    except KeyError as exc:
        raise ValueError(f"Unknown signal name: {name!r}") from exc


def split_returncode(returncode: int) -> tuple[int | None, str | None]:
    """Split an asyncio returncode into `(exit_code, signal_name)`.

    Negative return codes mean the child was killed by signal `-returncode`.
    """

    if returncode < 0:
        return None, signal_name(-returncode)
    return returncode, None
