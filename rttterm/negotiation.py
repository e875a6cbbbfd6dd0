"""Q-method (RFC 1143) option state tracking."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Dict, Iterable, Iterator, Optional

from .protocol import Command, TeloptSupport


class QState(IntEnum):
    """Per-side negotiation state of a single option."""

    NO = 0
    YES = 1
    WANTNO = 2
    WANTYES = 3
    WANTNO_OP = 4
    WANTYES_OP = 5


@dataclass(frozen=True)
class OptionState:
    """Negotiation state of one option on both sides of the connection."""

    telopt: int
    us: QState = QState.NO
    him: QState = QState.NO

    def __post_init__(self) -> None:
        if not 0 <= self.telopt <= 255:
            raise ValueError(f"telopt out of range: {self.telopt}")
        object.__setattr__(self, "us", QState(self.us))
        object.__setattr__(self, "him", QState(self.him))


class OptionTable:
    """Table of option states; unknown options are in state NO on both sides."""

    def __init__(self) -> None:
        self._states: Dict[int, OptionState] = {}

    def get(self, telopt: int) -> OptionState:
        """Return the state of ``telopt``, or an all-NO state if untracked."""
        state = self._states.get(telopt)
        if state is None:
            return OptionState(telopt)
        return state

    def set(self, telopt: int, us: QState, him: QState) -> OptionState:
        """Record a new state for ``telopt`` and return it."""
        state = OptionState(telopt, us, him)
        self._states[telopt] = state
        return state

    def __contains__(self, telopt: object) -> bool:
        return telopt in self._states

    def __len__(self) -> int:
        return len(self._states)

    def __iter__(self) -> Iterator[OptionState]:
        return iter(self._states.values())


def supports(
    telopts: Optional[Iterable[TeloptSupport]], telopt: int, local: bool
) -> bool:
    """Tell whether ``telopt`` is supported locally (``local``) or remotely.

    The first entry for the option decides; a missing table or entry means
    the option is not supported.
    """
    for entry in telopts or ():
        if entry.telopt == telopt:
            if local:
                return entry.us == Command.WILL
            return entry.him == Command.DO
    return False