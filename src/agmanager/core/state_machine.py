"""Save-burst state machine for the config sync engine."""

from __future__ import annotations

from enum import Enum, auto
import logging


class SyncState(Enum):
    IDLE = auto()
    PENDING = auto()
    FLUSHING = auto()


class SyncEvent(Enum):
    REQUEST = auto()
    FLUSH = auto()
    SETTLE = auto()


# A new burst may start while older flushes are still in flight, so PENDING
# also accepts SETTLE.
_TRANSITIONS = {
    SyncState.IDLE: {
        SyncEvent.REQUEST: SyncState.PENDING,
    },
    SyncState.PENDING: {
        SyncEvent.REQUEST: SyncState.PENDING,
        SyncEvent.FLUSH: SyncState.FLUSHING,
        SyncEvent.SETTLE: SyncState.PENDING,
    },
    SyncState.FLUSHING: {
        SyncEvent.REQUEST: SyncState.PENDING,
        SyncEvent.SETTLE: SyncState.FLUSHING,
    },
}


class SyncStateMachine:
    def __init__(self):
        self.state = SyncState.IDLE
        self.in_flight = 0

    def transition(self, event: SyncEvent) -> SyncState:
        allowed = _TRANSITIONS.get(self.state, {})
        if event not in allowed:
            logging.getLogger(__name__).warning(
                "Invalid state transition: %s --%s--> %s", self.state, event, self.state
            )
            return self.state

        if event is SyncEvent.FLUSH:
            self.in_flight += 1
        elif event is SyncEvent.SETTLE:
            self.in_flight = max(0, self.in_flight - 1)

        next_state = allowed[event]
        if next_state is SyncState.FLUSHING and self.in_flight == 0:
            next_state = SyncState.IDLE
        self.state = next_state
        return self.state
