"""Client-side optimistic reconciliation against the authoritative board."""

from .presence import PresencePoller
from .session import BoardSession, MutationOutcome, OutcomeStatus, PendingMutation, SessionState
from .transport import BoardTransport, HttpBoardTransport, LocalBoardTransport, TransportError

__all__ = [
    "BoardSession",
    "BoardTransport",
    "HttpBoardTransport",
    "LocalBoardTransport",
    "MutationOutcome",
    "OutcomeStatus",
    "PendingMutation",
    "PresencePoller",
    "SessionState",
    "TransportError",
]
