"""State machines for import sessions.

Defines the lifecycle of one feed import run. The reconciler validates
every hook call against these transitions.
"""

from enum import Enum

from catalog_sync.domain.exceptions import InvalidStateTransitionError


class ImportSessionStatus(str, Enum):
    """Feed import session lifecycle states.

    State diagram:
        IDLE ──────────────┬─────────────────────┐
          │                │ resume from         │ finish with
          │ start          │ checkpoint          │ nothing pending
          ▼                ▼                     │
        INITIALIZED ──► ACCUMULATING ◄──┐        │
          │     row        │    │  row  │        │
          │                │    └───────┘        │
          │ finish         │ finish              │
          ▼                ▼                     │
        FINALIZING ◄───────┴─────────────────────┘
          │
          │ done
          ▼
        IDLE
    """

    IDLE = "idle"
    INITIALIZED = "initialized"
    ACCUMULATING = "accumulating"
    FINALIZING = "finalizing"

    def can_transition_to(self, target: "ImportSessionStatus") -> bool:
        """Check if transition to target state is valid.

        Args:
            target: Target state to transition to.

        Returns:
            True if transition is valid.
        """
        return target in _IMPORT_SESSION_TRANSITIONS.get(self, set())

    def allowed_transitions(self) -> list["ImportSessionStatus"]:
        """Get list of valid target states.

        Returns:
            List of states that can be transitioned to.
        """
        return list(_IMPORT_SESSION_TRANSITIONS.get(self, set()))

    def is_active(self) -> bool:
        """Check if an import run is in progress.

        Returns:
            True unless the session is idle.
        """
        return self is not ImportSessionStatus.IDLE


# Defined outside the enum to avoid Enum member restrictions
_IMPORT_SESSION_TRANSITIONS: dict[ImportSessionStatus, set[ImportSessionStatus]] = {
    ImportSessionStatus.IDLE: {
        ImportSessionStatus.INITIALIZED,
        ImportSessionStatus.ACCUMULATING,
        ImportSessionStatus.FINALIZING,
    },
    ImportSessionStatus.INITIALIZED: {
        ImportSessionStatus.INITIALIZED,
        ImportSessionStatus.ACCUMULATING,
        ImportSessionStatus.FINALIZING,
    },
    ImportSessionStatus.ACCUMULATING: {
        ImportSessionStatus.INITIALIZED,
        ImportSessionStatus.ACCUMULATING,
        ImportSessionStatus.FINALIZING,
    },
    ImportSessionStatus.FINALIZING: {ImportSessionStatus.IDLE},
}


def validate_import_transition(
    feed_key: str,
    current: ImportSessionStatus,
    target: ImportSessionStatus,
) -> None:
    """Validate an import session transition.

    Args:
        feed_key: Feed key identifying the session.
        current: Current state.
        target: Requested state.

    Raises:
        InvalidStateTransitionError: If the transition is not allowed.
    """
    if not current.can_transition_to(target):
        raise InvalidStateTransitionError(
            entity_type="ImportSession",
            entity_id=feed_key,
            current_state=current.value,
            target_state=target.value,
            allowed_transitions=[s.value for s in current.allowed_transitions()],
        )
