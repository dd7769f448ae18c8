"""Domain exceptions.

Errors that represent business rule violations in the pricing and
conversation domain. Input problems coming from end users are not raised;
they are collected on the order state and surfaced as messages.
"""

from typing import Any


class DomainError(Exception):
    """Base class for all domain exceptions.

    All domain errors should inherit from this class to allow
    catching domain-specific errors at the application layer.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Initialize domain error.

        Args:
            message: Human-readable error message.
            details: Optional dictionary with additional error context.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}


# ============================================================================
# State Machine Errors
# ============================================================================


class InvalidStateTransitionError(DomainError):
    """Raised when an invalid state transition is attempted."""

    def __init__(
        self,
        entity_type: str,
        entity_id: str,
        current_state: str,
        target_state: str,
        allowed_transitions: list[str] | None = None,
    ) -> None:
        """Initialize invalid state transition error.

        Args:
            entity_type: Type of entity (e.g., "OrderCreation").
            entity_id: ID of the entity (the session ID).
            current_state: Current state of the entity.
            target_state: Attempted target state.
            allowed_transitions: List of allowed target states from current state.
        """
        allowed = allowed_transitions or []
        message = (
            f"Cannot transition {entity_type}({entity_id}) "
            f"from '{current_state}' to '{target_state}'. "
            f"Allowed transitions: {allowed}"
        )
        super().__init__(
            message,
            details={
                "entity_type": entity_type,
                "entity_id": entity_id,
                "current_state": current_state,
                "target_state": target_state,
                "allowed_transitions": allowed,
            },
        )


# ============================================================================
# Session Errors
# ============================================================================


class SessionNotFoundError(DomainError):
    """Raised when a conversation session does not exist."""

    def __init__(self, session_id: str) -> None:
        super().__init__(
            f"Session not found: {session_id}",
            details={"session_id": session_id},
        )


class InvalidSessionDataError(DomainError):
    """Raised when imported session data cannot be parsed."""

    def __init__(self, reason: str) -> None:
        super().__init__(
            f"Invalid session data: {reason}",
            details={"reason": reason},
        )


# ============================================================================
# Pricing Errors
# ============================================================================


class NoEstimateOptionsError(DomainError):
    """Raised when an estimate carries no delivery options to price."""

    def __init__(self) -> None:
        super().__init__("Estimate has no available delivery options")
