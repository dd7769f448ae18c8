"""Conversation context updates and the session store.

ContextManager applies extracted entities to a ConversationContext.
SessionStore keeps contexts by session ID behind a lock, so it can be
shared by concurrent web handlers.
"""

import asyncio
import threading
from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Any

import structlog
from pydantic import ValidationError

from dispatch_advisor.conversation.extractor import Intent, IntentType
from dispatch_advisor.domain.conversation import ConversationContext, DeliveryRequirement
from dispatch_advisor.domain.exceptions import InvalidSessionDataError, SessionNotFoundError
from dispatch_advisor.domain.pricing import CustomerTier

logger = structlog.get_logger()

# Intents recorded as the conversation's current goal
GOAL_INTENTS = {
    IntentType.COMPARE_PRICING,
    IntentType.GET_RECOMMENDATION,
    IntentType.EXPLORE_OPTIONS,
}


class ContextManager:
    """Applies recognized intents to conversation contexts."""

    def update(
        self,
        context: ConversationContext | None,
        intent: Intent,
        apply_entities: bool = True,
    ) -> ConversationContext:
        """Update a context from an intent, creating one if needed.

        Args:
            context: Existing context, or None to start a new session.
            intent: Intent extracted from the latest message.
            apply_entities: Whether extracted entities update the customer
                profile. Off for pickup and drop-off details, where a
                business name like "Gold Coast Bulk Supply" is not a tier.

        Returns:
            The updated context (same object when one was given).
        """
        if context is None:
            context = ConversationContext()
            logger.info("Conversation session started", session_id=context.session_id)

        profile = context.customer_profile
        entities = intent.entities if apply_entities else {}

        if "customer_tier" in entities:
            profile.tier = CustomerTier(entities["customer_tier"])

        if "order_frequency" in entities:
            profile.order_frequency = int(entities["order_frequency"])

        if "vehicle_type" in entities:
            profile.preferred_vehicle = entities["vehicle_type"]

        if entities.get("is_bulk_order") == "true":
            profile.is_bulk_order = True

        if "delivery_count" in entities:
            count = int(entities["delivery_count"])
            profile.current_delivery_count = count
            context.delivery_history.append(
                DeliveryRequirement(count=count, vehicle_type=profile.preferred_vehicle)
            )

        if intent.type in GOAL_INTENTS:
            context.current_goal = intent.type.value

        context.touch()
        return context


class SessionStore:
    """In-memory, lock-guarded map of session ID to context.

    The map itself is guarded by a threading lock. Per-session asyncio
    locks (see ``lock``) serialize whole read-modify-write turns.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, ConversationContext] = {}
        self._turn_locks: dict[str, asyncio.Lock] = {}
        self._lock = threading.Lock()

    def get(self, session_id: str) -> ConversationContext | None:
        with self._lock:
            return self._sessions.get(session_id)

    def save(self, context: ConversationContext) -> None:
        with self._lock:
            self._sessions[context.session_id] = context

    def delete(self, session_id: str) -> None:
        with self._lock:
            self._sessions.pop(session_id, None)
            self._turn_locks.pop(session_id, None)

    def all(self) -> dict[str, ConversationContext]:
        """Snapshot of all sessions."""
        with self._lock:
            return dict(self._sessions)

    def lock(self, session_id: str) -> asyncio.Lock:
        """Get the lock that serializes turns for one session."""
        with self._lock:
            turn_lock = self._turn_locks.get(session_id)
            if turn_lock is None:
                turn_lock = asyncio.Lock()
                self._turn_locks[session_id] = turn_lock
            return turn_lock

    def summary(self, session_id: str) -> str:
        """Human-readable summary of a session."""
        context = self.get(session_id)
        if context is None:
            return "Session not found"

        profile = context.customer_profile
        return (
            f"Session: {context.session_id}\n"
            f"Customer Tier: {profile.tier.value}\n"
            f"Order Frequency: {profile.order_frequency}/month\n"
            f"Current Goal: {context.current_goal}\n"
            f"Delivery History: {len(context.delivery_history)} entries\n"
            f"Pricing History: {len(context.pricing_history)} entries\n"
        )

    def export(self, session_id: str) -> str:
        """Export a session as JSON.

        Raises:
            SessionNotFoundError: If the session does not exist.
        """
        context = self.get(session_id)
        if context is None:
            raise SessionNotFoundError(session_id)
        return context.model_dump_json(indent=2)

    def import_session(self, data: str) -> ConversationContext:
        """Import a session from JSON, replacing any with the same ID.

        Raises:
            InvalidSessionDataError: If the JSON does not describe a context.
        """
        try:
            context = ConversationContext.model_validate_json(data)
        except ValidationError as e:
            raise InvalidSessionDataError(str(e)) from e

        self.save(context)
        logger.info("Session imported", session_id=context.session_id)
        return context

    def clear_expired(self, max_age: timedelta) -> int:
        """Remove sessions not updated within max_age.

        Returns:
            Number of sessions removed.
        """
        cutoff = datetime.now(timezone.utc) - max_age
        with self._lock:
            expired = [
                session_id
                for session_id, context in self._sessions.items()
                if context.updated_at < cutoff
            ]
            for session_id in expired:
                del self._sessions[session_id]
                self._turn_locks.pop(session_id, None)

        if expired:
            logger.info("Expired sessions cleared", count=len(expired))
        return len(expired)

    def stats(self) -> dict[str, Any]:
        """Session count and tier/goal distributions."""
        sessions = self.all()
        tiers = Counter(context.customer_profile.tier.value for context in sessions.values())
        goals = Counter(context.current_goal for context in sessions.values())
        return {
            "total_sessions": len(sessions),
            "tier_distribution": dict(tiers),
            "goal_distribution": dict(goals),
        }
