"""Shared services for the web front-end."""

from dispatch_advisor.conversation.context import SessionStore
from dispatch_advisor.conversation.engine import ConversationEngine
from dispatch_advisor.infrastructure.ai_client import GeminiConversationClient
from dispatch_advisor.infrastructure.config import settings
from dispatch_advisor.infrastructure.dispatch_client import BookingClient, create_booking_client

_session_store: SessionStore | None = None
_booking_client: BookingClient | None = None
_engine: ConversationEngine | None = None


def get_session_store() -> SessionStore:
    """Get session store singleton."""
    global _session_store
    if _session_store is None:
        _session_store = SessionStore()
    return _session_store


def get_booking_client() -> BookingClient:
    """Get booking client singleton."""
    global _booking_client
    if _booking_client is None:
        _booking_client = create_booking_client(settings)
    return _booking_client


def get_conversation_engine() -> ConversationEngine:
    """Get conversation engine singleton."""
    global _engine
    if _engine is None:
        _engine = ConversationEngine(
            booking_client=get_booking_client(),
            ai_client=GeminiConversationClient(
                api_key=settings.gemini_api_key,
                model_name=settings.ai_model,
                max_output_tokens=settings.ai_max_output_tokens,
                timeout=settings.request_timeout,
            ),
            organization_druid=settings.dispatch_organization_id or None,
        )
    return _engine


async def close_services() -> None:
    """Close network clients and drop the singletons."""
    global _booking_client, _engine
    if _booking_client is not None:
        await _booking_client.close()
    _booking_client = None
    _engine = None
