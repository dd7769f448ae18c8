"""Health check endpoint."""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from dispatch_advisor.conversation.engine import ConversationEngine
from dispatch_advisor.infrastructure.config import settings
from dispatch_advisor.web.dependencies import get_conversation_engine

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response schema."""

    status: str
    service: str
    version: str
    timestamp: datetime
    ai_available: bool
    mock_dispatch: bool


@router.get("/api/health", response_model=HealthResponse)
async def health_check(
    engine: ConversationEngine = Depends(get_conversation_engine),
) -> HealthResponse:
    """Check service health.

    Returns:
        Health status with version and collaborator modes.
    """
    return HealthResponse(
        status="healthy",
        service="dispatch-advisor",
        version=settings.api_version,
        timestamp=datetime.now(timezone.utc),
        ai_available=engine.is_ai_available(),
        mock_dispatch=settings.use_mock_dispatch,
    )
