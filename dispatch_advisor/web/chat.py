"""Chat and session API endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from dispatch_advisor.conversation.context import SessionStore
from dispatch_advisor.conversation.engine import ConversationEngine
from dispatch_advisor.domain.conversation import ConversationContext
from dispatch_advisor.domain.exceptions import InvalidSessionDataError, SessionNotFoundError
from dispatch_advisor.web.dependencies import get_conversation_engine, get_session_store
from dispatch_advisor.web.schemas import (
    ChatRequest,
    ChatResponse,
    ErrorResponse,
    SessionResponse,
    SessionStatsResponse,
    order_info_from,
    pricing_info_from,
    recommendation_to_schema,
)

router = APIRouter(prefix="/api", tags=["Chat"])


def _session_not_found(session_id: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail={
            "error_code": "SESSION_NOT_FOUND",
            "message": f"Session not found: {session_id}",
        },
    )


@router.post(
    "/session",
    response_model=SessionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_session(
    store: SessionStore = Depends(get_session_store),
) -> SessionResponse:
    """Start a new chat session."""
    context = ConversationContext()
    store.save(context)
    return SessionResponse(session_id=context.session_id, created_at=context.created_at)


@router.post(
    "/chat",
    response_model=ChatResponse,
    responses={404: {"model": ErrorResponse}},
)
async def chat(
    body: ChatRequest,
    store: SessionStore = Depends(get_session_store),
    engine: ConversationEngine = Depends(get_conversation_engine),
) -> ChatResponse:
    """Send a message to the advisor.

    Without a session ID a new session is started. Turns on the same
    session are processed one at a time.
    """
    context = None
    if body.session_id:
        context = store.get(body.session_id)
        if context is None:
            raise _session_not_found(body.session_id)

    if context is None:
        response = await engine.process_message(body.message)
    else:
        async with store.lock(context.session_id):
            response = await engine.process_message(body.message, context)
    store.save(response.context)

    return ChatResponse(
        session_id=response.context.session_id,
        message=response.message,
        recommendations=[recommendation_to_schema(rec) for rec in response.recommendations],
        next_questions=response.next_questions,
        context=response.context.model_dump(mode="json"),
        order_info=order_info_from(response.context),
        pricing_info=pricing_info_from(response.recommendations),
    )


@router.get("/sessions/stats", response_model=SessionStatsResponse)
async def session_stats(
    store: SessionStore = Depends(get_session_store),
) -> SessionStatsResponse:
    """Session count with tier and goal distributions."""
    return SessionStatsResponse(**store.stats())


@router.get(
    "/sessions/{session_id}/export",
    responses={404: {"model": ErrorResponse}},
)
async def export_session(
    session_id: str,
    store: SessionStore = Depends(get_session_store),
) -> Response:
    """Export a session as JSON."""
    try:
        data = store.export(session_id)
    except SessionNotFoundError:
        raise _session_not_found(session_id)
    return Response(content=data, media_type="application/json")


@router.post(
    "/sessions/import",
    response_model=SessionResponse,
    responses={400: {"model": ErrorResponse}},
)
async def import_session(
    request: Request,
    store: SessionStore = Depends(get_session_store),
) -> SessionResponse:
    """Import a session previously exported as JSON."""
    data = await request.body()
    try:
        context = store.import_session(data.decode("utf-8"))
    except (InvalidSessionDataError, UnicodeDecodeError) as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "error_code": "INVALID_SESSION_DATA",
                "message": "Session data could not be imported",
                "details": [{"field": None, "message": str(e)}],
            },
        )
    return SessionResponse(session_id=context.session_id, created_at=context.created_at)
