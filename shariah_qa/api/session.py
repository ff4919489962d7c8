# =============================================================================
# Session API — Conversation Lifecycle Endpoints
# =============================================================================
#
#   POST   /api/session               → create, returns {sessionId, createdAt}
#   GET    /api/session/{session_id}  → history and counters (404 if unknown)
#   DELETE /api/session/{session_id}  → drop the session (404 if unknown)
#
# Sessions live in memory only and expire after the configured idle time.
# =============================================================================

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Response

from shariah_qa.api.deps import get_session_store
from shariah_qa.models.responses import (
    MessageResponse,
    SessionDetailResponse,
    SessionResponse,
)
from shariah_qa.services.session_store import SessionStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/session", tags=["Sessions"])


@router.post(
    "",
    response_model=SessionResponse,
    summary="Start a conversation",
)
async def create_session(
    store: SessionStore = Depends(get_session_store),
) -> SessionResponse:
    session = store.get_or_create()
    return SessionResponse(session_id=session.id, created_at=session.created_at)


@router.get(
    "/{session_id}",
    response_model=SessionDetailResponse,
    summary="Inspect a conversation",
)
async def get_session(
    session_id: str,
    store: SessionStore = Depends(get_session_store),
) -> SessionDetailResponse:
    session = store.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail=f"Session not found: {session_id}")
    return SessionDetailResponse(
        session_id=session.id,
        created_at=session.created_at,
        last_accessed_at=session.last_accessed_at,
        total_queries=session.total_queries,
        flagged_queries=session.flagged_queries,
        history=[MessageResponse.model_validate(m) for m in session.history],
    )


@router.delete(
    "/{session_id}",
    status_code=204,
    summary="End a conversation",
)
async def delete_session(
    session_id: str,
    store: SessionStore = Depends(get_session_store),
) -> Response:
    if not store.delete(session_id):
        raise HTTPException(status_code=404, detail=f"Session not found: {session_id}")
    return Response(status_code=204)
