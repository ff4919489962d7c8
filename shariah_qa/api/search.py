# =============================================================================
# Search API — Streaming Multi-Agent Answers over SSE
# =============================================================================
#
# POST /api/search runs one query through the orchestrator and streams its
# events as Server-Sent Events:
#
#   event: <type>
#   data: <json>
#
# Event order: connected, status/routing/content/compliance..., then exactly
# one of done | error. Pipeline failures arrive as an `error` event on an
# HTTP 200 stream; only request-body validation fails with a 422.
#
# A request without sessionId starts a new session, whose id is reported in
# the `connected` event. An unknown or expired sessionId ends the stream with
# a SESSION_NOT_FOUND error event.
# =============================================================================

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from shariah_qa.agents.orchestrator import AgentOrchestrator
from shariah_qa.agents.types import StreamEvent
from shariah_qa.api.deps import get_orchestrator, get_session_store
from shariah_qa.models.requests import QueryRequest
from shariah_qa.models.responses import event_payload
from shariah_qa.services.session_store import SessionStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Search"])

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def format_sse(event: StreamEvent) -> str:
    data = json.dumps(event_payload(event), ensure_ascii=False)
    return f"event: {event.type}\ndata: {data}\n\n"


@router.post(
    "/search",
    summary="Ask an Islamic finance question (streamed)",
    description=(
        "Classifies the query, answers it with the knowledge or calculation "
        "agent, validates the answer for Shariah compliance and streams "
        "every step as Server-Sent Events."
    ),
    response_class=StreamingResponse,
)
async def search(
    request: QueryRequest,
    store: SessionStore = Depends(get_session_store),
    orchestrator: AgentOrchestrator = Depends(get_orchestrator),
) -> StreamingResponse:
    session_id = request.session_id or store.create()

    logger.info(
        "Search request: session=%s query='%s'", session_id, request.query[:80],
    )

    async def stream() -> AsyncIterator[str]:
        async for event in orchestrator.stream_query(request.query, session_id):
            yield format_sse(event)

    return StreamingResponse(
        stream(), media_type="text/event-stream", headers=SSE_HEADERS,
    )
