# =============================================================================
# FastAPI Application — Composition Root
# =============================================================================
#
# Builds every long-lived component once per process and wires them:
#
#   LLMProvider ─┬─▶ RoutingAgent ──────┐
#                ├─▶ KnowledgeAgent ◀── EmbeddingService, VectorStore
#                ├─▶ CalculationAgent ◀─ CalculationTool (local | celery)
#                └─▶ ComplianceAgent    │
#   SessionStore ───────────────────────┴─▶ AgentOrchestrator
#
# All agents share one RetryPolicy. The SessionStore sweep task starts with
# the application and is cancelled on shutdown, together with the database
# engine pool.
#
# RUN:
#   uvicorn shariah_qa.main:app --reload
# =============================================================================

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI

from shariah_qa.agents.calculation import CalculationAgent
from shariah_qa.agents.compliance import ComplianceAgent
from shariah_qa.agents.knowledge import KnowledgeAgent
from shariah_qa.agents.orchestrator import AgentOrchestrator
from shariah_qa.agents.retry import RetryPolicy
from shariah_qa.agents.routing import RoutingAgent
from shariah_qa.api import search, session
from shariah_qa.api.deps import get_session_store
from shariah_qa.config import settings
from shariah_qa.db.engine import dispose_engine
from shariah_qa.models.responses import HealthResponse
from shariah_qa.services.embedder import EmbeddingService
from shariah_qa.services.llm import create_llm_provider
from shariah_qa.services.session_store import SessionStore
from shariah_qa.services.tools import create_calculation_tool
from shariah_qa.services.vectorstore import create_vector_store

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


def build_orchestrator(session_store: SessionStore) -> AgentOrchestrator:
    """Construct the agents from settings and wire them to `session_store`."""
    llm = create_llm_provider()
    retry = RetryPolicy()

    return AgentOrchestrator(
        routing_agent=RoutingAgent(llm, retry=retry),
        knowledge_agent=KnowledgeAgent(
            llm,
            embedder=EmbeddingService(retry=retry),
            vector_store=create_vector_store(),
            retry=retry,
        ),
        calculation_agent=CalculationAgent(
            llm, tool=create_calculation_tool(), retry=retry,
        ),
        compliance_agent=ComplianceAgent(llm, retry=retry),
        session_store=session_store,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    session_store = SessionStore()
    app.state.session_store = session_store
    app.state.orchestrator = build_orchestrator(session_store)
    session_store.start()
    logger.info(
        "%s v%s started (llm=%s/%s, vectorstore=%s, calculation tool=%s)",
        settings.app_name, settings.app_version,
        settings.llm_provider, settings.llm_model,
        settings.vectorstore_type, settings.calculation_tool_transport,
    )
    try:
        yield
    finally:
        await session_store.destroy()
        await dispose_engine()
        logger.info("%s stopped", settings.app_name)


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description=(
            "Multi-agent Islamic finance Q&A: query routing, retrieval-"
            "augmented answers, Musharakah/Mudharabah calculations and "
            "Shariah compliance validation, streamed over SSE."
        ),
        lifespan=lifespan,
    )
    app.include_router(session.router)
    app.include_router(search.router)

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health(
        store: SessionStore = Depends(get_session_store),
    ) -> HealthResponse:
        return HealthResponse(
            version=settings.app_version,
            service=settings.app_name,
            active_sessions=store.active_count(),
        )

    return app


app = create_app()
