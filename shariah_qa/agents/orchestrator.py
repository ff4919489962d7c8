# =============================================================================
# Agent Orchestrator — Per-Query Pipeline Graph
# =============================================================================
#
# Sequences the four agents behind one ordered event stream.
#
# GRAPH TOPOLOGY:
#
#   START ──▶ validate ──▶ route ──┬──▶ calculate ──┐
#                                  └──▶ retrieve  ──┴──▶ compliance ──┐
#                                                                     │
#                        END ◀── persist ◀──┬── finalize ◀────────────┤
#                                           └── redact   ◀────────────┘
#
#   route      → "calculate" when the category is CALCULATION, else "retrieve"
#   compliance → "redact" when the verdict is FLAGGED, else "finalize"
#
# Nodes push StreamEvents through the awaitable `emit` carried in the state.
# The emit callable is not serialisable; the graph has no checkpointer.
#
# ERRORS:
#   EMPTY_QUERY / SESSION_NOT_FOUND raised by validate, no step
#   AgentError inside a step  → {ROUTING,KNOWLEDGE,CALCULATION,COMPLIANCE}_FAILED
#   anything else             → UNKNOWN_ERROR, no step
# The orchestrator never retries; each agent owns its retry loop.
# =============================================================================

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterator, Awaitable, Callable, Iterator
from contextlib import contextmanager
from datetime import datetime, timezone

from langgraph.graph import END, START, StateGraph
from typing_extensions import TypedDict

from shariah_qa.agents.calculation import CalculationAgent
from shariah_qa.agents.compliance import ComplianceAgent
from shariah_qa.agents.errors import (
    STEP_ERROR_CODES,
    AgentError,
    OrchestratorError,
    PipelineStep,
)
from shariah_qa.agents.knowledge import KnowledgeAgent
from shariah_qa.agents.routing import RoutingAgent
from shariah_qa.agents.types import (
    CalculationResult,
    ComplianceResult,
    ComplianceStatus,
    ConversationMessage,
    OrchestratorResult,
    QueryCategory,
    ResultMetadata,
    RetrievedChunk,
    RoutingResult,
    StreamEvent,
)
from shariah_qa.config import settings
from shariah_qa.services.session_store import SessionStore

logger = logging.getLogger(__name__)

EventSink = Callable[[StreamEvent], Awaitable[None]]

SAFE_MESSAGE_PREFACE = (
    "I cannot provide this information as it may not align with "
    "Islamic finance principles."
)


# ---------------------------------------------------------------------------
# Pipeline State Schema
# ---------------------------------------------------------------------------


class PipelineState(TypedDict, total=False):
    """State flowing through the graph. Nodes return partial updates."""

    # --- Input ---
    query: str
    session_id: str
    emit: EventSink

    # --- Intermediate ---
    routing: RoutingResult
    response_text: str
    sources: list[RetrievedChunk]
    calculation: CalculationResult | None
    compliance: ComplianceResult

    # --- Output ---
    answer: str


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


@contextmanager
def agent_step(step: PipelineStep) -> Iterator[None]:
    """Re-raise an AgentError from `step` as its OrchestratorError."""
    try:
        yield
    except AgentError as exc:
        message = (
            "Compliance validation failed" if step == "compliance" else exc.message
        )
        raise OrchestratorError(
            message, code=STEP_ERROR_CODES[step], step=step, cause=exc,
        ) from exc


def build_safe_message(compliance: ComplianceResult) -> str:
    message = f"{SAFE_MESSAGE_PREFACE}\n\nReason: {compliance.reasoning}"
    if compliance.suggestions:
        message += "\n\nSuggestions:\n" + "\n".join(
            f"- {s}" for s in compliance.suggestions
        )
    return message


def build_conversation_context(history: list[ConversationMessage]) -> str:
    """Numbered 'Previous questions' block from the user turns in `history`."""
    questions = [m.content for m in history if m.role == "user"]
    if not questions:
        return ""
    numbered = "\n".join(f"{i}. {q}" for i, q in enumerate(questions, start=1))
    return f"Previous questions:\n{numbered}"


def _now() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------


class AgentOrchestrator:
    """
    Runs one query through routing, the specialised agent, compliance
    validation and session persistence.

    The graph is compiled once per orchestrator; node functions close over
    the injected agents, so the same compiled graph serves every request.
    """

    def __init__(
        self,
        routing_agent: RoutingAgent,
        knowledge_agent: KnowledgeAgent,
        calculation_agent: CalculationAgent,
        compliance_agent: ComplianceAgent,
        session_store: SessionStore,
        event_buffer_size: int | None = None,
    ) -> None:
        self._routing = routing_agent
        self._knowledge = knowledge_agent
        self._calculation = calculation_agent
        self._compliance = compliance_agent
        self._sessions = session_store
        self.event_buffer_size = (
            settings.event_buffer_size if event_buffer_size is None else event_buffer_size
        )
        self._graph = self._build_graph()

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    async def process_query(
        self,
        query: str,
        session_id: str,
        emit: EventSink,
    ) -> OrchestratorResult:
        """
        Run the pipeline for one query, pushing progress events to `emit`.

        Queries of the same session run one at a time.

        Raises:
            OrchestratorError: on any failure; `code` and `step` tell which.
        """
        started = time.perf_counter()
        try:
            async with self._sessions.lock(session_id):
                state = await self._graph.ainvoke(
                    {"query": query, "session_id": session_id, "emit": emit}
                )
        except OrchestratorError as exc:
            logger.warning(
                "Query failed: code=%s step=%s message=%s",
                exc.code, exc.step, exc.message,
            )
            raise
        except Exception as exc:
            logger.exception("Unexpected orchestrator failure")
            raise OrchestratorError(
                str(exc) or "An unexpected error occurred",
                code="UNKNOWN_ERROR",
                cause=exc,
            ) from exc

        elapsed_ms = int((time.perf_counter() - started) * 1000)
        routing: RoutingResult = state["routing"]
        compliance: ComplianceResult = state["compliance"]
        flagged = compliance.status is ComplianceStatus.FLAGGED

        if flagged:
            sources: list[RetrievedChunk] | None = []
        else:
            sources = state.get("sources") or None

        logger.info(
            "Query complete: category=%s compliance=%s elapsed=%dms",
            routing.category.value, compliance.status.value, elapsed_ms,
        )
        return OrchestratorResult(
            answer=state["answer"],
            category=routing.category,
            sources=sources,
            calculation=None if flagged else state.get("calculation"),
            metadata=ResultMetadata(
                routing_confidence=routing.confidence,
                processing_time_ms=elapsed_ms,
                compliance_status=compliance.status,
                session_id=session_id,
            ),
        )

    async def stream_query(
        self,
        query: str,
        session_id: str,
    ) -> AsyncIterator[StreamEvent]:
        """
        Yield `connected`, the pipeline events, then one `done` or `error`.

        The pipeline runs in a producer task feeding a bounded queue; a slow
        consumer blocks it. Closing the iterator early cancels the producer.
        """
        queue: asyncio.Queue[StreamEvent] = asyncio.Queue(maxsize=self.event_buffer_size)

        async def produce() -> None:
            try:
                result = await self.process_query(query, session_id, queue.put)
            except OrchestratorError as exc:
                await queue.put(StreamEvent("error", exc.to_payload()))
            else:
                await queue.put(StreamEvent("done", result))

        yield StreamEvent("connected", {"session_id": session_id})

        producer = asyncio.create_task(produce())
        try:
            while True:
                event = await queue.get()
                yield event
                if event.is_terminal:
                    break
        finally:
            if not producer.done():
                producer.cancel()
                logger.info("Stream for session %s closed early", session_id)
            try:
                await producer
            except asyncio.CancelledError:
                pass

    # -------------------------------------------------------------------------
    # Graph Nodes
    # -------------------------------------------------------------------------

    async def _validate(self, state: PipelineState) -> dict:
        if not state["query"] or not state["query"].strip():
            raise OrchestratorError("Query is empty", code="EMPTY_QUERY")
        if self._sessions.get(state["session_id"]) is None:
            raise OrchestratorError(
                "Session not found or expired", code="SESSION_NOT_FOUND",
            )
        return {"query": state["query"].strip()}

    async def _route(self, state: PipelineState) -> dict:
        emit = state["emit"]
        await emit(StreamEvent("status", "Analyzing query..."))
        with agent_step("routing"):
            routing = await self._routing.classify(state["query"])
        await emit(StreamEvent("routing", routing))
        return {"routing": routing}

    async def _calculate(self, state: PipelineState) -> dict:
        await state["emit"](StreamEvent("status", "Performing calculation..."))
        with agent_step("calculation"):
            calculation = await self._calculation.calculate(state["query"])
        return {
            "response_text": calculation.rendered_text,
            "calculation": calculation,
            "sources": [],
        }

    async def _retrieve(self, state: PipelineState) -> dict:
        emit = state["emit"]
        await emit(StreamEvent("status", "Searching knowledge base..."))

        query = state["query"]
        context = build_conversation_context(
            self._sessions.last_n(
                state["session_id"], settings.context_user_messages, role="user",
            )
        )
        enriched = f"{context}\n\nCurrent query: {query}" if context else query

        async def on_token(token: str) -> None:
            await emit(StreamEvent("content", token))

        with agent_step("knowledge"):
            result = await self._knowledge.answer_streaming(
                enriched, state["routing"].category, on_token,
            )
        return {"response_text": result.answer, "sources": result.sources}

    async def _check_compliance(self, state: PipelineState) -> dict:
        emit = state["emit"]
        await emit(StreamEvent("status", "Validating compliance..."))
        with agent_step("compliance"):
            compliance = await self._compliance.validate(state["response_text"])
        await emit(StreamEvent("compliance", compliance))
        return {"compliance": compliance}

    async def _redact(self, state: PipelineState) -> dict:
        compliance = state["compliance"]
        logger.warning(
            "Compliance violation: session=%s query='%s' violations=%s "
            "reasoning='%s' confidence=%.2f",
            state["session_id"], state["query"][:100], compliance.violations,
            compliance.reasoning, compliance.confidence,
        )
        return {
            "answer": build_safe_message(compliance),
            "sources": [],
            "calculation": None,
        }

    async def _finalize(self, state: PipelineState) -> dict:
        return {"answer": state["response_text"]}

    async def _persist(self, state: PipelineState) -> dict:
        session_id = state["session_id"]
        self._sessions.update(session_id, ConversationMessage(
            role="user",
            content=state["query"],
            timestamp=_now(),
            category=state["routing"].category,
        ))
        self._sessions.update(session_id, ConversationMessage(
            role="assistant",
            content=state["answer"],
            timestamp=_now(),
            compliance_status=state["compliance"].status,
        ))
        return {}

    # -------------------------------------------------------------------------
    # Graph Assembly
    # -------------------------------------------------------------------------

    @staticmethod
    def _after_route(state: PipelineState) -> str:
        if state["routing"].category is QueryCategory.CALCULATION:
            return "calculate"
        return "retrieve"

    @staticmethod
    def _after_compliance(state: PipelineState) -> str:
        if state["compliance"].status is ComplianceStatus.FLAGGED:
            return "redact"
        return "finalize"

    def _build_graph(self):
        builder = StateGraph(PipelineState)
        builder.add_node("validate", self._validate)
        builder.add_node("route", self._route)
        builder.add_node("calculate", self._calculate)
        builder.add_node("retrieve", self._retrieve)
        builder.add_node("compliance", self._check_compliance)
        builder.add_node("redact", self._redact)
        builder.add_node("finalize", self._finalize)
        builder.add_node("persist", self._persist)

        builder.add_edge(START, "validate")
        builder.add_edge("validate", "route")
        builder.add_conditional_edges(
            "route", self._after_route, ["calculate", "retrieve"],
        )
        builder.add_edge("calculate", "compliance")
        builder.add_edge("retrieve", "compliance")
        builder.add_conditional_edges(
            "compliance", self._after_compliance, ["redact", "finalize"],
        )
        builder.add_edge("redact", "persist")
        builder.add_edge("finalize", "persist")
        builder.add_edge("persist", END)
        return builder.compile()
