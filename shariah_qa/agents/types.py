# =============================================================================
# Agent Data Structures
# =============================================================================
#
# Plain dataclasses shared by the agents, the orchestrator and the session
# store. Wire serialisation (camelCase JSON) lives in shariah_qa/models/;
# nothing here knows about HTTP.
# =============================================================================

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal


class QueryCategory(str, enum.Enum):
    """The six categories the routing agent may assign."""

    PRINCIPLES = "principles"
    PRODUCTS = "products"
    COMPLIANCE = "compliance"
    COMPARISON = "comparison"
    CALCULATION = "calculation"
    GENERAL = "general"


class ComplianceStatus(str, enum.Enum):
    COMPLIANT = "COMPLIANT"
    FLAGGED = "FLAGGED"


class CalculationType(str, enum.Enum):
    MUSHARAKAH = "musharakah"
    MUDHARABAH = "mudharabah"


# ---------------------------------------------------------------------------
# Agent Results
# ---------------------------------------------------------------------------


@dataclass
class RoutingResult:
    category: QueryCategory
    confidence: float  # 0.0–1.0
    explanation: str


@dataclass
class RetrievedChunk:
    """
    A chunk returned by the vector-search boundary.

    similarity is 1 - cosine distance; the boundary returns chunks sorted
    by it, highest first.
    """

    id: str
    content: str
    document_id: str
    similarity: float
    category: str = ""


@dataclass
class KnowledgeResult:
    answer: str
    sources: list[RetrievedChunk]
    confidence: float  # mean similarity of the sources
    category: QueryCategory


@dataclass
class CalculationResult:
    type: CalculationType
    inputs: dict[str, float]
    outputs: dict[str, float]
    steps: list[str]
    rendered_text: str


@dataclass
class ComplianceResult:
    status: ComplianceStatus
    confidence: float
    reasoning: str
    violations: list[str] | None = None
    suggestions: list[str] | None = None


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------


@dataclass
class ConversationMessage:
    role: Literal["user", "assistant"]
    content: str
    timestamp: datetime
    category: QueryCategory | None = None
    compliance_status: ComplianceStatus | None = None


@dataclass
class Session:
    id: str
    created_at: datetime
    last_accessed_at: datetime
    history: list[ConversationMessage] = field(default_factory=list)
    total_queries: int = 0
    flagged_queries: int = 0


# ---------------------------------------------------------------------------
# Orchestrator Output
# ---------------------------------------------------------------------------


@dataclass
class ResultMetadata:
    routing_confidence: float
    processing_time_ms: int
    compliance_status: ComplianceStatus
    session_id: str


@dataclass
class OrchestratorResult:
    answer: str
    category: QueryCategory
    metadata: ResultMetadata
    sources: list[RetrievedChunk] | None = None
    calculation: CalculationResult | None = None


StreamEventType = Literal[
    "connected", "status", "routing", "content", "compliance", "done", "error",
]


@dataclass
class StreamEvent:
    """
    One event of the per-query stream.

    Payload by type:
        connected  → {"session_id": str}
        status     → str
        routing    → RoutingResult
        content    → str (one generated token/fragment)
        compliance → ComplianceResult
        done       → OrchestratorResult
        error      → {"message": str, "code": str, "step": str | None}
    """

    type: StreamEventType
    data: Any

    @property
    def is_terminal(self) -> bool:
        return self.type in ("done", "error")
