# =============================================================================
# API Response Models — Pydantic V2 Schemas
# =============================================================================
#
# Shapes of data going OUT of the API, including the payload of every
# stream event. Agent dataclasses are converted with
# model_validate(..., from_attributes=True); the agents themselves never
# import anything from here.
#
# Wire format is camelCase (`routingConfidence`, `processingTimeMs`).
# =============================================================================

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from shariah_qa.agents.types import (
    CalculationType,
    ComplianceStatus,
    QueryCategory,
    StreamEvent,
)


class ApiModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class HealthResponse(ApiModel):
    """Response for GET /health."""

    status: str = "ok"
    version: str
    service: str
    active_sessions: int


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------


class SessionResponse(ApiModel):
    """Response for POST /api/session."""

    session_id: str
    created_at: datetime


class MessageResponse(ApiModel):
    role: str
    content: str
    timestamp: datetime
    category: QueryCategory | None = None
    compliance_status: ComplianceStatus | None = None


class SessionDetailResponse(ApiModel):
    """Response for GET /api/session/{session_id}."""

    session_id: str
    created_at: datetime
    last_accessed_at: datetime
    total_queries: int
    flagged_queries: int
    history: list[MessageResponse]


# ---------------------------------------------------------------------------
# Stream Event Payloads
# ---------------------------------------------------------------------------


class RoutingPayload(ApiModel):
    category: QueryCategory
    confidence: float
    explanation: str


class SourcePayload(ApiModel):
    id: str
    document_id: str
    content: str
    similarity: float
    category: str = ""


class CalculationPayload(ApiModel):
    type: CalculationType
    inputs: dict[str, float]
    outputs: dict[str, float]
    steps: list[str]
    rendered_text: str


class CompliancePayload(ApiModel):
    status: ComplianceStatus
    confidence: float
    reasoning: str
    violations: list[str] | None = None
    suggestions: list[str] | None = None


class MetadataPayload(ApiModel):
    routing_confidence: float
    processing_time_ms: int
    compliance_status: ComplianceStatus
    session_id: str


class ResultPayload(ApiModel):
    answer: str
    category: QueryCategory
    metadata: MetadataPayload
    sources: list[SourcePayload] | None = None
    calculation: CalculationPayload | None = None


class ErrorPayload(ApiModel):
    message: str
    code: str
    step: str | None = None


def event_payload(event: StreamEvent) -> dict[str, Any]:
    """JSON-ready `data` of one stream event."""
    if event.type == "connected":
        return {"sessionId": event.data["session_id"]}
    if event.type == "status":
        return {"message": event.data}
    if event.type == "content":
        return {"token": event.data}
    if event.type == "routing":
        return RoutingPayload.model_validate(event.data).to_wire()
    if event.type == "compliance":
        return CompliancePayload.model_validate(event.data).to_wire()
    if event.type == "done":
        return ResultPayload.model_validate(event.data).to_wire()
    if event.type == "error":
        return ErrorPayload.model_validate(event.data).to_wire()
    raise ValueError(f"Unknown stream event type: {event.type}")
