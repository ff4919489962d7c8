# =============================================================================
# API Dependencies — Shared Components from the Composition Root
# =============================================================================
#
# The lifespan in shariah_qa/main.py builds one SessionStore and one
# AgentOrchestrator per process and parks them on `app.state`. Routers
# receive them through these dependencies, so tests can swap either via
# `app.dependency_overrides`.
# =============================================================================

from __future__ import annotations

from fastapi import Request

from shariah_qa.agents.orchestrator import AgentOrchestrator
from shariah_qa.services.session_store import SessionStore


def get_session_store(request: Request) -> SessionStore:
    return request.app.state.session_store


def get_orchestrator(request: Request) -> AgentOrchestrator:
    return request.app.state.orchestrator
