# =============================================================================
# Islamic Finance Q&A Agent
# =============================================================================
# A multi-agent service that answers Islamic finance questions. Each query is
# classified, answered by a knowledge (RAG) or calculation agent, checked
# against a five-rule Shariah compliance rulebook, and streamed to the caller
# as Server-Sent Events.
#
# Package structure:
#   shariah_qa/
#   ├── agents/       → routing, knowledge, calculation and compliance agents,
#   │                    prompt builders, retry policy, LangGraph orchestrator
#   ├── api/          → FastAPI route handlers (session, search)
#   ├── db/           → async engine and ORM models (pgvector backend)
#   ├── models/       → Pydantic V2 request/response schemas
#   ├── services/     → boundaries: LLM, embeddings, vector store,
#   │                    calculators, calculation tool, session store
#   └── workers/      → Celery app running the calculation tool out-of-process
# =============================================================================
