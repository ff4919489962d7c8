# =============================================================================
# Services Package — Boundaries Used by the Agents
# =============================================================================
#   - llm.py: Multi-provider text generation (Anthropic, OpenAI-compatible)
#   - embedder.py: Query/batch embeddings over an OpenAI-compatible API
#   - vectorstore.py: Pluggable vector search (pgvector, Chroma)
#   - calculator.py: Musharakah and Mudharabah profit/loss calculators
#   - tools.py: call_tool() boundary over the calculators (local or Celery)
#   - session_store.py: Bounded in-memory conversation sessions
# =============================================================================
