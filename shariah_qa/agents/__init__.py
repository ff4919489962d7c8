# =============================================================================
# Agents Package — LangGraph Multi-Agent Orchestration
# =============================================================================
#   - routing.py: classifies a query into one of six categories
#   - knowledge.py: retrieves, reranks and answers from the knowledge base
#   - calculation.py: extracts parameters, calls the calculation tool,
#     renders markdown
#   - compliance.py: validates an answer against the five Shariah rules
#   - orchestrator.py: LangGraph graph sequencing the agents behind one
#     ordered event stream
#
# Flow: validate → route → (calculate | retrieve) → compliance →
#       (redact | finalize) → persist
# =============================================================================
