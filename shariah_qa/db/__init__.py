# =============================================================================
# Database Package
# =============================================================================
# Async SQLAlchemy engine and the read-side ORM models of the knowledge base.
#
# Key exports:
#   - get_session_factory: lazily built async session factory
#   - Document, DocumentChunk: documents and their embedded chunks
# =============================================================================
