# =============================================================================
# API Request Models — Pydantic V2 Schemas
# =============================================================================
#
# Shapes of data coming INTO the API. Field names are snake_case in Python
# and camelCase on the wire (`sessionId`); both spellings are accepted.
# FastAPI turns a failed validation into a 422 response. A blank query is
# accepted here and rejected by the pipeline as EMPTY_QUERY.
# =============================================================================

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class QueryRequest(BaseModel):
    """
    Request body for POST /api/search.

    Example:
        {"query": "What is Riba?", "sessionId": "3f2a..."}
    """

    query: str = Field(
        ...,
        max_length=2000,
        description="The Islamic finance question to answer",
        examples=["What is Riba?"],
    )

    # A new session is created when omitted
    session_id: str | None = Field(
        default=None,
        description="Conversation to continue. Omit to start a new session.",
    )

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "examples": [
                {"query": "What is Riba?"},
                {
                    "query": "Two partners invest $60,000 and $40,000 with "
                    "$20,000 profit. How is it split?",
                    "sessionId": "9b1deb4d3b7d4bad9bdd2b0d7b3dcb6d",
                },
            ]
        },
    )
