# =============================================================================
# API Schemas — Pydantic V2 request/response models (camelCase on the wire)
# =============================================================================
