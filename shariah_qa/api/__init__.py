# =============================================================================
# API Routers — session management and streaming search
# =============================================================================
