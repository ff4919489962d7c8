# =============================================================================
# Workers Package — Celery Calculation Worker
# =============================================================================
#   - celery_app.py: Celery application configuration
#   - tasks.py: the calculation tool task
#
# Only used when CALCULATION_TOOL_TRANSPORT=celery; the default "local"
# transport runs the calculators in the API process.
# =============================================================================
