# =============================================================================
# Celery Application Configuration
# =============================================================================
#
# Runs the deterministic calculation tool out of the API process when
# CALCULATION_TOOL_TRANSPORT=celery. The API sends one task per tool call
# and blocks (in a worker thread) on the result.
#
# ARCHITECTURE:
# ┌──────────┐     ┌───────┐     ┌──────────────┐     ┌───────┐
# │ FastAPI  │────▶│ Redis │────▶│ Celery Worker│────▶│ Redis │
# │ (producer)│    │(broker)│    │ (calculators) │    │(result)│
# └──────────┘     └───────┘     └──────────────┘     └───────┘
#    db 0 ──────────┘                                    └── db 1
#
# Start a worker with:
#   celery -A shariah_qa.workers.celery_app worker --loglevel=info
# =============================================================================

from celery import Celery

from shariah_qa.config import settings

celery_app = Celery(
    "shariah_qa.workers",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
)

celery_app.conf.update(
    # --- Serialization ---
    # JSON only: tool arguments and results are plain dicts.
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",

    # --- Reliability ---
    # Calculations are pure, so re-running a task after a worker crash is safe.
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    worker_prefetch_multiplier=1,

    # --- Timeouts ---
    # A calculation takes milliseconds; anything near these limits is a bug.
    task_soft_time_limit=20,
    task_time_limit=30,

    # --- Results ---
    # The caller reads the result immediately; keep them briefly.
    result_expires=300,

    # --- Broker ---
    # Fail fast when Redis is down; the API-side retry policy handles backoff.
    broker_connection_retry_on_startup=True,
    broker_connection_max_retries=1,

    include=["shariah_qa.workers.tasks"],
)
