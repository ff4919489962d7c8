# =============================================================================
# Celery Task Definitions — Calculation Tool
# =============================================================================
#
# One task: run a named calculation tool on a JSON argument dict and return
# {"result_text": str, "is_error": bool}. Validation failures come back as
# is_error results, never as task failures, so the API can tell bad input
# from a broken transport.
#
# IMPORTANT: Celery workers are SYNCHRONOUS. Do NOT use async/await here.
# =============================================================================

import logging

from shariah_qa.services.tools import CALCULATION_TASK, execute_tool
from shariah_qa.workers.celery_app import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(name=CALCULATION_TASK)
def call_calculation_tool(name: str, args: dict) -> dict:
    """Execute one calculation tool call inside the worker."""
    logger.info("Running calculation tool %s", name)
    result = execute_tool(name, args)
    if result.is_error:
        logger.warning("Calculation tool %s returned error: %s", name, result.result_text)
    return result.to_dict()
