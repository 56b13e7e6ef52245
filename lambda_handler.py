"""
AWS Lambda entry point
Function URL backing the DVIR email manager add-in
"""

import logging
import time

from dvir_emailer.api.panel_handler import handler as panel_handler
from dvir_emailer.structured_logging import get_structured_logger, log_lambda_execution

# Logging setup
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)
structured_logger = get_structured_logger(__name__)


def handler(event, context):
    """
    Lambda function handler

    Args:
        event: Function URL event
        context: Lambda context

    Returns:
        dict: API Gateway response
    """
    start_time = time.time()
    result = panel_handler(event, context)
    duration_ms = (time.time() - start_time) * 1000

    log_lambda_execution(
        structured_logger,
        getattr(context, "function_name", "local"),
        result.get("statusCode"),
        duration_ms,
    )
    return result
