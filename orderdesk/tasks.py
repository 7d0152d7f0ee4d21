"""
Celery Tasks
Background work triggered by the API.
"""

import logging
import time
from datetime import datetime, timezone

from orderdesk.celery_worker import celery_app
from orderdesk.services.excel_manager import ExcelManager

logger = logging.getLogger(__name__)


class LedgerExportError(Exception):
    """The ledger row was not written; raised so Celery retries the task."""


@celery_app.task(
    bind=True,
    max_retries=3,
    default_retry_delay=5,
    autoretry_for=(Exception,),
    retry_backoff=True,
)
def export_order_to_excel(self, order_data: dict) -> dict:
    """
    Append a new order to the Excel ledger.

    Args:
        order_data: Row produced by ``orders.order_export_payload``

    Returns:
        dict: Result of the export operation

    Raises:
        LedgerExportError: When the row could not be written; Celery retries
    """
    task_id = self.request.id
    order_id = order_data.get("order_id", "unknown")

    logger.info(f"Task {task_id}: exporting order #{order_id}")
    start_time = time.time()

    result = ExcelManager.export_order(order_data)

    elapsed = round(time.time() - start_time, 3)
    result["task_id"] = task_id
    result["processing_time_seconds"] = elapsed

    if not result["success"]:
        logger.warning(f"Task {task_id}: order #{order_id} not exported - {result['message']}")
        raise LedgerExportError(result["message"])

    logger.info(f"Task {task_id}: order #{order_id} exported in {elapsed}s")

    return result


@celery_app.task
def health_check() -> dict:
    """
    Simple health check task to verify Celery is working.
    """
    return {
        "status": "healthy",
        "worker": "celery",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
