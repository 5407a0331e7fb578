"""Celery tasks for the commissions module."""
from __future__ import annotations

import logging

from celery import shared_task
from django.conf import settings

logger = logging.getLogger(__name__)


@shared_task
def calculate_pending_sales(limit: int | None = None):
    """Calculate sales whose commission is still missing.

    Each sale runs in its own transaction; a failing sale is logged and
    skipped so the rest of the batch still goes through.
    """
    from commissions.exceptions import CommissionError
    from commissions.models import CommissionSale
    from commissions.services import calculate_commission

    limit = limit or getattr(settings, "COMMISSION_BATCH_SIZE", 100)
    sale_ids = list(
        CommissionSale.objects
        .filter(commission_calculated=False)
        .order_by("signing_date", "created_at")
        .values_list("pk", flat=True)[:limit]
    )

    calculated, failed = 0, 0
    for sale_id in sale_ids:
        try:
            calculate_commission(sale_id)
            calculated += 1
        except CommissionError as exc:
            failed += 1
            logger.error("Batch calculation failed for sale %s: %s", sale_id, exc)
        except Exception:
            failed += 1
            logger.exception("Unexpected error calculating sale %s", sale_id)

    logger.info("calculate_pending_sales: %d calculated, %d failed", calculated, failed)
    return {"calculated": calculated, "failed": failed}
