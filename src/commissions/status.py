"""Sale-level statuses derived from the current rows. Never stored."""
from __future__ import annotations

from datetime import date

from django.utils import timezone

from commissions.models import CollectionStatus, PaymentStatus, Phase
from commissions.partners import post_sale_reference_date

SALE_PHASE_VISIBLE = "visible"
SALE_PHASE_PENDING = "pending"
SALE_PHASE_PAID = "paid"

POST_SALE_HIDDEN = "hidden"
POST_SALE_UPCOMING = "upcoming"
POST_SALE_PAYABLE = "payable"
POST_SALE_PAID = "paid"

_COLLECTION_ORDER = [
    CollectionStatus.PENDING_INVOICE,
    CollectionStatus.INVOICED,
    CollectionStatus.COLLECTED,
]


def _paid_flags(rows, phase):
    return [row.payment_status == PaymentStatus.PAID for row in rows if row.phase == phase]


def sale_phase_status(sale, rows) -> str | None:
    """``visible`` until a sale-phase row is paid, ``pending`` while some are, ``paid`` once all are."""
    if not sale.commission_calculated:
        return None
    flags = _paid_flags(rows, Phase.SALE)
    if not flags or not any(flags):
        return SALE_PHASE_VISIBLE
    if all(flags):
        return SALE_PHASE_PAID
    return SALE_PHASE_PENDING


def post_sale_phase_status(sale, rows, today: date | None = None) -> str:
    """``hidden`` until triggered, ``upcoming`` before the reference date, then ``payable`` and ``paid``."""
    flags = _paid_flags(rows, Phase.POST_SALE)
    if not sale.commission_calculated or not flags or sale.post_sale_triggered_at is None:
        return POST_SALE_HIDDEN
    if all(flags):
        return POST_SALE_PAID
    today = today or timezone.localdate()
    reference = post_sale_reference_date(sale)
    if reference is None or reference <= today:
        return POST_SALE_PAYABLE
    return POST_SALE_UPCOMING


def partner_status_summary(partner_commissions) -> str | None:
    """Least advanced collection status over every phase with a non-zero amount."""
    statuses = []
    for pc in partner_commissions:
        if pc.sale_phase_amount:
            statuses.append(pc.sale_phase_collection_status)
        if pc.post_sale_phase_amount:
            statuses.append(pc.post_sale_phase_collection_status)
    if not statuses:
        return None
    return min(statuses, key=_COLLECTION_ORDER.index)


def sale_statuses(sale, today: date | None = None) -> dict:
    """All derived statuses of a sale, read from its current rows."""
    rows = list(sale.distributions.all())
    return {
        "sale_phase_status": sale_phase_status(sale, rows),
        "post_sale_phase_status": post_sale_phase_status(sale, rows, today=today),
        "partner_status": partner_status_summary(sale.partner_commissions.all()),
        "post_sale_reference_date": post_sale_reference_date(sale),
    }
