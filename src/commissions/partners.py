"""Partner commission tracker: splits a calculated sale among ownership partners."""
from __future__ import annotations

import calendar
import logging
from datetime import date
from decimal import Decimal

from commissions.drafts import CalculationResult, PartnerDraft
from commissions.exceptions import ExternalDependencyError
from commissions.models import ProductPartner
from commissions.money import HUNDRED, ZERO, quantize_money, quantize_percent, to_decimal

logger = logging.getLogger(__name__)

UNNAMED_PARTNER = "Socio sin nombre"


def add_months(value: date, months: int) -> date:
    """Calendar month arithmetic, clamping the day to the target month length."""
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def post_sale_reference_date(sale) -> date | None:
    """Date on which the post-sale phase of ``sale`` becomes due.

    Signing date plus the financing term; the signing date itself for
    sales without a term.
    """
    if sale.signing_date is None:
        return None
    if sale.financing_term_months:
        return add_months(sale.signing_date, sale.financing_term_months)
    return sale.signing_date


class ProductPartnerRegistry:
    """Participant registry backed by the ``ProductPartner`` table."""

    def get_participants(self, product_id: str) -> list[tuple[str, Decimal]]:
        if not product_id:
            return []
        return [
            (row.partner_name, row.participation)
            for row in ProductPartner.objects.filter(product_id=product_id).order_by("partner_name")
        ]


class PartnerCommissionTracker:
    """Compute one partner commission per participant of the sale's product.

    Amounts are the participation share of each phase's distributed role
    total, never of the gross sale value.
    """

    def __init__(self, registry=None):
        self.registry = registry or ProductPartnerRegistry()

    def fetch_participants(self, sale) -> list[tuple[str, Decimal]]:
        try:
            participants = list(self.registry.get_participants(sale.product_id))
        except Exception as exc:
            logger.error(
                "Partner registry failed for sale %s (product %s)", sale.pk, sale.product_id,
                exc_info=True,
            )
            raise ExternalDependencyError(
                f"No se pudo consultar a los socios del producto {sale.product_id}: {exc}"
            ) from exc

        total = sum((to_decimal(participation) for _, participation in participants), ZERO)
        if participants and total != HUNDRED:
            logger.warning(
                "Sale %s: partner participations for product %s sum to %s%%",
                sale.pk, sale.product_id, total,
            )
        return participants

    def compute(self, sale, result: CalculationResult, participants) -> list[PartnerDraft]:
        reference_date = post_sale_reference_date(sale)
        drafts: dict[str, PartnerDraft] = {}
        for name, participation in participants:
            name = (name or "").strip() or UNNAMED_PARTNER
            participation = quantize_percent(max(to_decimal(participation), ZERO))
            sale_amount = quantize_money(result.commission_sale_phase * participation / HUNDRED)
            post_sale_amount = quantize_money(result.commission_post_sale_phase * participation / HUNDRED)
            if name in drafts:
                logger.warning("Sale %s: partner %s listed twice, keeping the last entry", sale.pk, name)
            drafts[name] = PartnerDraft(
                partner_name=name,
                participation=participation,
                sale_phase_amount=sale_amount,
                post_sale_phase_amount=post_sale_amount,
                total_amount=sale_amount + post_sale_amount,
                post_sale_reference_date=reference_date,
                is_cash_sale=not sale.financing_term_months and post_sale_amount != 0,
            )
        return list(drafts.values())
