"""Monthly reports over calculated commissions.

The sale phase is grouped by signing month; the post-sale phase by the
month of its reference date (signing date plus financing term).
"""
from __future__ import annotations

from collections import defaultdict

from django.conf import settings

from commissions.models import (
    BillingTarget,
    CollectionStatus,
    CommissionDistribution,
    CommissionSale,
    HiddenPartner,
    PartnerCommission,
    PaymentStatus,
    Phase,
    SalesTarget,
)
from commissions.money import ZERO, quantize_money
from commissions.partners import post_sale_reference_date

MONTHS = range(1, 13)


def _currency():
    return getattr(settings, "COMMISSION_CURRENCY", "MXN")


def _month_in_year(value, year):
    if value is None or value.year != year:
        return None
    return value.month


def partner_monthly_report(year: int, include_hidden: bool = False) -> dict:
    partner_commissions = (
        PartnerCommission.objects
        .filter(sale__commission_calculated=True)
        .select_related("sale")
    )
    if not include_hidden:
        hidden = HiddenPartner.objects.values_list("partner_name", flat=True)
        partner_commissions = partner_commissions.exclude(partner_name__in=list(hidden))

    buckets = {
        month: {
            "sale_phase_amount": ZERO,
            "post_sale_phase_amount": ZERO,
            "collected": ZERO,
            "partners": defaultdict(lambda: ZERO),
        }
        for month in MONTHS
    }

    for pc in partner_commissions:
        sale_month = _month_in_year(pc.sale.signing_date, year)
        if sale_month and pc.sale_phase_amount:
            bucket = buckets[sale_month]
            bucket["sale_phase_amount"] += pc.sale_phase_amount
            bucket["partners"][pc.partner_name] += pc.sale_phase_amount
            if pc.sale_phase_collection_status == CollectionStatus.COLLECTED:
                bucket["collected"] += pc.sale_phase_amount

        reference = pc.post_sale_reference_date or post_sale_reference_date(pc.sale)
        post_month = _month_in_year(reference, year)
        if post_month and pc.post_sale_phase_amount:
            bucket = buckets[post_month]
            bucket["post_sale_phase_amount"] += pc.post_sale_phase_amount
            bucket["partners"][pc.partner_name] += pc.post_sale_phase_amount
            if pc.post_sale_phase_collection_status == CollectionStatus.COLLECTED:
                bucket["collected"] += pc.post_sale_phase_amount

    targets = {
        target.month: target.target_amount
        for target in BillingTarget.objects.filter(year=year)
    }

    months = []
    for month in MONTHS:
        bucket = buckets[month]
        total = bucket["sale_phase_amount"] + bucket["post_sale_phase_amount"]
        target = targets.get(month)
        months.append({
            "month": month,
            "sale_phase_amount": quantize_money(bucket["sale_phase_amount"]),
            "post_sale_phase_amount": quantize_money(bucket["post_sale_phase_amount"]),
            "total_amount": quantize_money(total),
            "collected_amount": quantize_money(bucket["collected"]),
            "pending_amount": quantize_money(total - bucket["collected"]),
            "target_amount": quantize_money(target) if target is not None else None,
            "target_reached": bool(target is not None and total >= target),
            "partners": {
                name: quantize_money(amount)
                for name, amount in sorted(bucket["partners"].items())
            },
        })

    return {
        "year": year,
        "currency": _currency(),
        "include_hidden": include_hidden,
        "months": months,
        "total_amount": quantize_money(sum((m["total_amount"] for m in months), ZERO)),
    }


def internal_monthly_report(year: int) -> dict:
    """Internal commissions per month, paid vs pending, next to sales volume and its target."""
    rows = (
        CommissionDistribution.objects
        .filter(sale__commission_calculated=True, phase__in=[Phase.SALE, Phase.POST_SALE])
        .select_related("sale")
    )

    buckets = {
        month: {phase: {"paid": ZERO, "pending": ZERO} for phase in (Phase.SALE, Phase.POST_SALE)}
        for month in MONTHS
    }
    for row in rows:
        if row.phase == Phase.SALE:
            month = _month_in_year(row.sale.signing_date, year)
        else:
            month = _month_in_year(post_sale_reference_date(row.sale), year)
        if not month:
            continue
        key = "paid" if row.payment_status == PaymentStatus.PAID else "pending"
        buckets[month][row.phase][key] += row.amount

    sales_volume = defaultdict(lambda: ZERO)
    for signing_date, total_value in CommissionSale.objects.filter(signing_date__year=year).values_list(
        "signing_date", "total_value"
    ):
        sales_volume[signing_date.month] += total_value

    sales_targets = {
        target.month: target.target_amount
        for target in SalesTarget.objects.filter(year=year)
    }

    months = []
    for month in MONTHS:
        sale_phase = buckets[month][Phase.SALE]
        post_sale_phase = buckets[month][Phase.POST_SALE]
        sales_amount = sales_volume[month]
        target = sales_targets.get(month)
        months.append({
            "month": month,
            "sale_phase_paid": quantize_money(sale_phase["paid"]),
            "sale_phase_pending": quantize_money(sale_phase["pending"]),
            "post_sale_phase_paid": quantize_money(post_sale_phase["paid"]),
            "post_sale_phase_pending": quantize_money(post_sale_phase["pending"]),
            "total_amount": quantize_money(
                sale_phase["paid"] + sale_phase["pending"] + post_sale_phase["paid"] + post_sale_phase["pending"]
            ),
            "sales_amount": quantize_money(sales_amount),
            "sales_target_amount": quantize_money(target) if target is not None else None,
            "sales_target_reached": bool(target is not None and sales_amount >= target),
        })

    return {
        "year": year,
        "currency": _currency(),
        "months": months,
        "total_amount": quantize_money(sum((m["total_amount"] for m in months), ZERO)),
        "sales_amount": quantize_money(sum((m["sales_amount"] for m in months), ZERO)),
    }
