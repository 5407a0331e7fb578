from datetime import date
from decimal import Decimal

import pytest

from commissions.models import (
    BillingTarget,
    CollectionStatus,
    CommissionSale,
    HiddenPartner,
    PaymentStatus,
    Phase,
    RoleType,
    SalesTarget,
)
from commissions.reports import internal_monthly_report, partner_monthly_report
from commissions.services import set_collection_status, set_payment_status


def _month(report, month):
    return report["months"][month - 1]


@pytest.mark.django_db
def test_partner_report_groups_phases_by_their_own_month(calculated_sale):
    BillingTarget.objects.create(year=2024, month=3, target_amount=Decimal("60000.00"))

    report = partner_monthly_report(2024)

    march = _month(report, 3)
    assert march["sale_phase_amount"] == Decimal("64000.00")
    assert march["post_sale_phase_amount"] == Decimal("0.00")
    assert march["target_amount"] == Decimal("60000.00")
    assert march["target_reached"] is True
    assert march["partners"] == {"Socio A": Decimal("38400.00"), "Socio B": Decimal("25600.00")}

    september = _month(report, 9)
    assert september["post_sale_phase_amount"] == Decimal("5000.00")
    assert september["target_amount"] is None
    assert september["target_reached"] is False

    assert report["total_amount"] == Decimal("69000.00")
    assert partner_monthly_report(2023)["total_amount"] == Decimal("0.00")


@pytest.mark.django_db
def test_partner_report_excludes_hidden_partners_unless_requested(calculated_sale):
    HiddenPartner.objects.create(partner_name="Socio B", reason="Socio interno")

    assert _month(partner_monthly_report(2024), 3)["sale_phase_amount"] == Decimal("38400.00")
    assert _month(partner_monthly_report(2024, include_hidden=True), 3)["sale_phase_amount"] == Decimal("64000.00")


@pytest.mark.django_db
def test_partner_report_splits_collected_and_pending(calculated_sale):
    pc = calculated_sale.partner_commissions.get(partner_name="Socio A")
    set_collection_status(pc.pk, Phase.SALE, CollectionStatus.COLLECTED)

    march = _month(partner_monthly_report(2024), 3)

    assert march["collected_amount"] == Decimal("38400.00")
    assert march["pending_amount"] == Decimal("25600.00")


@pytest.mark.django_db
def test_internal_report_tracks_paid_and_pending_per_phase(calculated_sale):
    row = calculated_sale.distributions.get(role_type=RoleType.DEAL_OWNER)
    set_payment_status(row.pk, PaymentStatus.PAID)

    report = internal_monthly_report(2024)

    march = _month(report, 3)
    assert march["sale_phase_paid"] == Decimal("38120.00")
    assert march["sale_phase_pending"] == Decimal("25880.00")
    assert march["post_sale_phase_pending"] == Decimal("0.00")

    september = _month(report, 9)
    assert september["post_sale_phase_pending"] == Decimal("5000.00")

    assert report["total_amount"] == Decimal("69000.00")


@pytest.mark.django_db
def test_internal_report_compares_sales_volume_with_sales_targets(calculated_sale):
    CommissionSale.objects.create(
        external_deal_id="DEAL-0009",
        development="Torre Norte",
        total_value=Decimal("500000.00"),
        signing_date=date(2024, 3, 28),
    )
    SalesTarget.objects.create(year=2024, month=3, target_amount=Decimal("3000000.00"))
    SalesTarget.objects.create(year=2024, month=4, target_amount=Decimal("1000000.00"))

    report = internal_monthly_report(2024)

    march = _month(report, 3)
    assert march["sales_amount"] == Decimal("2500000.00")
    assert march["sales_target_amount"] == Decimal("3000000.00")
    assert march["sales_target_reached"] is False

    april = _month(report, 4)
    assert april["sales_amount"] == Decimal("0.00")
    assert april["sales_target_reached"] is False
    assert _month(report, 5)["sales_target_amount"] is None

    assert report["sales_amount"] == Decimal("2500000.00")
    assert report["total_amount"] == Decimal("69000.00")


@pytest.mark.django_db
def test_reports_carry_configured_currency(calculated_sale, settings):
    settings.COMMISSION_CURRENCY = "USD"

    assert partner_monthly_report(2024)["currency"] == "USD"
    assert internal_monthly_report(2024)["currency"] == "USD"
