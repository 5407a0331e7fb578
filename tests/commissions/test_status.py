from datetime import date
from decimal import Decimal
from types import SimpleNamespace

import pytest
from django.utils import timezone

from commissions.models import CollectionStatus, CommissionSale, PaymentStatus, Phase
from commissions.services import set_collection_status, set_payment_status, trigger_post_sale
from commissions.status import (
    partner_status_summary,
    post_sale_phase_status,
    sale_phase_status,
    sale_statuses,
)


def _sale(**overrides):
    fields = {
        "external_deal_id": "DEAL-STATUS",
        "development": "Torre Norte",
        "total_value": Decimal("1000000.00"),
        "signing_date": date(2024, 3, 15),
        "financing_term_months": 6,
        "commission_calculated": True,
    }
    fields.update(overrides)
    return CommissionSale(**fields)


def _row(phase, paid=False):
    return SimpleNamespace(phase=phase, payment_status=PaymentStatus.PAID if paid else PaymentStatus.PENDING)


def test_sale_phase_status_progression():
    sale = _sale()
    assert sale_phase_status(_sale(commission_calculated=False), []) is None
    assert sale_phase_status(sale, [_row(Phase.SALE), _row(Phase.SALE)]) == "visible"
    assert sale_phase_status(sale, [_row(Phase.SALE, paid=True), _row(Phase.SALE)]) == "pending"
    assert sale_phase_status(sale, [_row(Phase.SALE, paid=True), _row(Phase.POST_SALE)]) == "paid"


def test_post_sale_phase_hidden_until_triggered():
    rows = [_row(Phase.SALE, paid=True), _row(Phase.POST_SALE)]

    assert post_sale_phase_status(_sale(), rows, today=date(2025, 1, 1)) == "hidden"
    assert post_sale_phase_status(_sale(), [_row(Phase.POST_SALE, paid=True)], today=date(2025, 1, 1)) == "hidden"


def test_triggered_post_sale_waits_for_reference_date():
    sale = _sale(post_sale_triggered_at=timezone.now())
    rows = [_row(Phase.SALE, paid=True), _row(Phase.POST_SALE)]

    assert post_sale_phase_status(sale, rows, today=date(2024, 4, 1)) == "upcoming"
    assert post_sale_phase_status(sale, rows, today=date(2024, 9, 14)) == "upcoming"
    assert post_sale_phase_status(sale, rows, today=date(2024, 9, 15)) == "payable"
    assert post_sale_phase_status(sale, [_row(Phase.POST_SALE, paid=True)], today=date(2024, 4, 1)) == "paid"


def test_post_sale_phase_hidden_without_rows_or_calculation():
    triggered = timezone.now()
    assert post_sale_phase_status(_sale(post_sale_triggered_at=triggered), [_row(Phase.SALE)]) == "hidden"
    assert post_sale_phase_status(
        _sale(commission_calculated=False, post_sale_triggered_at=triggered), [_row(Phase.POST_SALE)]
    ) == "hidden"


def test_triggered_sale_without_term_is_payable_from_signing():
    sale = _sale(financing_term_months=None, post_sale_triggered_at=timezone.now())

    assert post_sale_phase_status(sale, [_row(Phase.POST_SALE)], today=date(2024, 3, 15)) == "payable"


def test_partner_status_summary_reports_least_advanced_phase():
    collected = SimpleNamespace(
        sale_phase_amount=Decimal("10.00"),
        sale_phase_collection_status=CollectionStatus.COLLECTED,
        post_sale_phase_amount=Decimal("5.00"),
        post_sale_phase_collection_status=CollectionStatus.INVOICED,
    )
    zero_post = SimpleNamespace(
        sale_phase_amount=Decimal("10.00"),
        sale_phase_collection_status=CollectionStatus.COLLECTED,
        post_sale_phase_amount=Decimal("0.00"),
        post_sale_phase_collection_status=CollectionStatus.PENDING_INVOICE,
    )

    assert partner_status_summary([collected]) == CollectionStatus.INVOICED
    assert partner_status_summary([zero_post]) == CollectionStatus.COLLECTED
    assert partner_status_summary([]) is None


@pytest.mark.django_db
def test_sale_statuses_are_derived_from_current_rows(calculated_sale):
    statuses = sale_statuses(calculated_sale, today=date(2024, 4, 1))
    assert statuses["sale_phase_status"] == "visible"
    assert statuses["post_sale_phase_status"] == "hidden"
    assert statuses["partner_status"] == CollectionStatus.PENDING_INVOICE
    assert statuses["post_sale_reference_date"] == date(2024, 9, 15)

    for row in calculated_sale.distributions.filter(phase=Phase.SALE):
        set_payment_status(row.pk, PaymentStatus.PAID)
    for pc in calculated_sale.partner_commissions.all():
        set_collection_status(pc.pk, Phase.SALE, CollectionStatus.COLLECTED)
        set_collection_status(pc.pk, Phase.POST_SALE, CollectionStatus.INVOICED)

    statuses = sale_statuses(calculated_sale, today=date(2024, 4, 1))
    assert statuses["sale_phase_status"] == "paid"
    assert statuses["partner_status"] == CollectionStatus.INVOICED


@pytest.mark.django_db
def test_trigger_moves_post_sale_from_hidden_to_upcoming(calculated_sale):
    before_reference = date(2024, 4, 1)
    assert sale_statuses(calculated_sale, today=before_reference)["post_sale_phase_status"] == "hidden"

    sale = trigger_post_sale(calculated_sale.pk, triggered_by="zoho_projects")

    assert sale_statuses(sale, today=before_reference)["post_sale_phase_status"] == "upcoming"
    assert sale_statuses(sale, today=date(2024, 9, 15))["post_sale_phase_status"] == "payable"
