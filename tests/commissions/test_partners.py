from datetime import date
from decimal import Decimal

import pytest

from commissions.drafts import CalculationResult
from commissions.exceptions import ExternalDependencyError
from commissions.models import CommissionSale
from commissions.partners import (
    PartnerCommissionTracker,
    ProductPartnerRegistry,
    add_months,
    post_sale_reference_date,
)


def _result(sale_phase="44000.00", post_sale_phase="5000.00"):
    return CalculationResult(
        phase_sale_percent=Decimal("3.000"),
        phase_post_sale_percent=Decimal("1.000"),
        commission_sale_phase=Decimal(sale_phase),
        commission_post_sale_phase=Decimal(post_sale_phase),
        commission_total=Decimal(sale_phase) + Decimal(post_sale_phase),
        utility_pool=Decimal("0"),
    )


def _sale(**overrides):
    fields = {
        "external_deal_id": "DEAL-PARTNER",
        "development": "Torre Norte",
        "product_id": "PROD-1",
        "total_value": Decimal("2000000.00"),
        "signing_date": date(2024, 1, 31),
        "financing_term_months": 1,
    }
    fields.update(overrides)
    return CommissionSale(**fields)


def test_add_months_clamps_to_month_end():
    assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)
    assert add_months(date(2024, 11, 15), 3) == date(2025, 2, 15)


def test_reference_date_is_signing_date_without_term():
    assert post_sale_reference_date(_sale(financing_term_months=None)) == date(2024, 1, 31)
    assert post_sale_reference_date(_sale(financing_term_months=12)) == date(2025, 1, 31)


def test_partner_amounts_use_phase_totals_not_sale_value(fake_registry):
    tracker = PartnerCommissionTracker(fake_registry([("Socio A", Decimal("60")), ("Socio B", Decimal("40"))]))
    sale = _sale()

    drafts = tracker.compute(sale, _result(), tracker.fetch_participants(sale))

    first, second = drafts
    assert first.partner_name == "Socio A"
    assert first.sale_phase_amount == Decimal("26400.00")
    assert first.post_sale_phase_amount == Decimal("3000.00")
    assert first.total_amount == Decimal("29400.00")
    assert first.post_sale_reference_date == date(2024, 2, 29)
    assert first.is_cash_sale is False
    assert second.sale_phase_amount == Decimal("17600.00")


def test_sale_without_term_is_cash_when_post_sale_amount_exists(fake_registry):
    tracker = PartnerCommissionTracker(fake_registry())
    sale = _sale(financing_term_months=None)

    drafts = tracker.compute(sale, _result(), [("Socio A", Decimal("100"))])
    assert drafts[0].is_cash_sale is True

    drafts = tracker.compute(sale, _result(post_sale_phase="0.00"), [("Socio A", Decimal("100"))])
    assert drafts[0].is_cash_sale is False


def test_blank_and_duplicate_partner_names(fake_registry):
    tracker = PartnerCommissionTracker(fake_registry())

    drafts = tracker.compute(
        _sale(),
        _result(),
        [("  ", Decimal("50")), ("Socio A", Decimal("20")), ("Socio A", Decimal("30"))],
    )

    assert [draft.partner_name for draft in drafts] == ["Socio sin nombre", "Socio A"]
    assert drafts[1].participation == Decimal("30.000")


def test_registry_failure_is_wrapped(fake_registry):
    tracker = PartnerCommissionTracker(fake_registry(error=ConnectionError("timeout")))

    with pytest.raises(ExternalDependencyError) as excinfo:
        tracker.fetch_participants(_sale())

    assert "PROD-1" in str(excinfo.value)


@pytest.mark.django_db
def test_product_partner_registry_reads_table(partners):
    registry = ProductPartnerRegistry()

    assert registry.get_participants("PROD-1") == [
        ("Socio A", Decimal("60.000")),
        ("Socio B", Decimal("40.000")),
    ]
    assert registry.get_participants("") == []
    assert registry.get_participants("OTRO") == []
