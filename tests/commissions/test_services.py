import uuid
from decimal import Decimal

import pytest

from commissions.exceptions import (
    AlreadyCalculated,
    ConflictError,
    ExternalDependencyError,
    NotFoundError,
    ValidationError,
)
from commissions.models import (
    CollectionStatus,
    CommissionDistribution,
    CommissionRule,
    CommissionSale,
    DevelopmentConfig,
    GlobalRoleConfig,
    PartnerCommission,
    PaymentStatus,
    Phase,
    RoleType,
)
from commissions.partners import PartnerCommissionTracker
from commissions.services import (
    attach_distribution_invoice,
    attach_partner_invoice,
    calculate_commission,
    delete_commission,
    save_development_config,
    save_global_config,
    save_rule,
    set_cash_payment,
    set_collection_status,
    set_payment_status,
    trigger_post_sale,
)
from core.models import AuditLog


def _amounts(sale):
    return [
        (row.role_type, row.payee_name, row.amount)
        for row in sale.distributions.order_by("position")
    ]


@pytest.mark.django_db
def test_calculate_commission_persists_rows_and_snapshot(sale, development_config, global_configs, partners, admin_user):
    sale, rows = calculate_commission(sale.pk, actor=admin_user)

    assert [(row.phase, row.role_type, row.amount) for row in rows] == [
        (Phase.SALE, RoleType.SALE_MANAGER, Decimal("15880.00")),
        (Phase.SALE, RoleType.DEAL_OWNER, Decimal("38120.00")),
        (Phase.SALE, RoleType.OPERATIONS_COORDINATOR, Decimal("4000.00")),
        (Phase.SALE, RoleType.MARKETING, Decimal("6000.00")),
        (Phase.POST_SALE, RoleType.LEGAL_MANAGER, Decimal("2000.00")),
        (Phase.POST_SALE, RoleType.POST_SALE_COORDINATOR, Decimal("3000.00")),
        (Phase.UTILITY, RoleType.REMAINING_UTILITY, Decimal("11000.00")),
    ]
    sale.refresh_from_db()
    assert sale.commission_calculated is True
    assert sale.calculated_phase_sale_percent == Decimal("3.000")
    assert sale.calculated_phase_post_sale_percent == Decimal("1.000")
    assert sale.commission_sale_phase == Decimal("64000.00")
    assert sale.commission_post_sale_phase == Decimal("5000.00")
    assert sale.commission_total == Decimal("69000.00")
    assert sale.calculated_at is not None

    deal_owner = sale.distributions.get(role_type=RoleType.DEAL_OWNER)
    assert deal_owner.surcharge_amount == Decimal("6099.20")
    assert deal_owner.payment_status == PaymentStatus.PENDING

    partner_a = sale.partner_commissions.get(partner_name="Socio A")
    assert partner_a.sale_phase_amount == Decimal("38400.00")
    assert partner_a.post_sale_phase_amount == Decimal("3000.00")
    assert partner_a.total_amount == Decimal("41400.00")

    log = AuditLog.objects.get(action="COMMISSION_CALCULATED")
    assert log.actor == admin_user
    assert log.entity_id == str(sale.pk)
    assert log.after_json["distributions"] == 7


@pytest.mark.django_db
def test_second_calculation_without_recalculate_returns_existing_rows(calculated_sale):
    with pytest.raises(AlreadyCalculated) as excinfo:
        calculate_commission(calculated_sale.pk)

    existing = excinfo.value.existing_rows
    assert [row.position for row in existing] == list(range(7))
    assert CommissionDistribution.objects.filter(sale=calculated_sale).count() == 7


@pytest.mark.django_db
def test_recalculation_is_deterministic_and_resets_statuses(calculated_sale):
    before = _amounts(calculated_sale)
    row = calculated_sale.distributions.get(role_type=RoleType.DEAL_OWNER)
    set_payment_status(row.pk, PaymentStatus.PAID)

    sale, rows = calculate_commission(calculated_sale.pk, recalculate=True)

    assert _amounts(sale) == before
    assert not CommissionDistribution.objects.filter(pk=row.pk).exists()
    assert all(r.payment_status == PaymentStatus.PENDING for r in rows)
    assert PartnerCommission.objects.filter(sale=sale).count() == 2
    assert AuditLog.objects.filter(action="COMMISSION_RECALCULATED").count() == 1


@pytest.mark.django_db
def test_recalculation_picks_up_configuration_changes(calculated_sale, development_config):
    development_config.external_advisor_percent = None
    development_config.save()

    sale, _ = calculate_commission(calculated_sale.pk, recalculate=True)

    deal_owner = sale.distributions.get(role_type=RoleType.DEAL_OWNER)
    assert deal_owner.amount == Decimal("24000.00")


@pytest.mark.django_db
def test_registry_failure_leaves_previous_rows_untouched(calculated_sale, fake_registry):
    previous_ids = set(calculated_sale.distributions.values_list("pk", flat=True))
    tracker = PartnerCommissionTracker(fake_registry(error=TimeoutError("registry down")))

    with pytest.raises(ExternalDependencyError):
        calculate_commission(calculated_sale.pk, recalculate=True, tracker=tracker)

    calculated_sale.refresh_from_db()
    assert calculated_sale.commission_calculated is True
    assert set(calculated_sale.distributions.values_list("pk", flat=True)) == previous_ids
    assert calculated_sale.partner_commissions.count() == 2
    assert not AuditLog.objects.filter(action="COMMISSION_RECALCULATED").exists()


@pytest.mark.django_db
def test_registry_failure_on_first_calculation_writes_nothing(sale, development_config, fake_registry):
    tracker = PartnerCommissionTracker(fake_registry(error=RuntimeError("boom")))

    with pytest.raises(ExternalDependencyError):
        calculate_commission(sale.pk, tracker=tracker)

    sale.refresh_from_db()
    assert sale.commission_calculated is False
    assert sale.distributions.count() == 0


@pytest.mark.django_db
def test_calculate_reads_flag_from_locked_row_not_caller_instance(sale, development_config):
    stale = sale
    CommissionSale.objects.filter(pk=sale.pk).update(commission_calculated=True)

    with pytest.raises(AlreadyCalculated):
        calculate_commission(stale.pk)

    assert stale.commission_calculated is False
    assert CommissionDistribution.objects.filter(sale=sale).count() == 0
    assert not AuditLog.objects.filter(action="COMMISSION_CALCULATED").exists()


@pytest.mark.django_db
def test_calculator_failure_on_first_calculation_writes_nothing(sale, development_config):
    class BrokenCalculator:
        def compute(self, sale):
            raise RuntimeError("calculator crashed")

    with pytest.raises(RuntimeError):
        calculate_commission(sale.pk, calculator=BrokenCalculator())

    sale.refresh_from_db()
    assert sale.commission_calculated is False
    assert sale.distributions.count() == 0
    assert sale.partner_commissions.count() == 0


@pytest.mark.django_db
def test_failure_after_rows_are_written_rolls_back_the_whole_set(
    sale, development_config, global_configs, partners, monkeypatch
):
    def failing_bulk_create(*args, **kwargs):
        raise RuntimeError("database went away")

    monkeypatch.setattr(PartnerCommission.objects, "bulk_create", failing_bulk_create)

    with pytest.raises(RuntimeError):
        calculate_commission(sale.pk)

    sale.refresh_from_db()
    assert sale.commission_calculated is False
    assert sale.commission_total == Decimal("0.00")
    assert CommissionDistribution.objects.filter(sale=sale).count() == 0
    assert not AuditLog.objects.filter(action="COMMISSION_CALCULATED").exists()


@pytest.mark.django_db
def test_calculate_unknown_sale_raises_not_found():
    with pytest.raises(NotFoundError):
        calculate_commission(uuid.uuid4())
    with pytest.raises(NotFoundError):
        calculate_commission("not-a-uuid")


@pytest.mark.django_db
def test_delete_commission_clears_rows_and_flag(calculated_sale):
    sale = delete_commission(calculated_sale.pk)

    sale.refresh_from_db()
    assert sale.commission_calculated is False
    assert sale.calculated_phase_sale_percent is None
    assert sale.commission_total == Decimal("0.00")
    assert sale.distributions.count() == 0
    assert sale.partner_commissions.count() == 0
    assert AuditLog.objects.filter(action="COMMISSION_DELETED").count() == 1


@pytest.mark.django_db
def test_trigger_post_sale_is_idempotent(calculated_sale, admin_user):
    first = trigger_post_sale(calculated_sale.pk, triggered_by="Entrega de llaves", actor=admin_user)
    second = trigger_post_sale(calculated_sale.pk, triggered_by="Otro evento")

    assert second.post_sale_triggered_at == first.post_sale_triggered_at
    assert second.post_sale_triggered_by == "Entrega de llaves"
    assert AuditLog.objects.filter(action="POST_SALE_TRIGGERED").count() == 1


@pytest.mark.django_db
def test_trigger_post_sale_requires_calculated_sale(sale):
    with pytest.raises(ConflictError):
        trigger_post_sale(sale.pk, triggered_by="zoho_projects")

    sale.refresh_from_db()
    assert sale.post_sale_triggered_at is None
    assert sale.post_sale_triggered_by == ""
    assert not AuditLog.objects.filter(action="POST_SALE_TRIGGERED").exists()


@pytest.mark.django_db
def test_payment_status_moves_both_ways_and_is_audited(calculated_sale):
    row = calculated_sale.distributions.first()

    paid = set_payment_status(row.pk, PaymentStatus.PAID)
    assert paid.paid_at is not None

    reverted = set_payment_status(row.pk, PaymentStatus.PENDING)
    assert reverted.paid_at is None

    logs = AuditLog.objects.filter(action="DISTRIBUTION_PAYMENT_STATUS", entity_id=str(row.pk))
    assert logs.count() == 2

    with pytest.raises(ValidationError):
        set_payment_status(row.pk, "cancelled")


@pytest.mark.django_db
def test_attach_distribution_invoice_requires_reference(calculated_sale):
    row = calculated_sale.distributions.first()

    with pytest.raises(ValidationError):
        attach_distribution_invoice(row.pk, "   ")

    updated = attach_distribution_invoice(row.pk, " FAC-001 ")
    assert updated.invoice_reference == "FAC-001"


@pytest.mark.django_db
def test_collection_status_changes_one_phase_only(calculated_sale):
    pc = calculated_sale.partner_commissions.get(partner_name="Socio A")

    updated = set_collection_status(pc.pk, Phase.POST_SALE, CollectionStatus.COLLECTED)

    assert updated.post_sale_phase_collection_status == CollectionStatus.COLLECTED
    assert updated.post_sale_phase_collected_at is not None
    assert updated.sale_phase_collection_status == CollectionStatus.PENDING_INVOICE
    assert updated.sale_phase_collected_at is None

    with pytest.raises(ValidationError):
        set_collection_status(pc.pk, Phase.UTILITY, CollectionStatus.COLLECTED)


@pytest.mark.django_db
def test_cash_payment_propagates_to_same_phase_rows(calculated_sale):
    pc = calculated_sale.partner_commissions.get(partner_name="Socio A")

    set_cash_payment(pc.pk, Phase.SALE, True)

    sale_rows = CommissionDistribution.objects.filter(sale=calculated_sale, phase=Phase.SALE)
    assert all(row.is_cash_payment for row in sale_rows)
    assert all(row.surcharge_amount == Decimal("0.00") for row in sale_rows)
    post_rows = CommissionDistribution.objects.filter(sale=calculated_sale, phase=Phase.POST_SALE)
    assert not any(row.is_cash_payment for row in post_rows)

    set_cash_payment(pc.pk, Phase.SALE, False)

    deal_owner = CommissionDistribution.objects.get(sale=calculated_sale, role_type=RoleType.DEAL_OWNER)
    assert deal_owner.is_cash_payment is False
    assert deal_owner.surcharge_amount == Decimal("6099.20")


@pytest.mark.django_db
def test_partner_invoice_advances_pending_invoice_only(calculated_sale):
    pc = calculated_sale.partner_commissions.get(partner_name="Socio B")

    updated = attach_partner_invoice(pc.pk, Phase.SALE, "FAC-S-1")
    assert updated.sale_phase_invoice_reference == "FAC-S-1"
    assert updated.sale_phase_collection_status == CollectionStatus.INVOICED

    set_collection_status(pc.pk, Phase.POST_SALE, CollectionStatus.COLLECTED)
    updated = attach_partner_invoice(pc.pk, Phase.POST_SALE, "FAC-P-1")
    assert updated.post_sale_phase_collection_status == CollectionStatus.COLLECTED


@pytest.mark.django_db
def test_save_development_config_validates_before_writing(admin_user):
    with pytest.raises(ValidationError) as excinfo:
        save_development_config(
            {"development": "Torre Sur", "deal_owner_percent": Decimal("120"), "bonds_enabled": True},
            actor=admin_user,
        )

    assert len(excinfo.value.errors) == 2
    assert not DevelopmentConfig.objects.exists()

    config = save_development_config(
        {"development": "  Torre   SUR ", "deal_owner_percent": Decimal("1.5")},
        actor=admin_user,
    )
    assert config.development == "torre sur"
    assert AuditLog.objects.filter(action="DEVELOPMENT_CONFIG_SAVED").count() == 1


@pytest.mark.django_db
def test_save_development_config_updates_existing_row(development_config):
    updated = save_development_config({"development": "TORRE NORTE", "deal_owner_percent": Decimal("2")})

    assert updated.pk == development_config.pk
    assert updated.deal_owner_percent == Decimal("2")
    assert updated.sale_manager_percent == Decimal("0.500")


@pytest.mark.django_db
def test_save_global_config_rejects_unknown_key_and_out_of_range():
    with pytest.raises(ValidationError):
        save_global_config("bonus_percent", Decimal("1"))
    with pytest.raises(ValidationError):
        save_global_config(GlobalRoleConfig.Key.MARKETING, Decimal("101"))

    config = save_global_config(GlobalRoleConfig.Key.MARKETING, Decimal("0.4"), payee_name="Marketing MX")
    assert config.value == Decimal("0.4")
    assert GlobalRoleConfig.objects.get(key=GlobalRoleConfig.Key.MARKETING).payee_name == "Marketing MX"


@pytest.mark.django_db
def test_save_rule_validates_period_and_operator():
    with pytest.raises(ValidationError) as excinfo:
        save_rule({
            "development": "Torre Norte",
            "name": "Bono",
            "period_type": "monthly",
            "period_value": "2024",
            "operator": ">",
            "unit_threshold": 3,
            "commission_percent": Decimal("0.5"),
        })
    assert len(excinfo.value.errors) == 2

    rule = save_rule({
        "development": "Torre Norte",
        "name": "Bono",
        "period_type": "monthly",
        "period_value": "2024-03",
        "operator": ">=",
        "unit_threshold": 3,
        "commission_percent": Decimal("0.5"),
    })
    assert rule.development == "torre norte"
    assert CommissionRule.objects.count() == 1
