"""Business-logic / service functions for the commissions app.

Every write runs inside one transaction and is recorded in the audit log.
Calculation locks the sale row so that two concurrent requests can never
both produce a row set for the same sale.
"""
from __future__ import annotations

import logging

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.utils import timezone

from commissions.calculator import DistributionCalculator
from commissions.config_store import ConfigurationStore, validate_rule
from commissions.exceptions import AlreadyCalculated, ConflictError, NotFoundError, ValidationError
from commissions.models import (
    CollectionStatus,
    CommissionDistribution,
    CommissionRule,
    CommissionSale,
    PartnerCommission,
    PaymentStatus,
    Phase,
)
from commissions.money import surcharge_amount
from commissions.partners import PartnerCommissionTracker
from commissions.rules import RuleEvaluator
from core.services import create_audit_log

logger = logging.getLogger("comisiones")

PARTNER_PHASES = (Phase.SALE, Phase.POST_SALE)

ENGINE_FIELDS = [
    "commission_calculated",
    "calculated_phase_sale_percent",
    "calculated_phase_post_sale_percent",
    "commission_total",
    "commission_sale_phase",
    "commission_post_sale_phase",
    "calculated_at",
    "updated_at",
]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def build_calculator(config_store=None, rule_evaluator=None) -> DistributionCalculator:
    return DistributionCalculator(
        config_store=config_store or ConfigurationStore(),
        rule_evaluator=rule_evaluator or RuleEvaluator(),
        default_surcharge_percent=getattr(settings, "COMMISSION_DEFAULT_SURCHARGE_PERCENT", 0),
    )


def _locked(model, pk, label):
    try:
        return model.objects.select_for_update().get(pk=pk)
    except (model.DoesNotExist, DjangoValidationError, ValueError):
        raise NotFoundError(f"{label} {pk} no existe.")


def _check_partner_phase(phase):
    if phase not in PARTNER_PHASES:
        raise ValidationError(f"Fase invalida '{phase}'; use sale o post_sale.")


def _distribution_snapshot(row):
    return {
        "phase": row.phase,
        "role_type": row.role_type,
        "payee_name": row.payee_name,
        "percent_assigned": str(row.percent_assigned),
        "amount": str(row.amount),
        "payment_status": row.payment_status,
        "is_cash_payment": row.is_cash_payment,
        "invoice_reference": row.invoice_reference,
    }


def _partner_snapshot(pc):
    return {
        "partner_name": pc.partner_name,
        "participation": str(pc.participation),
        "sale_phase_amount": str(pc.sale_phase_amount),
        "post_sale_phase_amount": str(pc.post_sale_phase_amount),
        "sale_phase_collection_status": pc.sale_phase_collection_status,
        "post_sale_phase_collection_status": pc.post_sale_phase_collection_status,
        "sale_phase_is_cash_payment": pc.sale_phase_is_cash_payment,
        "post_sale_phase_is_cash_payment": pc.post_sale_phase_is_cash_payment,
        "sale_phase_invoice_reference": pc.sale_phase_invoice_reference,
        "post_sale_phase_invoice_reference": pc.post_sale_phase_invoice_reference,
    }


def _sale_snapshot(sale):
    return {
        "commission_calculated": sale.commission_calculated,
        "calculated_phase_sale_percent": (
            str(sale.calculated_phase_sale_percent) if sale.calculated_phase_sale_percent is not None else None
        ),
        "calculated_phase_post_sale_percent": (
            str(sale.calculated_phase_post_sale_percent)
            if sale.calculated_phase_post_sale_percent is not None else None
        ),
        "commission_total": str(sale.commission_total),
        "distributions": sale.distributions.count(),
        "partner_commissions": sale.partner_commissions.count(),
    }


def _clear_calculation(sale):
    sale.distributions.all().delete()
    sale.partner_commissions.all().delete()
    sale.commission_calculated = False
    sale.calculated_phase_sale_percent = None
    sale.calculated_phase_post_sale_percent = None
    sale.commission_total = 0
    sale.commission_sale_phase = 0
    sale.commission_post_sale_phase = 0
    sale.calculated_at = None
    sale.save(update_fields=ENGINE_FIELDS)


# ---------------------------------------------------------------------------
# calculate / delete
# ---------------------------------------------------------------------------

@transaction.atomic
def calculate_commission(sale_id, recalculate=False, actor=None, calculator=None, tracker=None):
    """Compute and persist the distribution rows of a sale.

    Parameters
    ----------
    sale_id : uuid
    recalculate : bool
        Replace an existing row set. Deletion and recalculation happen in
        this single transaction.
    actor : accounts.models.User, optional
    calculator : DistributionCalculator, optional
    tracker : PartnerCommissionTracker, optional

    Returns
    -------
    tuple[CommissionSale, list[CommissionDistribution]]

    Raises
    ------
    AlreadyCalculated
        The sale already has rows and ``recalculate`` is false. The
        existing rows travel with the exception.
    NotFoundError, ExternalDependencyError
    """
    sale = _locked(CommissionSale, sale_id, "La venta")

    if sale.commission_calculated and not recalculate:
        raise AlreadyCalculated(sale, sale.distributions.order_by("position"))

    calculator = calculator or build_calculator()
    tracker = tracker or PartnerCommissionTracker()

    # Everything that can fail runs before the first write.
    result = calculator.compute(sale)
    participants = tracker.fetch_participants(sale)
    partner_drafts = tracker.compute(sale, result, participants)

    before = _sale_snapshot(sale) if sale.commission_calculated else None
    _clear_calculation(sale)

    rows = CommissionDistribution.objects.bulk_create([
        CommissionDistribution(sale=sale, position=index, **draft.as_model_kwargs())
        for index, draft in enumerate(result.rows)
    ])
    PartnerCommission.objects.bulk_create([
        PartnerCommission(sale=sale, **draft.as_model_kwargs()) for draft in partner_drafts
    ])

    sale.commission_calculated = True
    sale.calculated_phase_sale_percent = result.phase_sale_percent
    sale.calculated_phase_post_sale_percent = result.phase_post_sale_percent
    sale.commission_total = result.commission_total
    sale.commission_sale_phase = result.commission_sale_phase
    sale.commission_post_sale_phase = result.commission_post_sale_phase
    sale.calculated_at = timezone.now()
    sale.save(update_fields=ENGINE_FIELDS)

    create_audit_log(
        actor=actor,
        action="COMMISSION_RECALCULATED" if before else "COMMISSION_CALCULATED",
        entity_type="CommissionSale",
        entity_id=str(sale.pk),
        before=before,
        after=_sale_snapshot(sale),
    )
    logger.info(
        "Commission %s for sale %s: %d rows, %d partners, total %s",
        "recalculated" if recalculate else "calculated",
        sale.pk, len(rows), len(partner_drafts), sale.commission_total,
    )
    return sale, rows


@transaction.atomic
def delete_commission(sale_id, actor=None) -> CommissionSale:
    """Remove every distribution and partner row of a sale and reset its flag."""
    sale = _locked(CommissionSale, sale_id, "La venta")
    before = _sale_snapshot(sale)
    _clear_calculation(sale)

    create_audit_log(
        actor=actor,
        action="COMMISSION_DELETED",
        entity_type="CommissionSale",
        entity_id=str(sale.pk),
        before=before,
        after=_sale_snapshot(sale),
    )
    logger.info("Commission rows deleted for sale %s", sale.pk)
    return sale


@transaction.atomic
def trigger_post_sale(sale_id, triggered_by="", actor=None) -> CommissionSale:
    """Mark the post-sale phase as triggered by an external event.

    Only calculated sales can be triggered. A second trigger is a no-op.
    """
    sale = _locked(CommissionSale, sale_id, "La venta")
    if not sale.commission_calculated:
        raise ConflictError(f"La venta {sale.pk} no tiene comision calculada.")
    if sale.post_sale_triggered_at is not None:
        return sale

    sale.post_sale_triggered_at = timezone.now()
    sale.post_sale_triggered_by = triggered_by or (actor.get_full_name() if actor else "")
    sale.save(update_fields=["post_sale_triggered_at", "post_sale_triggered_by", "updated_at"])

    create_audit_log(
        actor=actor,
        action="POST_SALE_TRIGGERED",
        entity_type="CommissionSale",
        entity_id=str(sale.pk),
        after={"triggered_by": sale.post_sale_triggered_by},
    )
    logger.info("Post-sale phase triggered for sale %s by %s", sale.pk, sale.post_sale_triggered_by)
    return sale


# ---------------------------------------------------------------------------
# Internal distribution rows
# ---------------------------------------------------------------------------

@transaction.atomic
def set_payment_status(distribution_id, status, actor=None) -> CommissionDistribution:
    """Set the payment status of a row. Any direction is allowed."""
    if status not in PaymentStatus.values:
        raise ValidationError(f"Estado de pago invalido '{status}'.")
    row = _locked(CommissionDistribution, distribution_id, "La distribucion")
    before = _distribution_snapshot(row)

    row.payment_status = status
    row.paid_at = timezone.now() if status == PaymentStatus.PAID else None
    row.save(update_fields=["payment_status", "paid_at", "updated_at"])

    create_audit_log(
        actor=actor,
        action="DISTRIBUTION_PAYMENT_STATUS",
        entity_type="CommissionDistribution",
        entity_id=str(row.pk),
        before=before,
        after=_distribution_snapshot(row),
    )
    logger.info("Distribution %s payment status %s -> %s", row.pk, before["payment_status"], status)
    return row


@transaction.atomic
def attach_distribution_invoice(distribution_id, reference, actor=None) -> CommissionDistribution:
    reference = (reference or "").strip()
    if not reference:
        raise ValidationError("La referencia de factura es obligatoria.")
    row = _locked(CommissionDistribution, distribution_id, "La distribucion")
    before = _distribution_snapshot(row)

    row.invoice_reference = reference
    row.save(update_fields=["invoice_reference", "updated_at"])

    create_audit_log(
        actor=actor,
        action="DISTRIBUTION_INVOICE_ATTACHED",
        entity_type="CommissionDistribution",
        entity_id=str(row.pk),
        before=before,
        after=_distribution_snapshot(row),
    )
    logger.info("Invoice attached to distribution %s", row.pk)
    return row


# ---------------------------------------------------------------------------
# Partner commissions
# ---------------------------------------------------------------------------

@transaction.atomic
def set_collection_status(partner_commission_id, phase, status, actor=None) -> PartnerCommission:
    """Move one phase of a partner commission; the other phase is untouched."""
    _check_partner_phase(phase)
    if status not in CollectionStatus.values:
        raise ValidationError(f"Estado de cobranza invalido '{status}'.")
    pc = _locked(PartnerCommission, partner_commission_id, "La comision de socio")
    before = _partner_snapshot(pc)

    setattr(pc, f"{phase}_phase_collection_status", status)
    setattr(pc, f"{phase}_phase_collected_at", timezone.now() if status == CollectionStatus.COLLECTED else None)
    pc.save(update_fields=[f"{phase}_phase_collection_status", f"{phase}_phase_collected_at", "updated_at"])

    create_audit_log(
        actor=actor,
        action="PARTNER_COLLECTION_STATUS",
        entity_type="PartnerCommission",
        entity_id=str(pc.pk),
        before=before,
        after=_partner_snapshot(pc),
    )
    logger.info("Partner commission %s %s phase -> %s", pc.pk, phase, status)
    return pc


@transaction.atomic
def set_cash_payment(partner_commission_id, phase, is_cash_payment, actor=None) -> PartnerCommission:
    """Flag a partner phase as cash and mirror it on the sale's internal rows."""
    _check_partner_phase(phase)
    pc = _locked(PartnerCommission, partner_commission_id, "La comision de socio")
    before = _partner_snapshot(pc)
    is_cash_payment = bool(is_cash_payment)

    setattr(pc, f"{phase}_phase_is_cash_payment", is_cash_payment)
    pc.save(update_fields=[f"{phase}_phase_is_cash_payment", "updated_at"])

    rows = list(CommissionDistribution.objects.select_for_update().filter(sale_id=pc.sale_id, phase=phase))
    for row in rows:
        row.is_cash_payment = is_cash_payment
        row.surcharge_amount = surcharge_amount(row.amount, row.surcharge_percent, is_cash=is_cash_payment)
    CommissionDistribution.objects.bulk_update(rows, ["is_cash_payment", "surcharge_amount"])

    create_audit_log(
        actor=actor,
        action="PARTNER_CASH_PAYMENT",
        entity_type="PartnerCommission",
        entity_id=str(pc.pk),
        before=before,
        after=_partner_snapshot(pc),
    )
    logger.info(
        "Partner commission %s %s phase cash=%s (%d distribution rows updated)",
        pc.pk, phase, is_cash_payment, len(rows),
    )
    return pc


@transaction.atomic
def attach_partner_invoice(partner_commission_id, phase, reference, actor=None) -> PartnerCommission:
    """Record the invoice of one phase; a phase pending invoice becomes invoiced."""
    _check_partner_phase(phase)
    reference = (reference or "").strip()
    if not reference:
        raise ValidationError("La referencia de factura es obligatoria.")
    pc = _locked(PartnerCommission, partner_commission_id, "La comision de socio")
    before = _partner_snapshot(pc)

    setattr(pc, f"{phase}_phase_invoice_reference", reference)
    status_field = f"{phase}_phase_collection_status"
    if getattr(pc, status_field) == CollectionStatus.PENDING_INVOICE:
        setattr(pc, status_field, CollectionStatus.INVOICED)
    pc.save(update_fields=[f"{phase}_phase_invoice_reference", status_field, "updated_at"])

    create_audit_log(
        actor=actor,
        action="PARTNER_INVOICE_ATTACHED",
        entity_type="PartnerCommission",
        entity_id=str(pc.pk),
        before=before,
        after=_partner_snapshot(pc),
    )
    logger.info("Invoice attached to partner commission %s (%s phase)", pc.pk, phase)
    return pc


# ---------------------------------------------------------------------------
# Configuration writes
# ---------------------------------------------------------------------------

@transaction.atomic
def save_development_config(data, actor=None, store=None):
    store = store or ConfigurationStore()
    config = store.upsert_development_config(data)
    create_audit_log(
        actor=actor,
        action="DEVELOPMENT_CONFIG_SAVED",
        entity_type="DevelopmentConfig",
        entity_id=str(config.pk),
        after={key: str(value) for key, value in data.items()},
    )
    return config


@transaction.atomic
def save_global_config(key, value, payee_name=None, actor=None, store=None):
    store = store or ConfigurationStore()
    config = store.set_global_percent(key, value, payee_name=payee_name)
    create_audit_log(
        actor=actor,
        action="GLOBAL_CONFIG_SAVED",
        entity_type="GlobalRoleConfig",
        entity_id=key,
        after={"value": str(config.value), "payee_name": config.payee_name},
    )
    return config


@transaction.atomic
def save_rule(data, instance=None, actor=None) -> CommissionRule:
    merged = {}
    if instance is not None:
        merged = {field.name: getattr(instance, field.name) for field in CommissionRule._meta.concrete_fields}
    merged.update(data)
    errors = validate_rule(merged)
    if errors:
        raise ValidationError(errors)

    rule = instance or CommissionRule()
    for field, value in data.items():
        setattr(rule, field, value)
    rule.save()

    create_audit_log(
        actor=actor,
        action="RULE_UPDATED" if instance is not None else "RULE_CREATED",
        entity_type="CommissionRule",
        entity_id=str(rule.pk),
        after={key: str(value) for key, value in data.items()},
    )
    logger.info("Rule %s (%s) saved", rule.name, rule.pk)
    return rule


@transaction.atomic
def delete_rule(rule, actor=None) -> None:
    rule_id = str(rule.pk)
    before = {"name": rule.name, "development": rule.development, "period_value": rule.period_value}
    rule.delete()
    create_audit_log(
        actor=actor,
        action="RULE_DELETED",
        entity_type="CommissionRule",
        entity_id=rule_id,
        before=before,
    )
    logger.info("Rule %s deleted", rule_id)
