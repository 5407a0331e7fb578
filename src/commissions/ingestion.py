"""Entry point for the CRM sync that supplies sales."""
from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation

from django.db import transaction
from django.utils.dateparse import parse_date

from commissions.exceptions import ValidationError
from commissions.models import CommissionSale
from commissions.money import quantize_money

logger = logging.getLogger("comisiones")

MAX_FINANCING_TERM_MONTHS = 600

# Payload key -> model field. Engine-owned fields are deliberately absent.
TEXT_FIELDS = {
    "deal_name": "deal_name",
    "client_name": "client_name",
    "development": "development",
    "deal_owner": "deal_owner",
    "deal_owner_id": "deal_owner_external_id",
    "external_advisor": "external_advisor",
    "external_advisor_id": "external_advisor_external_id",
    "product_id": "product_id",
}


def _fits(value, max_digits, decimal_places=2):
    return value.copy_abs() < Decimal(10) ** (max_digits - decimal_places)


def _decimal(payload, key, errors, required=False, max_digits=16):
    raw = payload.get(key)
    if raw in (None, ""):
        if required:
            errors.append(f"El campo {key} es obligatorio.")
        return None
    try:
        value = Decimal(str(raw))
    except (InvalidOperation, ValueError):
        errors.append(f"El campo {key} no es un numero valido.")
        return None
    if not value.is_finite():
        errors.append(f"El campo {key} no es un numero valido.")
        return None
    if not _fits(value, max_digits) or not _fits(quantize_money(value), max_digits):
        errors.append(f"El campo {key} excede el maximo de {max_digits} digitos.")
        return None
    return value


def _signing_date(payload, errors):
    signing = payload.get("signing_date")
    try:
        signing_date = parse_date(str(signing)) if signing else None
    except ValueError:
        errors.append("El campo signing_date no es una fecha valida.")
        return None
    if signing_date is None:
        errors.append("El campo signing_date es obligatorio (AAAA-MM-DD).")
    return signing_date


def _clean(payload: dict) -> dict:
    errors: list[str] = []
    values: dict = {}

    if not str(payload.get("external_deal_id") or "").strip():
        errors.append("El campo external_deal_id es obligatorio.")
    if not str(payload.get("development") or "").strip():
        errors.append("El campo development es obligatorio.")

    for key, field in TEXT_FIELDS.items():
        if key in payload:
            values[field] = str(payload.get(key) or "").strip()

    total_value = _decimal(payload, "total_value", errors, required=True)
    if total_value is not None:
        if total_value < 0:
            errors.append("El valor total no puede ser negativo.")
        values["total_value"] = quantize_money(total_value)

    area = _decimal(payload, "area_m2", errors, max_digits=12)
    if area is not None:
        area = quantize_money(area)
        if area <= 0:
            errors.append("Los metros cuadrados deben ser mayores a 0.")
        values["area_m2"] = area
        if total_value is not None and area > 0:
            price_per_m2 = quantize_money(total_value / area)
            if _fits(price_per_m2, 16):
                values["price_per_m2"] = price_per_m2
            else:
                errors.append("El precio por m2 resultante excede el maximo permitido.")

    values["signing_date"] = _signing_date(payload, errors)

    if "financing_term_months" in payload:
        term = payload.get("financing_term_months")
        if term in (None, ""):
            values["financing_term_months"] = None
        else:
            try:
                values["financing_term_months"] = int(term)
            except (TypeError, ValueError, OverflowError):
                errors.append("El plazo de financiamiento debe ser un entero.")
            else:
                if values["financing_term_months"] < 0:
                    errors.append("El plazo de financiamiento no puede ser negativo.")
                elif values["financing_term_months"] > MAX_FINANCING_TERM_MONTHS:
                    errors.append(
                        f"El plazo de financiamiento no puede superar {MAX_FINANCING_TERM_MONTHS} meses."
                    )

    if errors:
        raise ValidationError(errors)
    return values


@transaction.atomic
def upsert_sale(payload: dict) -> tuple[CommissionSale, bool]:
    """Create or update a sale keyed by its external deal id.

    Only business fields are written; the calculated flag, snapshots and
    phase totals stay as the engine left them.
    """
    values = _clean(payload)
    external_id = str(payload["external_deal_id"]).strip()

    sale, created = CommissionSale.objects.select_for_update().get_or_create(
        external_deal_id=external_id,
        defaults=values,
    )
    if not created:
        for field, value in values.items():
            setattr(sale, field, value)
        sale.save()
        if sale.commission_calculated:
            logger.warning("Sale %s updated by CRM after its commission was calculated", external_id)

    logger.info("Sale %s %s from CRM", external_id, "created" if created else "updated")
    return sale, created
