"""Configuration store: per-development settings and global role percentages."""
from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation

from django.db import transaction

from commissions.exceptions import ValidationError
from commissions.models import (
    CommissionRule,
    DevelopmentConfig,
    GlobalRoleConfig,
    normalize_development,
)
from commissions.money import ZERO, to_decimal

logger = logging.getLogger("comisiones")

DEVELOPMENT_PERCENT_FIELDS = {
    "phase_sale_percent": "fase venta",
    "phase_post_sale_percent": "fase postventa",
    "sale_manager_percent": "gerente de ventas",
    "deal_owner_percent": "asesor interno",
    "external_advisor_percent": "asesor externo",
    "sale_pool_total_percent": "pool de ventas",
    "customer_service_percent": "atencion a clientes",
    "deliveries_percent": "entregas",
    "bonds_percent": "fianzas",
}

OPTIONAL_ROLE_LABELS = {
    "customer_service": "Atencion a Clientes",
    "deliveries": "Entregas",
    "bonds": "Fianzas",
}


def _check_percent(value, label, errors):
    if value is None:
        return
    try:
        number = to_decimal(value)
    except (InvalidOperation, ValueError):
        errors.append(f"El porcentaje de {label} no es un numero valido.")
        return
    if number < 0 or number > 100:
        errors.append(f"El porcentaje de {label} debe estar entre 0 y 100.")


def validate_development_config(data: dict) -> list[str]:
    """Return every problem found in ``data``; empty when valid."""
    errors: list[str] = []
    if not normalize_development(data.get("development")):
        errors.append("El desarrollo es obligatorio.")
    for field, label in DEVELOPMENT_PERCENT_FIELDS.items():
        _check_percent(data.get(field), label, errors)
    if data.get("pool_enabled") and data.get("sale_pool_total_percent") is None:
        errors.append("Si el pool esta habilitado, debe tener un porcentaje total.")
    for role, label in OPTIONAL_ROLE_LABELS.items():
        if data.get(f"{role}_enabled") and data.get(f"{role}_percent") is None:
            errors.append(f"Si {label} esta habilitado, debe tener un porcentaje.")
    return errors


def validate_rule(data: dict) -> list[str]:
    from commissions.rules import parse_period_value

    errors: list[str] = []
    if not normalize_development(data.get("development")):
        errors.append("El desarrollo es obligatorio.")
    if not (data.get("name") or "").strip():
        errors.append("El nombre de la regla es obligatorio.")
    _check_percent(data.get("commission_percent"), "comision", errors)
    _check_percent(data.get("surcharge_percent"), "recargo", errors)
    if data.get("operator") not in CommissionRule.Operator.values:
        errors.append("Operador invalido; use =, >= o <=.")
    try:
        threshold_ok = int(data.get("unit_threshold")) >= 0
    except (TypeError, ValueError):
        threshold_ok = False
    if not threshold_ok:
        errors.append("Las unidades requeridas deben ser un entero no negativo.")
    try:
        parse_period_value(data.get("period_type"), data.get("period_value"))
    except ValidationError as exc:
        errors.extend(exc.errors)
    return errors


class ConfigurationStore:
    """Database-backed configuration read by the distribution calculator.

    Global percentages are loaded once per instance so that one
    calculation sees a single consistent view of them.
    """

    def __init__(self):
        self._globals: dict[str, GlobalRoleConfig] | None = None

    def _global_map(self) -> dict[str, GlobalRoleConfig]:
        if self._globals is None:
            self._globals = {cfg.key: cfg for cfg in GlobalRoleConfig.objects.all()}
        return self._globals

    def get_development_config(self, development: str) -> DevelopmentConfig | None:
        key = normalize_development(development)
        if not key:
            return None
        return DevelopmentConfig.objects.filter(development=key).first()

    def get_global_percent(self, key: str) -> Decimal:
        cfg = self._global_map().get(key)
        return to_decimal(cfg.value) if cfg is not None else ZERO

    def get_global_payee(self, key: str) -> str:
        cfg = self._global_map().get(key)
        return cfg.payee_name if cfg is not None else ""

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    @transaction.atomic
    def upsert_development_config(self, data: dict) -> DevelopmentConfig:
        """Create or update the configuration of ``data["development"]``.

        Raises :class:`~commissions.exceptions.ValidationError` before
        writing anything when a percentage is out of range or an enabled
        optional role has no percentage.
        """
        key = normalize_development(data.get("development"))
        instance = DevelopmentConfig.objects.select_for_update().filter(development=key).first()

        merged = {}
        if instance is not None:
            merged = {field.name: getattr(instance, field.name) for field in DevelopmentConfig._meta.concrete_fields}
        merged.update(data)

        errors = validate_development_config(merged)
        if errors:
            raise ValidationError(errors)

        if instance is None:
            instance = DevelopmentConfig()
        for field, value in data.items():
            setattr(instance, field, value)
        instance.save()
        logger.info("Development config %s saved", instance.development)
        return instance

    @transaction.atomic
    def set_global_percent(self, key: str, value, payee_name: str | None = None) -> GlobalRoleConfig:
        if key not in GlobalRoleConfig.Key.values:
            raise ValidationError(f"Clave de configuracion global desconocida: {key}.")
        errors: list[str] = []
        _check_percent(value, key, errors)
        if errors:
            raise ValidationError(errors)

        cfg, _ = GlobalRoleConfig.objects.select_for_update().get_or_create(key=key)
        cfg.value = to_decimal(value)
        if payee_name is not None:
            cfg.payee_name = payee_name
        cfg.save()
        self._globals = None
        logger.info("Global role %s set to %s%%", key, cfg.value)
        return cfg
