"""Models for the commissions app: configuration, sales and their ledgers."""
from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from core.models import TimeStampedModel

PERCENT_VALIDATORS = [MinValueValidator(0), MaxValueValidator(100)]


def normalize_development(value):
    """Canonical key for a development name (trimmed, lowercased, aliased)."""
    key = " ".join((value or "").split()).lower()
    aliases = getattr(settings, "COMMISSION_DEVELOPMENT_ALIASES", {}) or {}
    return aliases.get(key, key)


def _percent_field(verbose_name, **kwargs):
    kwargs.setdefault("default", 0)
    return models.DecimalField(
        verbose_name,
        max_digits=6,
        decimal_places=3,
        validators=PERCENT_VALIDATORS,
        **kwargs,
    )


def _money_field(verbose_name, **kwargs):
    kwargs.setdefault("default", 0)
    return models.DecimalField(verbose_name, max_digits=16, decimal_places=2, **kwargs)


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class Phase(models.TextChoices):
    SALE = "sale", "Fase venta"
    POST_SALE = "post_sale", "Fase postventa"
    UTILITY = "utility", "Utilidad"


class RoleType(models.TextChoices):
    SALE_MANAGER = "sale_manager", "Gerente de Ventas"
    DEAL_OWNER = "deal_owner", "Asesor Interno"
    EXTERNAL_ADVISOR = "external_advisor", "Asesor Externo"
    OPERATIONS_COORDINATOR = "operations_coordinator", "Coordinador de Operaciones de Venta"
    MARKETING = "marketing", "Gerente de Marketing"
    LEGAL_MANAGER = "legal_manager", "Gerente Legal"
    POST_SALE_COORDINATOR = "post_sale_coordinator", "Coordinador Postventas"
    CUSTOMER_SERVICE = "customer_service", "Atencion a Clientes"
    DELIVERIES = "deliveries", "Entregas"
    BONDS = "bonds", "Fianzas"
    RULE_BONUS = "rule_bonus", "Utilidad por Regla"
    REMAINING_UTILITY = "remaining_utility", "Utilidad Restante"


class PaymentStatus(models.TextChoices):
    PENDING = "pending", "Pendiente"
    PAID = "paid", "Pagado"


class CollectionStatus(models.TextChoices):
    PENDING_INVOICE = "pending_invoice", "Pendiente de factura"
    INVOICED = "invoiced", "Facturado"
    COLLECTED = "collected", "Cobrado"


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class DevelopmentConfig(TimeStampedModel):
    """Per-development percentage configuration.

    All percentages are fractions of the total sale value. The phase
    percentages are guide values: they are snapshotted on the sale and
    used for the utility pool, never to scale role amounts.
    """

    OPTIONAL_ROLES = ("customer_service", "deliveries", "bonds")

    development = models.CharField("desarrollo", max_length=200, unique=True)
    display_name = models.CharField("nombre para mostrar", max_length=200, blank=True, default="")
    phase_sale_percent = _percent_field("% guia fase venta")
    phase_post_sale_percent = _percent_field("% guia fase postventa")

    sale_manager_percent = _percent_field("% gerente de ventas")
    sale_manager_name = models.CharField("gerente de ventas", max_length=200, blank=True, default="")
    deal_owner_percent = _percent_field("% asesor interno")
    external_advisor_percent = _percent_field("% asesor externo", null=True, blank=True, default=None)

    pool_enabled = models.BooleanField("pool habilitado", default=False)
    sale_pool_total_percent = _percent_field("% total del pool", null=True, blank=True, default=None)

    customer_service_enabled = models.BooleanField("atencion a clientes habilitado", default=False)
    customer_service_percent = _percent_field("% atencion a clientes", null=True, blank=True, default=None)
    customer_service_name = models.CharField("responsable atencion a clientes", max_length=200, blank=True, default="")
    deliveries_enabled = models.BooleanField("entregas habilitado", default=False)
    deliveries_percent = _percent_field("% entregas", null=True, blank=True, default=None)
    deliveries_name = models.CharField("responsable entregas", max_length=200, blank=True, default="")
    bonds_enabled = models.BooleanField("fianzas habilitado", default=False)
    bonds_percent = _percent_field("% fianzas", null=True, blank=True, default=None)
    bonds_name = models.CharField("responsable fianzas", max_length=200, blank=True, default="")

    class Meta:
        ordering = ["development"]
        verbose_name = "Configuracion de desarrollo"
        verbose_name_plural = "Configuraciones de desarrollo"

    def __str__(self):
        return self.display_name or self.development

    def save(self, *args, **kwargs):
        if not self.display_name:
            self.display_name = (self.development or "").strip()
        self.development = normalize_development(self.development)
        super().save(*args, **kwargs)

    def clean(self):
        errors = {}
        if self.pool_enabled and self.sale_pool_total_percent is None:
            errors["sale_pool_total_percent"] = "El pool habilitado requiere un porcentaje total."
        for role in self.OPTIONAL_ROLES:
            if getattr(self, f"{role}_enabled") and getattr(self, f"{role}_percent") is None:
                errors[f"{role}_percent"] = "Un rol habilitado debe tener porcentaje."
        if errors:
            raise ValidationError(errors)


class GlobalRoleConfig(TimeStampedModel):
    """Organization-wide role percentage, applied to every development."""

    class Key(models.TextChoices):
        OPERATIONS_COORDINATOR = "operations_coordinator_percent", "Coordinador de Operaciones de Venta"
        MARKETING = "marketing_percent", "Gerente de Marketing"
        LEGAL_MANAGER = "legal_manager_percent", "Gerente Legal"
        POST_SALE_COORDINATOR = "post_sale_coordinator_percent", "Coordinador Postventas"

    key = models.CharField("clave", max_length=50, choices=Key.choices, unique=True)
    value = _percent_field("porcentaje")
    payee_name = models.CharField("beneficiario", max_length=200, blank=True, default="")
    description = models.CharField("descripcion", max_length=255, blank=True, default="")

    class Meta:
        ordering = ["key"]
        verbose_name = "Configuracion global de rol"
        verbose_name_plural = "Configuraciones globales de rol"

    def __str__(self):
        return f"{self.get_key_display()}: {self.value}%"


class CommissionRule(TimeStampedModel):
    """Volume-based bonus rule scoped to one development and period."""

    class PeriodType(models.TextChoices):
        MONTHLY = "monthly", "Mensual"
        QUARTERLY = "quarterly", "Trimestral"
        YEARLY = "yearly", "Anual"

    class Operator(models.TextChoices):
        EQUAL = "=", "Igual a"
        AT_LEAST = ">=", "Al menos"
        AT_MOST = "<=", "Como maximo"

    development = models.CharField("desarrollo", max_length=200, db_index=True)
    name = models.CharField("nombre", max_length=200)
    period_type = models.CharField("tipo de periodo", max_length=20, choices=PeriodType.choices)
    period_value = models.CharField("periodo", max_length=20)
    operator = models.CharField("operador", max_length=2, choices=Operator.choices)
    unit_threshold = models.PositiveIntegerField("unidades requeridas")
    commission_percent = _percent_field("% comision")
    surcharge_percent = _percent_field("% recargo")
    is_active = models.BooleanField("activa", default=True)
    priority = models.IntegerField("prioridad", default=0)

    class Meta:
        ordering = ["development", "priority", "name"]
        verbose_name = "Regla de comision"
        verbose_name_plural = "Reglas de comision"
        indexes = [
            models.Index(fields=["development", "is_active"], name="rule_dev_active_idx"),
        ]

    def __str__(self):
        return f"{self.name} ({self.development} {self.period_value})"

    def save(self, *args, **kwargs):
        self.development = normalize_development(self.development)
        super().save(*args, **kwargs)


# ---------------------------------------------------------------------------
# Sales and ledgers
# ---------------------------------------------------------------------------


class CommissionSale(TimeStampedModel):
    """A closed deal supplied by the CRM sync.

    Business fields are owned by ingestion. Only the commission engine
    writes ``commission_calculated``, the ``calculated_*`` snapshot and
    the phase totals.
    """

    external_deal_id = models.CharField("id del deal", max_length=100, unique=True)
    deal_name = models.CharField("deal", max_length=255, blank=True, default="")
    client_name = models.CharField("cliente", max_length=255, blank=True, default="")
    development = models.CharField("desarrollo", max_length=200)
    development_key = models.CharField(max_length=200, db_index=True, editable=False)
    deal_owner = models.CharField("propietario del deal", max_length=200, blank=True, default="")
    deal_owner_external_id = models.CharField(max_length=100, blank=True, default="")
    external_advisor = models.CharField("asesor externo", max_length=200, blank=True, default="")
    external_advisor_external_id = models.CharField(max_length=100, blank=True, default="")
    product_id = models.CharField("producto", max_length=100, blank=True, default="", db_index=True)
    area_m2 = models.DecimalField("metros cuadrados", max_digits=12, decimal_places=2, null=True, blank=True)
    price_per_m2 = models.DecimalField("precio por m2", max_digits=16, decimal_places=2, null=True, blank=True)
    total_value = _money_field("valor total")
    signing_date = models.DateField("fecha de firma", db_index=True)
    financing_term_months = models.PositiveIntegerField("plazo de financiamiento (meses)", null=True, blank=True)

    # Engine-owned
    commission_calculated = models.BooleanField("comision calculada", default=False, db_index=True)
    calculated_phase_sale_percent = models.DecimalField(
        "% fase venta calculado", max_digits=6, decimal_places=3, null=True, blank=True,
    )
    calculated_phase_post_sale_percent = models.DecimalField(
        "% fase postventa calculado", max_digits=6, decimal_places=3, null=True, blank=True,
    )
    commission_total = _money_field("comision total")
    commission_sale_phase = _money_field("comision fase venta")
    commission_post_sale_phase = _money_field("comision fase postventa")
    calculated_at = models.DateTimeField("calculada el", null=True, blank=True)

    post_sale_triggered_at = models.DateTimeField("postventa activada el", null=True, blank=True)
    post_sale_triggered_by = models.CharField("postventa activada por", max_length=200, blank=True, default="")

    class Meta:
        ordering = ["-signing_date", "-created_at"]
        verbose_name = "Venta"
        verbose_name_plural = "Ventas"
        indexes = [
            models.Index(fields=["development_key", "signing_date"], name="sale_dev_signing_idx"),
        ]

    def __str__(self):
        return f"{self.deal_name or self.external_deal_id} ({self.development})"

    def save(self, *args, **kwargs):
        self.development_key = normalize_development(self.development)
        super().save(*args, **kwargs)


class CommissionDistribution(TimeStampedModel):
    """One commission row per role per phase of a calculated sale."""

    sale = models.ForeignKey(
        CommissionSale,
        on_delete=models.CASCADE,
        related_name="distributions",
        verbose_name="venta",
    )
    position = models.PositiveIntegerField("orden", default=0)
    phase = models.CharField("fase", max_length=20, choices=Phase.choices)
    role_type = models.CharField("rol", max_length=40, choices=RoleType.choices)
    payee_name = models.CharField("beneficiario", max_length=255)
    payee_external_id = models.CharField(max_length=100, blank=True, default="")
    percent_assigned = models.DecimalField("% asignado", max_digits=9, decimal_places=3)
    amount = models.DecimalField("monto", max_digits=16, decimal_places=2)
    payment_status = models.CharField(
        "estado de pago",
        max_length=20,
        choices=PaymentStatus.choices,
        default=PaymentStatus.PENDING,
        db_index=True,
    )
    paid_at = models.DateTimeField("pagado el", null=True, blank=True)
    is_cash_payment = models.BooleanField("pago de contado", default=False)
    surcharge_percent = models.DecimalField("% recargo", max_digits=6, decimal_places=3, default=0)
    surcharge_amount = _money_field("monto de recargo")
    invoice_reference = models.CharField("referencia de factura", max_length=500, blank=True, default="")

    # Rule audit (utility phase only)
    rule = models.ForeignKey(
        CommissionRule,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="distributions",
        verbose_name="regla",
    )
    rule_name = models.CharField("regla", max_length=200, blank=True, default="")
    units_sold = models.PositiveIntegerField("unidades vendidas", null=True, blank=True)
    units_required = models.PositiveIntegerField("unidades requeridas", null=True, blank=True)
    operator = models.CharField("operador", max_length=2, blank=True, default="")
    fulfilled = models.BooleanField("cumplida", null=True, blank=True)

    class Meta:
        ordering = ["sale", "position"]
        verbose_name = "Distribucion de comision"
        verbose_name_plural = "Distribuciones de comision"
        indexes = [
            models.Index(fields=["sale", "phase"], name="dist_sale_phase_idx"),
        ]

    def __str__(self):
        return f"{self.get_role_type_display()} {self.payee_name}: {self.amount}"


class PartnerCommission(TimeStampedModel):
    """Share of a sale's commission owed to one ownership partner."""

    sale = models.ForeignKey(
        CommissionSale,
        on_delete=models.CASCADE,
        related_name="partner_commissions",
        verbose_name="venta",
    )
    partner_name = models.CharField("socio", max_length=255)
    participation = models.DecimalField("% participacion", max_digits=6, decimal_places=3)
    sale_phase_amount = _money_field("monto fase venta")
    post_sale_phase_amount = _money_field("monto fase postventa")
    total_amount = _money_field("monto total")

    sale_phase_collection_status = models.CharField(
        "cobranza fase venta",
        max_length=20,
        choices=CollectionStatus.choices,
        default=CollectionStatus.PENDING_INVOICE,
    )
    sale_phase_collected_at = models.DateTimeField("cobrado fase venta el", null=True, blank=True)
    sale_phase_is_cash_payment = models.BooleanField("fase venta de contado", default=False)
    sale_phase_invoice_reference = models.CharField(max_length=500, blank=True, default="")

    post_sale_phase_collection_status = models.CharField(
        "cobranza fase postventa",
        max_length=20,
        choices=CollectionStatus.choices,
        default=CollectionStatus.PENDING_INVOICE,
    )
    post_sale_phase_collected_at = models.DateTimeField("cobrado fase postventa el", null=True, blank=True)
    post_sale_phase_is_cash_payment = models.BooleanField("fase postventa de contado", default=False)
    post_sale_phase_invoice_reference = models.CharField(max_length=500, blank=True, default="")

    post_sale_reference_date = models.DateField("fecha de referencia postventa", null=True, blank=True)
    is_cash_sale = models.BooleanField("venta de contado", default=False)

    class Meta:
        ordering = ["sale", "partner_name"]
        verbose_name = "Comision de socio"
        verbose_name_plural = "Comisiones de socios"
        constraints = [
            models.UniqueConstraint(fields=["sale", "partner_name"], name="uniq_partner_commission_per_sale"),
        ]

    def __str__(self):
        return f"{self.partner_name} ({self.participation}%): {self.total_amount}"


class ProductPartner(TimeStampedModel):
    """Ownership participation of a partner in a product."""

    product_id = models.CharField("producto", max_length=100, db_index=True)
    partner_name = models.CharField("socio", max_length=255)
    participation = _percent_field("% participacion")

    class Meta:
        ordering = ["product_id", "partner_name"]
        verbose_name = "Socio de producto"
        verbose_name_plural = "Socios de producto"
        constraints = [
            models.UniqueConstraint(fields=["product_id", "partner_name"], name="uniq_product_partner"),
        ]

    def __str__(self):
        return f"{self.partner_name} @ {self.product_id} ({self.participation}%)"


class HiddenPartner(TimeStampedModel):
    """Partner excluded from partner reports unless explicitly requested."""

    partner_name = models.CharField("socio", max_length=255, unique=True)
    reason = models.CharField("motivo", max_length=255, blank=True, default="")

    class Meta:
        ordering = ["partner_name"]
        verbose_name = "Socio oculto"
        verbose_name_plural = "Socios ocultos"

    def __str__(self):
        return self.partner_name


class BillingTarget(TimeStampedModel):
    """Monthly billing target compared against partner commissions."""

    year = models.PositiveIntegerField("ano")
    month = models.PositiveSmallIntegerField(
        "mes",
        validators=[MinValueValidator(1), MaxValueValidator(12)],
    )
    target_amount = _money_field("meta")

    class Meta:
        ordering = ["year", "month"]
        verbose_name = "Meta de facturacion"
        verbose_name_plural = "Metas de facturacion"
        constraints = [
            models.UniqueConstraint(fields=["year", "month"], name="uniq_billing_target_month"),
        ]

    def __str__(self):
        return f"{self.year}-{self.month:02d}: {self.target_amount}"


class SalesTarget(TimeStampedModel):
    """Monthly sales-volume target compared against the value of sales signed that month."""

    year = models.PositiveIntegerField("ano")
    month = models.PositiveSmallIntegerField(
        "mes",
        validators=[MinValueValidator(1), MaxValueValidator(12)],
    )
    target_amount = _money_field("meta de ventas", validators=[MinValueValidator(0)])

    class Meta:
        ordering = ["year", "month"]
        verbose_name = "Meta de ventas"
        verbose_name_plural = "Metas de ventas"
        constraints = [
            models.UniqueConstraint(fields=["year", "month"], name="uniq_sales_target_month"),
        ]

    def __str__(self):
        return f"{self.year}-{self.month:02d}: {self.target_amount}"
