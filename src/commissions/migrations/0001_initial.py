import uuid

import django.core.validators
import django.db.models.deletion
from django.db import migrations, models


def percent(verbose_name, **kwargs):
    kwargs.setdefault("default", 0)
    return models.DecimalField(
        decimal_places=3,
        max_digits=6,
        validators=[
            django.core.validators.MinValueValidator(0),
            django.core.validators.MaxValueValidator(100),
        ],
        verbose_name=verbose_name,
        **kwargs,
    )


def money(verbose_name):
    return models.DecimalField(decimal_places=2, default=0, max_digits=16, verbose_name=verbose_name)


def timestamps():
    return [
        ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
        ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="creado el")),
        ("updated_at", models.DateTimeField(auto_now=True, verbose_name="actualizado el")),
    ]


COLLECTION_CHOICES = [
    ("pending_invoice", "Pendiente de factura"),
    ("invoiced", "Facturado"),
    ("collected", "Cobrado"),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="DevelopmentConfig",
            fields=timestamps() + [
                ("development", models.CharField(max_length=200, unique=True, verbose_name="desarrollo")),
                ("display_name", models.CharField(blank=True, default="", max_length=200, verbose_name="nombre para mostrar")),
                ("phase_sale_percent", percent("% guia fase venta")),
                ("phase_post_sale_percent", percent("% guia fase postventa")),
                ("sale_manager_percent", percent("% gerente de ventas")),
                ("sale_manager_name", models.CharField(blank=True, default="", max_length=200, verbose_name="gerente de ventas")),
                ("deal_owner_percent", percent("% asesor interno")),
                ("external_advisor_percent", percent("% asesor externo", null=True, blank=True, default=None)),
                ("pool_enabled", models.BooleanField(default=False, verbose_name="pool habilitado")),
                ("sale_pool_total_percent", percent("% total del pool", null=True, blank=True, default=None)),
                ("customer_service_enabled", models.BooleanField(default=False, verbose_name="atencion a clientes habilitado")),
                ("customer_service_percent", percent("% atencion a clientes", null=True, blank=True, default=None)),
                ("customer_service_name", models.CharField(blank=True, default="", max_length=200, verbose_name="responsable atencion a clientes")),
                ("deliveries_enabled", models.BooleanField(default=False, verbose_name="entregas habilitado")),
                ("deliveries_percent", percent("% entregas", null=True, blank=True, default=None)),
                ("deliveries_name", models.CharField(blank=True, default="", max_length=200, verbose_name="responsable entregas")),
                ("bonds_enabled", models.BooleanField(default=False, verbose_name="fianzas habilitado")),
                ("bonds_percent", percent("% fianzas", null=True, blank=True, default=None)),
                ("bonds_name", models.CharField(blank=True, default="", max_length=200, verbose_name="responsable fianzas")),
            ],
            options={
                "verbose_name": "Configuracion de desarrollo",
                "verbose_name_plural": "Configuraciones de desarrollo",
                "ordering": ["development"],
            },
        ),
        migrations.CreateModel(
            name="GlobalRoleConfig",
            fields=timestamps() + [
                (
                    "key",
                    models.CharField(
                        choices=[
                            ("operations_coordinator_percent", "Coordinador de Operaciones de Venta"),
                            ("marketing_percent", "Gerente de Marketing"),
                            ("legal_manager_percent", "Gerente Legal"),
                            ("post_sale_coordinator_percent", "Coordinador Postventas"),
                        ],
                        max_length=50,
                        unique=True,
                        verbose_name="clave",
                    ),
                ),
                ("value", percent("porcentaje")),
                ("payee_name", models.CharField(blank=True, default="", max_length=200, verbose_name="beneficiario")),
                ("description", models.CharField(blank=True, default="", max_length=255, verbose_name="descripcion")),
            ],
            options={
                "verbose_name": "Configuracion global de rol",
                "verbose_name_plural": "Configuraciones globales de rol",
                "ordering": ["key"],
            },
        ),
        migrations.CreateModel(
            name="CommissionRule",
            fields=timestamps() + [
                ("development", models.CharField(db_index=True, max_length=200, verbose_name="desarrollo")),
                ("name", models.CharField(max_length=200, verbose_name="nombre")),
                (
                    "period_type",
                    models.CharField(
                        choices=[("monthly", "Mensual"), ("quarterly", "Trimestral"), ("yearly", "Anual")],
                        max_length=20,
                        verbose_name="tipo de periodo",
                    ),
                ),
                ("period_value", models.CharField(max_length=20, verbose_name="periodo")),
                (
                    "operator",
                    models.CharField(
                        choices=[("=", "Igual a"), (">=", "Al menos"), ("<=", "Como maximo")],
                        max_length=2,
                        verbose_name="operador",
                    ),
                ),
                ("unit_threshold", models.PositiveIntegerField(verbose_name="unidades requeridas")),
                ("commission_percent", percent("% comision")),
                ("surcharge_percent", percent("% recargo")),
                ("is_active", models.BooleanField(default=True, verbose_name="activa")),
                ("priority", models.IntegerField(default=0, verbose_name="prioridad")),
            ],
            options={
                "verbose_name": "Regla de comision",
                "verbose_name_plural": "Reglas de comision",
                "ordering": ["development", "priority", "name"],
                "indexes": [models.Index(fields=["development", "is_active"], name="rule_dev_active_idx")],
            },
        ),
        migrations.CreateModel(
            name="CommissionSale",
            fields=timestamps() + [
                ("external_deal_id", models.CharField(max_length=100, unique=True, verbose_name="id del deal")),
                ("deal_name", models.CharField(blank=True, default="", max_length=255, verbose_name="deal")),
                ("client_name", models.CharField(blank=True, default="", max_length=255, verbose_name="cliente")),
                ("development", models.CharField(max_length=200, verbose_name="desarrollo")),
                ("development_key", models.CharField(db_index=True, editable=False, max_length=200)),
                ("deal_owner", models.CharField(blank=True, default="", max_length=200, verbose_name="propietario del deal")),
                ("deal_owner_external_id", models.CharField(blank=True, default="", max_length=100)),
                ("external_advisor", models.CharField(blank=True, default="", max_length=200, verbose_name="asesor externo")),
                ("external_advisor_external_id", models.CharField(blank=True, default="", max_length=100)),
                ("product_id", models.CharField(blank=True, db_index=True, default="", max_length=100, verbose_name="producto")),
                ("area_m2", models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True, verbose_name="metros cuadrados")),
                ("price_per_m2", models.DecimalField(blank=True, decimal_places=2, max_digits=16, null=True, verbose_name="precio por m2")),
                ("total_value", money("valor total")),
                ("signing_date", models.DateField(db_index=True, verbose_name="fecha de firma")),
                ("financing_term_months", models.PositiveIntegerField(blank=True, null=True, verbose_name="plazo de financiamiento (meses)")),
                ("commission_calculated", models.BooleanField(db_index=True, default=False, verbose_name="comision calculada")),
                ("calculated_phase_sale_percent", models.DecimalField(blank=True, decimal_places=3, max_digits=6, null=True, verbose_name="% fase venta calculado")),
                ("calculated_phase_post_sale_percent", models.DecimalField(blank=True, decimal_places=3, max_digits=6, null=True, verbose_name="% fase postventa calculado")),
                ("commission_total", money("comision total")),
                ("commission_sale_phase", money("comision fase venta")),
                ("commission_post_sale_phase", money("comision fase postventa")),
                ("calculated_at", models.DateTimeField(blank=True, null=True, verbose_name="calculada el")),
                ("post_sale_triggered_at", models.DateTimeField(blank=True, null=True, verbose_name="postventa activada el")),
                ("post_sale_triggered_by", models.CharField(blank=True, default="", max_length=200, verbose_name="postventa activada por")),
            ],
            options={
                "verbose_name": "Venta",
                "verbose_name_plural": "Ventas",
                "ordering": ["-signing_date", "-created_at"],
                "indexes": [models.Index(fields=["development_key", "signing_date"], name="sale_dev_signing_idx")],
            },
        ),
        migrations.CreateModel(
            name="CommissionDistribution",
            fields=timestamps() + [
                ("position", models.PositiveIntegerField(default=0, verbose_name="orden")),
                (
                    "phase",
                    models.CharField(
                        choices=[("sale", "Fase venta"), ("post_sale", "Fase postventa"), ("utility", "Utilidad")],
                        max_length=20,
                        verbose_name="fase",
                    ),
                ),
                (
                    "role_type",
                    models.CharField(
                        choices=[
                            ("sale_manager", "Gerente de Ventas"),
                            ("deal_owner", "Asesor Interno"),
                            ("external_advisor", "Asesor Externo"),
                            ("operations_coordinator", "Coordinador de Operaciones de Venta"),
                            ("marketing", "Gerente de Marketing"),
                            ("legal_manager", "Gerente Legal"),
                            ("post_sale_coordinator", "Coordinador Postventas"),
                            ("customer_service", "Atencion a Clientes"),
                            ("deliveries", "Entregas"),
                            ("bonds", "Fianzas"),
                            ("rule_bonus", "Utilidad por Regla"),
                            ("remaining_utility", "Utilidad Restante"),
                        ],
                        max_length=40,
                        verbose_name="rol",
                    ),
                ),
                ("payee_name", models.CharField(max_length=255, verbose_name="beneficiario")),
                ("payee_external_id", models.CharField(blank=True, default="", max_length=100)),
                ("percent_assigned", models.DecimalField(decimal_places=3, max_digits=9, verbose_name="% asignado")),
                ("amount", models.DecimalField(decimal_places=2, max_digits=16, verbose_name="monto")),
                (
                    "payment_status",
                    models.CharField(
                        choices=[("pending", "Pendiente"), ("paid", "Pagado")],
                        db_index=True,
                        default="pending",
                        max_length=20,
                        verbose_name="estado de pago",
                    ),
                ),
                ("paid_at", models.DateTimeField(blank=True, null=True, verbose_name="pagado el")),
                ("is_cash_payment", models.BooleanField(default=False, verbose_name="pago de contado")),
                ("surcharge_percent", models.DecimalField(decimal_places=3, default=0, max_digits=6, verbose_name="% recargo")),
                ("surcharge_amount", money("monto de recargo")),
                ("invoice_reference", models.CharField(blank=True, default="", max_length=500, verbose_name="referencia de factura")),
                ("rule_name", models.CharField(blank=True, default="", max_length=200, verbose_name="regla")),
                ("units_sold", models.PositiveIntegerField(blank=True, null=True, verbose_name="unidades vendidas")),
                ("units_required", models.PositiveIntegerField(blank=True, null=True, verbose_name="unidades requeridas")),
                ("operator", models.CharField(blank=True, default="", max_length=2, verbose_name="operador")),
                ("fulfilled", models.BooleanField(blank=True, null=True, verbose_name="cumplida")),
                (
                    "rule",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="distributions",
                        to="commissions.commissionrule",
                        verbose_name="regla",
                    ),
                ),
                (
                    "sale",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="distributions",
                        to="commissions.commissionsale",
                        verbose_name="venta",
                    ),
                ),
            ],
            options={
                "verbose_name": "Distribucion de comision",
                "verbose_name_plural": "Distribuciones de comision",
                "ordering": ["sale", "position"],
                "indexes": [models.Index(fields=["sale", "phase"], name="dist_sale_phase_idx")],
            },
        ),
        migrations.CreateModel(
            name="PartnerCommission",
            fields=timestamps() + [
                ("partner_name", models.CharField(max_length=255, verbose_name="socio")),
                ("participation", models.DecimalField(decimal_places=3, max_digits=6, verbose_name="% participacion")),
                ("sale_phase_amount", money("monto fase venta")),
                ("post_sale_phase_amount", money("monto fase postventa")),
                ("total_amount", money("monto total")),
                (
                    "sale_phase_collection_status",
                    models.CharField(
                        choices=COLLECTION_CHOICES,
                        default="pending_invoice",
                        max_length=20,
                        verbose_name="cobranza fase venta",
                    ),
                ),
                ("sale_phase_collected_at", models.DateTimeField(blank=True, null=True, verbose_name="cobrado fase venta el")),
                ("sale_phase_is_cash_payment", models.BooleanField(default=False, verbose_name="fase venta de contado")),
                ("sale_phase_invoice_reference", models.CharField(blank=True, default="", max_length=500)),
                (
                    "post_sale_phase_collection_status",
                    models.CharField(
                        choices=COLLECTION_CHOICES,
                        default="pending_invoice",
                        max_length=20,
                        verbose_name="cobranza fase postventa",
                    ),
                ),
                ("post_sale_phase_collected_at", models.DateTimeField(blank=True, null=True, verbose_name="cobrado fase postventa el")),
                ("post_sale_phase_is_cash_payment", models.BooleanField(default=False, verbose_name="fase postventa de contado")),
                ("post_sale_phase_invoice_reference", models.CharField(blank=True, default="", max_length=500)),
                ("post_sale_reference_date", models.DateField(blank=True, null=True, verbose_name="fecha de referencia postventa")),
                ("is_cash_sale", models.BooleanField(default=False, verbose_name="venta de contado")),
                (
                    "sale",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="partner_commissions",
                        to="commissions.commissionsale",
                        verbose_name="venta",
                    ),
                ),
            ],
            options={
                "verbose_name": "Comision de socio",
                "verbose_name_plural": "Comisiones de socios",
                "ordering": ["sale", "partner_name"],
                "constraints": [
                    models.UniqueConstraint(fields=("sale", "partner_name"), name="uniq_partner_commission_per_sale"),
                ],
            },
        ),
        migrations.CreateModel(
            name="ProductPartner",
            fields=timestamps() + [
                ("product_id", models.CharField(db_index=True, max_length=100, verbose_name="producto")),
                ("partner_name", models.CharField(max_length=255, verbose_name="socio")),
                ("participation", percent("% participacion")),
            ],
            options={
                "verbose_name": "Socio de producto",
                "verbose_name_plural": "Socios de producto",
                "ordering": ["product_id", "partner_name"],
                "constraints": [
                    models.UniqueConstraint(fields=("product_id", "partner_name"), name="uniq_product_partner"),
                ],
            },
        ),
        migrations.CreateModel(
            name="HiddenPartner",
            fields=timestamps() + [
                ("partner_name", models.CharField(max_length=255, unique=True, verbose_name="socio")),
                ("reason", models.CharField(blank=True, default="", max_length=255, verbose_name="motivo")),
            ],
            options={
                "verbose_name": "Socio oculto",
                "verbose_name_plural": "Socios ocultos",
                "ordering": ["partner_name"],
            },
        ),
        migrations.CreateModel(
            name="BillingTarget",
            fields=timestamps() + [
                ("year", models.PositiveIntegerField(verbose_name="ano")),
                (
                    "month",
                    models.PositiveSmallIntegerField(
                        validators=[
                            django.core.validators.MinValueValidator(1),
                            django.core.validators.MaxValueValidator(12),
                        ],
                        verbose_name="mes",
                    ),
                ),
                ("target_amount", money("meta")),
            ],
            options={
                "verbose_name": "Meta de facturacion",
                "verbose_name_plural": "Metas de facturacion",
                "ordering": ["year", "month"],
                "constraints": [
                    models.UniqueConstraint(fields=("year", "month"), name="uniq_billing_target_month"),
                ],
            },
        ),
    ]
