"""DRF Serializers for the commissions module."""
from __future__ import annotations

from rest_framework import serializers

from commissions.models import (
    BillingTarget,
    CollectionStatus,
    CommissionDistribution,
    CommissionRule,
    CommissionSale,
    DevelopmentConfig,
    GlobalRoleConfig,
    HiddenPartner,
    PartnerCommission,
    PaymentStatus,
    Phase,
    SalesTarget,
)
from commissions.status import sale_statuses


# ────────────────────────────────────────────────────────────
# Configuration
# ────────────────────────────────────────────────────────────

class DevelopmentConfigSerializer(serializers.ModelSerializer):
    class Meta:
        model = DevelopmentConfig
        fields = [
            "id", "development", "display_name",
            "phase_sale_percent", "phase_post_sale_percent",
            "sale_manager_percent", "sale_manager_name",
            "deal_owner_percent", "external_advisor_percent",
            "pool_enabled", "sale_pool_total_percent",
            "customer_service_enabled", "customer_service_percent", "customer_service_name",
            "deliveries_enabled", "deliveries_percent", "deliveries_name",
            "bonds_enabled", "bonds_percent", "bonds_name",
            "created_at", "updated_at",
        ]
        read_only_fields = ["id", "created_at", "updated_at"]


class GlobalRoleConfigSerializer(serializers.ModelSerializer):
    label = serializers.CharField(source="get_key_display", read_only=True)

    class Meta:
        model = GlobalRoleConfig
        fields = ["key", "label", "value", "payee_name", "description", "updated_at"]
        read_only_fields = ["key", "label", "description", "updated_at"]


class CommissionRuleSerializer(serializers.ModelSerializer):
    class Meta:
        model = CommissionRule
        fields = [
            "id", "development", "name", "period_type", "period_value",
            "operator", "unit_threshold", "commission_percent", "surcharge_percent",
            "is_active", "priority", "created_at", "updated_at",
        ]
        read_only_fields = ["id", "created_at", "updated_at"]


class BillingTargetSerializer(serializers.ModelSerializer):
    class Meta:
        model = BillingTarget
        fields = ["id", "year", "month", "target_amount", "created_at"]
        read_only_fields = ["id", "created_at"]


class SalesTargetSerializer(serializers.ModelSerializer):
    class Meta:
        model = SalesTarget
        fields = ["id", "year", "month", "target_amount", "created_at"]
        read_only_fields = ["id", "created_at"]


class HiddenPartnerSerializer(serializers.ModelSerializer):
    class Meta:
        model = HiddenPartner
        fields = ["id", "partner_name", "reason", "created_at"]
        read_only_fields = ["id", "created_at"]


# ────────────────────────────────────────────────────────────
# Ledgers
# ────────────────────────────────────────────────────────────

class CommissionDistributionSerializer(serializers.ModelSerializer):
    role_label = serializers.CharField(source="get_role_type_display", read_only=True)
    has_invoice = serializers.SerializerMethodField()

    class Meta:
        model = CommissionDistribution
        fields = [
            "id", "sale", "position", "phase", "role_type", "role_label",
            "payee_name", "payee_external_id", "percent_assigned", "amount",
            "payment_status", "paid_at", "is_cash_payment",
            "surcharge_percent", "surcharge_amount", "invoice_reference", "has_invoice",
            "rule", "rule_name", "units_sold", "units_required", "operator", "fulfilled",
        ]
        read_only_fields = fields

    def get_has_invoice(self, obj):
        return bool(obj.invoice_reference)


class PartnerCommissionSerializer(serializers.ModelSerializer):
    sale_deal_name = serializers.CharField(source="sale.deal_name", read_only=True)
    development = serializers.CharField(source="sale.development", read_only=True)
    signing_date = serializers.DateField(source="sale.signing_date", read_only=True)

    class Meta:
        model = PartnerCommission
        fields = [
            "id", "sale", "sale_deal_name", "development", "signing_date",
            "partner_name", "participation",
            "sale_phase_amount", "post_sale_phase_amount", "total_amount",
            "sale_phase_collection_status", "sale_phase_collected_at",
            "sale_phase_is_cash_payment", "sale_phase_invoice_reference",
            "post_sale_phase_collection_status", "post_sale_phase_collected_at",
            "post_sale_phase_is_cash_payment", "post_sale_phase_invoice_reference",
            "post_sale_reference_date", "is_cash_sale",
        ]
        read_only_fields = fields


class CommissionSaleSerializer(serializers.ModelSerializer):
    statuses = serializers.SerializerMethodField()

    class Meta:
        model = CommissionSale
        fields = [
            "id", "external_deal_id", "deal_name", "client_name",
            "development", "development_key", "deal_owner", "external_advisor",
            "product_id", "area_m2", "price_per_m2", "total_value",
            "signing_date", "financing_term_months",
            "commission_calculated", "calculated_phase_sale_percent",
            "calculated_phase_post_sale_percent", "commission_total",
            "commission_sale_phase", "commission_post_sale_phase", "calculated_at",
            "post_sale_triggered_at", "post_sale_triggered_by", "statuses",
        ]
        read_only_fields = fields

    def get_statuses(self, obj):
        return sale_statuses(obj)


# ────────────────────────────────────────────────────────────
# Action payloads
# ────────────────────────────────────────────────────────────

class CalculateInputSerializer(serializers.Serializer):
    recalculate = serializers.BooleanField(default=False)


class TriggerPostSaleInputSerializer(serializers.Serializer):
    triggered_by = serializers.CharField(required=False, allow_blank=True, default="")


class PaymentStatusInputSerializer(serializers.Serializer):
    payment_status = serializers.ChoiceField(choices=PaymentStatus.choices)


class InvoiceInputSerializer(serializers.Serializer):
    reference = serializers.CharField(max_length=500)


class PartnerPhaseInputSerializer(serializers.Serializer):
    phase = serializers.ChoiceField(choices=[Phase.SALE, Phase.POST_SALE])


class CollectionStatusInputSerializer(PartnerPhaseInputSerializer):
    status = serializers.ChoiceField(choices=CollectionStatus.choices)


class CashPaymentInputSerializer(PartnerPhaseInputSerializer):
    is_cash_payment = serializers.BooleanField()


class PartnerInvoiceInputSerializer(PartnerPhaseInputSerializer):
    reference = serializers.CharField(max_length=500)


class SaleIngestSerializer(serializers.Serializer):
    """Loose envelope; field-level checks live in ``commissions.ingestion``."""

    external_deal_id = serializers.CharField(max_length=100)
    development = serializers.CharField(max_length=200)
    total_value = serializers.CharField()
    signing_date = serializers.CharField()
    deal_name = serializers.CharField(required=False, allow_blank=True)
    client_name = serializers.CharField(required=False, allow_blank=True)
    deal_owner = serializers.CharField(required=False, allow_blank=True)
    deal_owner_id = serializers.CharField(required=False, allow_blank=True)
    external_advisor = serializers.CharField(required=False, allow_blank=True)
    external_advisor_id = serializers.CharField(required=False, allow_blank=True)
    product_id = serializers.CharField(required=False, allow_blank=True)
    area_m2 = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    financing_term_months = serializers.IntegerField(required=False, allow_null=True, min_value=0)
