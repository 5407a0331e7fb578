"""Django admin for the commissions module."""
from django.contrib import admin

from commissions.models import (
    BillingTarget,
    CommissionDistribution,
    CommissionRule,
    CommissionSale,
    DevelopmentConfig,
    GlobalRoleConfig,
    HiddenPartner,
    PartnerCommission,
    ProductPartner,
    SalesTarget,
)


@admin.register(DevelopmentConfig)
class DevelopmentConfigAdmin(admin.ModelAdmin):
    list_display = (
        "development", "phase_sale_percent", "phase_post_sale_percent",
        "sale_manager_percent", "deal_owner_percent", "external_advisor_percent", "pool_enabled",
    )
    list_filter = ("pool_enabled", "customer_service_enabled", "deliveries_enabled", "bonds_enabled")
    search_fields = ("development", "display_name", "sale_manager_name")
    readonly_fields = ("created_at", "updated_at")


@admin.register(GlobalRoleConfig)
class GlobalRoleConfigAdmin(admin.ModelAdmin):
    list_display = ("key", "value", "payee_name")
    readonly_fields = ("created_at", "updated_at")


@admin.register(CommissionRule)
class CommissionRuleAdmin(admin.ModelAdmin):
    list_display = (
        "name", "development", "period_type", "period_value",
        "operator", "unit_threshold", "commission_percent", "is_active", "priority",
    )
    list_filter = ("is_active", "period_type", "development")
    search_fields = ("name", "development")


class CommissionDistributionInline(admin.TabularInline):
    model = CommissionDistribution
    extra = 0
    can_delete = False
    ordering = ("position",)
    fields = ("phase", "role_type", "payee_name", "percent_assigned", "amount", "payment_status", "fulfilled")
    readonly_fields = fields


class PartnerCommissionInline(admin.TabularInline):
    model = PartnerCommission
    extra = 0
    can_delete = False
    fields = (
        "partner_name", "participation", "sale_phase_amount", "post_sale_phase_amount",
        "sale_phase_collection_status", "post_sale_phase_collection_status",
    )
    readonly_fields = fields


@admin.register(CommissionSale)
class CommissionSaleAdmin(admin.ModelAdmin):
    list_display = (
        "external_deal_id", "deal_name", "development", "total_value",
        "signing_date", "commission_calculated", "commission_total",
    )
    list_filter = ("commission_calculated", "development_key")
    search_fields = ("external_deal_id", "deal_name", "client_name", "deal_owner")
    date_hierarchy = "signing_date"
    inlines = [CommissionDistributionInline, PartnerCommissionInline]
    readonly_fields = (
        "development_key", "commission_calculated", "calculated_phase_sale_percent",
        "calculated_phase_post_sale_percent", "commission_total", "commission_sale_phase",
        "commission_post_sale_phase", "calculated_at", "created_at", "updated_at",
    )


@admin.register(ProductPartner)
class ProductPartnerAdmin(admin.ModelAdmin):
    list_display = ("product_id", "partner_name", "participation")
    search_fields = ("product_id", "partner_name")


@admin.register(HiddenPartner)
class HiddenPartnerAdmin(admin.ModelAdmin):
    list_display = ("partner_name", "reason", "created_at")
    search_fields = ("partner_name",)


@admin.register(BillingTarget)
class BillingTargetAdmin(admin.ModelAdmin):
    list_display = ("year", "month", "target_amount")
    list_filter = ("year",)


@admin.register(SalesTarget)
class SalesTargetAdmin(admin.ModelAdmin):
    list_display = ("year", "month", "target_amount")
    list_filter = ("year",)
