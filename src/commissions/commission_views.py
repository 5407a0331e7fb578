"""API views for the commissions module."""
from __future__ import annotations

import logging

from django.utils import timezone
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import NotFound
from rest_framework.response import Response
from rest_framework.views import APIView

from api.permissions import CanRecordPayments, IsCommissionManager
from commissions import services
from commissions.commission_serializers import (
    BillingTargetSerializer,
    CalculateInputSerializer,
    CashPaymentInputSerializer,
    CollectionStatusInputSerializer,
    CommissionDistributionSerializer,
    CommissionRuleSerializer,
    CommissionSaleSerializer,
    DevelopmentConfigSerializer,
    GlobalRoleConfigSerializer,
    HiddenPartnerSerializer,
    InvoiceInputSerializer,
    PartnerCommissionSerializer,
    PartnerInvoiceInputSerializer,
    PaymentStatusInputSerializer,
    SaleIngestSerializer,
    SalesTargetSerializer,
    TriggerPostSaleInputSerializer,
)
from commissions.exceptions import (
    AlreadyCalculated,
    CommissionError,
    ConflictError,
    ExternalDependencyError,
    NotFoundError,
    ValidationError,
)
from commissions.ingestion import upsert_sale
from commissions.models import (
    BillingTarget,
    CommissionDistribution,
    CommissionRule,
    CommissionSale,
    DevelopmentConfig,
    GlobalRoleConfig,
    HiddenPartner,
    PartnerCommission,
    SalesTarget,
    normalize_development,
)
from commissions.reports import internal_monthly_report, partner_monthly_report
from core.export import rows_to_csv_response

logger = logging.getLogger(__name__)


# ────────────────────────────────────────────────────────────
# Error translation
# ────────────────────────────────────────────────────────────

def commission_error_response(exc: CommissionError) -> Response:
    if isinstance(exc, AlreadyCalculated):
        rows = CommissionDistributionSerializer(exc.existing_rows, many=True).data
        return Response(
            {"detail": exc.message, "sale": str(exc.sale.pk), "existing_distributions": rows},
            status=status.HTTP_409_CONFLICT,
        )
    if isinstance(exc, ConflictError):
        return Response({"detail": exc.message}, status=status.HTTP_409_CONFLICT)
    if isinstance(exc, ValidationError):
        return Response({"detail": exc.message, "errors": exc.errors}, status=status.HTTP_400_BAD_REQUEST)
    if isinstance(exc, NotFoundError):
        return Response({"detail": exc.message}, status=status.HTTP_404_NOT_FOUND)
    if isinstance(exc, ExternalDependencyError):
        return Response({"detail": exc.message}, status=status.HTTP_502_BAD_GATEWAY)
    return Response({"detail": exc.message}, status=status.HTTP_400_BAD_REQUEST)


class CommissionErrorMixin:
    """Render commission domain errors as HTTP responses."""

    def handle_exception(self, exc):
        if isinstance(exc, CommissionError):
            logger.info("%s on %s: %s", type(exc).__name__, self.request.path, exc)
            return commission_error_response(exc)
        return super().handle_exception(exc)


# ────────────────────────────────────────────────────────────
# Configuration
# ────────────────────────────────────────────────────────────

class DevelopmentConfigViewSet(
    CommissionErrorMixin,
    mixins.CreateModelMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.UpdateModelMixin,
    viewsets.GenericViewSet,
):
    queryset = DevelopmentConfig.objects.all()
    serializer_class = DevelopmentConfigSerializer
    permission_classes = [IsCommissionManager]
    search_fields = ["development", "display_name"]
    ordering_fields = ["development", "updated_at"]

    def perform_create(self, serializer):
        serializer.instance = services.save_development_config(
            dict(serializer.validated_data), actor=self.request.user,
        )

    def perform_update(self, serializer):
        data = dict(serializer.validated_data)
        current = serializer.instance.development
        if normalize_development(data.setdefault("development", current)) != current:
            raise ValidationError("El desarrollo de una configuracion no puede cambiarse.")
        data["development"] = current
        serializer.instance = services.save_development_config(data, actor=self.request.user)


class GlobalRoleConfigViewSet(
    CommissionErrorMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.UpdateModelMixin,
    viewsets.GenericViewSet,
):
    queryset = GlobalRoleConfig.objects.all()
    serializer_class = GlobalRoleConfigSerializer
    permission_classes = [IsCommissionManager]
    lookup_field = "key"
    pagination_class = None

    def update(self, request, *args, **kwargs):
        key = kwargs.get(self.lookup_field)
        if key not in GlobalRoleConfig.Key.values:
            raise NotFound("Clave de configuracion global desconocida.")
        instance = GlobalRoleConfig.objects.filter(key=key).first()
        serializer = self.get_serializer(instance, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        value = serializer.validated_data.get("value", instance.value if instance else 0)
        config = services.save_global_config(
            key,
            value,
            payee_name=serializer.validated_data.get("payee_name"),
            actor=request.user,
        )
        return Response(self.get_serializer(config).data)


class CommissionRuleViewSet(CommissionErrorMixin, viewsets.ModelViewSet):
    serializer_class = CommissionRuleSerializer
    permission_classes = [IsCommissionManager]
    filterset_fields = ["is_active", "period_type"]
    search_fields = ["name", "development"]
    ordering_fields = ["priority", "name", "created_at"]

    def get_queryset(self):
        qs = CommissionRule.objects.all()
        development = self.request.query_params.get("development")
        if development:
            qs = qs.filter(development=normalize_development(development))
        return qs

    def perform_create(self, serializer):
        serializer.instance = services.save_rule(dict(serializer.validated_data), actor=self.request.user)

    def perform_update(self, serializer):
        serializer.instance = services.save_rule(
            dict(serializer.validated_data),
            instance=serializer.instance,
            actor=self.request.user,
        )

    def perform_destroy(self, instance):
        services.delete_rule(instance, actor=self.request.user)


class BillingTargetViewSet(viewsets.ModelViewSet):
    queryset = BillingTarget.objects.all()
    serializer_class = BillingTargetSerializer
    permission_classes = [IsCommissionManager]
    filterset_fields = ["year"]


class SalesTargetViewSet(viewsets.ModelViewSet):
    queryset = SalesTarget.objects.all()
    serializer_class = SalesTargetSerializer
    permission_classes = [IsCommissionManager]
    filterset_fields = ["year"]


class HiddenPartnerViewSet(
    mixins.CreateModelMixin,
    mixins.ListModelMixin,
    mixins.DestroyModelMixin,
    viewsets.GenericViewSet,
):
    queryset = HiddenPartner.objects.all()
    serializer_class = HiddenPartnerSerializer
    permission_classes = [IsCommissionManager]
    pagination_class = None


# ────────────────────────────────────────────────────────────
# Sales
# ────────────────────────────────────────────────────────────

class CommissionSaleViewSet(CommissionErrorMixin, viewsets.ReadOnlyModelViewSet):
    """
    Sales with their derived commission statuses.

    POST /sales/{id}/calculate/          {"recalculate": false}
    GET  /sales/{id}/distributions/
    POST /sales/{id}/reset/
    POST /sales/{id}/trigger-post-sale/  {"triggered_by": "..."}
    POST /sales/ingest/                  CRM payload
    """

    queryset = CommissionSale.objects.prefetch_related("distributions", "partner_commissions")
    serializer_class = CommissionSaleSerializer
    filterset_fields = ["commission_calculated", "development_key", "product_id"]
    search_fields = ["external_deal_id", "deal_name", "client_name", "deal_owner", "development"]
    ordering_fields = ["signing_date", "total_value", "commission_total", "created_at"]

    def get_permissions(self):
        if self.action in ("list", "retrieve", "distributions"):
            return [CanRecordPayments()]
        return [IsCommissionManager()]

    @action(detail=True, methods=["post"])
    def calculate(self, request, pk=None):
        payload = CalculateInputSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        sale, rows = services.calculate_commission(
            pk,
            recalculate=payload.validated_data["recalculate"],
            actor=request.user,
        )
        sale = self.get_queryset().get(pk=sale.pk)
        return Response(
            {
                "sale": CommissionSaleSerializer(sale).data,
                "distributions": CommissionDistributionSerializer(rows, many=True).data,
            },
            status=status.HTTP_201_CREATED,
        )

    @action(detail=True, methods=["get"])
    def distributions(self, request, pk=None):
        sale = self.get_object()
        rows = sale.distributions.order_by("position")
        return Response(CommissionDistributionSerializer(rows, many=True).data)

    @action(detail=True, methods=["post"])
    def reset(self, request, pk=None):
        sale = services.delete_commission(pk, actor=request.user)
        sale = self.get_queryset().get(pk=sale.pk)
        return Response(CommissionSaleSerializer(sale).data)

    @action(detail=True, methods=["post"], url_path="trigger-post-sale")
    def trigger_post_sale(self, request, pk=None):
        payload = TriggerPostSaleInputSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        sale = services.trigger_post_sale(
            pk, triggered_by=payload.validated_data["triggered_by"], actor=request.user,
        )
        sale = self.get_queryset().get(pk=sale.pk)
        return Response(CommissionSaleSerializer(sale).data)

    @action(detail=False, methods=["post"])
    def ingest(self, request):
        payload = SaleIngestSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        sale, created = upsert_sale(dict(payload.validated_data))
        sale = self.get_queryset().get(pk=sale.pk)
        return Response(
            CommissionSaleSerializer(sale).data,
            status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
        )


# ────────────────────────────────────────────────────────────
# Ledger rows
# ────────────────────────────────────────────────────────────

class CommissionDistributionViewSet(
    CommissionErrorMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    queryset = CommissionDistribution.objects.select_related("sale")
    serializer_class = CommissionDistributionSerializer
    permission_classes = [CanRecordPayments]
    filterset_fields = ["sale", "phase", "role_type", "payment_status"]
    search_fields = ["payee_name", "rule_name"]
    ordering_fields = ["position", "amount", "created_at"]

    @action(detail=True, methods=["post"], url_path="payment-status")
    def payment_status(self, request, pk=None):
        payload = PaymentStatusInputSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        row = services.set_payment_status(pk, payload.validated_data["payment_status"], actor=request.user)
        return Response(self.get_serializer(row).data)

    @action(detail=True, methods=["post"])
    def invoice(self, request, pk=None):
        payload = InvoiceInputSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        row = services.attach_distribution_invoice(pk, payload.validated_data["reference"], actor=request.user)
        return Response(self.get_serializer(row).data)


class PartnerCommissionViewSet(
    CommissionErrorMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    queryset = PartnerCommission.objects.select_related("sale")
    serializer_class = PartnerCommissionSerializer
    permission_classes = [CanRecordPayments]
    filterset_fields = [
        "sale", "partner_name", "sale_phase_collection_status", "post_sale_phase_collection_status",
    ]
    search_fields = ["partner_name", "sale__deal_name"]
    ordering_fields = ["partner_name", "total_amount", "created_at"]

    @action(detail=True, methods=["post"], url_path="collection-status")
    def collection_status(self, request, pk=None):
        payload = CollectionStatusInputSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        pc = services.set_collection_status(
            pk, payload.validated_data["phase"], payload.validated_data["status"], actor=request.user,
        )
        return Response(self.get_serializer(pc).data)

    @action(detail=True, methods=["post"], url_path="cash-payment")
    def cash_payment(self, request, pk=None):
        payload = CashPaymentInputSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        pc = services.set_cash_payment(
            pk, payload.validated_data["phase"], payload.validated_data["is_cash_payment"], actor=request.user,
        )
        return Response(self.get_serializer(pc).data)

    @action(detail=True, methods=["post"])
    def invoice(self, request, pk=None):
        payload = PartnerInvoiceInputSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        pc = services.attach_partner_invoice(
            pk, payload.validated_data["phase"], payload.validated_data["reference"], actor=request.user,
        )
        return Response(self.get_serializer(pc).data)


# ────────────────────────────────────────────────────────────
# Reports
# ────────────────────────────────────────────────────────────

def _report_year(request):
    raw = request.query_params.get("year")
    if not raw:
        return timezone.localdate().year
    try:
        return int(raw)
    except ValueError:
        raise ValidationError("El parametro year debe ser un ano valido.")


class PartnerReportView(CommissionErrorMixin, APIView):
    """
    GET /api/v1/commissions/reports/partners/?year=YYYY&include_hidden=1&export=csv
    Monthly partner commissions against billing targets.
    """
    permission_classes = [CanRecordPayments]

    def get(self, request):
        year = _report_year(request)
        include_hidden = request.query_params.get("include_hidden") in ("1", "true", "True")
        report = partner_monthly_report(year, include_hidden=include_hidden)
        if request.query_params.get("export") == "csv":
            return rows_to_csv_response(
                report["months"],
                [
                    ("month", "Mes"),
                    ("sale_phase_amount", "Fase venta"),
                    ("post_sale_phase_amount", "Fase postventa"),
                    ("total_amount", f"Total ({report['currency']})"),
                    ("collected_amount", "Cobrado"),
                    ("pending_amount", "Pendiente"),
                    ("target_amount", "Meta"),
                ],
                f"socios_{year}",
            )
        return Response(report)


class InternalReportView(CommissionErrorMixin, APIView):
    """
    GET /api/v1/commissions/reports/internal/?year=YYYY&export=csv
    Monthly internal commissions, paid vs pending per phase, with sales volume against sales targets.
    """
    permission_classes = [CanRecordPayments]

    def get(self, request):
        year = _report_year(request)
        report = internal_monthly_report(year)
        if request.query_params.get("export") == "csv":
            return rows_to_csv_response(
                report["months"],
                [
                    ("month", "Mes"),
                    ("sale_phase_paid", "Fase venta pagado"),
                    ("sale_phase_pending", "Fase venta pendiente"),
                    ("post_sale_phase_paid", "Fase postventa pagado"),
                    ("post_sale_phase_pending", "Fase postventa pendiente"),
                    ("total_amount", f"Total ({report['currency']})"),
                    ("sales_amount", "Ventas"),
                    ("sales_target_amount", "Meta de ventas"),
                ],
                f"comisiones_internas_{year}",
            )
        return Response(report)
