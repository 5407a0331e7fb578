import json
import logging
from decimal import Decimal
from types import SimpleNamespace

import pytest

from core.export import rows_to_csv_response
from core.logging import JSONFormatter
from core.middleware import AuditLogMiddleware, get_current_user
from core.models import AuditLog
from core.services import create_audit_log


def test_json_formatter_merges_extra_fields():
    record = logging.makeLogRecord({
        "name": "comisiones",
        "levelname": "INFO",
        "msg": "Sale %s calculated",
        "args": ("DEAL-1",),
        "sale_id": "DEAL-1",
    })

    payload = json.loads(JSONFormatter().format(record))

    assert payload["message"] == "Sale DEAL-1 calculated"
    assert payload["logger"] == "comisiones"
    assert payload["sale_id"] == "DEAL-1"


def test_csv_export_writes_bom_header_and_rows():
    response = rows_to_csv_response(
        [{"month": 1, "total_amount": Decimal("10.50"), "target_amount": None}],
        [("month", "Mes"), ("total_amount", "Total"), ("target_amount", "Meta")],
        "reporte",
    )

    content = response.content.decode("utf-8")
    assert content.startswith("\ufeffMes,Total,Meta")
    assert "1,10.50," in content
    assert response["Content-Disposition"] == 'attachment; filename="reporte.csv"'


@pytest.mark.django_db
def test_audit_log_falls_back_to_request_user(admin_user):
    captured = {}

    def view(request):
        captured["log"] = create_audit_log(
            actor=None, action="TEST", entity_type="CommissionSale", entity_id="1",
        )
        return SimpleNamespace()

    middleware = AuditLogMiddleware(view)
    middleware(SimpleNamespace(user=admin_user, META={"REMOTE_ADDR": "10.0.0.7"}))

    assert captured["log"].actor == admin_user
    assert captured["log"].ip_address == "10.0.0.7"
    assert get_current_user() is None
    assert AuditLog.objects.count() == 1


@pytest.mark.django_db
def test_api_responses_are_not_cached(client):
    response = client.get("/api/v1/auth/csrf/")

    assert "no-store" in response["Cache-Control"]
    assert response["Pragma"] == "no-cache"
