from datetime import date
from decimal import Decimal

import pytest
from rest_framework.test import APIClient

from accounts.models import User
from commissions.models import (
    CommissionSale,
    DevelopmentConfig,
    GlobalRoleConfig,
    ProductPartner,
)


@pytest.fixture
def admin_user(db):
    return User.objects.create_user(
        email="admin@test.com",
        password="testpass123",
        first_name="Admin",
        last_name="User",
        role=User.Role.ADMIN,
    )


@pytest.fixture
def ceo_user(db):
    return User.objects.create_user(
        email="ceo@test.com",
        password="testpass123",
        first_name="Ceo",
        last_name="User",
        role=User.Role.CEO,
    )


@pytest.fixture
def finance_user(db):
    return User.objects.create_user(
        email="finance@test.com",
        password="testpass123",
        first_name="Finance",
        last_name="User",
        role=User.Role.FINANCE,
    )


@pytest.fixture
def sales_user(db):
    return User.objects.create_user(
        email="sales@test.com",
        password="testpass123",
        first_name="Sales",
        last_name="User",
        role=User.Role.SALES,
    )


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def admin_client(api_client, admin_user):
    api_client.force_authenticate(user=admin_user)
    return api_client


@pytest.fixture
def development_config(db):
    return DevelopmentConfig.objects.create(
        development="Torre Norte",
        phase_sale_percent=Decimal("3.000"),
        phase_post_sale_percent=Decimal("1.000"),
        sale_manager_percent=Decimal("0.500"),
        sale_manager_name="Gerente Uno",
        deal_owner_percent=Decimal("1.200"),
        external_advisor_percent=Decimal("1.000"),
    )


@pytest.fixture
def global_configs(db):
    values = {
        GlobalRoleConfig.Key.OPERATIONS_COORDINATOR: ("0.200", "Coordinadora Ops"),
        GlobalRoleConfig.Key.MARKETING: ("0.300", "Marketing MX"),
        GlobalRoleConfig.Key.LEGAL_MANAGER: ("0.100", "Legal MX"),
        GlobalRoleConfig.Key.POST_SALE_COORDINATOR: ("0.150", "Postventa MX"),
    }
    return {
        key: GlobalRoleConfig.objects.create(key=key, value=Decimal(value), payee_name=payee)
        for key, (value, payee) in values.items()
    }


@pytest.fixture
def sale(db):
    return CommissionSale.objects.create(
        external_deal_id="DEAL-0001",
        deal_name="Depto 101",
        client_name="Cliente Uno",
        development="Torre Norte",
        deal_owner="Ana Perez",
        deal_owner_external_id="owner-1",
        product_id="PROD-1",
        total_value=Decimal("2000000.00"),
        signing_date=date(2024, 3, 15),
        financing_term_months=6,
    )


@pytest.fixture
def partners(db):
    return [
        ProductPartner.objects.create(product_id="PROD-1", partner_name="Socio A", participation=Decimal("60")),
        ProductPartner.objects.create(product_id="PROD-1", partner_name="Socio B", participation=Decimal("40")),
    ]


@pytest.fixture
def calculated_sale(sale, development_config, global_configs, partners):
    from commissions.services import calculate_commission

    calculated, _ = calculate_commission(sale.pk)
    return calculated


class FakeConfigStore:
    """In-memory configuration store for calculator tests."""

    def __init__(self, config=None, globals_=None, payees=None):
        self.config = config
        self.globals = globals_ or {}
        self.payees = payees or {}

    def get_development_config(self, development):
        return self.config

    def get_global_percent(self, key):
        return Decimal(self.globals.get(key, "0"))

    def get_global_payee(self, key):
        return self.payees.get(key, "")


class FakeRuleEvaluator:
    """Records the pool it was given and returns no rule rows."""

    def __init__(self, rows=None):
        self.rows = rows or []
        self.pools = []

    def evaluate(self, sale, utility_pool):
        self.pools.append(utility_pool)
        return list(self.rows)


class FakeRegistry:
    def __init__(self, participants=None, error=None):
        self.participants = participants or []
        self.error = error

    def get_participants(self, product_id):
        if self.error is not None:
            raise self.error
        return list(self.participants)


@pytest.fixture
def fake_store():
    return FakeConfigStore


@pytest.fixture
def fake_evaluator():
    return FakeRuleEvaluator


@pytest.fixture
def fake_registry():
    return FakeRegistry
