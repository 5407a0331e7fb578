import pytest

from accounts.models import User


@pytest.mark.django_db
def test_create_user_normalizes_email_and_defaults_to_sales():
    user = User.objects.create_user(
        email="Vendedor@Example.COM",
        password="testpass123",
        first_name="Luis",
        last_name="Gomez",
    )

    assert user.email == "Vendedor@example.com"
    assert user.role == User.Role.SALES
    assert user.check_password("testpass123")
    assert user.can_record_payments is False
    assert str(user) == "Luis Gomez"


@pytest.mark.django_db
def test_create_user_requires_email():
    with pytest.raises(ValueError):
        User.objects.create_user(email="", password="x")


@pytest.mark.django_db
def test_create_superuser_is_admin():
    user = User.objects.create_superuser(
        email="root@example.com",
        password="testpass123",
        first_name="Root",
        last_name="User",
    )

    assert user.is_admin
    assert user.is_staff
    assert user.can_manage_commissions


@pytest.mark.django_db
def test_role_helpers(ceo_user, finance_user):
    assert ceo_user.is_ceo
    assert ceo_user.can_manage_commissions
    assert finance_user.is_finance
    assert finance_user.can_manage_commissions is False
    assert finance_user.can_record_payments is True
