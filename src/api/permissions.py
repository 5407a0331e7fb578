"""Role-based permissions for the commission API."""
from rest_framework.permissions import BasePermission


class IsCommissionManager(BasePermission):
    """Allow access to ADMIN and CEO users (and superusers)."""

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False
        if user.is_superuser:
            return True
        return getattr(user, "role", None) in ("ADMIN", "CEO")


class CanRecordPayments(BasePermission):
    """Allow ADMIN, CEO and FINANCE users to move payment/collection statuses."""

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False
        if user.is_superuser:
            return True
        return getattr(user, "role", None) in ("ADMIN", "CEO", "FINANCE")
