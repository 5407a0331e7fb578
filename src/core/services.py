"""Service / helper functions for the core app."""
from __future__ import annotations

from typing import Any

from core.middleware import get_current_ip, get_current_user
from core.models import AuditLog


def create_audit_log(
    actor,
    action: str,
    entity_type: str,
    entity_id: str,
    before: dict[str, Any] | None = None,
    after: dict[str, Any] | None = None,
    ip: str | None = None,
) -> AuditLog:
    """Create and return a new :class:`~core.models.AuditLog` entry.

    When ``actor`` or ``ip`` is None the request-scoped values captured by
    :class:`core.middleware.AuditLogMiddleware` are used, if any.
    """
    if actor is None:
        actor = get_current_user()
    if ip is None:
        ip = get_current_ip()
    return AuditLog.objects.create(
        actor=actor,
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id),
        before_json=before,
        after_json=after,
        ip_address=ip,
    )
