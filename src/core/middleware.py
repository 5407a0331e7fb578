"""Request-scoped audit context and API cache headers."""
import threading

from django.conf import settings
from django.utils.cache import patch_cache_control

_request_context = threading.local()


def get_current_user():
    """User of the request being served on this thread, if authenticated."""
    return getattr(_request_context, "user", None)


def get_current_ip():
    return getattr(_request_context, "ip", None)


def client_ip(request):
    """Best-effort client address, honouring one proxy hop when configured."""
    if getattr(settings, "AUDIT_TRUST_X_FORWARDED_FOR", False):
        forwarded = request.META.get("HTTP_X_FORWARDED_FOR", "")
        if forwarded:
            return forwarded.split(",")[0].strip() or None
    return request.META.get("REMOTE_ADDR") or None


class AuditLogMiddleware:
    """Expose the acting user and address to ``core.services.create_audit_log``.

    Commission services run deep below the view layer; they read the actor
    from here when the caller does not pass one explicitly.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        user = getattr(request, "user", None)
        _request_context.user = user if user is not None and user.is_authenticated else None
        _request_context.ip = client_ip(request)
        try:
            return self.get_response(request)
        finally:
            _request_context.user = None
            _request_context.ip = None


class NoStoreAPIMiddleware:
    """Mark every response under the API prefix as non-cacheable."""

    def __init__(self, get_response):
        self.get_response = get_response
        self.prefix = getattr(settings, "API_URL_PREFIX", "/api/")

    def __call__(self, request):
        response = self.get_response(request)
        if not request.path.startswith(self.prefix):
            return response

        patch_cache_control(response, private=True, no_cache=True, no_store=True, must_revalidate=True, max_age=0)
        response["Pragma"] = "no-cache"
        response["Expires"] = "0"
        return response
