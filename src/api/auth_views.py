"""Login, refresh and logout for the back-office, with JWTs kept in HttpOnly cookies."""

import logging

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from django.middleware import csrf
from django.utils.decorators import method_decorator
from django.views.decorators.csrf import ensure_csrf_cookie
from rest_framework import permissions, status
from rest_framework.response import Response
from rest_framework.throttling import ScopedRateThrottle
from rest_framework.views import APIView
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

from api.serializers import CustomTokenObtainPairSerializer, MeSerializer

logger = logging.getLogger("comisiones")

FALLBACK_AUTH_RATE = "5/min"


class SafeScopedRateThrottle(ScopedRateThrottle):
    """Scoped throttle that degrades to a strict rate when its scope is not configured."""

    def get_rate(self):
        try:
            return super().get_rate()
        except ImproperlyConfigured:
            logger.warning("Throttle scope %r has no rate, using %s", self.scope, FALLBACK_AUTH_RATE)
            return FALLBACK_AUTH_RATE


class AuthCookies:
    """Names and attributes of the access/refresh cookies, read from settings."""

    @staticmethod
    def access_name():
        return getattr(settings, "JWT_AUTH_COOKIE", "access_token")

    @staticmethod
    def refresh_name():
        return getattr(settings, "JWT_AUTH_REFRESH_COOKIE", "refresh_token")

    @staticmethod
    def scope():
        return {
            "path": getattr(settings, "JWT_AUTH_COOKIE_PATH", "/"),
            "domain": getattr(settings, "JWT_AUTH_COOKIE_DOMAIN", None),
        }

    @classmethod
    def attach(cls, response, *, access, refresh=None):
        options = {
            "httponly": True,
            "secure": getattr(settings, "JWT_AUTH_COOKIE_SECURE", not settings.DEBUG),
            "samesite": getattr(settings, "JWT_AUTH_COOKIE_SAMESITE", "Lax"),
            **cls.scope(),
        }
        lifetimes = settings.SIMPLE_JWT
        response.set_cookie(
            cls.access_name(),
            access,
            max_age=int(lifetimes["ACCESS_TOKEN_LIFETIME"].total_seconds()),
            **options,
        )
        if refresh:
            response.set_cookie(
                cls.refresh_name(),
                refresh,
                max_age=int(lifetimes["REFRESH_TOKEN_LIFETIME"].total_seconds()),
                **options,
            )
        return response

    @classmethod
    def clear(cls, response):
        for name in (cls.access_name(), cls.refresh_name()):
            response.delete_cookie(name, **cls.scope())
        return response


def _tokens_in_body():
    return getattr(settings, "JWT_RETURN_TOKENS_IN_BODY", False)


class CookieTokenObtainPairView(TokenObtainPairView):
    """POST email/password -> user profile, tokens set as cookies."""

    serializer_class = CustomTokenObtainPairSerializer
    throttle_classes = [SafeScopedRateThrottle]
    throttle_scope = "auth_burst"
    permission_classes = [permissions.AllowAny]

    def post(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        tokens = serializer.validated_data

        body = {"user": tokens["user"]}
        if _tokens_in_body():
            body.update(access=tokens["access"], refresh=tokens["refresh"])
        logger.info("Login %s", tokens["user"].get("email"))
        return AuthCookies.attach(Response(body), access=tokens["access"], refresh=tokens["refresh"])


class CookieTokenRefreshView(TokenRefreshView):
    """Rotate the access token; the refresh token may come from the body or its cookie."""

    throttle_classes = [SafeScopedRateThrottle]
    throttle_scope = "auth_sustained"
    permission_classes = [permissions.AllowAny]

    def post(self, request, *args, **kwargs):
        data = {"refresh": request.data.get("refresh") or request.COOKIES.get(AuthCookies.refresh_name(), "")}
        serializer = self.get_serializer(data=data)
        serializer.is_valid(raise_exception=True)

        access = serializer.validated_data["access"]
        refresh = serializer.validated_data.get("refresh", data["refresh"])
        body = {"detail": "Token renovado."}
        if _tokens_in_body():
            body.update(access=access, refresh=refresh)
        return AuthCookies.attach(Response(body), access=access, refresh=refresh)


class LogoutAPIView(APIView):
    permission_classes = [permissions.AllowAny]

    def post(self, request):
        return AuthCookies.clear(Response(status=status.HTTP_204_NO_CONTENT))


@method_decorator(ensure_csrf_cookie, name="dispatch")
class CSRFTokenAPIView(APIView):
    """GET a CSRF token for cookie-authenticated unsafe requests."""

    permission_classes = [permissions.AllowAny]

    def get(self, request):
        return Response({"csrfToken": csrf.get_token(request)})


class MeView(APIView):
    """GET /api/v1/auth/me/ - the authenticated user's profile."""

    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        return Response(MeSerializer(request.user).data)
