"""Production settings."""
from django.core.exceptions import ImproperlyConfigured

from .base import *  # noqa: F401,F403
from .base import _is_weak_secret_key

DEBUG = False
ENABLE_DJANGO_ADMIN = env.bool("ENABLE_DJANGO_ADMIN", default=False)  # noqa: F405

# Security
SESSION_COOKIE_SECURE = True
CSRF_COOKIE_SECURE = True
JWT_AUTH_COOKIE_SECURE = True
SECURE_SSL_REDIRECT = env.bool("SECURE_SSL_REDIRECT", default=True)  # noqa: F405
SECURE_HSTS_SECONDS = 31536000
SECURE_HSTS_INCLUDE_SUBDOMAINS = True
CSRF_TRUSTED_ORIGINS = env.list("CSRF_TRUSTED_ORIGINS", default=[])  # noqa: F405
if env.bool("USE_X_FORWARDED_PROTO", default=True):  # noqa: F405
    SECURE_PROXY_SSL_HEADER = ("HTTP_X_FORWARDED_PROTO", "https")

# Refuse to boot with an unsafe deployment
_problems = []
if _is_weak_secret_key(SECRET_KEY):  # noqa: F405
    _problems.append("SECRET_KEY es demasiado debil; use una clave larga y aleatoria.")
if not SECURE_SSL_REDIRECT:
    _problems.append("SECURE_SSL_REDIRECT debe estar activo.")
if not CORS_ALLOWED_ORIGINS:  # noqa: F405
    _problems.append("CORS_ALLOWED_ORIGINS debe configurarse.")
if _problems:
    raise ImproperlyConfigured("Configuracion de produccion invalida: " + " ".join(_problems))
