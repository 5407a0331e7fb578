"""Main API URL router for /api/v1/."""
from django.urls import include, path
from rest_framework.routers import DefaultRouter

from api.auth_views import (
    CookieTokenObtainPairView,
    CookieTokenRefreshView,
    CSRFTokenAPIView,
    LogoutAPIView,
    MeView,
)
from commissions import commission_views

router = DefaultRouter()
router.register(r'commissions/development-configs', commission_views.DevelopmentConfigViewSet, basename='development-config')
router.register(r'commissions/global-configs', commission_views.GlobalRoleConfigViewSet, basename='global-config')
router.register(r'commissions/rules', commission_views.CommissionRuleViewSet, basename='commission-rule')
router.register(r'commissions/billing-targets', commission_views.BillingTargetViewSet, basename='billing-target')
router.register(r'commissions/sales-targets', commission_views.SalesTargetViewSet, basename='sales-target')
router.register(r'commissions/hidden-partners', commission_views.HiddenPartnerViewSet, basename='hidden-partner')
router.register(r'commissions/sales', commission_views.CommissionSaleViewSet, basename='commission-sale')
router.register(r'commissions/distributions', commission_views.CommissionDistributionViewSet, basename='commission-distribution')
router.register(r'commissions/partner-commissions', commission_views.PartnerCommissionViewSet, basename='partner-commission')


app_name = 'api'
urlpatterns = [
    path('', include(router.urls)),

    # Auth endpoints
    path('auth/csrf/', CSRFTokenAPIView.as_view(), name='auth-csrf'),
    path('auth/token/', CookieTokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('auth/token/refresh/', CookieTokenRefreshView.as_view(), name='token_refresh'),
    path('auth/logout/', LogoutAPIView.as_view(), name='auth-logout'),
    path('auth/me/', MeView.as_view(), name='auth-me'),

    # Commission reports
    path('commissions/reports/partners/', commission_views.PartnerReportView.as_view(), name='commission-report-partners'),
    path('commissions/reports/internal/', commission_views.InternalReportView.as_view(), name='commission-report-internal'),
]
