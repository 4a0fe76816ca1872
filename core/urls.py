# core/urls.py
from django.contrib import admin
from django.urls import path, re_path, include
from rest_framework.routers import DefaultRouter
from rest_framework_simplejwt.views import TokenRefreshView
from drf_spectacular.views import (
    SpectacularAPIView,
    SpectacularSwaggerView,
    SpectacularRedocView,
)

from users.views import (
    AdminUserViewSet, CustomLoginView, LoginHistoryView, PasswordResetConfirmView, PasswordResetRequestView,
    PasswordResetValidateView, TrackLoginView, UserBalanceView, UserLogoutView, UserProfileView,
    UserRegistrationView,
)
from funds.views import (
    AdminTransactionViewSet, AdminWithdrawalViewSet, ConfirmPaymentView, ManualDepositView,
    TransactionViewSet, UsdtWithdrawalView, WithdrawalActionView, WithdrawalViewSet,
)
from tokens.views import (
    AdminStakingViewSet, ConversionHistoryView, ConvertToUsdtView, CurrentPriceView,
    PurchaseFromBalanceView, PurchaseView, StakingViewSet, TokenPriceAdminView,
)
from referrals.views import AdminCommissionViewSet, CommissionSettingsView, ReferralViewSet
from notifications.views import AdminNotificationView, NotificationViewSet
from reports.views import DashboardView, ReportView

from django.http import JsonResponse
from django.db import connection


def health_check(request):
    """Health check endpoint for monitoring"""
    try:
        # Check database
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")

        # Check cache
        from django.core.cache import cache
        cache.set('health_check', 'ok', 10)
        cache.get('health_check')

        return JsonResponse({
            'status': 'healthy',
            'database': 'ok',
            'cache': 'ok',
        })
    except Exception as e:
        return JsonResponse({
            'status': 'unhealthy',
            'error': str(e)
        }, status=500)


# Create router
router = DefaultRouter()

# Account
router.register(r'transactions', TransactionViewSet, basename='transaction')
router.register(r'withdrawals', WithdrawalViewSet, basename='withdrawal')
router.register(r'staking', StakingViewSet, basename='staking')
router.register(r'referrals', ReferralViewSet, basename='referral')
router.register(r'notifications', NotificationViewSet, basename='notification')

# Back office
router.register(r'admin/users', AdminUserViewSet, basename='admin-user')
router.register(r'admin/transactions', AdminTransactionViewSet, basename='admin-transaction')
router.register(r'admin/withdrawals', AdminWithdrawalViewSet, basename='admin-withdrawal')
router.register(r'admin/commissions', AdminCommissionViewSet, basename='admin-commission')
router.register(r'admin/staking', AdminStakingViewSet, basename='admin-staking')

urlpatterns = [
    # Admin
    path('admin/', admin.site.urls),
    path('health/', health_check, name='health_check'),

    # API Documentation
    path('api/schema/', SpectacularAPIView.as_view(), name='schema'),
    path('api/docs/', SpectacularSwaggerView.as_view(url_name='schema'),
         name='swagger-ui'),
    path('api/redoc/', SpectacularRedocView.as_view(url_name='schema'),
         name='redoc'),

    # Authentication
    path('api/v1/auth/register/', UserRegistrationView.as_view(),
         name='registration'),
    path('api/v1/auth/login/', CustomLoginView.as_view(),
         name='token_obtain_pair'),
    path('api/v1/auth/refresh/', TokenRefreshView.as_view(),
         name='token_refresh'),

    # Password Reset
    path('api/v1/auth/password/reset/', PasswordResetRequestView.as_view(), name='reset-request'),
    path('api/v1/auth/password/reset/validate/<str:uidb64>/<str:token>/', PasswordResetValidateView.as_view(), name='password-reset-validate'),
    path('api/v1/auth/password/reset/confirm/<str:uidb64>/<str:token>/', PasswordResetConfirmView.as_view(), name='password-reset-confirm'),

    path('api/v1/auth/me/', UserProfileView.as_view(), name='user-profile'),
    path('api/v1/auth/balance/', UserBalanceView.as_view(), name='user-balance'),
    path('api/v1/auth/logout/', UserLogoutView.as_view(), name='logout'),
    path('api/v1/auth/track-login/', TrackLoginView.as_view(), name='track-login'),
    path('api/v1/auth/security/login-history/', LoginHistoryView.as_view(), name='login-history'),

    # Token sale
    re_path(r'^api/tokens/current-price/?$', CurrentPriceView.as_view(), name='current-price'),
    re_path(r'^api/tokens/purchase/?$', PurchaseView.as_view(), name='token-purchase'),
    re_path(r'^api/tokens/purchase-from-balance/?$', PurchaseFromBalanceView.as_view(),
            name='purchase-from-balance'),
    re_path(r'^api/tokens/stake/?$', StakingViewSet.as_view({'post': 'stake'}), name='token-stake'),
    re_path(r'^api/tokens/staking/?$', StakingViewSet.as_view({'get': 'list'}), name='token-staking'),
    re_path(r'^api/tokens/withdraw/?$', WithdrawalViewSet.as_view({'post': 'create'}), name='token-withdraw'),
    re_path(r'^api/tokens/convert-to-usdt/?$', ConvertToUsdtView.as_view(), name='convert-to-usdt'),
    re_path(r'^api/tokens/conversions/?$', ConversionHistoryView.as_view(), name='token-conversions'),

    # USDT balance
    re_path(r'^api/usdt/withdraw/?$', UsdtWithdrawalView.as_view(), name='usdt-withdraw'),
    re_path(r'^api/usdt/withdrawals/?$', UsdtWithdrawalView.as_view(), name='usdt-withdrawals'),

    # Admin operations
    re_path(r'^api/admin/confirm-payment/?$', ConfirmPaymentView.as_view(), name='confirm-payment'),
    re_path(r'^api/admin/manual-deposit/?$', ManualDepositView.as_view(), name='manual-deposit'),
    re_path(r'^api/admin/token-price/?$', TokenPriceAdminView.as_view(), name='admin-token-price'),
    re_path(r'^api/admin/withdrawals/approve/?$', WithdrawalActionView.as_view(), name='withdrawal-action'),
    re_path(r'^api/admin/commission-settings/?$', CommissionSettingsView.as_view(), name='commission-settings'),
    re_path(r'^api/admin/notifications/?$', AdminNotificationView.as_view(), name='admin-notifications'),
    re_path(r'^api/admin/reports/?$', ReportView.as_view(), name='admin-reports'),
    re_path(r'^api/admin/dashboard/?$', DashboardView.as_view(), name='admin-dashboard'),

    # API Routes
    path('api/v1/', include(router.urls)),
]
