from django.contrib import admin

from referrals.models import CommissionSettings, FailedCommissionSettlement, ReferralCommission


@admin.register(ReferralCommission)
class ReferralCommissionAdmin(admin.ModelAdmin):
    list_display = ['id', 'referrer', 'referred_user', 'amount', 'token_amount',
                    'price_per_token', 'commission_rate', 'is_paid', 'is_rejected', 'created_at']
    list_filter = ['is_paid', 'is_rejected', 'year', 'month', 'created_at']
    search_fields = ['referrer__email', 'referred_user__email']
    readonly_fields = ['purchase', 'created_at', 'paid_at', 'paid_by', 'rejected_at', 'rejected_by']


@admin.register(CommissionSettings)
class CommissionSettingsAdmin(admin.ModelAdmin):
    list_display = ['referral_rate', 'updated_by', 'updated_at']
    readonly_fields = ['updated_at']

    def has_add_permission(self, request):
        return not CommissionSettings.objects.exists()

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(FailedCommissionSettlement)
class FailedCommissionSettlementAdmin(admin.ModelAdmin):
    list_display = ['purchase', 'attempts', 'resolved', 'last_attempt_at', 'created_at']
    list_filter = ['resolved']
    search_fields = ['purchase__reference_id', 'purchase__user__email']
    readonly_fields = ['purchase', 'error', 'created_at']
