# users/admin.py
from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from users.models import LoginHistory, User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ['email', 'username', 'role', 'total_tokens', 'usdt_balance',
                    'referral_earnings', 'is_active', 'created_at']
    list_filter = ['role', 'is_active', 'is_staff']
    search_fields = ['email', 'username', 'referral_code']
    ordering = ['-created_at']
    readonly_fields = ['referral_code', 'referred_by', 'created_at', 'updated_at']

    fieldsets = (
        (None, {'fields': ('first_name', 'last_name', 'email', 'username', 'password')}),
        ('Personal Info', {'fields': ('phone_number', 'country', 'state', 'wallet_address')}),
        ('Balances', {'fields': ('total_tokens', 'available_tokens', 'staked_tokens',
                                 'usdt_balance', 'referral_earnings', 'total_earnings')}),
        ('Referral Info', {'fields': ('referral_code', 'referred_by')}),
        ('Permissions', {
            'fields': ('role', 'is_active', 'is_staff', 'is_superuser', 'groups', 'user_permissions'),
        }),
        ('Important Dates', {'fields': ('last_login', 'date_joined', 'created_at', 'updated_at')}),
    )

    add_fieldsets = (
        (None, {
            'classes': ('wide',),
            'fields': ('email', 'username', 'password1', 'password2'),
        }),
    )


@admin.register(LoginHistory)
class LoginHistoryAdmin(admin.ModelAdmin):
    list_display = ['user', 'status', 'ip_address', 'location', 'device_type', 'browser', 'created_at']
    list_filter = ['status', 'device_type', 'browser', 'created_at']
    search_fields = ['user__email', 'ip_address']
    readonly_fields = ['created_at']
