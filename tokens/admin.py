from django.contrib import admin

from tokens.models import StakingRecord, TokenPrice


@admin.register(TokenPrice)
class TokenPriceAdmin(admin.ModelAdmin):
    list_display = ['date', 'price', 'updated_at']
    ordering = ['-date']


@admin.register(StakingRecord)
class StakingRecordAdmin(admin.ModelAdmin):
    list_display = ['user', 'amount', 'apy', 'status', 'start_date', 'end_date']
    list_filter = ['status', 'start_date']
    search_fields = ['user__email']
    readonly_fields = ['created_at']
