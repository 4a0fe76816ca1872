from django.contrib import admin

from funds.models import Transaction, WithdrawalRequest


@admin.register(Transaction)
class TransactionAdmin(admin.ModelAdmin):
    list_display = ['reference_id', 'user', 'transaction_type', 'amount', 'token_amount',
                    'price_per_token', 'status', 'payment_method', 'created_at', 'completed_at']
    search_fields = ['reference_id', 'tx_hash', 'user__email', 'user__username']
    list_filter = ['transaction_type', 'status', 'payment_method', 'created_at']
    readonly_fields = ['reference_id', 'created_at', 'updated_at', 'completed_at']

    fieldsets = (
        ('User & Type', {
            'fields': ('user', 'transaction_type', 'status')
        }),
        ('Amounts', {
            'fields': ('amount', 'token_amount', 'price_per_token')
        }),
        ('Payment Details', {
            'fields': ('payment_method', 'tx_hash', 'wallet_address', 'description')
        }),
        ('Processing', {
            'fields': ('admin_notes', 'processed_by', 'reference_id')
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at', 'completed_at')
        })
    )


@admin.register(WithdrawalRequest)
class WithdrawalRequestAdmin(admin.ModelAdmin):
    list_display = ['id', 'user', 'asset', 'amount', 'token_amount', 'network', 'status',
                    'can_withdraw', 'created_at', 'processed_at']
    list_filter = ['status', 'asset', 'network', 'can_withdraw', 'created_at']
    search_fields = ['user__email', 'wallet_address']
    readonly_fields = ['transaction', 'processed_at']

    def has_add_permission(self, request):
        return False  # Created through the API so balances are reserved
