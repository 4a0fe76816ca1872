# funds/serializers.py
from decimal import Decimal

from rest_framework import serializers

from funds.models import Transaction, WithdrawalRequest


class TransactionSerializer(serializers.ModelSerializer):
    class Meta:
        model = Transaction
        fields = ['id', 'transaction_type', 'amount', 'token_amount',
                  'price_per_token', 'status', 'payment_method', 'tx_hash',
                  'wallet_address', 'description', 'reference_id',
                  'created_at', 'completed_at']
        read_only_fields = fields


class AdminTransactionSerializer(TransactionSerializer):
    user_email = serializers.EmailField(source='user.email', read_only=True)
    user_name = serializers.CharField(source='user.full_name', read_only=True)
    processed_by_email = serializers.EmailField(source='processed_by.email', read_only=True, default=None)

    class Meta(TransactionSerializer.Meta):
        fields = TransactionSerializer.Meta.fields + [
            'user_email', 'user_name', 'admin_notes', 'processed_by_email', 'updated_at'
        ]
        read_only_fields = fields


class WithdrawalRequestSerializer(serializers.ModelSerializer):
    unlock_date = serializers.DateTimeField(read_only=True)
    days_remaining = serializers.IntegerField(read_only=True)
    user_email = serializers.EmailField(source='user.email', read_only=True)

    class Meta:
        model = WithdrawalRequest
        fields = ['id', 'user_email', 'asset', 'amount', 'token_amount', 'network',
                  'wallet_address', 'status', 'lock_period_days', 'can_withdraw',
                  'unlock_date', 'days_remaining', 'rejection_reason',
                  'processed_at', 'created_at']
        read_only_fields = fields


# Request bodies. Keys follow the dashboard's camelCase contract.

class ConfirmPaymentSerializer(serializers.Serializer):
    transactionId = serializers.UUIDField(source='transaction_id')
    action = serializers.ChoiceField(choices=['confirm', 'reject'])
    adminNotes = serializers.CharField(source='admin_notes', required=False, allow_blank=True, default='')


class ManualDepositSerializer(serializers.Serializer):
    userEmail = serializers.EmailField(source='user_email')
    usdtAmount = serializers.DecimalField(
        source='usdt_amount', max_digits=20, decimal_places=8,
        min_value=Decimal('0.00000001')
    )
    txHash = serializers.CharField(source='tx_hash', min_length=1, max_length=100)
    fromWallet = serializers.CharField(source='from_wallet', min_length=1, max_length=100)


class PurchaseRequestSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=20, decimal_places=2)
    paymentMethod = serializers.CharField(source='payment_method', required=False, default='usdt_erc20')


class BalancePurchaseSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=20, decimal_places=2, min_value=Decimal('0.01'))


class WithdrawalCreateSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=20, decimal_places=2, min_value=Decimal('0.01'))
    network = serializers.CharField(max_length=20)
    walletAddress = serializers.CharField(source='wallet_address', max_length=100)


class WithdrawalActionSerializer(serializers.Serializer):
    withdrawalId = serializers.IntegerField(source='withdrawal_id')
    action = serializers.ChoiceField(choices=['approve', 'reject'])
    reason = serializers.CharField(required=False, allow_blank=True, default='')


class ConvertToUsdtSerializer(serializers.Serializer):
    tokenAmount = serializers.DecimalField(
        source='token_amount', max_digits=20, decimal_places=8,
        min_value=Decimal('0.00000001')
    )


class UsdtWithdrawalCreateSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=20, decimal_places=2, min_value=Decimal('0.01'))
    walletAddress = serializers.CharField(source='wallet_address', max_length=100)
