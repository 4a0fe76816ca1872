# referrals/serializers.py
from decimal import Decimal

from rest_framework import serializers

from referrals.models import CommissionSettings, ReferralCommission


class ReferralCommissionSerializer(serializers.ModelSerializer):
    status = serializers.CharField(read_only=True)
    referred_user_name = serializers.CharField(source='referred_user.full_name', read_only=True)
    referred_user_email = serializers.EmailField(source='referred_user.email', read_only=True)
    purchase_reference = serializers.CharField(source='purchase.reference_id', read_only=True, default=None)

    class Meta:
        model = ReferralCommission
        fields = ['id', 'referred_user_name', 'referred_user_email', 'purchase_reference',
                  'amount', 'token_amount', 'price_per_token', 'commission_rate',
                  'month', 'year', 'status', 'is_paid', 'paid_at', 'is_rejected', 'rejected_at',
                  'rejection_reason', 'created_at']
        read_only_fields = fields


class AdminReferralCommissionSerializer(ReferralCommissionSerializer):
    referrer_name = serializers.CharField(source='referrer.full_name', read_only=True)
    referrer_email = serializers.EmailField(source='referrer.email', read_only=True)

    class Meta(ReferralCommissionSerializer.Meta):
        fields = ['referrer_name', 'referrer_email'] + ReferralCommissionSerializer.Meta.fields
        read_only_fields = fields


class CommissionSettingsSerializer(serializers.ModelSerializer):
    referralRate = serializers.DecimalField(
        source='referral_rate', max_digits=5, decimal_places=2,
        min_value=Decimal('0'), max_value=Decimal('100')
    )
    updatedBy = serializers.CharField(source='updated_by', read_only=True)
    updatedAt = serializers.DateTimeField(source='updated_at', read_only=True)

    class Meta:
        model = CommissionSettings
        fields = ['referralRate', 'updatedBy', 'updatedAt']


class CommissionRejectSerializer(serializers.Serializer):
    rejectionReason = serializers.CharField(
        source='rejection_reason', required=False, allow_blank=True, default='', max_length=500
    )
