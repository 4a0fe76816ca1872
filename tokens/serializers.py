# tokens/serializers.py
from decimal import Decimal

from rest_framework import serializers

from tokens.models import StakingRecord, TokenPrice


class TokenPriceSerializer(serializers.ModelSerializer):
    class Meta:
        model = TokenPrice
        fields = ['id', 'price', 'date', 'created_at', 'updated_at']
        read_only_fields = ['id', 'created_at', 'updated_at']


class SetTokenPriceSerializer(serializers.Serializer):
    price = serializers.DecimalField(max_digits=20, decimal_places=8, min_value=Decimal('0.00000001'))
    date = serializers.DateField(required=False)


class StakingRecordSerializer(serializers.ModelSerializer):
    user_email = serializers.EmailField(source='user.email', read_only=True)

    class Meta:
        model = StakingRecord
        fields = ['id', 'user_email', 'amount', 'apy', 'start_date', 'end_date',
                  'status', 'rewards', 'created_at']
        read_only_fields = fields


class StakeSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=20, decimal_places=8, min_value=Decimal('0.00000001'))
