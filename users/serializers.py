# users/serializers.py
import logging
from datetime import timedelta

from django.contrib.auth.password_validation import validate_password
from django.core.exceptions import ValidationError as DjangoValidationError
from django.utils import timezone
from rest_framework import serializers
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer

from users.models import LoginHistory, User

logger = logging.getLogger(__name__)


class UserSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ['id', 'email', 'username', 'first_name', 'last_name',
                  'phone_number', 'country', 'state', 'role', 'referral_code',
                  'created_at']
        read_only_fields = ['id', 'role', 'referral_code', 'created_at']


class BalanceSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ['total_tokens', 'available_tokens', 'staked_tokens',
                  'usdt_balance', 'referral_earnings', 'total_earnings']
        read_only_fields = fields


class CustomTokenObtainPairSerializer(TokenObtainPairSerializer):
    """JWT login that accepts either username or email"""
    username_field = 'login'

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields['login'] = serializers.CharField()
        self.fields['remember'] = serializers.BooleanField(required=False, default=False)
        self.fields.pop('username', None)

    def validate(self, attrs):
        login = attrs.get('login', '').strip()
        password = attrs.get('password')

        if '@' in login:
            user = User.objects.filter(email__iexact=login).first()
        else:
            user = User.objects.filter(username__iexact=login).first()

        # Known account, kept so a failed attempt can be logged against it
        self.user = user

        if user is None or not user.check_password(password):
            raise serializers.ValidationError('Invalid credentials')

        if not user.is_active:
            raise serializers.ValidationError('User account is disabled')

        refresh = self.get_token(user)
        if attrs.get('remember'):
            refresh.set_exp(lifetime=timedelta(days=30))

        user.last_login = timezone.now()
        user.save(update_fields=['last_login'])

        return {
            'success': True,
            'user': UserSerializer(user).data,
            'tokens': {
                'refresh': str(refresh),
                'access': str(refresh.access_token),
            },
        }


class UserRegistrationSerializer(serializers.ModelSerializer):
    password = serializers.CharField(
        write_only=True,
        validators=[validate_password],
        style={'input_type': 'password'}
    )
    password_confirmation = serializers.CharField(
        write_only=True,
        style={'input_type': 'password'}
    )
    referred_by_code = serializers.CharField(
        required=False,
        allow_blank=True,
        write_only=True
    )

    class Meta:
        model = User
        fields = [
            'id', 'username', 'email', 'password', 'password_confirmation',
            'first_name', 'last_name', 'phone_number', 'country', 'state',
            'referred_by_code', 'referral_code',
        ]
        read_only_fields = ['id', 'referral_code']
        extra_kwargs = {
            'email': {'required': True},
            'username': {'required': True},
            'first_name': {'required': True},
        }

    def validate_email(self, value):
        if User.objects.filter(email__iexact=value).exists():
            raise serializers.ValidationError(
                "This email address is already registered. Please use a different email or login."
            )
        return value.lower()

    def validate_username(self, value):
        if User.objects.filter(username__iexact=value).exists():
            raise serializers.ValidationError(
                "This username is already taken. Please choose another one."
            )
        if len(value) < 3:
            raise serializers.ValidationError("Username must be at least 3 characters long.")
        if not value.replace('_', '').isalnum():
            raise serializers.ValidationError(
                "Username can only contain letters, numbers, and underscores."
            )
        return value.lower()

    def validate(self, attrs):
        if attrs.get('password') != attrs.get('password_confirmation'):
            raise serializers.ValidationError({
                "password_confirmation": "Passwords don't match. Please try again."
            })
        return attrs

    def create(self, validated_data):
        validated_data.pop('password_confirmation')
        password = validated_data.pop('password')
        referred_by_code = (validated_data.pop('referred_by_code', '') or '').strip().upper()

        referred_by = None
        if referred_by_code:
            referred_by = User.objects.filter(referral_code=referred_by_code).first()
            if referred_by is None:
                # Unknown codes do not block signup
                logger.warning(f"Ignoring unknown referral code at signup: {referred_by_code}")

        return User.objects.create_user(
            password=password,
            referred_by=referred_by,
            **validated_data
        )


class UserProfileSerializer(serializers.ModelSerializer):
    referred_by_code = serializers.CharField(source='referred_by.referral_code', read_only=True, default=None)
    referred_users_count = serializers.SerializerMethodField()
    balances = BalanceSerializer(source='*', read_only=True)

    class Meta:
        model = User
        fields = [
            'id', 'username', 'email', 'first_name', 'last_name',
            'phone_number', 'country', 'state', 'wallet_address', 'role',
            'referral_code', 'referred_by_code', 'referred_users_count',
            'balances', 'date_joined', 'updated_at'
        ]
        read_only_fields = ['id', 'username', 'email', 'role', 'referral_code', 'date_joined', 'updated_at']

    def get_referred_users_count(self, obj):
        return obj.referrals.count()


class AdminUserSerializer(serializers.ModelSerializer):
    """Admin view of an account, balances included"""
    referred_by_email = serializers.EmailField(source='referred_by.email', read_only=True, default=None)

    class Meta:
        model = User
        fields = [
            'id', 'username', 'email', 'first_name', 'last_name', 'phone_number',
            'country', 'state', 'role', 'is_active', 'wallet_address',
            'total_tokens', 'available_tokens', 'staked_tokens', 'usdt_balance',
            'referral_earnings', 'total_earnings', 'referral_code',
            'referred_by_email', 'created_at', 'last_login'
        ]
        read_only_fields = [
            'id', 'username', 'email', 'total_tokens', 'available_tokens',
            'staked_tokens', 'usdt_balance', 'referral_earnings', 'total_earnings',
            'referral_code', 'referred_by_email', 'created_at', 'last_login'
        ]


class PasswordResetRequestSerializer(serializers.Serializer):
    email = serializers.EmailField(required=True)

    def validate_email(self, value):
        return value.lower().strip()


class PasswordResetConfirmSerializer(serializers.Serializer):
    new_password = serializers.CharField(write_only=True, required=True)
    confirm_password = serializers.CharField(write_only=True, required=True)

    def validate(self, attrs):
        if attrs['new_password'] != attrs['confirm_password']:
            raise serializers.ValidationError({
                'confirm_password': 'Passwords do not match.'
            })
        try:
            validate_password(attrs['new_password'])
        except DjangoValidationError as e:
            raise serializers.ValidationError({'new_password': list(e.messages)})
        return attrs


class LoginHistorySerializer(serializers.ModelSerializer):
    timestamp = serializers.DateTimeField(source='created_at', read_only=True)
    ipAddress = serializers.CharField(source='ip_address', read_only=True)
    userAgent = serializers.CharField(source='user_agent', read_only=True)
    deviceType = serializers.CharField(source='device_type', read_only=True)

    class Meta:
        model = LoginHistory
        fields = ['id', 'timestamp', 'ipAddress', 'userAgent', 'location', 'status', 'deviceType', 'browser']
        read_only_fields = fields
