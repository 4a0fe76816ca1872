# users/models.py
import random
import string
import uuid
from decimal import Decimal

from django.contrib.auth.models import AbstractBaseUser, BaseUserManager, PermissionsMixin
from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


def balance_field():
    return models.DecimalField(max_digits=20, decimal_places=8, default=Decimal('0'))


class UserManager(BaseUserManager):
    def generate_referral_code(self):
        """Generate a unique 8-character referral code"""
        while True:
            code = ''.join(random.choices(string.ascii_uppercase + string.digits, k=8))
            if not self.filter(referral_code=code).exists():
                return code

    def create_user(self, username, email, password=None, **extra_fields):
        if not username:
            raise ValueError('Username is required')
        if not email:
            raise ValueError('Email is required')

        email = self.normalize_email(email)
        extra_fields.setdefault('referral_code', self.generate_referral_code())
        user = self.model(username=username, email=email, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_superuser(self, username, email, password=None, **extra_fields):
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)
        extra_fields.setdefault('is_active', True)
        extra_fields.setdefault('role', User.Role.SUPERADMIN)

        if extra_fields.get('is_staff') is not True:
            raise ValueError('Superuser must have is_staff=True')
        if extra_fields.get('is_superuser') is not True:
            raise ValueError('Superuser must have is_superuser=True')

        return self.create_user(username, email, password, **extra_fields)


class User(AbstractBaseUser, PermissionsMixin):
    """Platform account holding DIT token, USDT and referral balances"""

    class Role(models.TextChoices):
        USER = 'USER', 'User'
        ADMIN = 'ADMIN', 'Admin'
        SUPERADMIN = 'SUPERADMIN', 'Super Admin'

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    username = models.CharField(_('username'), max_length=150, unique=True)
    first_name = models.CharField(_('first name'), max_length=150, blank=True)
    last_name = models.CharField(_('last name'), max_length=150, blank=True)
    email = models.EmailField(_('email address'), unique=True)
    phone_number = models.CharField(max_length=20, blank=True)
    country = models.CharField(max_length=100, blank=True)
    state = models.CharField(max_length=100, blank=True)
    wallet_address = models.CharField(max_length=100, blank=True)
    role = models.CharField(max_length=20, choices=Role.choices, default=Role.USER)

    # Balances
    total_tokens = balance_field()
    available_tokens = balance_field()
    staked_tokens = balance_field()
    usdt_balance = balance_field()
    referral_earnings = balance_field()
    total_earnings = balance_field()

    referral_code = models.CharField(max_length=10, unique=True)
    referred_by = models.ForeignKey(
        'self',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='referrals'
    )

    is_active = models.BooleanField(default=True)
    is_staff = models.BooleanField(default=False)
    date_joined = models.DateTimeField(default=timezone.now)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = UserManager()

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = ['username']

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return self.email

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}".strip() or self.username

    @property
    def is_admin(self):
        return self.is_superuser or self.role in (self.Role.ADMIN, self.Role.SUPERADMIN)

    @property
    def is_superadmin(self):
        return self.is_superuser or self.role == self.Role.SUPERADMIN

    def save(self, *args, **kwargs):
        update_fields = kwargs.get('update_fields')
        if not self._state.adding and (update_fields is None or 'referred_by' in update_fields):
            # A referrer, once recorded, is permanent
            stored = type(self).objects.filter(pk=self.pk).values_list('referred_by_id', flat=True).first()
            if stored is not None and stored != self.referred_by_id:
                raise ValidationError({'referred_by': 'Referrer cannot be changed once set.'})

        if not self.referral_code:
            self.referral_code = type(self).objects.generate_referral_code()

        super().save(*args, **kwargs)


class LoginHistory(models.Model):
    """One sign-in attempt against an account"""

    class Status(models.TextChoices):
        SUCCESS = 'SUCCESS', 'Success'
        FAILED = 'FAILED', 'Failed'

    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='login_history')
    ip_address = models.CharField(max_length=45, default='unknown')
    user_agent = models.TextField(blank=True)
    status = models.CharField(max_length=10, choices=Status.choices, default=Status.SUCCESS)
    location = models.CharField(max_length=100, blank=True)
    device_type = models.CharField(max_length=20, blank=True)
    browser = models.CharField(max_length=30, blank=True)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ['-created_at']
        verbose_name_plural = 'Login history'

    def __str__(self):
        return f"{self.user} {self.status} from {self.ip_address}"
