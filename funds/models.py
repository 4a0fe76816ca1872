# funds/models.py
import uuid
from datetime import timedelta
from decimal import Decimal

from django.conf import settings
from django.db import models
from django.utils import timezone


class Transaction(models.Model):
    """Record all financial transactions"""

    class Type(models.TextChoices):
        PURCHASE = 'PURCHASE', 'Token Purchase'
        WITHDRAWAL = 'WITHDRAWAL', 'Withdrawal'
        REFERRAL_COMMISSION = 'REFERRAL_COMMISSION', 'Referral Commission'
        DEPOSIT = 'DEPOSIT', 'Deposit'
        STAKE = 'STAKE', 'Stake'
        SALE = 'SALE', 'Token Sale'

    class Status(models.TextChoices):
        PENDING = 'PENDING', 'Pending'
        COMPLETED = 'COMPLETED', 'Completed'
        FAILED = 'FAILED', 'Failed'

    REFERENCE_PREFIXES = {
        Type.PURCHASE: 'PUR',
        Type.WITHDRAWAL: 'WDR',
        Type.REFERRAL_COMMISSION: 'REF',
        Type.DEPOSIT: 'DEP',
        Type.STAKE: 'STK',
        Type.SALE: 'SAL',
    }

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='transactions')
    transaction_type = models.CharField(max_length=30, choices=Type.choices)
    amount = models.DecimalField(max_digits=20, decimal_places=8)
    token_amount = models.DecimalField(max_digits=20, decimal_places=8, default=Decimal('0'))
    price_per_token = models.DecimalField(max_digits=20, decimal_places=8, default=Decimal('0'))
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING)
    payment_method = models.CharField(max_length=50, blank=True)
    tx_hash = models.CharField(max_length=100, blank=True, db_index=True)
    wallet_address = models.CharField(max_length=100, blank=True)
    description = models.TextField(blank=True)
    admin_notes = models.TextField(blank=True)
    reference_id = models.CharField(max_length=100, unique=True)
    processed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='processed_transactions'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user', 'transaction_type', 'status']),
            models.Index(fields=['status', 'created_at']),
        ]

    def __str__(self):
        return f"{self.reference_id} {self.transaction_type} {self.amount} ({self.status})"

    def save(self, *args, **kwargs):
        if not self.reference_id:
            prefix = self.REFERENCE_PREFIXES.get(self.transaction_type, 'TXN')
            self.reference_id = f'{prefix}-{uuid.uuid4().hex[:12].upper()}'
        super().save(*args, **kwargs)

    @property
    def is_pending(self):
        return self.status == self.Status.PENDING


class WithdrawalRequest(models.Model):
    """Token withdrawal held until its lock period has elapsed, or a USDT payout"""

    class Asset(models.TextChoices):
        TOKEN = 'DIT', 'DIT Token'
        USDT = 'USDT', 'USDT'

    class Status(models.TextChoices):
        PENDING = 'PENDING', 'Pending'
        APPROVED = 'APPROVED', 'Approved'
        REJECTED = 'REJECTED', 'Rejected'

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='withdrawal_requests')
    transaction = models.OneToOneField(Transaction, on_delete=models.CASCADE, related_name='withdrawal_request')
    amount = models.DecimalField(max_digits=20, decimal_places=8)
    token_amount = models.DecimalField(max_digits=20, decimal_places=8)
    asset = models.CharField(max_length=10, choices=Asset.choices, default=Asset.TOKEN)
    network = models.CharField(max_length=20)
    wallet_address = models.CharField(max_length=100)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING)
    lock_period_days = models.PositiveIntegerField(default=1095)
    can_withdraw = models.BooleanField(default=False)
    rejection_reason = models.TextField(blank=True)
    processed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='processed_withdrawals'
    )
    processed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        if self.asset == self.Asset.USDT:
            return f"Withdrawal ${self.amount} USDT for {self.user} ({self.status})"
        return f"Withdrawal {self.token_amount} DIT for {self.user} ({self.status})"

    @property
    def unlock_date(self):
        return self.created_at + timedelta(days=self.lock_period_days)

    @property
    def days_remaining(self):
        remaining = (self.unlock_date - timezone.now()).days
        return max(remaining, 0)

    @property
    def is_unlocked(self):
        return timezone.now() >= self.unlock_date
