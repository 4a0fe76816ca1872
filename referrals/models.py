# referrals/models.py
from decimal import Decimal

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.utils import timezone


class ReferralCommission(models.Model):
    """Commission owed to a referrer for a referred user's first purchase"""
    referrer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='referral_commissions'
    )
    referred_user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='generated_commissions'
    )
    purchase = models.ForeignKey(
        'funds.Transaction',
        on_delete=models.SET_NULL,
        null=True,
        related_name='referral_commissions'
    )
    amount = models.DecimalField(max_digits=20, decimal_places=8)
    token_amount = models.DecimalField(max_digits=20, decimal_places=8)
    price_per_token = models.DecimalField(max_digits=20, decimal_places=8)
    commission_rate = models.DecimalField(max_digits=5, decimal_places=2)
    month = models.PositiveSmallIntegerField()
    year = models.PositiveSmallIntegerField()
    is_paid = models.BooleanField(default=False)
    paid_at = models.DateTimeField(null=True, blank=True)
    paid_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='paid_commissions'
    )
    is_rejected = models.BooleanField(default=False)
    rejected_at = models.DateTimeField(null=True, blank=True)
    rejected_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='rejected_commissions'
    )
    rejection_reason = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']
        constraints = [
            models.UniqueConstraint(
                fields=['referrer', 'referred_user'],
                name='unique_commission_per_referral'
            ),
        ]

    def __str__(self):
        return f"{self.referrer} earned {self.amount} from {self.referred_user}"

    @property
    def status(self):
        if self.is_paid:
            return 'PAID'
        if self.is_rejected:
            return 'REJECTED'
        return 'PENDING'


class CommissionSettings(models.Model):
    """Single-row configuration for the referral program"""
    referral_rate = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=Decimal('5.00'),
        validators=[MinValueValidator(Decimal('0')), MaxValueValidator(Decimal('100'))]
    )
    updated_by = models.CharField(max_length=254, default='system')
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Commission settings'
        verbose_name_plural = 'Commission settings'

    def __str__(self):
        return f"Referral rate {self.referral_rate}%"

    def save(self, *args, **kwargs):
        self.pk = 1
        super().save(*args, **kwargs)

    @classmethod
    def load(cls):
        obj, _ = cls.objects.get_or_create(
            pk=1,
            defaults={'referral_rate': settings.DEFAULT_REFERRAL_RATE}
        )
        return obj


class FailedCommissionSettlement(models.Model):
    """A settlement that raised; retried by a periodic task"""
    purchase = models.OneToOneField(
        'funds.Transaction',
        on_delete=models.CASCADE,
        related_name='failed_settlement'
    )
    error = models.TextField()
    attempts = models.PositiveIntegerField(default=1)
    resolved = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    last_attempt_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ['created_at']

    def __str__(self):
        return f"Settlement for {self.purchase_id} ({'resolved' if self.resolved else 'pending'})"
