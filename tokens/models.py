# tokens/models.py
from datetime import timedelta
from decimal import Decimal

from django.conf import settings
from django.db import models
from django.utils import timezone


class TokenPrice(models.Model):
    """Daily DIT price in USD"""
    price = models.DecimalField(max_digits=20, decimal_places=8)
    date = models.DateField(unique=True, default=timezone.localdate)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-date']

    def __str__(self):
        return f"{self.date}: ${self.price}"


def default_staking_end():
    return timezone.now() + timedelta(days=settings.STAKING_TERM_DAYS)


class StakingRecord(models.Model):
    class Status(models.TextChoices):
        ACTIVE = 'ACTIVE', 'Active'
        COMPLETED = 'COMPLETED', 'Completed'
        CANCELLED = 'CANCELLED', 'Cancelled'

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='staking_records')
    amount = models.DecimalField(max_digits=20, decimal_places=8)
    apy = models.DecimalField(max_digits=6, decimal_places=2, default=Decimal('12.5'))
    start_date = models.DateTimeField(default=timezone.now)
    end_date = models.DateTimeField(default=default_staking_end)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.ACTIVE)
    rewards = models.DecimalField(max_digits=20, decimal_places=8, default=Decimal('0'))
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.user} staked {self.amount} DIT ({self.status})"
