# notifications/models.py
from django.conf import settings
from django.db import models


class Notification(models.Model):
    """In-app notification shown in the user's notification center"""

    class Type(models.TextChoices):
        SYSTEM = 'SYSTEM', 'System'
        TRANSACTION = 'TRANSACTION', 'Transaction'
        REFERRAL = 'REFERRAL', 'Referral'
        STAKING = 'STAKING', 'Staking'
        WITHDRAWAL = 'WITHDRAWAL', 'Withdrawal'
        DEPOSIT = 'DEPOSIT', 'Deposit'
        SECURITY = 'SECURITY', 'Security'
        PROFILE_UPDATE = 'PROFILE_UPDATE', 'Profile Update'
        TOKEN_PURCHASE = 'TOKEN_PURCHASE', 'Token Purchase'
        ADMIN_MESSAGE = 'ADMIN_MESSAGE', 'Admin Message'

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='notifications')
    notification_type = models.CharField(max_length=30, choices=Type.choices, default=Type.SYSTEM)
    title = models.CharField(max_length=200)
    message = models.TextField()
    icon = models.CharField(max_length=50, blank=True)
    data = models.JSONField(default=dict, blank=True)
    is_read = models.BooleanField(default=False)
    read_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user', 'is_read']),
        ]

    def __str__(self):
        return f"{self.notification_type}: {self.title} -> {self.user}"
