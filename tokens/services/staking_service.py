# tokens/services/staking_service.py
import logging
from datetime import timedelta
from decimal import Decimal

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import F, Sum
from django.utils import timezone

from core.exceptions import InsufficientBalanceError, ServiceError
from funds.models import Transaction
from notifications.services.notification_service import NotificationService
from tokens.models import StakingRecord

logger = logging.getLogger(__name__)

User = get_user_model()


class StakingService:

    def __init__(self):
        self.notifications = NotificationService()

    @transaction.atomic
    def stake(self, user, amount):
        amount = Decimal(amount)
        if amount <= 0:
            raise ServiceError('Stake amount must be positive')

        user = User.objects.select_for_update().get(pk=user.pk)
        if user.available_tokens < amount:
            raise InsufficientBalanceError(
                f"Insufficient available tokens. Available: {user.available_tokens} DIT"
            )

        now = timezone.now()
        record = StakingRecord.objects.create(
            user=user,
            amount=amount,
            apy=settings.STAKING_APY,
            start_date=now,
            end_date=now + timedelta(days=settings.STAKING_TERM_DAYS),
        )
        User.objects.filter(pk=user.pk).update(
            available_tokens=F('available_tokens') - amount,
            staked_tokens=F('staked_tokens') + amount,
        )
        Transaction.objects.create(
            user=user,
            transaction_type=Transaction.Type.STAKE,
            amount=amount,
            token_amount=amount,
            status=Transaction.Status.COMPLETED,
            description=f"Staked {amount} DIT at {record.apy}% APY",
            completed_at=now,
        )
        self.notifications.notify_stake(record)
        logger.info(f"{user.email} staked {amount} DIT until {record.end_date:%Y-%m-%d}")
        return record

    def stats(self):
        active = StakingRecord.objects.filter(status=StakingRecord.Status.ACTIVE)
        return {
            'total_records': StakingRecord.objects.count(),
            'active_records': active.count(),
            'total_staked': active.aggregate(total=Sum('amount'))['total'] or Decimal('0'),
            'stakers': active.values('user').distinct().count(),
        }
