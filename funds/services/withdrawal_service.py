# funds/services/withdrawal_service.py
import logging
from decimal import Decimal

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import F
from django.utils import timezone

from core.exceptions import (
    AccountInactiveError, InsufficientBalanceError, NotFoundError, ServiceError, WithdrawalStateError
)
from funds.models import Transaction, WithdrawalRequest
from notifications.services.email_service import EmailService
from notifications.services.notification_service import NotificationService
from tokens.services.price_service import TokenPriceService

logger = logging.getLogger(__name__)

User = get_user_model()


class WithdrawalService:

    def __init__(self):
        self.prices = TokenPriceService()
        self.notifications = NotificationService()
        self.emails = EmailService()

    def _ensure_nothing_pending(self, user, asset):
        if WithdrawalRequest.objects.filter(
            user=user, asset=asset, status=WithdrawalRequest.Status.PENDING
        ).exists():
            raise WithdrawalStateError('You already have a pending withdrawal request')

    @transaction.atomic
    def request_withdrawal(self, user, amount, network, wallet_address):
        """Reserve tokens worth `amount` USD until an admin processes the request"""
        amount = Decimal(amount)
        user = User.objects.select_for_update().get(pk=user.pk)

        self._ensure_nothing_pending(user, WithdrawalRequest.Asset.TOKEN)

        price = self.prices.get_current_price()
        token_amount = self.prices.tokens_for(amount, price)
        if user.available_tokens < token_amount:
            raise InsufficientBalanceError(
                f"Insufficient token balance. Available: {user.available_tokens} DIT"
            )

        tx = Transaction.objects.create(
            user=user,
            transaction_type=Transaction.Type.WITHDRAWAL,
            amount=amount,
            token_amount=token_amount,
            price_per_token=price,
            status=Transaction.Status.PENDING,
            payment_method=network,
            wallet_address=wallet_address,
            description=f"Withdrawal of {token_amount} DIT to {wallet_address} ({network})",
        )
        withdrawal = WithdrawalRequest.objects.create(
            user=user,
            transaction=tx,
            amount=amount,
            token_amount=token_amount,
            network=network,
            wallet_address=wallet_address,
            lock_period_days=settings.WITHDRAWAL_LOCK_DAYS,
        )
        User.objects.filter(pk=user.pk).update(
            available_tokens=F('available_tokens') - token_amount
        )
        self.notifications.notify_withdrawal(withdrawal)
        logger.info(f"Withdrawal request {withdrawal.id} by {user.email}: {token_amount} DIT (${amount})")
        return withdrawal

    @transaction.atomic
    def request_usdt_withdrawal(self, user, amount, wallet_address):
        """Pay out USDT balance. The amount leaves the balance now and comes back on rejection."""
        amount = Decimal(amount)
        user = User.objects.select_for_update().get(pk=user.pk)

        if not user.is_active:
            raise AccountInactiveError('Account is not active')
        if user.usdt_balance < amount:
            raise InsufficientBalanceError('Insufficient USDT balance')
        if amount < settings.MIN_USDT_WITHDRAWAL_AMOUNT:
            raise ServiceError(f"Minimum withdrawal amount is ${settings.MIN_USDT_WITHDRAWAL_AMOUNT}")
        self._ensure_nothing_pending(user, WithdrawalRequest.Asset.USDT)

        tx = Transaction.objects.create(
            user=user,
            transaction_type=Transaction.Type.WITHDRAWAL,
            amount=amount,
            status=Transaction.Status.PENDING,
            payment_method='USDT',
            wallet_address=wallet_address,
            description=f"USDT withdrawal of ${amount:.2f} to {wallet_address}",
        )
        withdrawal = WithdrawalRequest.objects.create(
            user=user,
            transaction=tx,
            amount=amount,
            token_amount=Decimal('0'),
            asset=WithdrawalRequest.Asset.USDT,
            network='USDT',
            wallet_address=wallet_address,
            lock_period_days=0,
            can_withdraw=True,
        )
        User.objects.filter(pk=user.pk).update(
            usdt_balance=F('usdt_balance') - amount
        )
        self.notifications.notify_withdrawal(withdrawal)
        logger.info(f"USDT withdrawal request {withdrawal.id} by {user.email}: ${amount}")
        return withdrawal

    def usdt_withdrawals(self, user):
        return WithdrawalRequest.objects.filter(
            user=user, asset=WithdrawalRequest.Asset.USDT
        ).select_related('transaction')

    def _get_pending(self, withdrawal_id):
        try:
            withdrawal = WithdrawalRequest.objects.select_for_update().select_related(
                'user', 'transaction'
            ).get(pk=withdrawal_id)
        except WithdrawalRequest.DoesNotExist:
            raise NotFoundError('Withdrawal request not found')
        if withdrawal.status != WithdrawalRequest.Status.PENDING:
            raise WithdrawalStateError(f'Withdrawal request is already {withdrawal.status}')
        return withdrawal

    def approve(self, withdrawal_id, admin):
        with transaction.atomic():
            withdrawal = self._get_pending(withdrawal_id)
            if not withdrawal.is_unlocked:
                raise WithdrawalStateError(
                    f"Withdrawal is locked until {withdrawal.unlock_date:%Y-%m-%d} "
                    f"({withdrawal.days_remaining} days remaining)"
                )

            now = timezone.now()
            withdrawal.status = WithdrawalRequest.Status.APPROVED
            withdrawal.can_withdraw = True
            withdrawal.processed_by = admin
            withdrawal.processed_at = now
            withdrawal.save(update_fields=['status', 'can_withdraw', 'processed_by', 'processed_at'])

            Transaction.objects.filter(pk=withdrawal.transaction_id).update(
                status=Transaction.Status.COMPLETED,
                processed_by=admin,
                completed_at=now,
                updated_at=now,
            )
            if withdrawal.asset == WithdrawalRequest.Asset.TOKEN:
                # Reserved tokens leave the platform
                User.objects.filter(pk=withdrawal.user_id).update(
                    total_tokens=F('total_tokens') - withdrawal.token_amount
                )
            self.notifications.notify_withdrawal(withdrawal)

        logger.info(f"Admin {admin.email} approved withdrawal {withdrawal.id}")
        self.emails.send_withdrawal_approved(withdrawal)
        return withdrawal

    def reject(self, withdrawal_id, admin, reason=''):
        with transaction.atomic():
            withdrawal = self._get_pending(withdrawal_id)

            now = timezone.now()
            withdrawal.status = WithdrawalRequest.Status.REJECTED
            withdrawal.rejection_reason = reason or 'Rejected by admin'
            withdrawal.processed_by = admin
            withdrawal.processed_at = now
            withdrawal.save(update_fields=['status', 'rejection_reason', 'processed_by', 'processed_at'])

            Transaction.objects.filter(pk=withdrawal.transaction_id).update(
                status=Transaction.Status.FAILED,
                processed_by=admin,
                admin_notes=withdrawal.rejection_reason,
                updated_at=now,
            )
            if withdrawal.asset == WithdrawalRequest.Asset.USDT:
                User.objects.filter(pk=withdrawal.user_id).update(
                    usdt_balance=F('usdt_balance') + withdrawal.amount
                )
            else:
                User.objects.filter(pk=withdrawal.user_id).update(
                    available_tokens=F('available_tokens') + withdrawal.token_amount
                )
            self.notifications.notify_withdrawal(withdrawal)

        logger.info(f"Admin {admin.email} rejected withdrawal {withdrawal.id}: {withdrawal.rejection_reason}")
        self.emails.send_withdrawal_rejected(withdrawal)
        return withdrawal

    def unlock_matured(self):
        """Flag pending requests whose lock period has elapsed"""
        unlocked = 0
        pending = WithdrawalRequest.objects.filter(
            status=WithdrawalRequest.Status.PENDING,
            can_withdraw=False,
        )
        for withdrawal in pending:
            if withdrawal.is_unlocked:
                withdrawal.can_withdraw = True
                withdrawal.save(update_fields=['can_withdraw'])
                unlocked += 1
        return unlocked
