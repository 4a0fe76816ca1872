# referrals/services/commission_service.py
import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils import timezone

from core.exceptions import PaymentStateError
from funds.models import Transaction
from notifications.services.notification_service import NotificationService
from referrals.models import CommissionSettings, FailedCommissionSettlement, ReferralCommission

logger = logging.getLogger(__name__)

User = get_user_model()

AMOUNT_QUANT = Decimal('0.00000001')


@dataclass(frozen=True)
class CommissionEffect:
    referrer_id: object
    referred_user_id: object
    purchase_id: object
    amount: Decimal
    token_amount: Decimal
    price_per_token: Decimal
    rate: Decimal
    month: int
    year: int


def settle_first_purchase_commission(purchase, referrer, rate, at: datetime = None) -> CommissionEffect:
    """
    Compute the commission a referrer earns on a first purchase.

    `rate` is a percentage (5 means 5%). Amounts are exact decimals
    quantized to 8 places, so $1000 at 5% is 50.00000000.
    """
    at = at or timezone.now()
    rate = Decimal(str(rate))
    fraction = rate / Decimal('100')
    return CommissionEffect(
        referrer_id=referrer.pk,
        referred_user_id=purchase.user_id,
        purchase_id=purchase.pk,
        amount=(Decimal(purchase.amount) * fraction).quantize(AMOUNT_QUANT),
        token_amount=(Decimal(purchase.token_amount) * fraction).quantize(AMOUNT_QUANT),
        price_per_token=Decimal(purchase.price_per_token),
        rate=rate,
        month=at.month,
        year=at.year,
    )


class CommissionSettlementService:
    """Credit a referrer once, on the referred user's first completed purchase"""

    def __init__(self):
        self.notifications = NotificationService()

    def current_rate(self):
        return CommissionSettings.load().referral_rate

    def _is_first_purchase(self, purchase, retry):
        completed = Transaction.objects.filter(
            user_id=purchase.user_id,
            transaction_type=Transaction.Type.PURCHASE,
            status=Transaction.Status.COMPLETED,
        )
        if retry:
            # Later purchases may have completed since the failure
            first = completed.order_by('completed_at', 'created_at').first()
            return first is not None and first.pk == purchase.pk
        return completed.count() == 1

    def settle(self, purchase, retry=False):
        """
        Run settlement for a purchase that has just been marked COMPLETED.

        Returns the new ReferralCommission, or None when there is nothing to
        settle. Must be called inside the transaction that completed the
        purchase.
        """
        if purchase.transaction_type != Transaction.Type.PURCHASE or purchase.status != Transaction.Status.COMPLETED:
            logger.debug(f"Skipping settlement for {purchase.reference_id}: not a completed purchase")
            return None

        purchaser = User.objects.select_related('referred_by').get(pk=purchase.user_id)
        referrer = purchaser.referred_by
        if referrer is None:
            return None

        if not self._is_first_purchase(purchase, retry):
            logger.info(f"No commission for {purchaser.email}: {purchase.reference_id} is not the first purchase")
            return None

        if ReferralCommission.objects.filter(referrer=referrer, referred_user=purchaser).exists():
            logger.info(f"Commission for {referrer.email} <- {purchaser.email} already exists")
            return None

        effect = settle_first_purchase_commission(purchase, referrer, self.current_rate())

        try:
            with transaction.atomic():
                commission = ReferralCommission.objects.create(
                    referrer_id=effect.referrer_id,
                    referred_user_id=effect.referred_user_id,
                    purchase_id=effect.purchase_id,
                    amount=effect.amount,
                    token_amount=effect.token_amount,
                    price_per_token=effect.price_per_token,
                    commission_rate=effect.rate,
                    month=effect.month,
                    year=effect.year,
                )
        except IntegrityError:
            # A concurrent settlement got there first
            logger.info(f"Commission for {referrer.email} <- {purchaser.email} settled concurrently")
            return None

        User.objects.filter(pk=referrer.pk).update(
            referral_earnings=F('referral_earnings') + effect.amount,
            total_earnings=F('total_earnings') + effect.amount,
        )

        self.notifications.notify_referral_commission(referrer, purchaser, commission)

        logger.info(
            f"Referral commission ${effect.amount} ({effect.rate}%) credited to {referrer.email} "
            f"for {purchaser.email}'s first purchase {purchase.reference_id}"
        )
        return commission

    def settle_safely(self, purchase):
        """
        Settle inside a savepoint. A failure is logged and queued for retry;
        the purchase itself is left untouched.
        """
        try:
            with transaction.atomic():
                return self.settle(purchase)
        except Exception as e:
            logger.error(f"Commission settlement failed for {purchase.reference_id}: {e}", exc_info=True)
            self._record_failure(purchase, e)
            return None

    def _record_failure(self, purchase, error):
        failure, created = FailedCommissionSettlement.objects.get_or_create(
            purchase=purchase,
            defaults={'error': str(error)}
        )
        if not created:
            failure.error = str(error)
            failure.attempts += 1
            failure.resolved = False
            failure.last_attempt_at = timezone.now()
            failure.save(update_fields=['error', 'attempts', 'resolved', 'last_attempt_at'])
        return failure

    def retry(self, failure):
        """Retry one queued settlement. Returns True when it is resolved."""
        try:
            with transaction.atomic():
                self.settle(failure.purchase, retry=True)
        except Exception as e:
            failure.attempts += 1
            failure.error = str(e)
            failure.last_attempt_at = timezone.now()
            failure.save(update_fields=['attempts', 'error', 'last_attempt_at'])
            logger.warning(f"Retry {failure.attempts} failed for {failure.purchase.reference_id}: {e}")
            return False

        failure.attempts += 1
        failure.resolved = True
        failure.last_attempt_at = timezone.now()
        failure.save(update_fields=['attempts', 'resolved', 'last_attempt_at'])
        logger.info(f"Settlement for {failure.purchase.reference_id} resolved on retry")
        return True

    def retry_pending(self):
        pending = FailedCommissionSettlement.objects.filter(
            resolved=False,
            attempts__lt=settings.COMMISSION_RETRY_MAX_ATTEMPTS,
        ).select_related('purchase')
        resolved = 0
        for failure in pending:
            if self.retry(failure):
                resolved += 1
        return resolved

    def _lock_open_commission(self, commission):
        commission = ReferralCommission.objects.select_for_update().select_related(
            'referrer', 'referred_user'
        ).get(pk=commission.pk)
        if commission.is_paid:
            raise PaymentStateError('Commission has already been paid')
        if commission.is_rejected:
            raise PaymentStateError('Commission has been rejected')
        return commission

    @transaction.atomic
    def pay(self, commission, admin):
        """Move an unpaid commission into the referrer's USDT balance"""
        commission = self._lock_open_commission(commission)

        commission.is_paid = True
        commission.paid_at = timezone.now()
        commission.paid_by = admin
        commission.save(update_fields=['is_paid', 'paid_at', 'paid_by'])

        User.objects.filter(pk=commission.referrer_id).update(
            usdt_balance=F('usdt_balance') + commission.amount
        )
        Transaction.objects.create(
            user=commission.referrer,
            transaction_type=Transaction.Type.REFERRAL_COMMISSION,
            amount=commission.amount,
            token_amount=commission.token_amount,
            price_per_token=commission.price_per_token,
            status=Transaction.Status.COMPLETED,
            payment_method='usdt_balance',
            description=f"Referral commission from {commission.referred_user}",
            processed_by=admin,
            completed_at=timezone.now(),
        )
        self.notifications.notify_commission_paid(commission)
        logger.info(f"Admin {admin.email} paid commission {commission.id} (${commission.amount}) to {commission.referrer.email}")
        return commission

    @transaction.atomic
    def reject(self, commission, admin, reason=''):
        """Refuse an unpaid commission and take it back out of the referrer's earnings"""
        commission = self._lock_open_commission(commission)

        commission.is_rejected = True
        commission.rejected_at = timezone.now()
        commission.rejected_by = admin
        commission.rejection_reason = reason or 'Commission rejected by admin'
        commission.save(update_fields=['is_rejected', 'rejected_at', 'rejected_by', 'rejection_reason'])

        User.objects.filter(pk=commission.referrer_id).update(
            referral_earnings=F('referral_earnings') - commission.amount,
            total_earnings=F('total_earnings') - commission.amount,
        )
        self.notifications.notify_commission_rejected(commission)
        logger.info(
            f"Admin {admin.email} rejected commission {commission.id} (${commission.amount}) "
            f"for {commission.referrer.email}: {commission.rejection_reason}"
        )
        return commission
