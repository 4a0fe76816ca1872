# funds/services/payment_service.py
import logging
from decimal import Decimal

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import F
from django.utils import timezone

from core.exceptions import (
    AccountInactiveError, InsufficientBalanceError, NotFoundError, PaymentStateError, ServiceError
)
from funds.models import Transaction
from notifications.services.email_service import EmailService
from notifications.services.notification_service import NotificationService
from referrals.services.commission_service import CommissionSettlementService
from tokens.services.price_service import TokenPriceService

logger = logging.getLogger(__name__)

User = get_user_model()


class PaymentService:
    """Token purchases: requests, admin confirmation, manual deposits and balance purchases"""

    def __init__(self):
        self.prices = TokenPriceService()
        self.commissions = CommissionSettlementService()
        self.notifications = NotificationService()
        self.emails = EmailService()

    def _credit_tokens(self, user_id, token_amount):
        User.objects.filter(pk=user_id).update(
            total_tokens=F('total_tokens') + token_amount,
            available_tokens=F('available_tokens') + token_amount,
        )

    def create_purchase_request(self, user, amount, payment_method='usdt_erc20'):
        """Open a PENDING purchase that an admin confirms once payment arrives"""
        amount = Decimal(amount)
        if amount < settings.MIN_PURCHASE_AMOUNT:
            raise ServiceError(f"Minimum purchase amount is ${settings.MIN_PURCHASE_AMOUNT}")
        if not user.is_active:
            raise AccountInactiveError('User account is not active')

        price = self.prices.get_current_price()
        purchase = Transaction.objects.create(
            user=user,
            transaction_type=Transaction.Type.PURCHASE,
            amount=amount,
            token_amount=self.prices.tokens_for(amount, price),
            price_per_token=price,
            status=Transaction.Status.PENDING,
            payment_method=payment_method,
            wallet_address=settings.PAYMENT_WALLET_ADDRESS,
            description=f"Purchase of DIT tokens at ${price}",
        )
        logger.info(f"Purchase request {purchase.reference_id} by {user.email}: ${amount} -> {purchase.token_amount} DIT")

        self.notifications.notify_purchase_pending(purchase)
        self.emails.send_purchase_pending(purchase)
        return purchase

    def confirm_payment(self, transaction_id, admin, notes=''):
        """Complete a pending purchase, credit the tokens and settle any referral commission"""
        with transaction.atomic():
            try:
                purchase = Transaction.objects.select_for_update().select_related('user').get(pk=transaction_id)
            except Transaction.DoesNotExist:
                raise NotFoundError('Transaction not found')

            if purchase.transaction_type != Transaction.Type.PURCHASE:
                raise PaymentStateError('Only purchase transactions can be confirmed')
            if purchase.status != Transaction.Status.PENDING:
                raise PaymentStateError(f'Transaction is already {purchase.status}')

            purchase.status = Transaction.Status.COMPLETED
            purchase.admin_notes = notes or 'Payment confirmed by admin'
            purchase.processed_by = admin
            purchase.completed_at = timezone.now()
            purchase.save(update_fields=['status', 'admin_notes', 'processed_by', 'completed_at', 'updated_at'])

            self._credit_tokens(purchase.user_id, purchase.token_amount)
            self.commissions.settle_safely(purchase)
            self.notifications.notify_purchase_completed(purchase)

        logger.info(f"Admin {admin.email} confirmed {purchase.reference_id}: {purchase.token_amount} DIT to {purchase.user.email}")
        self.emails.send_purchase_confirmation(purchase)
        return purchase

    def reject_payment(self, transaction_id, admin, notes=''):
        with transaction.atomic():
            try:
                purchase = Transaction.objects.select_for_update().select_related('user').get(pk=transaction_id)
            except Transaction.DoesNotExist:
                raise NotFoundError('Transaction not found')

            if purchase.transaction_type != Transaction.Type.PURCHASE:
                raise PaymentStateError('Only purchase transactions can be rejected')
            if purchase.status != Transaction.Status.PENDING:
                raise PaymentStateError(f'Transaction is already {purchase.status}')

            purchase.status = Transaction.Status.FAILED
            purchase.admin_notes = notes or 'Payment rejected by admin'
            purchase.processed_by = admin
            purchase.save(update_fields=['status', 'admin_notes', 'processed_by', 'updated_at'])
            self.notifications.notify_purchase_rejected(purchase, purchase.admin_notes)

        logger.info(f"Admin {admin.email} rejected {purchase.reference_id}")
        self.emails.send_purchase_rejected(purchase, purchase.admin_notes)
        return purchase

    def record_manual_deposit(self, admin, user_email, usdt_amount, tx_hash, from_wallet):
        """Book a USDT payment received off-platform as a completed purchase"""
        usdt_amount = Decimal(usdt_amount)
        with transaction.atomic():
            user = User.objects.filter(email__iexact=user_email).first()
            if user is None:
                raise NotFoundError('User not found')
            if not user.is_active:
                raise ServiceError('User account is not active')
            if Transaction.objects.filter(tx_hash=tx_hash).exists():
                raise PaymentStateError('This transaction hash has already been recorded')

            price = self.prices.get_current_price()
            purchase = Transaction.objects.create(
                user=user,
                transaction_type=Transaction.Type.PURCHASE,
                amount=usdt_amount,
                token_amount=self.prices.tokens_for(usdt_amount, price),
                price_per_token=price,
                status=Transaction.Status.COMPLETED,
                payment_method='usdt_erc20',
                tx_hash=tx_hash,
                wallet_address=from_wallet,
                description=f"Manual USDT deposit - {tx_hash}",
                admin_notes=f"Recorded by {admin.email}",
                processed_by=admin,
                completed_at=timezone.now(),
            )
            self._credit_tokens(user.pk, purchase.token_amount)
            self.commissions.settle_safely(purchase)
            self.notifications.notify_deposit(user, usdt_amount, tx_hash)

            admins = list(User.objects.filter(
                role__in=[User.Role.ADMIN, User.Role.SUPERADMIN],
                is_active=True
            ))
            for staff in admins:
                self.notifications.notify_system(
                    staff,
                    'Manual USDT Deposit Processed',
                    f"Admin processed USDT deposit for {user.email}: ${usdt_amount:.2f}"
                )

        logger.info(f"Manual deposit {tx_hash} for {user.email}: ${usdt_amount} -> {purchase.token_amount} DIT")
        self.emails.send_manual_deposit(purchase)
        self.emails.send_admin_notice(
            admins,
            'Manual USDT Deposit Processed',
            f"Admin {admin.email} processed a USDT deposit for {user.email}: ${usdt_amount:.2f} (tx {tx_hash})"
        )
        return purchase

    def purchase_from_balance(self, user, amount):
        """Spend internal USDT balance on tokens"""
        amount = Decimal(amount)
        if amount < settings.MIN_BALANCE_PURCHASE_AMOUNT:
            raise ServiceError(f"Minimum purchase amount is ${settings.MIN_BALANCE_PURCHASE_AMOUNT}")

        with transaction.atomic():
            try:
                buyer = User.objects.select_for_update().get(pk=user.pk)
            except User.DoesNotExist:
                raise NotFoundError('User not found')
            if not buyer.is_active:
                raise AccountInactiveError('User account is not active')
            if buyer.usdt_balance < amount:
                raise InsufficientBalanceError(
                    f"Insufficient USDT balance. Available: ${buyer.usdt_balance:.2f}"
                )

            price = self.prices.get_current_price()
            token_amount = self.prices.tokens_for(amount, price)

            User.objects.filter(pk=buyer.pk).update(
                usdt_balance=F('usdt_balance') - amount,
                total_tokens=F('total_tokens') + token_amount,
                available_tokens=F('available_tokens') + token_amount,
            )
            purchase = Transaction.objects.create(
                user=buyer,
                transaction_type=Transaction.Type.PURCHASE,
                amount=amount,
                token_amount=token_amount,
                price_per_token=price,
                status=Transaction.Status.COMPLETED,
                payment_method='usdt_balance',
                description=f"Purchased {token_amount} DIT from USDT balance at ${price}",
                completed_at=timezone.now(),
            )
            self.commissions.settle_safely(purchase)
            self.notifications.notify_purchase_completed(purchase)

        buyer.refresh_from_db()
        logger.info(f"{buyer.email} bought {token_amount} DIT from balance for ${amount}")
        self.emails.send_balance_purchase(purchase)
        return purchase, buyer

    def convert_to_usdt(self, user, token_amount):
        """Sell available DIT back to the platform at the current price"""
        token_amount = Decimal(token_amount)

        with transaction.atomic():
            seller = User.objects.select_for_update().get(pk=user.pk)
            if not seller.is_active:
                raise AccountInactiveError('Account is not active')
            if seller.available_tokens < token_amount:
                raise InsufficientBalanceError('Insufficient available DIT tokens')
            if token_amount < settings.MIN_CONVERSION_TOKENS:
                raise ServiceError(f"Minimum conversion amount is {settings.MIN_CONVERSION_TOKENS} DIT token")

            price = self.prices.get_current_price()
            usdt_amount = self.prices.usd_for(token_amount, price)

            User.objects.filter(pk=seller.pk).update(
                total_tokens=F('total_tokens') - token_amount,
                available_tokens=F('available_tokens') - token_amount,
                usdt_balance=F('usdt_balance') + usdt_amount,
            )
            conversion = Transaction.objects.create(
                user=seller,
                transaction_type=Transaction.Type.SALE,
                amount=usdt_amount,
                token_amount=token_amount,
                price_per_token=price,
                status=Transaction.Status.COMPLETED,
                payment_method='internal_conversion',
                description=f"DIT to USDT conversion: {token_amount.normalize():f} DIT → ${usdt_amount:.2f} USDT",
                completed_at=timezone.now(),
            )
            self.notifications.notify_conversion(conversion)

        seller.refresh_from_db()
        logger.info(f"{seller.email} converted {token_amount} DIT to ${usdt_amount} USDT at ${price}")
        return conversion, seller

    def conversion_history(self, user):
        return Transaction.objects.filter(
            user=user,
            transaction_type=Transaction.Type.SALE,
            payment_method='internal_conversion',
        ).order_by('-created_at')
