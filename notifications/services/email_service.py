# notifications/services/email_service.py
import logging
from decimal import Decimal

from django.conf import settings
from django.core.mail import send_mail

logger = logging.getLogger(__name__)


class EmailService:
    """
    Transactional email. Every send is best-effort: failures are logged and
    reported through the return value, never raised, so a mail outage can
    not undo a financial operation.
    """

    def _send(self, subject, message, recipients):
        recipients = [r for r in recipients if r]
        if not recipients:
            return False
        try:
            send_mail(
                subject=subject,
                message=message,
                from_email=settings.DEFAULT_FROM_EMAIL,
                recipient_list=recipients,
                fail_silently=False,
            )
            logger.info(f"Email '{subject}' sent to {', '.join(recipients)}")
            return True
        except Exception as e:
            logger.error(f"Failed to send email '{subject}' to {', '.join(recipients)}: {e}", exc_info=True)
            return False

    def send_welcome(self, user):
        return self._send(
            'Welcome to DITokens',
            f"""Hello {user.full_name},

Your DITokens account has been created.

Your referral code: {user.referral_code}
Referral link: {settings.FRONTEND_URL}/auth/sign-up?ref={user.referral_code}

Best regards,
DITokens Team""",
            [user.email],
        )

    def send_password_reset(self, user, uid, token):
        reset_url = f"{settings.FRONTEND_URL}/reset-password/{uid}/{token}/"
        return self._send(
            'Password Reset Request - DITokens',
            f"""Hello {user.username},

You requested a password reset for your DITokens account.

Click the link below to reset your password:
{reset_url}

If you didn't request this reset, please ignore this email.

Best regards,
DITokens Team""",
            [user.email],
        )

    def send_purchase_pending(self, purchase):
        return self._send(
            'Token Purchase Request Received - DITokens',
            f"""Hello {purchase.user.full_name},

We received your request to buy {purchase.token_amount} DIT for ${purchase.amount:.2f}.

Please send the payment to:
{purchase.wallet_address}

Reference: {purchase.reference_id}

Your tokens will be credited once an administrator confirms the payment.

DITokens Team""",
            [purchase.user.email],
        )

    def send_purchase_confirmation(self, purchase):
        return self._send(
            'Token Purchase Confirmed - DITokens',
            f"""Hello {purchase.user.full_name},

Your payment has been confirmed.

Amount: ${purchase.amount:.2f}
Tokens: {purchase.token_amount} DIT
Price per token: ${purchase.price_per_token}
Reference: {purchase.reference_id}

DITokens Team""",
            [purchase.user.email],
        )

    def send_purchase_rejected(self, purchase, reason):
        return self._send(
            'Token Purchase Rejected - DITokens',
            f"""Hello {purchase.user.full_name},

Your purchase {purchase.reference_id} for ${purchase.amount:.2f} was rejected.

Reason: {reason}

DITokens Team""",
            [purchase.user.email],
        )

    def send_balance_purchase(self, purchase):
        return self._send(
            'Tokens Purchased From Balance - DITokens',
            f"""Hello {purchase.user.full_name},

You bought {purchase.token_amount} DIT for ${purchase.amount:.2f} from your USDT balance.

Reference: {purchase.reference_id}

DITokens Team""",
            [purchase.user.email],
        )

    def send_manual_deposit(self, purchase):
        return self._send(
            'USDT Deposit Processed - DITokens',
            f"""Hello {purchase.user.full_name},

Your USDT deposit of ${purchase.amount:.2f} has been processed and
{purchase.token_amount} DIT were credited to your account.

Transaction hash: {purchase.tx_hash}

DITokens Team""",
            [purchase.user.email],
        )

    def send_admin_notice(self, admins, subject, message):
        return self._send(subject, message, [admin.email for admin in admins])

    def _withdrawal_label(self, withdrawal):
        if withdrawal.asset == withdrawal.Asset.USDT:
            return f"${Decimal(withdrawal.amount):.2f} USDT"
        return f"{withdrawal.token_amount} DIT (${Decimal(withdrawal.amount):.2f})"

    def send_withdrawal_approved(self, withdrawal):
        return self._send(
            'Withdrawal Approved - DITokens',
            f"""Hello {withdrawal.user.full_name},

Your withdrawal of {self._withdrawal_label(withdrawal)} has been approved.

Network: {withdrawal.network}
Wallet: {withdrawal.wallet_address}

DITokens Team""",
            [withdrawal.user.email],
        )

    def send_withdrawal_rejected(self, withdrawal):
        return self._send(
            'Withdrawal Rejected - DITokens',
            f"""Hello {withdrawal.user.full_name},

Your withdrawal of {self._withdrawal_label(withdrawal)} was rejected and the amount was returned to your balance.

Reason: {withdrawal.rejection_reason or 'Not specified'}

DITokens Team""",
            [withdrawal.user.email],
        )
