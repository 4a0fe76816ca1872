# notifications/services/notification_service.py
import logging
from decimal import Decimal

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.utils import timezone

from notifications.models import Notification

logger = logging.getLogger(__name__)


def _usd(value):
    return f"${Decimal(value):,.2f}"


class NotificationService:
    """Create in-app notifications and push them to connected clients"""

    def notify(self, user, notification_type, title, message, icon='', data=None):
        notification = Notification.objects.create(
            user=user,
            notification_type=notification_type,
            title=title,
            message=message,
            icon=icon,
            data=data or {},
        )
        self._send_websocket(notification)
        return notification

    def _send_websocket(self, notification):
        """Send real-time WebSocket notification"""
        try:
            channel_layer = get_channel_layer()
            if channel_layer is None:
                return
            async_to_sync(channel_layer.group_send)(
                f'user_{notification.user_id}',
                {
                    'type': 'notification_message',
                    'notification': {
                        'id': notification.id,
                        'type': notification.notification_type,
                        'title': notification.title,
                        'message': notification.message,
                        'icon': notification.icon,
                        'data': notification.data,
                        'created_at': notification.created_at.isoformat(),
                    }
                }
            )
        except Exception as e:
            logger.warning(f"WebSocket push failed for notification {notification.id}: {e}")

    def notify_welcome(self, user):
        return self.notify(
            user, Notification.Type.SYSTEM,
            'Welcome to DITokens',
            f"Hi {user.full_name}, your account is ready. Share your referral code {user.referral_code} to earn commissions.",
            icon='📢',
        )

    def notify_purchase_completed(self, purchase):
        return self.notify(
            purchase.user, Notification.Type.TOKEN_PURCHASE,
            'Token Purchase Successful',
            f"You have successfully purchased {purchase.token_amount.normalize():f} DIT tokens for {_usd(purchase.amount)}",
            icon='💰',
            data={'transaction_id': str(purchase.id), 'reference_id': purchase.reference_id},
        )

    def notify_purchase_pending(self, purchase):
        return self.notify(
            purchase.user, Notification.Type.TOKEN_PURCHASE,
            'Token Purchase Pending',
            f"Your purchase of {purchase.token_amount.normalize():f} DIT tokens for {_usd(purchase.amount)} "
            f"is pending payment confirmation. Transaction ID: {purchase.reference_id}",
            icon='⏳',
            data={'transaction_id': str(purchase.id), 'reference_id': purchase.reference_id},
        )

    def notify_purchase_rejected(self, purchase, reason):
        return self.notify(
            purchase.user, Notification.Type.TOKEN_PURCHASE,
            'Token Purchase Rejected',
            f"Your purchase of {purchase.token_amount.normalize():f} DIT tokens for {_usd(purchase.amount)} "
            f"was rejected. Reason: {reason}",
            icon='❌',
            data={'transaction_id': str(purchase.id), 'reference_id': purchase.reference_id},
        )

    def notify_referral_commission(self, referrer, referred_user, commission):
        return self.notify(
            referrer, Notification.Type.REFERRAL,
            'Referral Commission Earned',
            f"You earned {_usd(commission.amount)} commission from {referred_user.full_name}'s token purchase",
            icon='🎉',
            data={'commission_id': commission.id, 'referred_user': str(referred_user.id)},
        )

    def notify_commission_paid(self, commission):
        return self.notify(
            commission.referrer, Notification.Type.REFERRAL,
            'Referral Commission Paid',
            f"{_usd(commission.amount)} referral commission has been added to your USDT balance",
            icon='💵',
            data={'commission_id': commission.id},
        )

    def notify_commission_rejected(self, commission):
        return self.notify(
            commission.referrer, Notification.Type.REFERRAL,
            'Referral Commission Rejected',
            f"Your {_usd(commission.amount)} commission from {commission.referred_user.full_name} "
            f"was rejected. Reason: {commission.rejection_reason}",
            icon='❌',
            data={'commission_id': commission.id},
        )

    def notify_conversion(self, conversion):
        return self.notify(
            conversion.user, Notification.Type.TOKEN_PURCHASE,
            'Tokens Converted to USDT',
            f"You converted {conversion.token_amount.normalize():f} DIT into {_usd(conversion.amount)} USDT",
            icon='🔄',
            data={'transaction_id': str(conversion.id), 'reference_id': conversion.reference_id},
        )

    def notify_deposit(self, user, amount, tx_hash):
        return self.notify(
            user, Notification.Type.DEPOSIT,
            'USDT Deposit Processed',
            f"Your USDT deposit of {_usd(amount)} has been credited as a DIT token purchase.",
            icon='💰',
            data={'tx_hash': tx_hash},
        )

    def notify_withdrawal(self, withdrawal):
        status_text = {
            'PENDING': 'has been submitted and is awaiting review',
            'APPROVED': 'has been approved',
            'REJECTED': 'has been rejected',
        }.get(withdrawal.status, withdrawal.status.lower())
        icon = {'PENDING': '⏳', 'APPROVED': '✅', 'REJECTED': '❌'}.get(withdrawal.status, '')
        return self.notify(
            withdrawal.user, Notification.Type.WITHDRAWAL,
            f"Withdrawal {withdrawal.status.lower()}",
            f"Your withdrawal request of {_usd(withdrawal.amount)} {status_text}",
            icon=icon,
            data={'withdrawal_id': withdrawal.id},
        )

    def notify_stake(self, record):
        return self.notify(
            record.user, Notification.Type.STAKING,
            'Tokens Staked',
            f"You staked {record.amount.normalize():f} DIT at {record.apy}% APY until {record.end_date:%Y-%m-%d}",
            icon='🔒',
            data={'staking_record_id': record.id},
        )

    def notify_admin_message(self, user, title, message, admin_name=None):
        return self.notify(
            user, Notification.Type.ADMIN_MESSAGE,
            title,
            f"{message} - {admin_name}" if admin_name else message,
            icon='👨‍💼',
        )

    def notify_system(self, user, title, message):
        return self.notify(user, Notification.Type.SYSTEM, title, message, icon='📢')

    def mark_read(self, notification):
        if not notification.is_read:
            notification.is_read = True
            notification.read_at = timezone.now()
            notification.save(update_fields=['is_read', 'read_at'])
        return notification

    def mark_all_read(self, user):
        return Notification.objects.filter(user=user, is_read=False).update(
            is_read=True, read_at=timezone.now()
        )
