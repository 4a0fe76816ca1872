# reports/services/report_service.py
import csv
import io
import logging
from datetime import datetime, time
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.db.models import Count, DecimalField, Q, Sum, Value
from django.db.models.functions import Coalesce
from django.utils import timezone

from funds.models import Transaction, WithdrawalRequest
from referrals.models import ReferralCommission
from tokens.models import StakingRecord
from tokens.services.price_service import TokenPriceService

logger = logging.getLogger(__name__)

User = get_user_model()

ZERO = Value(Decimal('0'), output_field=DecimalField(max_digits=20, decimal_places=8))

REPORT_TYPES = ('transactions', 'withdrawals', 'users', 'referrals', 'commissions')


class ReportService:
    """Flat exports of platform data for the admin dashboard"""

    def _date_filter(self, start_date, end_date, field='created_at'):
        # Both bounds cover the whole day
        tz = timezone.get_current_timezone()
        filters = {}
        if start_date:
            filters[f'{field}__gte'] = timezone.make_aware(datetime.combine(start_date, time.min), tz)
        if end_date:
            filters[f'{field}__lte'] = timezone.make_aware(datetime.combine(end_date, time.max), tz)
        return filters

    def build(self, report_type, start_date=None, end_date=None):
        if report_type not in REPORT_TYPES:
            raise ValueError(f'Invalid report type: {report_type}')
        builder = getattr(self, f'_{report_type}')
        rows = builder(self._date_filter(start_date, end_date))
        logger.info(f"Built {report_type} report with {len(rows)} rows ({start_date or 'unlimited'} to {end_date or 'unlimited'})")
        return rows

    def _transactions(self, date_filter):
        queryset = Transaction.objects.filter(**date_filter).select_related('user').order_by('-created_at')
        return [{
            'id': str(t.id),
            'referenceId': t.reference_id,
            'userEmail': t.user.email,
            'userName': t.user.full_name,
            'type': t.transaction_type,
            'amount': t.amount,
            'tokenAmount': t.token_amount,
            'pricePerToken': t.price_per_token,
            'status': t.status,
            'paymentMethod': t.payment_method,
            'txHash': t.tx_hash,
            'walletAddress': t.wallet_address,
            'description': t.description,
            'createdAt': t.created_at.isoformat(),
            'completedAt': t.completed_at.isoformat() if t.completed_at else None,
        } for t in queryset]

    def _withdrawals(self, date_filter):
        queryset = WithdrawalRequest.objects.filter(**date_filter).select_related('user').order_by('-created_at')
        return [{
            'id': w.id,
            'userEmail': w.user.email,
            'userName': w.user.full_name,
            'amount': w.amount,
            'asset': w.asset,
            'tokenAmount': w.token_amount,
            'network': w.network,
            'walletAddress': w.wallet_address,
            'status': w.status,
            'lockPeriodDays': w.lock_period_days,
            'canWithdraw': w.can_withdraw,
            'processedAt': w.processed_at.isoformat() if w.processed_at else None,
            'createdAt': w.created_at.isoformat(),
        } for w in queryset]

    def _users(self, date_filter):
        queryset = User.objects.filter(**date_filter).select_related('referred_by').order_by('-created_at')
        return [{
            'id': str(u.id),
            'name': u.full_name,
            'email': u.email,
            'phoneNumber': u.phone_number,
            'country': u.country,
            'state': u.state,
            'role': u.role,
            'isActive': u.is_active,
            'referralCode': u.referral_code,
            'referredBy': u.referred_by.referral_code if u.referred_by else None,
            'walletAddress': u.wallet_address,
            'totalTokens': u.total_tokens,
            'availableTokens': u.available_tokens,
            'stakedTokens': u.staked_tokens,
            'usdtBalance': u.usdt_balance,
            'referralEarnings': u.referral_earnings,
            'totalEarnings': u.total_earnings,
            'createdAt': u.created_at.isoformat(),
        } for u in queryset]

    def _referrals(self, date_filter):
        queryset = User.objects.filter(
            referred_by__isnull=False, **date_filter
        ).select_related('referred_by').order_by('-created_at')
        return [{
            'id': str(u.id),
            'name': u.full_name,
            'email': u.email,
            'referralCode': u.referral_code,
            'referredBy': u.referred_by.referral_code,
            'referrerName': u.referred_by.full_name,
            'referrerEmail': u.referred_by.email,
            'totalTokens': u.total_tokens,
            'createdAt': u.created_at.isoformat(),
        } for u in queryset]

    def _commissions(self, date_filter):
        queryset = ReferralCommission.objects.filter(**date_filter).select_related(
            'referrer', 'referred_user'
        ).order_by('-created_at')
        return [{
            'id': c.id,
            'referrerName': c.referrer.full_name,
            'referrerEmail': c.referrer.email,
            'referredUserName': c.referred_user.full_name,
            'referredUserEmail': c.referred_user.email,
            'amount': c.amount,
            'tokenAmount': c.token_amount,
            'pricePerToken': c.price_per_token,
            'commissionRate': c.commission_rate,
            'isPaid': c.is_paid,
            'paidAt': c.paid_at.isoformat() if c.paid_at else None,
            'isRejected': c.is_rejected,
            'rejectionReason': c.rejection_reason,
            'month': c.month,
            'year': c.year,
            'createdAt': c.created_at.isoformat(),
        } for c in queryset]

    def to_csv(self, rows):
        if not rows:
            return ''
        buffer = io.StringIO()
        writer = csv.DictWriter(buffer, fieldnames=list(rows[0].keys()))
        writer.writeheader()
        writer.writerows(rows)
        return buffer.getvalue()

    def dashboard(self):
        """Headline numbers for the admin dashboard"""
        purchases = Transaction.objects.filter(transaction_type=Transaction.Type.PURCHASE)
        completed = purchases.filter(status=Transaction.Status.COMPLETED)
        sales = completed.aggregate(
            revenue=Coalesce(Sum('amount'), ZERO),
            tokens_sold=Coalesce(Sum('token_amount'), ZERO),
        )
        commissions = ReferralCommission.objects.aggregate(
            total=Coalesce(Sum('amount', filter=Q(is_rejected=False)), ZERO),
            unpaid=Coalesce(Sum('amount', filter=Q(is_paid=False, is_rejected=False)), ZERO),
            rejected=Coalesce(Sum('amount', filter=Q(is_rejected=True)), ZERO),
        )
        users = User.objects.aggregate(
            total=Count('id'),
            active=Count('id', filter=Q(is_active=True)),
            referred=Count('id', filter=Q(referred_by__isnull=False)),
        )
        return {
            'users': users,
            'revenue': sales['revenue'],
            'tokensSold': sales['tokens_sold'],
            'completedPurchases': completed.count(),
            'pendingPayments': purchases.filter(status=Transaction.Status.PENDING).count(),
            'pendingWithdrawals': WithdrawalRequest.objects.filter(status=WithdrawalRequest.Status.PENDING).count(),
            'activeStakes': StakingRecord.objects.filter(status=StakingRecord.Status.ACTIVE).count(),
            'commissions': commissions,
            'currentPrice': TokenPriceService().get_current_price(),
        }
