# referrals/views.py
import logging
from datetime import timedelta
from decimal import Decimal

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db.models import Count, DecimalField, Q, Sum, Value
from django.db.models.functions import Coalesce
from django.utils import timezone
from rest_framework import viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from core.permissions import IsAdminRole, IsSuperAdminRole
from funds.models import Transaction
from referrals.models import CommissionSettings, ReferralCommission
from referrals.serializers import (
    AdminReferralCommissionSerializer, CommissionRejectSerializer, CommissionSettingsSerializer,
    ReferralCommissionSerializer
)
from referrals.services.commission_service import CommissionSettlementService

logger = logging.getLogger(__name__)

User = get_user_model()

ZERO = Value(Decimal('0'), output_field=DecimalField(max_digits=20, decimal_places=8))

PENDING_WINDOW_DAYS = 30


def commission_totals(queryset):
    totals = queryset.aggregate(
        count=Count('id'),
        total=Coalesce(Sum('amount', filter=Q(is_rejected=False)), ZERO),
        paid=Coalesce(Sum('amount', filter=Q(is_paid=True)), ZERO),
        unpaid=Coalesce(Sum('amount', filter=Q(is_paid=False, is_rejected=False)), ZERO),
        rejected=Coalesce(Sum('amount', filter=Q(is_rejected=True)), ZERO),
    )
    totals['paid_count'] = queryset.filter(is_paid=True).count()
    totals['rejected_count'] = queryset.filter(is_rejected=True).count()
    totals['unpaid_count'] = totals['count'] - totals['paid_count'] - totals['rejected_count']
    return totals


class ReferralViewSet(viewsets.ViewSet):
    """Referral program endpoints"""
    permission_classes = [IsAuthenticated]

    def list(self, request):
        """Referral code, link and earnings summary"""
        user = request.user
        commissions = ReferralCommission.objects.filter(referrer=user)
        totals = commission_totals(commissions)
        return Response({
            'referralCode': user.referral_code,
            'referralLink': f'{settings.FRONTEND_URL}/auth/sign-up?ref={user.referral_code}',
            'totalReferrals': User.objects.filter(referred_by=user).count(),
            'totalEarnings': totals['total'],
            'pendingEarnings': totals['unpaid'],
        })

    @action(detail=False, methods=['get'])
    def code(self, request):
        return Response({
            'referral_code': request.user.referral_code,
            'referral_link': f'{settings.FRONTEND_URL}/auth/sign-up?ref={request.user.referral_code}',
        })

    @action(detail=False, methods=['get'])
    def stats(self, request):
        referred_users = User.objects.filter(referred_by=request.user)
        totals = commission_totals(ReferralCommission.objects.filter(referrer=request.user))
        buyers = referred_users.filter(
            transactions__transaction_type=Transaction.Type.PURCHASE,
            transactions__status=Transaction.Status.COMPLETED,
        ).distinct().count()

        return Response({
            'total_referrals': referred_users.count(),
            'active_referrals': buyers,
            'total_commission': totals['total'],
            'paid_commission': totals['paid'],
            'unpaid_commission': totals['unpaid'],
            'commission_rate': CommissionSettings.load().referral_rate,
        })

    @action(detail=False, methods=['get'])
    def commissions(self, request):
        commissions = ReferralCommission.objects.filter(
            referrer=request.user
        ).select_related('referred_user', 'purchase').order_by('-created_at')
        return Response(ReferralCommissionSerializer(commissions, many=True).data)

    @action(detail=False, methods=['get'])
    def history(self, request):
        """Referred users with what they spent and what they earned the referrer"""
        referred_users = User.objects.filter(referred_by=request.user).annotate(
            total_spent=Coalesce(
                Sum('transactions__amount', filter=Q(
                    transactions__transaction_type=Transaction.Type.PURCHASE,
                    transactions__status=Transaction.Status.COMPLETED,
                )),
                ZERO,
            ),
        ).order_by('-created_at')

        earned = dict(
            ReferralCommission.objects.filter(referrer=request.user, is_rejected=False)
            .values_list('referred_user_id', 'amount')
        )
        pending_since = timezone.now() - timedelta(days=PENDING_WINDOW_DAYS)

        history = []
        for user in referred_users:
            if user.total_spent > 0:
                referral_status = 'ACTIVE'
            elif user.created_at >= pending_since:
                referral_status = 'PENDING'
            else:
                referral_status = 'INACTIVE'
            history.append({
                'id': str(user.id),
                'name': user.full_name,
                'email': user.email,
                'joinedAt': user.created_at,
                'totalSpent': user.total_spent,
                'commissionEarned': earned.get(user.id, Decimal('0')),
                'status': referral_status,
            })
        return Response(history)


class AdminCommissionViewSet(viewsets.ReadOnlyModelViewSet):
    """Referral commissions across all referrers"""
    serializer_class = AdminReferralCommissionSerializer
    permission_classes = [IsAdminRole]
    queryset = ReferralCommission.objects.select_related('referrer', 'referred_user', 'purchase')
    filterset_fields = ['is_paid', 'is_rejected', 'month', 'year', 'referrer']
    ordering_fields = ['created_at', 'amount']
    ordering = ['-created_at']

    def list(self, request, *args, **kwargs):
        queryset = self.filter_queryset(self.get_queryset())
        page = self.paginate_queryset(queryset)
        serializer = self.get_serializer(page if page is not None else queryset, many=True)
        payload = {
            'stats': commission_totals(queryset),
            'commissions': serializer.data,
        }
        if page is not None:
            paginated = self.get_paginated_response(serializer.data)
            paginated.data['stats'] = payload['stats']
            return paginated
        return Response(payload)

    @action(detail=True, methods=['post'], permission_classes=[IsSuperAdminRole])
    def pay(self, request, pk=None):
        """Pay an approved commission into the referrer's USDT balance"""
        commission = CommissionSettlementService().pay(self.get_object(), request.user)
        return Response({
            'message': 'Commission paid successfully',
            'commission': AdminReferralCommissionSerializer(commission).data,
        })

    @action(detail=True, methods=['post'], permission_classes=[IsSuperAdminRole])
    def reject(self, request, pk=None):
        """Refuse an unpaid commission and reverse it out of the referrer's earnings"""
        serializer = CommissionRejectSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        commission = CommissionSettlementService().reject(
            self.get_object(), request.user, serializer.validated_data['rejection_reason']
        )
        return Response({
            'message': 'Commission rejected successfully',
            'commissionId': commission.id,
            'referrerEmail': commission.referrer.email,
        })

    @action(detail=False, methods=['get'])
    def overview(self, request):
        """Program-wide referral statistics"""
        referred = User.objects.filter(referred_by__isnull=False)
        top_referrers = (
            User.objects.annotate(referral_count=Count('referrals'))
            .filter(referral_count__gt=0)
            .order_by('-referral_count', '-referral_earnings')[:10]
        )
        return Response({
            'total_referred_users': referred.count(),
            'total_referrers': User.objects.filter(referrals__isnull=False).distinct().count(),
            'commissions': commission_totals(ReferralCommission.objects.all()),
            'commission_rate': CommissionSettings.load().referral_rate,
            'top_referrers': [{
                'email': u.email,
                'name': u.full_name,
                'referral_count': u.referral_count,
                'referral_earnings': u.referral_earnings,
            } for u in top_referrers],
        })


class CommissionSettingsView(APIView):
    """Read or change the referral commission rate"""

    def get_permissions(self):
        if self.request.method == 'GET':
            return [IsAdminRole()]
        return [IsSuperAdminRole()]

    def get(self, request):
        return Response(CommissionSettingsSerializer(CommissionSettings.load()).data)

    def put(self, request):
        commission_settings = CommissionSettings.load()
        serializer = CommissionSettingsSerializer(commission_settings, data=request.data)
        serializer.is_valid(raise_exception=True)
        serializer.save(updated_by=request.user.email)

        logger.info(f"{request.user.email} set referral rate to {commission_settings.referral_rate}%")
        return Response({
            'message': 'Commission settings updated successfully',
            'settings': serializer.data,
        })
