# funds/views.py
import logging

from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from core.permissions import IsAdminRole
from funds.models import Transaction, WithdrawalRequest
from funds.serializers import (
    AdminTransactionSerializer, ConfirmPaymentSerializer, ManualDepositSerializer,
    TransactionSerializer, UsdtWithdrawalCreateSerializer, WithdrawalActionSerializer,
    WithdrawalCreateSerializer, WithdrawalRequestSerializer
)
from funds.services.payment_service import PaymentService
from funds.services.withdrawal_service import WithdrawalService

logger = logging.getLogger(__name__)


class TransactionViewSet(viewsets.ReadOnlyModelViewSet):
    """Transaction history endpoints"""
    serializer_class = TransactionSerializer
    permission_classes = [IsAuthenticated]
    filterset_fields = ['transaction_type', 'status']
    ordering_fields = ['created_at', 'amount']
    ordering = ['-created_at']

    def get_queryset(self):
        return Transaction.objects.filter(user=self.request.user)


class WithdrawalViewSet(mixins.CreateModelMixin, viewsets.ReadOnlyModelViewSet):
    """The signed-in user's withdrawal requests"""
    serializer_class = WithdrawalRequestSerializer
    permission_classes = [IsAuthenticated]
    filterset_fields = ['status']
    ordering = ['-created_at']

    def get_queryset(self):
        return WithdrawalRequest.objects.filter(user=self.request.user).select_related('user')

    def create(self, request, *args, **kwargs):
        serializer = WithdrawalCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        withdrawal = WithdrawalService().request_withdrawal(
            user=request.user,
            **serializer.validated_data
        )
        return Response({
            'message': 'Withdrawal request submitted successfully',
            'withdrawal': WithdrawalRequestSerializer(withdrawal).data,
        }, status=status.HTTP_201_CREATED)


class UsdtWithdrawalView(APIView):
    """Request a payout of the USDT balance, or list past ones"""
    permission_classes = [IsAuthenticated]

    def get(self, request):
        withdrawals = WithdrawalService().usdt_withdrawals(request.user)
        return Response({'withdrawals': WithdrawalRequestSerializer(withdrawals, many=True).data})

    def post(self, request):
        serializer = UsdtWithdrawalCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        withdrawal = WithdrawalService().request_usdt_withdrawal(request.user, **serializer.validated_data)
        return Response({
            'message': 'USDT withdrawal request created successfully',
            'withdrawalRequest': {
                'id': withdrawal.id,
                'amount': withdrawal.amount,
                'walletAddress': withdrawal.wallet_address,
                'status': withdrawal.status,
            },
        }, status=status.HTTP_201_CREATED)


class AdminTransactionViewSet(viewsets.ReadOnlyModelViewSet):
    """All transactions, for admins"""
    serializer_class = AdminTransactionSerializer
    permission_classes = [IsAdminRole]
    queryset = Transaction.objects.select_related('user', 'processed_by')
    filterset_fields = ['transaction_type', 'status', 'payment_method', 'user']
    ordering_fields = ['created_at', 'amount']
    ordering = ['-created_at']

    @action(detail=False, methods=['get'])
    def pending(self, request):
        """Purchases waiting for payment confirmation"""
        pending = self.filter_queryset(self.get_queryset()).filter(
            transaction_type=Transaction.Type.PURCHASE,
            status=Transaction.Status.PENDING,
        )
        page = self.paginate_queryset(pending)
        if page is not None:
            return self.get_paginated_response(self.get_serializer(page, many=True).data)
        return Response(self.get_serializer(pending, many=True).data)


class AdminWithdrawalViewSet(viewsets.ReadOnlyModelViewSet):
    serializer_class = WithdrawalRequestSerializer
    permission_classes = [IsAdminRole]
    queryset = WithdrawalRequest.objects.select_related('user')
    filterset_fields = ['status', 'asset', 'network', 'can_withdraw']
    ordering = ['-created_at']


class ConfirmPaymentView(APIView):
    """Confirm or reject a pending token purchase"""
    permission_classes = [IsAdminRole]

    def post(self, request):
        serializer = ConfirmPaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        service = PaymentService()
        if data['action'] == 'confirm':
            purchase = service.confirm_payment(data['transaction_id'], request.user, data['admin_notes'])
            return Response({
                'message': 'Payment confirmed successfully',
                'transactionId': str(purchase.id),
                'tokensCredited': purchase.token_amount,
                'userEmail': purchase.user.email,
            })

        purchase = service.reject_payment(data['transaction_id'], request.user, data['admin_notes'])
        return Response({
            'message': 'Payment rejected',
            'transactionId': str(purchase.id),
        })


class ManualDepositView(APIView):
    """Record a USDT payment received outside the platform"""
    permission_classes = [IsAdminRole]

    def post(self, request):
        serializer = ManualDepositSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        purchase = PaymentService().record_manual_deposit(admin=request.user, **serializer.validated_data)
        return Response({
            'success': True,
            'message': 'USDT deposit processed successfully',
            'transaction': {
                'id': str(purchase.id),
                'usdtAmount': purchase.amount,
                'tokenAmount': purchase.token_amount,
                'pricePerToken': purchase.price_per_token,
                'userEmail': purchase.user.email,
                'txHash': purchase.tx_hash,
            },
        }, status=status.HTTP_201_CREATED)


class WithdrawalActionView(APIView):
    """Approve or reject a withdrawal request"""
    permission_classes = [IsAdminRole]

    def post(self, request):
        serializer = WithdrawalActionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        service = WithdrawalService()
        if data['action'] == 'approve':
            withdrawal = service.approve(data['withdrawal_id'], request.user)
            message = 'Withdrawal approved successfully'
        else:
            withdrawal = service.reject(data['withdrawal_id'], request.user, data['reason'])
            message = 'Withdrawal rejected and balance returned'

        return Response({
            'message': message,
            'withdrawal': WithdrawalRequestSerializer(withdrawal).data,
        })
