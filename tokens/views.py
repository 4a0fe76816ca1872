# tokens/views.py
import logging

from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from core.permissions import IsAdminRole, IsSuperAdminRole
from funds.serializers import (
    BalancePurchaseSerializer, ConvertToUsdtSerializer, PurchaseRequestSerializer, TransactionSerializer
)
from funds.services.payment_service import PaymentService
from tokens.models import StakingRecord
from tokens.serializers import (
    SetTokenPriceSerializer, StakeSerializer, StakingRecordSerializer, TokenPriceSerializer
)
from tokens.services.price_service import TokenPriceService
from tokens.services.staking_service import StakingService

logger = logging.getLogger(__name__)


class CurrentPriceView(APIView):
    permission_classes = [AllowAny]

    def get(self, request):
        return Response({'price': TokenPriceService().get_current_price()})


class PurchaseView(APIView):
    """Open a purchase that is paid by external USDT transfer"""
    permission_classes = [IsAuthenticated]

    def post(self, request):
        serializer = PurchaseRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        purchase = PaymentService().create_purchase_request(request.user, **serializer.validated_data)
        return Response({
            'message': 'Purchase request created. Send the payment to the wallet address below.',
            'transaction': TransactionSerializer(purchase).data,
            'walletAddress': purchase.wallet_address,
        }, status=status.HTTP_201_CREATED)


class PurchaseFromBalanceView(APIView):
    """Buy tokens with the internal USDT balance"""
    permission_classes = [IsAuthenticated]

    def post(self, request):
        serializer = BalancePurchaseSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        purchase, buyer = PaymentService().purchase_from_balance(request.user, serializer.validated_data['amount'])
        return Response({
            'success': True,
            'message': f"Successfully purchased {purchase.token_amount} DIT tokens",
            'transaction': TransactionSerializer(purchase).data,
            'newBalances': {
                'usdtBalance': buyer.usdt_balance,
                'totalTokens': buyer.total_tokens,
                'availableTokens': buyer.available_tokens,
            },
        })


class ConvertToUsdtView(APIView):
    """Sell available DIT into the USDT balance at today's price"""
    permission_classes = [IsAuthenticated]

    def post(self, request):
        serializer = ConvertToUsdtSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        conversion, seller = PaymentService().convert_to_usdt(request.user, serializer.validated_data['token_amount'])
        return Response({
            'message': 'DIT tokens converted to USDT successfully',
            'conversion': {
                'tokenAmount': conversion.token_amount,
                'usdtAmount': conversion.amount,
                'currentPrice': conversion.price_per_token,
                'newUsdtBalance': seller.usdt_balance,
                'newAvailableTokens': seller.available_tokens,
            },
        })


class ConversionHistoryView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        conversions = PaymentService().conversion_history(request.user)
        return Response({'conversions': TransactionSerializer(conversions, many=True).data})


class StakingViewSet(viewsets.ReadOnlyModelViewSet):
    """The signed-in user's staking records"""
    serializer_class = StakingRecordSerializer
    permission_classes = [IsAuthenticated]
    filterset_fields = ['status']
    ordering = ['-created_at']

    def get_queryset(self):
        return StakingRecord.objects.filter(user=self.request.user).select_related('user')

    def stake(self, request):
        serializer = StakeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        record = StakingService().stake(request.user, serializer.validated_data['amount'])
        return Response({
            'message': 'Tokens staked successfully',
            'stakingRecord': StakingRecordSerializer(record).data,
        }, status=status.HTTP_201_CREATED)


class AdminStakingViewSet(viewsets.ReadOnlyModelViewSet):
    serializer_class = StakingRecordSerializer
    permission_classes = [IsAdminRole]
    queryset = StakingRecord.objects.select_related('user')
    filterset_fields = ['status', 'user']
    ordering = ['-created_at']

    @action(detail=False, methods=['get'])
    def stats(self, request):
        return Response(StakingService().stats())


class TokenPriceAdminView(APIView):
    """Price history and daily price updates"""
    permission_classes = [IsSuperAdminRole]

    def get(self, request):
        history = TokenPriceService().history()
        return Response({
            'currentPrice': TokenPriceService().get_current_price(),
            'prices': TokenPriceSerializer(history, many=True).data,
        })

    def post(self, request):
        serializer = SetTokenPriceSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        row = TokenPriceService().set_price(**serializer.validated_data)
        logger.info(f"Super admin {request.user.email} set token price {row.price} for {row.date}")
        return Response({
            'message': 'Token price updated successfully',
            'tokenPrice': TokenPriceSerializer(row).data,
        }, status=status.HTTP_201_CREATED)
