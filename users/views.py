# users/views.py
import logging

from django.contrib.auth import get_user_model
from django.contrib.auth.tokens import default_token_generator
from django.db import transaction
from django.db.models import Q
from django.utils.encoding import force_bytes, force_str
from django.utils.http import urlsafe_base64_decode, urlsafe_base64_encode
from rest_framework import generics, mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import ValidationError
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.exceptions import InvalidToken, TokenError
from rest_framework_simplejwt.tokens import RefreshToken
from rest_framework_simplejwt.views import TokenObtainPairView

from core.permissions import IsAdminRole, IsSuperAdminRole
from notifications.services.email_service import EmailService
from users.models import LoginHistory
from users.serializers import (
    AdminUserSerializer, BalanceSerializer, CustomTokenObtainPairSerializer, LoginHistorySerializer,
    PasswordResetConfirmSerializer, PasswordResetRequestSerializer,
    UserProfileSerializer, UserRegistrationSerializer, UserSerializer
)
from users.services.login_history_service import LoginHistoryService

logger = logging.getLogger(__name__)

User = get_user_model()


class UserRegistrationView(generics.CreateAPIView):
    """User registration endpoint"""
    queryset = User.objects.all()
    serializer_class = UserRegistrationSerializer
    permission_classes = [AllowAny]

    @transaction.atomic
    def create(self, request, *args, **kwargs):
        logger.info(f"Registration attempt for email: {request.data.get('email')}")

        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = serializer.save()

        logger.info(f"User registered successfully: {user.email} (ID: {user.id})")

        refresh = RefreshToken.for_user(user)
        return Response({
            'success': True,
            'user': UserSerializer(user).data,
            'tokens': {
                'refresh': str(refresh),
                'access': str(refresh.access_token),
            },
            'message': 'Registration successful! Welcome to DITokens.'
        }, status=status.HTTP_201_CREATED)


class CustomLoginView(TokenObtainPairView):
    serializer_class = CustomTokenObtainPairSerializer
    permission_classes = [AllowAny]

    def post(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        try:
            serializer.is_valid(raise_exception=True)
        except ValidationError:
            account = getattr(serializer, 'user', None)
            if account is not None:
                LoginHistoryService().record(account, request, LoginHistory.Status.FAILED)
            logger.warning(f"Failed login for: {request.data.get('login')}")
            raise
        except TokenError as e:
            raise InvalidToken(e.args[0])

        LoginHistoryService().record(serializer.user, request)
        logger.info(f"User logged in: {request.data.get('login')}")
        return Response(serializer.validated_data, status=status.HTTP_200_OK)


class TrackLoginView(APIView):
    """Record a sign-in made through another client, such as the web session"""
    permission_classes = [IsAuthenticated]

    def post(self, request):
        entry = LoginHistoryService().record(request.user, request)
        return Response({
            'success': True,
            'loginHistory': LoginHistorySerializer(entry).data,
        }, status=status.HTTP_201_CREATED)


class LoginHistoryView(APIView):
    """Recent sign-ins with totals for the account security page"""
    permission_classes = [IsAuthenticated]

    def get(self, request):
        service = LoginHistoryService()
        return Response({
            'history': LoginHistorySerializer(service.recent(request.user), many=True).data,
            'stats': service.stats(request.user),
        })


class PasswordResetRequestView(generics.GenericAPIView):
    """Handle password reset requests"""
    permission_classes = [AllowAny]
    serializer_class = PasswordResetRequestSerializer

    def post(self, request):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        email = serializer.validated_data['email']
        user = User.objects.filter(email__iexact=email, is_active=True).first()

        if user:
            token = default_token_generator.make_token(user)
            uid = urlsafe_base64_encode(force_bytes(user.pk))
            EmailService().send_password_reset(user, uid, token)

        # Same answer either way to prevent email enumeration
        return Response({
            'success': True,
            'message': 'If an account with that email exists, a password reset link has been sent.'
        }, status=status.HTTP_200_OK)


def _user_from_reset_link(uidb64, token):
    try:
        uid = force_str(urlsafe_base64_decode(uidb64))
        user = User.objects.get(pk=uid)
    except (TypeError, ValueError, OverflowError, User.DoesNotExist):
        return None
    if not default_token_generator.check_token(user, token):
        return None
    return user


class PasswordResetValidateView(APIView):
    permission_classes = [AllowAny]

    def get(self, request, uidb64, token):
        if _user_from_reset_link(uidb64, token) is None:
            return Response({
                'success': False,
                'error': 'Invalid or expired reset link.'
            }, status=status.HTTP_400_BAD_REQUEST)
        return Response({'success': True, 'message': 'Reset token is valid.'})


class PasswordResetConfirmView(generics.GenericAPIView):
    permission_classes = [AllowAny]
    serializer_class = PasswordResetConfirmSerializer

    def post(self, request, uidb64, token):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        user = _user_from_reset_link(uidb64, token)
        if user is None:
            return Response({
                'success': False,
                'error': 'Invalid or expired reset link. Please request a new password reset.'
            }, status=status.HTTP_400_BAD_REQUEST)

        user.set_password(serializer.validated_data['new_password'])
        user.save(update_fields=['password', 'updated_at'])
        logger.info(f"Password reset successful for user: {user.email}")

        return Response({
            'success': True,
            'message': 'Password has been reset successfully. You can now login with your new password.'
        })


class UserProfileView(generics.RetrieveUpdateAPIView):
    """Get and update the signed-in user's profile"""
    serializer_class = UserProfileSerializer
    permission_classes = [IsAuthenticated]

    def get_object(self):
        return self.request.user

    def retrieve(self, request, *args, **kwargs):
        serializer = self.get_serializer(request.user)
        return Response({'success': True, 'user': serializer.data})

    def update(self, request, *args, **kwargs):
        partial = kwargs.pop('partial', False)
        serializer = self.get_serializer(self.get_object(), data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        self.perform_update(serializer)
        return Response({
            'success': True,
            'user': serializer.data,
            'message': 'Profile updated successfully'
        })


class UserBalanceView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        request.user.refresh_from_db()
        return Response(BalanceSerializer(request.user).data)


class UserLogoutView(APIView):
    """User logout endpoint"""
    permission_classes = [IsAuthenticated]

    def post(self, request):
        refresh_token = request.data.get('refresh_token')
        if refresh_token:
            try:
                RefreshToken(refresh_token).blacklist()
            except TokenError as e:
                logger.warning(f"Token blacklist failed: {str(e)}")

        logger.info(f"User logged out: {request.user.email}")
        return Response({'success': True, 'message': 'Logged out successfully'})


class AdminUserViewSet(mixins.ListModelMixin,
                       mixins.RetrieveModelMixin,
                       mixins.UpdateModelMixin,
                       viewsets.GenericViewSet):
    """Account management for admins"""
    serializer_class = AdminUserSerializer
    permission_classes = [IsAdminRole]
    queryset = User.objects.select_related('referred_by')
    filterset_fields = ['role', 'is_active']
    ordering_fields = ['created_at', 'total_tokens', 'usdt_balance']
    ordering = ['-created_at']

    def get_queryset(self):
        queryset = super().get_queryset()
        search = self.request.query_params.get('search')
        if search:
            queryset = queryset.filter(Q(email__icontains=search) | Q(username__icontains=search))
        return queryset

    def perform_update(self, serializer):
        if 'role' in serializer.validated_data and not self.request.user.is_superadmin:
            self.permission_denied(self.request, message='Only a super admin can change roles')
        user = serializer.save()
        logger.info(f"Admin {self.request.user.email} updated user {user.email}")

    @action(detail=True, methods=['post'], permission_classes=[IsSuperAdminRole])
    def toggle_active(self, request, pk=None):
        """Activate or deactivate an account"""
        user = self.get_object()
        if user.pk == request.user.pk:
            return Response(
                {'error': 'You cannot deactivate your own account'},
                status=status.HTTP_400_BAD_REQUEST
            )
        user.is_active = not user.is_active
        user.save(update_fields=['is_active', 'updated_at'])
        logger.info(f"Admin {request.user.email} set is_active={user.is_active} for {user.email}")
        return Response(AdminUserSerializer(user).data)
