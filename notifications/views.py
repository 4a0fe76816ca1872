# notifications/views.py
import logging

from django.contrib.auth import get_user_model
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from core.permissions import IsAdminRole
from notifications.models import Notification
from notifications.serializers import AdminMessageSerializer, NotificationSerializer
from notifications.services.notification_service import NotificationService

logger = logging.getLogger(__name__)

User = get_user_model()

MAX_LIMIT = 100


class NotificationViewSet(mixins.ListModelMixin,
                          mixins.RetrieveModelMixin,
                          mixins.DestroyModelMixin,
                          viewsets.GenericViewSet):
    """Notification center for the signed-in user"""
    serializer_class = NotificationSerializer
    permission_classes = [IsAuthenticated]
    pagination_class = None
    filterset_fields = ['notification_type', 'is_read']

    def get_queryset(self):
        return Notification.objects.filter(user=self.request.user).order_by('-created_at')

    def list(self, request, *args, **kwargs):
        """?unread=true for unread only, ?limit=N (default 10)"""
        queryset = self.filter_queryset(self.get_queryset())
        if request.query_params.get('unread') == 'true':
            queryset = queryset.filter(is_read=False)

        try:
            limit = min(int(request.query_params.get('limit', 10)), MAX_LIMIT)
        except ValueError:
            limit = 10

        return Response({
            'notifications': self.get_serializer(queryset[:limit], many=True).data,
            'unreadCount': self.get_queryset().filter(is_read=False).count(),
        })

    @action(detail=True, methods=['post'])
    def mark_read(self, request, pk=None):
        notification = NotificationService().mark_read(self.get_object())
        return Response(self.get_serializer(notification).data)

    @action(detail=False, methods=['post'])
    def mark_all_read(self, request):
        updated = NotificationService().mark_all_read(request.user)
        return Response({'message': f'{updated} notifications marked as read', 'updated': updated})

    @action(detail=False, methods=['get'])
    def unread_count(self, request):
        return Response({'unreadCount': self.get_queryset().filter(is_read=False).count()})


class AdminNotificationView(APIView):
    """Send an admin message to one user or broadcast it"""
    permission_classes = [IsAdminRole]

    def post(self, request):
        serializer = AdminMessageSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        if data['broadcast']:
            recipients = User.objects.filter(is_active=True)
        else:
            recipients = User.objects.filter(pk=data['user_id'])
            if not recipients.exists():
                return Response({'error': 'User not found'}, status=status.HTTP_404_NOT_FOUND)

        service = NotificationService()
        sent = 0
        for user in recipients:
            service.notify_admin_message(user, data['title'], data['message'], request.user.full_name)
            sent += 1

        logger.info(f"Admin {request.user.email} sent '{data['title']}' to {sent} user(s)")
        return Response({'message': f'Notification sent to {sent} user(s)', 'sent': sent},
                        status=status.HTTP_201_CREATED)
