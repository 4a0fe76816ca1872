# notifications/serializers.py
from django.contrib.auth import get_user_model
from rest_framework import serializers

from notifications.models import Notification

User = get_user_model()


class NotificationSerializer(serializers.ModelSerializer):
    class Meta:
        model = Notification
        fields = ['id', 'notification_type', 'title', 'message', 'icon', 'data',
                  'is_read', 'read_at', 'created_at']
        read_only_fields = fields


class AdminMessageSerializer(serializers.Serializer):
    """Message from an admin to one user (userId) or to every active user"""
    userId = serializers.UUIDField(source='user_id', required=False)
    title = serializers.CharField(max_length=200)
    message = serializers.CharField()
    broadcast = serializers.BooleanField(default=False)

    def validate(self, attrs):
        if not attrs.get('broadcast') and not attrs.get('user_id'):
            raise serializers.ValidationError({'userId': 'Provide a user or set broadcast.'})
        return attrs
