import json
import logging

from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncWebsocketConsumer

from notifications.models import Notification
from notifications.services.notification_service import NotificationService

logger = logging.getLogger(__name__)


class NotificationConsumer(AsyncWebsocketConsumer):
    """WebSocket consumer for real-time notifications"""

    async def connect(self):
        self.user = self.scope["user"]

        if not self.user.is_authenticated:
            await self.close()
            return

        self.user_group_name = f'user_{self.user.id}'

        # Join user group
        await self.channel_layer.group_add(
            self.user_group_name,
            self.channel_name
        )

        await self.accept()

        await self.send(text_data=json.dumps({
            'type': 'unread_count',
            'count': await self.unread_count(),
        }))

    async def disconnect(self, close_code):
        if hasattr(self, 'user_group_name'):
            await self.channel_layer.group_discard(
                self.user_group_name,
                self.channel_name
            )

    async def receive(self, text_data):
        """Handle messages from WebSocket"""
        try:
            data = json.loads(text_data)
        except json.JSONDecodeError:
            await self.send(text_data=json.dumps({'type': 'error', 'error': 'Invalid JSON'}))
            return

        if not isinstance(data, dict):
            await self.send(text_data=json.dumps({'type': 'error', 'error': 'Invalid message'}))
            return

        action = data.get('action')

        if action == 'mark_read':
            marked = await self.mark_read(data.get('id'))
            await self.send(text_data=json.dumps({
                'type': 'marked_read',
                'id': data.get('id'),
                'success': marked,
            }))

        elif action == 'mark_all_read':
            updated = await self.mark_all_read()
            await self.send(text_data=json.dumps({'type': 'marked_all_read', 'updated': updated}))

        elif action == 'unread_count':
            await self.send(text_data=json.dumps({
                'type': 'unread_count',
                'count': await self.unread_count(),
            }))

        else:
            logger.debug(f"Ignoring unknown websocket action {action!r} from {self.user.email}")

    async def notification_message(self, event):
        """Send notification to WebSocket"""
        await self.send(text_data=json.dumps({
            'type': 'notification',
            'notification': event['notification']
        }))

    @database_sync_to_async
    def unread_count(self):
        return Notification.objects.filter(user=self.user, is_read=False).count()

    @database_sync_to_async
    def mark_read(self, notification_id):
        try:
            notification = Notification.objects.filter(user=self.user, pk=notification_id).first()
        except (TypeError, ValueError):
            # Ids arrive as raw JSON; anything that is not a number matches nothing
            return False
        if notification is None:
            return False
        NotificationService().mark_read(notification)
        return True

    @database_sync_to_async
    def mark_all_read(self):
        return NotificationService().mark_all_read(self.user)
