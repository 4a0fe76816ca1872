"""
Live notification stream over WebSocket
"""
import pytest
from channels.db import database_sync_to_async
from channels.testing import WebsocketCommunicator
from django.contrib.auth.models import AnonymousUser

from notifications.models import Notification
from notifications.services.notification_service import NotificationService
from realtime.consumers import NotificationConsumer


async def _connect(user):
    communicator = WebsocketCommunicator(NotificationConsumer.as_asgi(), '/ws/notifications/')
    communicator.scope['user'] = user
    connected, _ = await communicator.connect()
    assert connected
    # Unread count is pushed on connect
    greeting = await communicator.receive_json_from()
    assert greeting['type'] == 'unread_count'
    return communicator


@database_sync_to_async
def _is_read(notification_id):
    return Notification.objects.get(pk=notification_id).is_read


@pytest.mark.asyncio
@pytest.mark.django_db(transaction=True)
class TestNotificationConsumer:

    async def test_rejects_non_object_messages(self, referred):
        communicator = await _connect(referred)

        await communicator.send_to(text_data='[1, 2, 3]')
        assert await communicator.receive_json_from() == {'type': 'error', 'error': 'Invalid message'}

        await communicator.send_to(text_data='not json')
        assert await communicator.receive_json_from() == {'type': 'error', 'error': 'Invalid JSON'}

        await communicator.disconnect()

    async def test_mark_read_with_non_numeric_id(self, referred):
        communicator = await _connect(referred)

        await communicator.send_json_to({'action': 'mark_read', 'id': 'abc'})

        assert await communicator.receive_json_from() == {'type': 'marked_read', 'id': 'abc', 'success': False}
        await communicator.disconnect()

    async def test_mark_read(self, referred):
        notification = await database_sync_to_async(NotificationService().notify_system)(
            referred, 'Maintenance', 'Back soon'
        )
        communicator = await _connect(referred)

        await communicator.send_json_to({'action': 'mark_read', 'id': notification.id})

        reply = await communicator.receive_json_from()
        assert reply == {'type': 'marked_read', 'id': notification.id, 'success': True}
        assert await _is_read(notification.id) is True
        await communicator.disconnect()

    async def test_anonymous_is_refused(self):
        communicator = WebsocketCommunicator(NotificationConsumer.as_asgi(), '/ws/notifications/')
        communicator.scope['user'] = AnonymousUser()

        connected, _ = await communicator.connect()

        assert connected is False
