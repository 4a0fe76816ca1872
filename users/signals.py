# users/signals.py
import logging

from django.contrib.auth import get_user_model
from django.db.models.signals import post_save
from django.dispatch import receiver

logger = logging.getLogger(__name__)

User = get_user_model()


@receiver(post_save, sender=User)
def welcome_new_user(sender, instance, created, **kwargs):
    """
    Greet a newly created account in the notification center and by email.
    """
    if not created:
        return

    from notifications.services.email_service import EmailService
    from notifications.services.notification_service import NotificationService

    NotificationService().notify_welcome(instance)
    EmailService().send_welcome(instance)
    logger.info(f"Welcome sent to new user {instance.email}")
