"""
Notification dispatcher.

Writes one row per recipient. Every function here is best-effort: failures are
logged and reported as an empty result, never raised into the workflow that
triggered the notification.
"""
import logging

from django.conf import settings
from django.db import transaction

from backoffice.core.permissions import admin_users
from .models import Notification

logger = logging.getLogger(__name__)


def prune_notifications(user, keep=None):
    """Keep only the ``keep`` most recent notifications of a user"""
    keep = settings.NOTIFICATION_RETENTION if keep is None else keep
    recent_ids = list(
        Notification.objects.filter(user=user)
        .order_by('-created_at', '-id')
        .values_list('id', flat=True)[:keep]
    )
    deleted, _ = Notification.objects.filter(user=user).exclude(id__in=recent_ids).delete()
    if deleted:
        logger.debug(f"Pruned {deleted} old notifications for user {user.pk}")
    return deleted


def _send(recipients, title, message, notification_type):
    try:
        with transaction.atomic():
            created = Notification.objects.bulk_create([
                Notification(user=recipient, title=title, message=message, type=notification_type)
                for recipient in recipients
            ])
            for recipient in recipients:
                prune_notifications(recipient)
        return created
    except Exception as e:
        logger.error(f"Failed to create '{notification_type}' notifications: {str(e)}", exc_info=True)
        return []


def notify_user(user, title, message, notification_type):
    """Notify a single user (e.g. the requester after an admin decision)"""
    if user is None:
        logger.warning(f"Skipping '{notification_type}' notification: no recipient")
        return None
    created = _send([user], title, message, notification_type)
    return created[0] if created else None


def notify_admins(title, message, notification_type, exclude=None):
    """Notify every admin, optionally skipping the user who caused the event"""
    try:
        recipients = list(admin_users())
    except Exception as e:
        logger.error(f"Could not enumerate admins for '{notification_type}' notification: {str(e)}", exc_info=True)
        return []

    if exclude is not None:
        recipients = [admin for admin in recipients if admin.pk != exclude.pk]
    if not recipients:
        logger.info(f"No admins to notify for '{notification_type}'")
        return []
    return _send(recipients, title, message, notification_type)
