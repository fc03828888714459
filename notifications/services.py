import logging

from django.core.exceptions import PermissionDenied, ValidationError
from django.db import transaction

from .models import Notification

logger = logging.getLogger(__name__)


def mark_read(notification_id, user):
    notification = Notification.objects.get(pk=notification_id)
    if notification.recipient_id != user.id:
        raise PermissionDenied("You can only update your own notifications.")
    if notification.is_pending_request:
        raise ValidationError("Approve or reject this join request instead.")
    if not notification.is_read:
        notification.is_read = True
        notification.save(update_fields=['is_read'])
    return notification


@transaction.atomic
def delete_notification(notification_id, user):
    """Delete a notification the user sent or received.

    Deleting a still-pending join request withdraws the request as well, so
    the requester never stays pending without a request on record.
    """
    notification = Notification.objects.select_for_update().select_related('community').get(pk=notification_id)
    if user.id not in (notification.recipient_id, notification.sender_id):
        raise PermissionDenied("You can only delete your own notifications.")

    if notification.is_pending_request:
        notification.community.join_requests.remove(notification.sender_id)
        logger.info(
            "Join request of user %s to community %s withdrawn by user %s",
            notification.sender_id, notification.community_id, user.id,
        )
    notification.delete()
