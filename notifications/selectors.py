from django.db.models import Q

from .models import Notification, NotificationType


def pending_requests_for(user):
    """Join requests waiting on ``user`` as community creator, newest first."""
    return (
        Notification.objects
        .filter(community_creator=user, notif_type=NotificationType.JOIN_REQUEST, is_read=False)
        .select_related('sender', 'community')
        .order_by('-created_at', '-id')
    )


def feed_for(user):
    """Everything ``user`` sent or received, minus the pending-request queue."""
    return (
        Notification.objects
        .filter(Q(sender=user) | Q(recipient=user))
        .exclude(community_creator=user, notif_type=NotificationType.JOIN_REQUEST, is_read=False)
        .select_related('sender', 'recipient', 'community')
        .order_by('-created_at', '-id')
    )


def unread_count(user):
    return Notification.objects.filter(recipient=user, is_read=False).count()


def serialize_notification(n):
    return {
        "id": n.id,
        "type": n.notif_type,
        "message": n.message,
        "user_id": n.recipient_id,
        "sender_id": n.sender_id,
        "community_creator_id": n.community_creator_id,
        "community_id": n.community_id,
        "community_name": n.community.name,
        "request_id": n.request_id,
        "read": n.is_read,
        "timestamp": n.created_at.isoformat(),
    }


def notification_snapshot(user):
    return {
        "pending": [serialize_notification(n) for n in pending_requests_for(user)],
        "feed": [serialize_notification(n) for n in feed_for(user)[:50]],
        "unread": unread_count(user),
    }
