"""Publish/subscribe over the ``SocketEvent`` log.

``emit`` appends a record and pokes the channel-layer groups of everyone
subscribed to that event name (and room). Subscribers then re-read the whole
matching result set; nothing here acknowledges, orders beyond
``created_at``/``id``, or buffers on behalf of slow consumers.
"""
import logging
import re

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.conf import settings
from django.db import transaction
from django.utils import timezone

from .models import PresenceRoom, SocketEvent

logger = logging.getLogger(__name__)

_GROUP_UNSAFE = re.compile(r'[^A-Za-z0-9_.-]')


def event_group(event, room_key=None):
    name = f'events.{event}.{room_key}' if room_key else f'events.{event}'
    return _GROUP_UNSAFE.sub('_', name)[:99]


def user_group(user_id):
    return f'notifications.user.{user_id}'


def room_key_for(room_type, room_id):
    return f'{room_type}_{room_id}'


def broadcast(group, message):
    channel_layer = get_channel_layer()
    if channel_layer is None:
        return
    async_to_sync(channel_layer.group_send)(group, message)


def broadcast_on_commit(group, message):
    transaction.on_commit(lambda: broadcast(group, message))


def serialize_event(record):
    return {
        "id": record.id,
        "event": record.event,
        "room": record.room_key or None,
        "data": record.payload,
        "sender_id": record.sender_id,
        "timestamp": record.created_at.isoformat(),
    }


def emit(user, event, payload=None, room_key=''):
    if user is None or not user.is_authenticated:
        logger.warning("Dropped %r emitted without an authenticated user", event)
        return None

    record = SocketEvent.objects.create(
        event=event,
        room_key=room_key or '',
        payload=payload or {},
        sender=user,
    )

    groups = {event_group(event)}
    if record.room_key:
        groups.add(event_group(event, record.room_key))
    for group in groups:
        broadcast_on_commit(group, {"type": "events.changed", "group": group, "event": event})
    return record


def events_for(event, room_key=None, limit=None):
    """Latest ``limit`` records for ``event``, oldest first.

    ``room_key=None`` matches every room; ``''`` matches only unscoped events.
    """
    limit = limit or settings.REALTIME_SNAPSHOT_LIMIT
    qs = SocketEvent.objects.filter(event=event)
    if room_key is not None:
        qs = qs.filter(room_key=room_key)
    latest = list(qs.order_by('-created_at', '-id')[:limit])
    latest.reverse()
    return [serialize_event(r) for r in latest]


def join_room(user, room_type, room_id):
    room, _ = PresenceRoom.objects.get_or_create(key=room_key_for(room_type, room_id))
    room.members.add(user)
    room.last_joined = timezone.now()
    room.save(update_fields=['last_joined'])
    logger.debug("User %s joined presence room %s", user.id, room.key)
    return room


def leave_room(user, room_type, room_id):
    room = PresenceRoom.objects.filter(key=room_key_for(room_type, room_id)).first()
    if room is None:
        return None
    room.members.remove(user)
    logger.debug("User %s left presence room %s", user.id, room.key)
    return room


def room_members(room_type, room_id):
    return list(
        PresenceRoom.members.through.objects
        .filter(presenceroom__key=room_key_for(room_type, room_id))
        .order_by('user_id')
        .values_list('user_id', flat=True)
    )
