import logging

from django.core.exceptions import PermissionDenied, ValidationError
from django.core.validators import URLValidator
from django.db import transaction

from community.models import Community
from profiles.utils import display_name
from realtime.services import emit, room_key_for
from .models import StudyRoom, RoomParticipant, RoomMessage, RoomPost, Resource

logger = logging.getLogger(__name__)

ROOM_TYPE = 'studyroom'


def room_for_member(room_id, user, lock=False):
    qs = StudyRoom.objects.select_related('community')
    if lock:
        qs = qs.select_for_update()
    room = qs.get(pk=room_id)
    if not room.community.is_member(user):
        raise PermissionDenied("You must be a member of this community to use its study rooms.")
    return room


def _clean_text(value, label):
    value = (value or '').strip()
    if not value:
        raise ValidationError(f"{label} is required.")
    return value


def _notify(user, room, event, payload):
    emit(user, event, {"room_id": room.id, **payload}, room_key=room_key_for(ROOM_TYPE, room.id))


def purge_room(room):
    """Delete everything owned by a room but not the room itself."""
    counts = {
        'messages': RoomMessage.objects.filter(room=room).delete()[0],
        'room_posts': RoomPost.objects.filter(room=room).delete()[0],
        'resources': Resource.objects.filter(room=room).delete()[0],
        'participants': RoomParticipant.objects.filter(room=room).delete()[0],
    }
    return counts


def create_room(creator, community_id, name, description=''):
    community = Community.objects.get(pk=community_id)
    if not community.is_member(creator):
        raise PermissionDenied("You must join this community before creating study rooms.")
    room = StudyRoom.objects.create(
        community=community,
        name=_clean_text(name, 'Room name'),
        description=(description or '').strip(),
        creator=creator,
    )
    logger.info("Study room %s created in community %s by user %s", room.id, community.id, creator.id)
    return room


@transaction.atomic
def delete_room(room_id, user):
    room = StudyRoom.objects.select_for_update().get(pk=room_id)
    if room.creator_id != user.id:
        raise PermissionDenied("Only the creator can delete this room.")
    counts = purge_room(room)
    room.delete()
    emit(user, 'room:deleted', {"room_id": room_id}, room_key=room_key_for(ROOM_TYPE, room_id))
    logger.info("Study room %s deleted by user %s: %s", room_id, user.id, counts)
    return counts


@transaction.atomic
def join_room(user, room_id):
    room = room_for_member(room_id, user, lock=True)
    participant, created = RoomParticipant.objects.get_or_create(
        room=room,
        user=user,
        defaults={'display_name': display_name(user)},
    )
    if not created and participant.status != RoomParticipant.Status.ACTIVE:
        participant.status = RoomParticipant.Status.ACTIVE
        participant.save(update_fields=['status'])
    if created:
        _notify(user, room, 'room:join', {"user_id": user.id, "name": participant.display_name})
    return participant


@transaction.atomic
def leave_room(user, room_id):
    room = StudyRoom.objects.select_for_update().get(pk=room_id)
    removed = RoomParticipant.objects.filter(room=room, user=user).delete()[0]
    if removed:
        _notify(user, room, 'room:leave', {"user_id": user.id})
    return bool(removed)


def set_status(user, room_id, status):
    if status not in RoomParticipant.Status.values:
        raise ValidationError(f"Unknown status {status!r}.")
    room = room_for_member(room_id, user)
    participant = RoomParticipant.objects.get(room=room, user=user)
    participant.status = status
    participant.save(update_fields=['status'])
    _notify(user, room, 'room:status', {"user_id": user.id, "status": status})
    return participant


def send_message(author, room_id, content):
    room = room_for_member(room_id, author)
    message = RoomMessage.objects.create(room=room, author=author, content=_clean_text(content, 'Message'))
    _notify(author, room, 'room:message', {"message_id": message.id})
    return message


@transaction.atomic
def _toggle_like(obj, user):
    if obj.liked_by.filter(pk=user.pk).exists():
        obj.liked_by.remove(user)
        liked = False
    else:
        obj.liked_by.add(user)
        liked = True
    return liked, obj.liked_by.count()


def toggle_message_like(user, message_id):
    message = RoomMessage.objects.select_related('room__community').get(pk=message_id)
    room_for_member(message.room_id, user)
    return _toggle_like(message, user)


def create_room_post(author, room_id, content):
    room = room_for_member(room_id, author)
    post = RoomPost.objects.create(room=room, author=author, content=_clean_text(content, 'Content'))
    _notify(author, room, 'room:post', {"post_id": post.id})
    return post


def toggle_room_post_like(user, post_id):
    post = RoomPost.objects.get(pk=post_id)
    room_for_member(post.room_id, user)
    return _toggle_like(post, user)


def add_resource(author, room_id, title, url, description=''):
    room = room_for_member(room_id, author)
    url = _clean_text(url, 'URL')
    URLValidator()(url)
    resource = Resource.objects.create(
        room=room,
        author=author,
        title=_clean_text(title, 'Title'),
        url=url,
        description=(description or '').strip(),
    )
    _notify(author, room, 'room:resource', {"resource_id": resource.id})
    return resource


def delete_resource(resource_id, user):
    resource = Resource.objects.select_related('room').get(pk=resource_id)
    if user.id not in (resource.author_id, resource.room.creator_id):
        raise PermissionDenied("Only the author or the room creator can remove this resource.")
    resource.delete()
