"""Community membership workflow.

Per (user, community) the state is NONE -> PENDING -> MEMBER, with a
rejection returning PENDING to NONE. A user is never in both ``members`` and
``join_requests``. Every multi-step operation runs in one transaction with
the community row locked, so a failure part-way leaves nothing behind and a
retry sees either the old state or the finished one.
"""
import logging

from django.core.exceptions import PermissionDenied, ValidationError
from django.db import DatabaseError, IntegrityError, transaction

from notifications.models import Notification, NotificationType
from profiles.utils import display_name
from studyroom.services import purge_room
from .models import Community, MembershipState, Post, Reply

logger = logging.getLogger(__name__)


def membership_state(user, community):
    if community.is_member(user):
        return MembershipState.MEMBER
    if community.has_pending_request(user):
        return MembershipState.PENDING
    return MembershipState.NONE


def _require_creator(community, user, action):
    if community.creator_id != user.id:
        logger.warning("User %s refused: %s community %s", user.id, action, community.id)
        raise PermissionDenied(f"Only the community creator can {action} this community.")


def _require_member(community, user, action):
    if not community.is_member(user):
        raise PermissionDenied(f"You must join this community before {action}.")


def _clean_text(value, label):
    value = (value or '').strip()
    if not value:
        raise ValidationError(f"{label} is required.")
    return value


@transaction.atomic
def create_community(creator, name, description='', is_private=False):
    name = _clean_text(name, 'Name')
    if Community.objects.filter(name__iexact=name).exists():
        raise ValidationError("Community name already exists. Please use a different name.", code='duplicate_name')

    community = Community.objects.create(
        name=name,
        description=(description or '').strip(),
        creator=creator,
        is_private=bool(is_private),
    )
    community.members.add(creator)
    logger.info("Community %s created by user %s", community.id, creator.id)
    return community


@transaction.atomic
def update_community(community_id, editor, name, description=None):
    community = Community.objects.select_for_update().get(pk=community_id)
    _require_creator(community, editor, 'edit')
    name = _clean_text(name, 'Name')
    if Community.objects.filter(name__iexact=name).exclude(pk=community.pk).exists():
        raise ValidationError("Community name already exists. Please use a different name.", code='duplicate_name')

    community.name = name
    if description is not None:
        community.description = description.strip()
    community.save(update_fields=['name', 'description'])
    return community


@transaction.atomic
def request_join(user, community_id):
    """Ask to join a community; returns the caller's resulting state.

    Members (the creator included) and pending requesters get their current
    state back and nothing is written. Otherwise the user is added to
    ``join_requests`` and the creator gets one ``join_request`` notification.
    """
    community = Community.objects.select_for_update().select_related('creator').get(pk=community_id)

    state = membership_state(user, community)
    if state != MembershipState.NONE:
        logger.debug("Join request by user %s to community %s is a no-op (%s)", user.id, community.id, state)
        return state

    community.join_requests.add(user)
    try:
        with transaction.atomic():
            Notification.objects.create(
                recipient=community.creator,
                sender=user,
                community_creator=community.creator,
                community=community,
                notif_type=NotificationType.JOIN_REQUEST,
                message=f"{display_name(user)} requested to join {community.name}",
            )
    except IntegrityError:
        # A concurrent request from the same user already left one.
        logger.debug("Pending join request notification already exists for user %s in %s", user.id, community.id)

    logger.info("User %s requested to join community %s", user.id, community.id)
    return MembershipState.PENDING


def _resolve(notification_id, approver, approved):
    try:
        with transaction.atomic():
            request = (
                Notification.objects
                .select_for_update()
                .select_related('sender')
                .get(pk=notification_id, notif_type=NotificationType.JOIN_REQUEST)
            )
            community = Community.objects.select_for_update().get(pk=request.community_id)
            _require_creator(community, approver, 'respond to join requests for')

            existing = request.resolutions.first()
            if existing is not None:
                logger.debug("Join request %s already resolved as %s", request.id, existing.notif_type)
                return existing

            requester = request.sender
            # The resolution may have been deleted by its recipient; the
            # request itself stays closed.
            if request.is_read or not community.has_pending_request(requester):
                logger.warning("Join request %s is no longer pending", request.id)
                raise ValidationError("This join request has already been handled.", code='resolved')

            community.join_requests.remove(requester)
            if approved:
                community.members.add(requester)

            verdict = 'approved' if approved else 'rejected'
            resolution = Notification.objects.create(
                recipient=requester,
                sender=approver,
                community_creator_id=community.creator_id,
                community=community,
                notif_type=NotificationType.APPROVAL if approved else NotificationType.REJECTION,
                message=f'Your request to join "{community.name}" was {verdict}.',
                request=request,
            )

            request.is_read = True
            request.save(update_fields=['is_read'])
    except DatabaseError:
        logger.exception("Resolving join request %s failed; nothing was changed", notification_id)
        raise

    logger.info("Join request %s of user %s to community %s %s", request.id, requester.id, community.id, verdict)
    return resolution


def approve(notification_id, approver):
    """Move the requester into ``members``, notify them, and close the request."""
    return _resolve(notification_id, approver, approved=True)


def reject(notification_id, approver):
    """Drop the requester from ``join_requests``, notify them, and close the request."""
    return _resolve(notification_id, approver, approved=False)


def delete_community(community_id, requester):
    """Delete a community and everything it owns; creator only.

    Returns how many rows of each kind went. The cascade is explicit and
    total: rooms with their messages, discussions, resources and
    participants, then posts with their replies, then notifications.
    """
    try:
        with transaction.atomic():
            community = Community.objects.select_for_update().get(pk=community_id)
            _require_creator(community, requester, 'delete')

            counts = {
                'study_rooms': 0,
                'messages': 0,
                'room_posts': 0,
                'resources': 0,
                'participants': 0,
            }
            for room in community.study_rooms.all():
                for kind, n in purge_room(room).items():
                    counts[kind] += n
                room.delete()
                counts['study_rooms'] += 1

            counts['replies'] = Reply.objects.filter(post__community=community).delete()[0]
            posts = Post.objects.filter(community=community)
            counts['posts'] = posts.count()
            posts.delete()
            counts['notifications'] = Notification.objects.filter(community=community).delete()[0]

            community.delete()
    except DatabaseError:
        logger.exception("Cascade delete of community %s failed; nothing was removed", community_id)
        raise

    logger.info("Community %s deleted by user %s: %s", community_id, requester.id, counts)
    return counts


def create_post(author, community_id, content):
    community = Community.objects.get(pk=community_id)
    _require_member(community, author, 'posting')
    content = _clean_text(content, 'Content')
    return Post.objects.create(community=community, author=author, content=content)


@transaction.atomic
def toggle_post_like(user, post_id):
    post = Post.objects.select_for_update().select_related('community').get(pk=post_id)
    _require_member(post.community, user, 'liking posts')
    if post.liked_by.filter(pk=user.pk).exists():
        post.liked_by.remove(user)
        liked = False
    else:
        post.liked_by.add(user)
        liked = True
    return liked, post.liked_by.count()


def create_reply(author, post_id, content):
    post = Post.objects.select_related('community').get(pk=post_id)
    _require_member(post.community, author, 'replying')
    content = _clean_text(content, 'Content')
    return Reply.objects.create(post=post, author=author, content=content)


def delete_post(post_id, user):
    post = Post.objects.select_related('community').get(pk=post_id)
    if user.id not in (post.author_id, post.community.creator_id):
        raise PermissionDenied("Only the author or the community creator can delete this post.")
    post.delete()
