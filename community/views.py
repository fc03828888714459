from django.contrib.auth.decorators import login_required
from django.core.exceptions import ValidationError
from django.http import JsonResponse
from django.shortcuts import get_object_or_404
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_POST

from profiles.utils import display_name
from studybuddy.utils import error_response, json_errors, parse_payload, validation_message
from . import services
from .models import Community, MembershipState


def serialize_community(community, user):
    state = services.membership_state(user, community)
    is_creator = community.creator_id == user.id
    data = {
        "id": community.id,
        "name": community.name,
        "description": community.description or "",
        "creator_id": community.creator_id,
        "creator_name": display_name(community.creator),
        "members_count": community.members.count(),
        "post_count": community.post_count,
        "is_private": community.is_private,
        "is_creator": is_creator,
        "membership": state,
        "can_open": state == MembershipState.MEMBER,
        "created_at": community.created_at.isoformat(),
    }
    if is_creator:
        data["pending_requests"] = community.join_requests.count()
    return data


def serialize_post(post, user):
    liked_ids = {u.id for u in post.liked_by.all()}
    return {
        "id": post.id,
        "content": post.content,
        "author_id": post.author_id,
        "author_name": display_name(post.author),
        "likes": len(liked_ids),
        "liked": user.id in liked_ids,
        "created_at": post.created_at.isoformat(),
        "replies": [
            {
                "id": r.id,
                "content": r.content,
                "author_id": r.author_id,
                "author_name": display_name(r.author),
                "created_at": r.created_at.isoformat(),
            }
            for r in post.replies.all()
        ],
    }


def _duplicate_or_invalid(exc):
    if exc.code == 'duplicate_name':
        return error_response(validation_message(exc), 409, 'duplicate_name')
    return error_response(validation_message(exc), 400, 'name_required')


@login_required
@require_GET
def discover_communities(request):
    query = request.GET.get('q', '').strip()

    if query:
        communities = Community.objects.filter(name__icontains=query)
    else:
        communities = Community.objects.all()
    communities = communities.select_related('creator__profile')

    data = [serialize_community(c, request.user) for c in communities]
    return JsonResponse({"communities": data, "search_query": query}, status=200)


@login_required
@require_GET
def my_communities(request):
    joined = request.user.joined_communities.select_related('creator__profile')
    created = request.user.created_communities.select_related('creator__profile')
    return JsonResponse({
        "joined": [serialize_community(c, request.user) for c in joined],
        "created": [serialize_community(c, request.user) for c in created],
    })


@csrf_exempt
@login_required
@require_POST
@json_errors
def create_community(request):
    payload = parse_payload(request)
    try:
        community = services.create_community(
            request.user,
            payload.get('name'),
            payload.get('description'),
            is_private=payload.get('is_private') in (True, 'true', 'on', '1'),
        )
    except ValidationError as exc:
        return _duplicate_or_invalid(exc)

    return JsonResponse({
        "status": "success",
        "message": f'Community "{community.name}" created successfully.',
        "code": "created",
        "community": serialize_community(community, request.user),
    }, status=201)


@csrf_exempt
@login_required
@require_POST
@json_errors
def update_community(request, community_id):
    payload = parse_payload(request)
    try:
        community = services.update_community(
            community_id, request.user, payload.get('name'), payload.get('description'),
        )
    except ValidationError as exc:
        return _duplicate_or_invalid(exc)

    return JsonResponse({
        "status": "success",
        "message": f"Community '{community.name}' updated successfully.",
        "code": "updated",
        "community": serialize_community(community, request.user),
    })


@csrf_exempt
@login_required
@require_POST
@json_errors
def delete_community(request, community_id):
    counts = services.delete_community(community_id, request.user)
    return JsonResponse({
        "status": "success",
        "message": "Community deleted successfully.",
        "deleted": counts,
    })


@login_required
@require_GET
@json_errors
def community_detail(request, community_id):
    community = get_object_or_404(Community.objects.select_related('creator__profile'), id=community_id)

    data = serialize_community(community, request.user)
    if data["membership"] != MembershipState.MEMBER:
        data["posts"] = []
        data["study_rooms"] = []
        return JsonResponse(data)

    posts = community.posts.select_related('author__profile').prefetch_related(
        'liked_by', 'replies', 'replies__author__profile'
    )
    data["posts"] = [serialize_post(p, request.user) for p in posts]
    data["study_rooms"] = [
        {
            "id": room.id,
            "name": room.name,
            "description": room.description,
            "creator_id": room.creator_id,
            "creator_name": display_name(room.creator),
            "is_active": room.is_active,
            "participants": room.participants.count(),
            "created_at": room.created_at.isoformat(),
        }
        for room in community.study_rooms.select_related('creator__profile')
    ]
    data["members"] = list(community.members.order_by('id').values_list('id', flat=True))
    return JsonResponse(data)


@csrf_exempt
@login_required
@require_POST
@json_errors
def join_community(request, community_id):
    state = services.request_join(request.user, community_id)
    messages = {
        MembershipState.MEMBER: "You are already a member of this community.",
        MembershipState.PENDING: "Join request sent!",
    }
    return JsonResponse({
        "status": "success",
        "membership": state,
        "message": messages[state],
    })


@csrf_exempt
@login_required
@require_POST
@json_errors
def create_post(request, community_id):
    payload = parse_payload(request)
    post = services.create_post(request.user, community_id, payload.get('content'))
    return JsonResponse({
        "status": "success",
        "message": "Post created.",
        "post": serialize_post(post, request.user),
    }, status=201)


@csrf_exempt
@login_required
@require_POST
@json_errors
def delete_post(request, post_id):
    services.delete_post(post_id, request.user)
    return JsonResponse({"status": "success", "message": "Post deleted."})


@csrf_exempt
@login_required
@require_POST
@json_errors
def toggle_like(request, post_id):
    liked, likes = services.toggle_post_like(request.user, post_id)
    return JsonResponse({"status": "success", "liked": liked, "likes": likes})


@csrf_exempt
@login_required
@require_POST
@json_errors
def create_reply(request, post_id):
    payload = parse_payload(request)
    reply = services.create_reply(request.user, post_id, payload.get('content'))
    return JsonResponse({
        "status": "success",
        "message": "Reply created.",
        "reply": {
            "id": reply.id,
            "content": reply.content,
            "author_id": reply.author_id,
            "author_name": display_name(reply.author),
            "created_at": reply.created_at.isoformat(),
        }
    }, status=201)
