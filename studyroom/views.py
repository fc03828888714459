from django.contrib.auth.decorators import login_required
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_POST

from profiles.utils import display_name
from studybuddy.utils import json_errors, parse_payload
from . import services
from .models import StudyRoom


def serialize_message(message, user):
    liked_ids = {u.id for u in message.liked_by.all()}
    return {
        "id": message.id,
        "sender_id": message.author_id,
        "sender_name": display_name(message.author),
        "content": message.content,
        "likes": sorted(liked_ids),
        "liked": user.id in liked_ids,
        "created_at": message.created_at.isoformat(),
    }


def serialize_room_post(post, user):
    liked_ids = {u.id for u in post.liked_by.all()}
    return {
        "id": post.id,
        "author_id": post.author_id,
        "author_name": display_name(post.author),
        "content": post.content,
        "likes": len(liked_ids),
        "liked": user.id in liked_ids,
        "created_at": post.created_at.isoformat(),
    }


def serialize_resource(resource):
    return {
        "id": resource.id,
        "title": resource.title,
        "url": resource.url,
        "description": resource.description,
        "author_id": resource.author_id,
        "author_name": display_name(resource.author),
        "created_at": resource.created_at.isoformat(),
    }


def serialize_participant(p):
    return {
        "id": p.user_id,
        "name": p.display_name,
        "status": p.status,
        "joined_at": p.joined_at.isoformat(),
    }


@login_required
@require_GET
@json_errors
def room_detail(request, room_id):
    room = services.room_for_member(room_id, request.user)
    participants = list(room.participants.all())
    return JsonResponse({
        "id": room.id,
        "community_id": room.community_id,
        "community_name": room.community.name,
        "name": room.name,
        "description": room.description,
        "creator_id": room.creator_id,
        "creator_name": display_name(room.creator),
        "is_active": room.is_active,
        "is_creator": room.creator_id == request.user.id,
        "participants": [p.user_id for p in participants],
        "participants_list": [serialize_participant(p) for p in participants],
        "created_at": room.created_at.isoformat(),
    })


@csrf_exempt
@login_required
@require_POST
@json_errors
def create_room(request, community_id):
    payload = parse_payload(request)
    room = services.create_room(request.user, community_id, payload.get('name'), payload.get('description'))
    return JsonResponse({
        "status": "success",
        "message": "Study room created successfully!",
        "room": {"id": room.id, "name": room.name, "description": room.description},
    }, status=201)


@csrf_exempt
@login_required
@require_POST
@json_errors
def delete_room(request, room_id):
    counts = services.delete_room(room_id, request.user)
    return JsonResponse({"status": "success", "message": "Study room deleted.", "deleted": counts})


@csrf_exempt
@login_required
@require_POST
@json_errors
def join_room(request, room_id):
    participant = services.join_room(request.user, room_id)
    return JsonResponse({"status": "success", "participant": serialize_participant(participant)})


@csrf_exempt
@login_required
@require_POST
@json_errors
def leave_room(request, room_id):
    left = services.leave_room(request.user, room_id)
    return JsonResponse({"status": "success", "left": left})


@csrf_exempt
@login_required
@require_POST
@json_errors
def update_status(request, room_id):
    payload = parse_payload(request)
    participant = services.set_status(request.user, room_id, payload.get('status'))
    return JsonResponse({"status": "success", "participant": serialize_participant(participant)})


@login_required
@require_GET
@json_errors
def messages(request, room_id):
    room = services.room_for_member(room_id, request.user)
    qs = room.messages.select_related('author__profile').prefetch_related('liked_by')
    return JsonResponse({"messages": [serialize_message(m, request.user) for m in qs]})


@csrf_exempt
@login_required
@require_POST
@json_errors
def send_message(request, room_id):
    payload = parse_payload(request)
    message = services.send_message(request.user, room_id, payload.get('content'))
    return JsonResponse({"status": "success", "message": serialize_message(message, request.user)}, status=201)


@csrf_exempt
@login_required
@require_POST
@json_errors
def like_message(request, message_id):
    liked, likes = services.toggle_message_like(request.user, message_id)
    return JsonResponse({"status": "success", "liked": liked, "likes": likes})


@login_required
@require_GET
@json_errors
def discussions(request, room_id):
    room = services.room_for_member(room_id, request.user)
    qs = room.posts.select_related('author__profile').prefetch_related('liked_by')
    return JsonResponse({"posts": [serialize_room_post(p, request.user) for p in qs]})


@csrf_exempt
@login_required
@require_POST
@json_errors
def create_discussion(request, room_id):
    payload = parse_payload(request)
    post = services.create_room_post(request.user, room_id, payload.get('content'))
    return JsonResponse({"status": "success", "post": serialize_room_post(post, request.user)}, status=201)


@csrf_exempt
@login_required
@require_POST
@json_errors
def like_discussion(request, post_id):
    liked, likes = services.toggle_room_post_like(request.user, post_id)
    return JsonResponse({"status": "success", "liked": liked, "likes": likes})


@login_required
@require_GET
@json_errors
def resources(request, room_id):
    room = services.room_for_member(room_id, request.user)
    qs = room.resources.select_related('author__profile')
    return JsonResponse({"resources": [serialize_resource(r) for r in qs]})


@csrf_exempt
@login_required
@require_POST
@json_errors
def add_resource(request, room_id):
    payload = parse_payload(request)
    resource = services.add_resource(
        request.user,
        room_id,
        payload.get('title'),
        payload.get('url'),
        payload.get('description'),
    )
    return JsonResponse({"status": "success", "resource": serialize_resource(resource)}, status=201)


@csrf_exempt
@login_required
@require_POST
@json_errors
def delete_resource(request, resource_id):
    services.delete_resource(resource_id, request.user)
    return JsonResponse({"status": "success", "message": "Resource removed."})


@login_required
@require_GET
def community_rooms(request, community_id):
    rooms = (
        StudyRoom.objects
        .filter(community_id=community_id, community__members=request.user)
        .select_related('creator__profile')
    )
    return JsonResponse({
        "rooms": [
            {
                "id": r.id,
                "name": r.name,
                "description": r.description,
                "creator_id": r.creator_id,
                "creator_name": display_name(r.creator),
                "is_active": r.is_active,
            }
            for r in rooms
        ]
    })
