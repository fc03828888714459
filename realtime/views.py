from django.contrib.auth.decorators import login_required
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_POST

from studybuddy.utils import error_response, parse_payload
from . import services


@login_required
@require_GET
def list_events(request):
    event = request.GET.get('event', '').strip()
    if not event:
        return error_response("The event parameter is required.", 400, 'event_required')
    room = request.GET.get('room')
    return JsonResponse({
        "event": event,
        "room": room,
        "records": services.events_for(event, room),
    })


@csrf_exempt
@login_required
@require_POST
def emit_event(request):
    payload = parse_payload(request)
    event = (payload.get('event') or '').strip()
    if not event:
        return error_response("The event name is required.", 400, 'event_required')
    data = payload.get('data') or {}
    if not isinstance(data, dict):
        data = {"value": data}
    record = services.emit(request.user, event, data, payload.get('room') or '')
    return JsonResponse({"status": "success", "record": services.serialize_event(record)}, status=201)


def _presence_args(request):
    payload = parse_payload(request)
    room_type = (payload.get('room_type') or '').strip()
    room_id = payload.get('room_id')
    if not room_type or room_id in (None, ''):
        return None
    return room_type, room_id


@csrf_exempt
@login_required
@require_POST
def join_presence(request):
    args = _presence_args(request)
    if args is None:
        return error_response("room_type and room_id are required.", 400, 'room_required')
    room = services.join_room(request.user, *args)
    return JsonResponse({"status": "success", "room": room.key, "members": services.room_members(*args)})


@csrf_exempt
@login_required
@require_POST
def leave_presence(request):
    args = _presence_args(request)
    if args is None:
        return error_response("room_type and room_id are required.", 400, 'room_required')
    services.leave_room(request.user, *args)
    return JsonResponse({
        "status": "success",
        "room": services.room_key_for(*args),
        "members": services.room_members(*args),
    })
