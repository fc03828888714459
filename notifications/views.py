from django.contrib.auth.decorators import login_required
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_POST

from community import services as membership
from studybuddy.utils import json_errors
from . import services
from .selectors import feed_for, pending_requests_for, serialize_notification, unread_count


@login_required
@require_GET
def pending_requests(request):
    qs = pending_requests_for(request.user)
    return JsonResponse({"notifications": [serialize_notification(n) for n in qs]})


@login_required
@require_GET
def notification_feed(request):
    qs = feed_for(request.user)[:50]
    return JsonResponse({
        "notifications": [serialize_notification(n) for n in qs],
        "unread": unread_count(request.user),
    })


@login_required
@require_GET
def unread(request):
    return JsonResponse({"unread": unread_count(request.user)})


@csrf_exempt
@login_required
@require_POST
@json_errors
def mark_read(request, notif_id):
    services.mark_read(notif_id, request.user)
    return JsonResponse({"success": True})


@csrf_exempt
@login_required
@require_POST
@json_errors
def delete_notification(request, notif_id):
    services.delete_notification(notif_id, request.user)
    return JsonResponse({"success": True})


@csrf_exempt
@login_required
@require_POST
@json_errors
def approve_request(request, notif_id):
    resolution = membership.approve(notif_id, request.user)
    return JsonResponse({
        "success": True,
        "resolution": serialize_notification(resolution),
    })


@csrf_exempt
@login_required
@require_POST
@json_errors
def reject_request(request, notif_id):
    resolution = membership.reject(notif_id, request.user)
    return JsonResponse({
        "success": True,
        "resolution": serialize_notification(resolution),
    })
