from django.contrib.auth.decorators import login_required
from django.http import JsonResponse
from django.views.decorators.http import require_GET

from community.models import Community
from notifications.selectors import unread_count
from profiles.utils import display_name, is_admin
from studyroom.models import StudyRoom


def main_view(request):
    data = {"app": "StudyBuddy", "is_logged_in": request.user.is_authenticated}
    if request.user.is_authenticated:
        data["name"] = display_name(request.user)
    return JsonResponse(data)


@login_required
@require_GET
def dashboard(request):
    user = request.user
    joined = user.joined_communities.select_related('creator__profile')
    active_rooms = (
        StudyRoom.objects
        .filter(community__members=user, is_active=True)
        .select_related('community')
        .distinct()
    )

    data = {
        "name": display_name(user),
        "communities": [
            {
                "id": c.id,
                "name": c.name,
                "description": c.description,
                "members_count": c.members.count(),
                "is_creator": c.creator_id == user.id,
            }
            for c in joined
        ],
        "created": [
            {"id": c.id, "name": c.name, "members_count": c.members.count()}
            for c in user.created_communities.order_by('name')
        ],
        "active_rooms": [
            {
                "id": r.id,
                "name": r.name,
                "community_id": r.community_id,
                "community_name": r.community.name,
            }
            for r in active_rooms
        ],
        "stats": {
            "communities": joined.count(),
            "created_communities": user.created_communities.count(),
            "study_rooms": active_rooms.count(),
            "messages": user.room_messages.count(),
            "unread_notifications": unread_count(user),
        },
    }

    if is_admin(user):
        data["stats"]["total_communities"] = Community.objects.count()

    return JsonResponse(data)
