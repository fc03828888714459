from django.contrib.auth.decorators import login_required
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_POST

from studybuddy.utils import parse_payload
from .forms import ProfileUpdateForm
from .models import Profile
from .utils import user_payload


@login_required
@require_GET
def profile_detail(request):
    user = request.user
    profile, _ = Profile.objects.get_or_create(user=user)
    joined = user.joined_communities.order_by('name')

    data = {
        **user_payload(user),
        "bio": profile.bio,
        "location": profile.location,
        "joined_at": profile.created_at.isoformat(),
        "communities": [
            {"id": c.id, "name": c.name, "description": c.description}
            for c in joined
        ],
        "stats": {
            "communities": joined.count(),
            "posts": user.community_posts.count() + user.room_posts.count(),
            "messages": user.room_messages.count(),
        },
    }
    return JsonResponse(data)


@csrf_exempt
@login_required
@require_POST
def profile_update(request):
    profile, _ = Profile.objects.get_or_create(user=request.user)
    payload = parse_payload(request)
    data = {
        'display_name': payload.get('display_name', profile.display_name),
        'bio': payload.get('bio', profile.bio),
        'location': payload.get('location', profile.location),
    }
    form = ProfileUpdateForm(data, instance=profile)
    if form.is_valid():
        form.save()
        return JsonResponse({
            'status': 'success',
            'message': 'Profile updated successfully.',
            'profile': user_payload(request.user),
        })
    errors = dict(form.errors.items())
    return JsonResponse({'status': 'error', 'errors': errors, 'message': 'Failed to update profile.'}, status=400)
