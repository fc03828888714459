from .models import Profile


def display_name(user):
    """Name shown next to anything the user writes."""
    try:
        return user.profile.name
    except Profile.DoesNotExist:
        return user.get_full_name() or user.username


def is_admin(user):
    if not user.is_authenticated:
        return False
    return user.is_superuser or (hasattr(user, 'profile') and user.profile.role == Profile.Role.ADMIN)


def user_payload(user):
    """The ``currentUser`` shape: id, email, name, role and joined communities."""
    profile, _ = Profile.objects.get_or_create(user=user)
    return {
        "id": user.id,
        "email": user.email,
        "name": profile.name,
        "role": profile.role.lower(),
        "joined_communities": list(
            user.joined_communities.order_by('id').values_list('id', flat=True)
        ),
    }
