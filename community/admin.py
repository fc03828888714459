from django.contrib import admin
from .models import Community, Post, Reply


class ReadOnlyAdmin(admin.ModelAdmin):
    list_display = ("id",)
    search_fields = ()
    list_filter = ()
    readonly_fields = ()

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    # Deleting from the admin would bypass the community cascade.
    def has_delete_permission(self, request, obj=None):
        return False

    def get_actions(self, request):
        actions = super().get_actions(request)
        actions.pop("delete_selected", None)
        return actions


@admin.register(Community)
class CommunityAdmin(ReadOnlyAdmin):
    list_display = ("id", "name", "creator", "is_private", "created_at")
    search_fields = ("name", "description", "creator__username")
    list_filter = ("is_private",)


@admin.register(Post)
class PostAdmin(ReadOnlyAdmin):
    list_display = ("id", "community", "author", "created_at")
    search_fields = ("content", "author__username", "community__name")


@admin.register(Reply)
class ReplyAdmin(ReadOnlyAdmin):
    list_display = ("id", "post", "author", "created_at")
    search_fields = ("content", "author__username", "post__community__name")
