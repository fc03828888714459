from django.contrib import admin
from .models import StudyRoom, RoomParticipant, RoomMessage, RoomPost, Resource


class RoomParticipantInline(admin.TabularInline):
    model = RoomParticipant
    extra = 0


@admin.register(StudyRoom)
class StudyRoomAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "community", "creator", "is_active", "created_at")
    search_fields = ("name", "community__name", "creator__username")
    inlines = [RoomParticipantInline]


@admin.register(RoomMessage)
class RoomMessageAdmin(admin.ModelAdmin):
    list_display = ("id", "room", "author", "created_at")
    search_fields = ("content", "author__username", "room__name")


@admin.register(RoomPost)
class RoomPostAdmin(admin.ModelAdmin):
    list_display = ("id", "room", "author", "created_at")
    search_fields = ("content", "author__username", "room__name")


@admin.register(Resource)
class ResourceAdmin(admin.ModelAdmin):
    list_display = ("id", "title", "room", "author", "created_at")
    search_fields = ("title", "url", "room__name")
