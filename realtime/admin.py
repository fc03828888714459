from django.contrib import admin
from .models import SocketEvent, PresenceRoom


@admin.register(SocketEvent)
class SocketEventAdmin(admin.ModelAdmin):
    list_display = ("id", "event", "room_key", "sender", "created_at")
    list_filter = ("event",)
    search_fields = ("event", "room_key", "sender__username")


@admin.register(PresenceRoom)
class PresenceRoomAdmin(admin.ModelAdmin):
    list_display = ("id", "key", "last_joined")
    search_fields = ("key",)
