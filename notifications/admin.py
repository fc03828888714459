from django.contrib import admin
from .models import Notification


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ("id", "notif_type", "recipient", "sender", "community", "is_read", "created_at")
    list_filter = ("notif_type", "is_read")
    search_fields = ("message", "recipient__username", "sender__username", "community__name")
    readonly_fields = ("request", "created_at")
