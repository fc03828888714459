from django.db import models
from django.contrib.auth.models import User


class SocketEvent(models.Model):
    event = models.CharField(max_length=100, db_index=True)
    room_key = models.CharField(max_length=150, blank=True, default='')
    payload = models.JSONField(default=dict, blank=True)
    sender = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='socket_events')
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['created_at', 'id']
        indexes = [models.Index(fields=['event', 'room_key', 'created_at'])]

    def __str__(self):
        return f'{self.event} [{self.room_key or "*"}]'


class PresenceRoom(models.Model):
    key = models.CharField(max_length=150, unique=True)
    members = models.ManyToManyField(User, related_name='presence_rooms', blank=True)
    last_joined = models.DateTimeField(null=True, blank=True)

    def __str__(self):
        return self.key
