from django.db import models
from django.contrib.auth.models import User

from community.models import Community


class StudyRoom(models.Model):
    community = models.ForeignKey(Community, on_delete=models.CASCADE, related_name='study_rooms')
    name = models.CharField(max_length=120)
    description = models.TextField(blank=True, default='')
    creator = models.ForeignKey(User, on_delete=models.CASCADE, related_name='created_study_rooms')
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at', '-id']

    def __str__(self):
        return f'{self.name} ({self.community.name})'

    @property
    def participant_ids(self):
        return list(self.participants.order_by('joined_at', 'id').values_list('user_id', flat=True))


class RoomParticipant(models.Model):
    class Status(models.TextChoices):
        ACTIVE = 'active', 'Active'
        AWAY = 'away', 'Away'

    room = models.ForeignKey(StudyRoom, on_delete=models.CASCADE, related_name='participants')
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='room_participations')
    display_name = models.CharField(max_length=100)
    status = models.CharField(max_length=10, choices=Status.choices, default=Status.ACTIVE)
    joined_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['joined_at', 'id']
        constraints = [
            models.UniqueConstraint(fields=['room', 'user'], name='unique_room_participant'),
        ]

    def __str__(self):
        return f'{self.display_name} in {self.room.name}'


class RoomMessage(models.Model):
    room = models.ForeignKey(StudyRoom, on_delete=models.CASCADE, related_name='messages')
    author = models.ForeignKey(User, on_delete=models.CASCADE, related_name='room_messages')
    content = models.TextField()
    liked_by = models.ManyToManyField(User, related_name='liked_room_messages', blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['created_at', 'id']

    def __str__(self):
        return f'Message by {self.author.username} in {self.room.name}'


class RoomPost(models.Model):
    room = models.ForeignKey(StudyRoom, on_delete=models.CASCADE, related_name='posts')
    author = models.ForeignKey(User, on_delete=models.CASCADE, related_name='room_posts')
    content = models.TextField()
    liked_by = models.ManyToManyField(User, related_name='liked_room_posts', blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at', '-id']

    def __str__(self):
        return f'Discussion by {self.author.username} in {self.room.name}'


class Resource(models.Model):
    room = models.ForeignKey(StudyRoom, on_delete=models.CASCADE, related_name='resources')
    author = models.ForeignKey(User, on_delete=models.CASCADE, related_name='room_resources')
    title = models.CharField(max_length=200)
    url = models.URLField(max_length=500)
    description = models.TextField(blank=True, default='')
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at', '-id']

    def __str__(self):
        return self.title
