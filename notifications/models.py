from django.db import models
from django.db.models import Q
from django.contrib.auth.models import User


class NotificationType(models.TextChoices):
    JOIN_REQUEST = 'join_request', 'Join request'
    APPROVAL = 'approval', 'Approval'
    REJECTION = 'rejection', 'Rejection'


class Notification(models.Model):
    recipient = models.ForeignKey(User, on_delete=models.CASCADE, related_name='notifications')
    sender = models.ForeignKey(User, on_delete=models.CASCADE, related_name='sent_notifications')
    community_creator = models.ForeignKey(User, on_delete=models.CASCADE, related_name='community_notifications')
    community = models.ForeignKey('community.Community', on_delete=models.CASCADE, related_name='notifications')
    notif_type = models.CharField(max_length=20, choices=NotificationType.choices)
    message = models.CharField(max_length=255)
    is_read = models.BooleanField(default=False)
    # For approvals and rejections: the join request they answer.
    request = models.ForeignKey(
        'self', on_delete=models.SET_NULL, null=True, blank=True, related_name='resolutions'
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['community_creator', 'notif_type', 'is_read', '-created_at']),
            models.Index(fields=['recipient', '-created_at']),
            models.Index(fields=['sender', '-created_at']),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['community', 'sender'],
                condition=Q(notif_type=NotificationType.JOIN_REQUEST, is_read=False),
                name='unique_pending_join_request',
            ),
            models.UniqueConstraint(fields=['request'], name='unique_request_resolution'),
        ]

    def __str__(self):
        return f'{self.get_notif_type_display()} for {self.recipient.username} ({self.community_id})'

    @property
    def is_pending_request(self):
        return self.notif_type == NotificationType.JOIN_REQUEST and not self.is_read
