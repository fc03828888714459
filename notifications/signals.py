from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

from realtime.services import broadcast_on_commit, user_group
from .models import Notification


def _push_to_parties(instance):
    for user_id in {instance.recipient_id, instance.sender_id, instance.community_creator_id}:
        broadcast_on_commit(user_group(user_id), {"type": "notifications.changed"})


@receiver(post_save, sender=Notification)
def on_notification_saved(sender, instance, **kwargs):
    _push_to_parties(instance)


@receiver(post_delete, sender=Notification)
def on_notification_deleted(sender, instance, **kwargs):
    _push_to_parties(instance)
