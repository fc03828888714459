from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncJsonWebsocketConsumer
from django.contrib.auth.models import AnonymousUser

from notifications.selectors import notification_snapshot
from . import services


def _is_authenticated(user):
    return bool(user) and not isinstance(user, AnonymousUser) and user.is_authenticated


class EventConsumer(AsyncJsonWebsocketConsumer):
    """Socket-style emit/subscribe over the shared event log.

    Every subscription gets the full matching result set on subscribe and
    again each time a matching event is emitted.
    """

    async def connect(self):
        user = self.scope.get("user")

        if not _is_authenticated(user):
            await self.close(code=4401)
            return

        self.subscriptions = {}
        await self.accept()
        await self.send_json({"type": "connected", "user_id": user.id})

    async def disconnect(self, close_code):
        for group in getattr(self, "subscriptions", {}).values():
            await self.channel_layer.group_discard(group, self.channel_name)

    async def receive_json(self, content, **kwargs):
        kind = content.get("type")
        user = self.scope["user"]

        if kind == "subscribe":
            await self.subscribe(content.get("event"), content.get("room"))
        elif kind == "unsubscribe":
            await self.unsubscribe(content.get("event"), content.get("room"))
        elif kind == "emit":
            event = content.get("event")
            if not event:
                await self.send_error("emit needs an event name")
                return
            await database_sync_to_async(services.emit)(
                user, event, content.get("data") or {}, content.get("room") or ''
            )
        elif kind in ("join_room", "leave_room"):
            await self.presence(kind, content.get("room_type"), content.get("room_id"))
        elif kind == "ping":
            await self.send_json({"type": "pong"})
        else:
            await self.send_error("unknown message")

    async def subscribe(self, event, room=None):
        if not event:
            await self.send_error("subscribe needs an event name")
            return
        key = (event, room or None)
        if key not in self.subscriptions:
            group = services.event_group(event, room)
            self.subscriptions[key] = group
            await self.channel_layer.group_add(group, self.channel_name)
        await self.send_snapshot(event, room or None)

    async def unsubscribe(self, event, room=None):
        group = self.subscriptions.pop((event, room or None), None)
        if group and group not in self.subscriptions.values():
            await self.channel_layer.group_discard(group, self.channel_name)

    async def presence(self, kind, room_type, room_id):
        if not room_type or room_id in (None, ""):
            await self.send_error(f"{kind} needs room_type and room_id")
            return
        user = self.scope["user"]
        if kind == "join_room":
            await database_sync_to_async(services.join_room)(user, room_type, room_id)
            await self.send_json({"type": "joined", "room": services.room_key_for(room_type, room_id)})
        else:
            await database_sync_to_async(services.leave_room)(user, room_type, room_id)
            await self.send_json({"type": "left", "room": services.room_key_for(room_type, room_id)})

    async def send_snapshot(self, event, room):
        records = await database_sync_to_async(services.events_for)(event, room)
        await self.send_json({
            "type": "snapshot",
            "event": event,
            "room": room,
            "records": records,
        })

    async def send_error(self, message):
        await self.send_json({"type": "error", "message": message})

    async def events_changed(self, message):
        for (event, room), group in list(self.subscriptions.items()):
            if group == message["group"] and event == message["event"]:
                await self.send_snapshot(event, room)


class NotificationConsumer(AsyncJsonWebsocketConsumer):
    """Live view of the user's pending join requests and notification feed."""

    async def connect(self):
        user = self.scope.get("user")

        if not _is_authenticated(user):
            await self.close(code=4401)
            return

        self.group_name = services.user_group(user.id)
        await self.channel_layer.group_add(self.group_name, self.channel_name)
        await self.accept()
        await self.send_notifications()

    async def disconnect(self, close_code):
        if hasattr(self, "group_name"):
            await self.channel_layer.group_discard(self.group_name, self.channel_name)

    async def send_notifications(self):
        snapshot = await database_sync_to_async(notification_snapshot)(self.scope["user"])
        await self.send_json({"type": "notifications", **snapshot})

    async def notifications_changed(self, message):
        await self.send_notifications()
