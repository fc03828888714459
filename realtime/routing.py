from django.urls import path

from . import consumers

websocket_urlpatterns = [
    path("ws/events/", consumers.EventConsumer.as_asgi()),
    path("ws/notifications/", consumers.NotificationConsumer.as_asgi()),
]
