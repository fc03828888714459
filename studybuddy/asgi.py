"""
ASGI config for studybuddy project.

It exposes the ASGI callable as a module-level variable named ``application``.
HTTP goes to Django, websockets go through the session-authenticated
Channels router in ``realtime.routing``.
"""

import os
from django.core.asgi import get_asgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "studybuddy.settings")

# Initialise Django before importing anything that touches models.
http_application = get_asgi_application()

from channels.auth import AuthMiddlewareStack  # noqa: E402
from channels.routing import ProtocolTypeRouter, URLRouter  # noqa: E402
from channels.security.websocket import AllowedHostsOriginValidator  # noqa: E402

import realtime.routing  # noqa: E402

application = ProtocolTypeRouter({
    "http": http_application,
    "websocket": AllowedHostsOriginValidator(
        AuthMiddlewareStack(
            URLRouter(realtime.routing.websocket_urlpatterns)
        )
    ),
})
