import os

from channels.routing import ProtocolTypeRouter, URLRouter
from django.core.asgi import get_asgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

#  initializing Django first
django_asgi_app = get_asgi_application()

# importing routing AFTER Django is initialized
import config.routing  # noqa: E402
from accounts.auth import JWTAuthMiddlewareStack  # noqa: E402

application = ProtocolTypeRouter({
    "http": django_asgi_app,
    "websocket": JWTAuthMiddlewareStack(
        URLRouter(config.routing.websocket_urlpatterns)
    ),
})
