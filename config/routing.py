from django.urls import path
from channels.routing import URLRouter

import chatbot.routing

websocket_urlpatterns = [
    path("ws/chatbot/", URLRouter(chatbot.routing.websocket_urlpatterns)),
]
