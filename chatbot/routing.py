from django.urls import path
from . import consumers

websocket_urlpatterns = [
    path("", consumers.ChatbotConsumer.as_asgi()),
]
