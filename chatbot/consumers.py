from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncJsonWebsocketConsumer

from .services import handle_turn

MAX_HISTORY = 40


class ChatbotConsumer(AsyncJsonWebsocketConsumer):
    """
    Same turns as POST /chatbot/gemini, with the history kept on the socket.
    Anonymous users may chat but cannot book.
    """
    async def connect(self):
        self.history = []
        await self.accept()

    async def receive_json(self, content, **kwargs):
        message = str((content or {}).get("message") or "").strip()
        if not message:
            await self.send_json({"message": "Message is required", "code": "VALIDATION_ERROR"})
            return

        user = self.scope.get("user")
        if not getattr(user, "is_authenticated", False):
            user = None

        result = await database_sync_to_async(handle_turn)(user, message, list(self.history))

        self.history.append({"role": "user", "parts": [{"text": message}]})
        self.history.append({"role": "model", "parts": [{"text": result["response"]}]})
        self.history = self.history[-MAX_HISTORY:]

        await self.send_json(result)
