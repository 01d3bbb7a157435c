"""
Servekit — Socket Event Controllers
===================================

What:  Example socket events served on `settings.socket_path` (default /ws).

Event inventory:
    ping          → replies {"pong": true, "server_time": ...}
    chat:message  → validates ChatMessage, pushes it to every other socket,
                    acks the sender with the delivery count
"""

import logging
from datetime import datetime, timezone

from servekit.config import settings
from servekit.core import MasterController, RequestBuilder, ResponseBuilder, SocketEventHub
from servekit.schemas.events import ChatMessage

logger = logging.getLogger(__name__)

hub = SocketEventHub(settings.socket_path)


class PingController(MasterController):
    """Liveness check over the socket."""

    async def socket_controller(self, socket, data, all_data):
        return ResponseBuilder(
            200,
            {"pong": True, "server_time": datetime.now(timezone.utc)},
            "pong",
        )


class ChatMessageController(MasterController):
    """Relay a chat message to every other connected socket."""

    @classmethod
    def validate(cls) -> RequestBuilder:
        return RequestBuilder().add_to_body(ChatMessage)

    async def socket_controller(self, socket, data, all_data):
        message = ChatMessage.model_validate(data)
        payload = {
            "room": message.room,
            "text": message.text,
            "sent_at": datetime.now(timezone.utc),
        }
        delivered = await all_data["hub"].broadcast(
            {
                "event": "chat:message",
                "id": None,
                **ResponseBuilder(200, payload, "New message").to_json(),
            },
            exclude=socket,
        )
        logger.debug("chat:message in room '%s' delivered to %d sockets", message.room, delivered)
        return ResponseBuilder(200, {**payload, "delivered": delivered}, "Message sent")


PingController.socket(hub, "ping")
ChatMessageController.socket(hub, "chat:message")
