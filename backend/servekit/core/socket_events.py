"""
Servekit — Socket Event Hub
===========================

What:  One WebSocket endpoint that multiplexes named events onto
       MasterController subclasses.
How:   Clients send JSON frames (text, or UTF-8 binary); each frame names an
       event. The hub validates the event data against the controller's body
       schema, calls `socket_controller()` and replies with the standard
       envelope.

Wire format:
    client → server   {"event": "chat:message", "data": {...}, "id": "42"}
    server → client   {"event": "chat:message", "id": "42",
                       "status": 200, "message": "...", "data": ..., "errors": null}

    `id` is optional and echoed back so clients can match replies.

Failure replies never close the connection:
    - frame is not a JSON object with a string "event" → 400, event "error"
    - no controller registered for the event           → 404
    - data fails the controller's schema               → 400 "Validation Error"
    - controller raises a ServekitError                → that error's status
    - anything else                                    → 500, logged with traceback
"""

import inspect
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from fastapi import WebSocket, WebSocketDisconnect

from servekit.core.response_builder import ResponseBuilder
from servekit.exceptions import ServekitError

logger = logging.getLogger(__name__)


@dataclass
class _Registration:
    controller: type
    middlewares: List[Callable] = field(default_factory=list)


class SocketEventHub:
    """
    Event registry plus connection manager for one WebSocket path.

    Socket middlewares are callables `(socket, all_data)`, sync or async.
    They may add keys to `all_data` or raise a ServekitError to reject the
    event.
    """

    def __init__(self, path: str = "/ws"):
        self.path = path
        self._registrations: Dict[str, _Registration] = {}
        self.active_connections: List[WebSocket] = []

    # ── Registration ──────────────────────────────────────────────────────

    def on(
        self,
        event: str,
        controller: type,
        middlewares: Optional[Sequence[Callable]] = None,
    ) -> "SocketEventHub":
        if event in self._registrations:
            logger.warning(
                "Socket event '%s' re-registered: %s replaces %s",
                event, controller.__name__, self._registrations[event].controller.__name__,
            )
        self._registrations[event] = _Registration(controller, list(middlewares or []))
        return self

    @property
    def events(self) -> List[str]:
        return sorted(self._registrations)

    def mount(self, router: Any) -> Any:
        """Add the WebSocket route to a FastAPI app or APIRouter."""
        router.add_api_websocket_route(self.path, self.endpoint, name="socket_events")
        return router

    # ── Connections ───────────────────────────────────────────────────────

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        self.active_connections.append(websocket)
        logger.info("Socket connected. Total connections: %d", len(self.active_connections))

    def disconnect(self, websocket: WebSocket) -> None:
        if websocket in self.active_connections:
            self.active_connections.remove(websocket)
        logger.info("Socket disconnected. Total connections: %d", len(self.active_connections))

    @property
    def connection_count(self) -> int:
        return len(self.active_connections)

    async def send(self, websocket: WebSocket, message: Dict[str, Any]) -> bool:
        """Send to one socket. Returns False (and drops the socket) if sending fails."""
        try:
            await websocket.send_json(message)
            return True
        except Exception as e:
            logger.warning("Dropping socket after failed send: %s", e)
            self.disconnect(websocket)
            return False

    async def broadcast(
        self,
        message: Dict[str, Any],
        exclude: Optional[WebSocket] = None,
    ) -> int:
        """Send to every connected socket except `exclude`. Returns how many were reached."""
        delivered = 0
        for connection in list(self.active_connections):
            if connection is exclude:
                continue
            if await self.send(connection, message):
                delivered += 1
        logger.debug("Broadcast '%s' to %d sockets", message.get("event"), delivered)
        return delivered

    # ── Dispatch ──────────────────────────────────────────────────────────

    async def endpoint(self, websocket: WebSocket) -> None:
        await self.connect(websocket)
        try:
            while True:
                frame = await websocket.receive()
                if frame["type"] == "websocket.disconnect":
                    break
                # Binary frames go through the same JSON decoding as text frames
                raw = frame.get("text")
                if raw is None:
                    raw = frame.get("bytes") or b""
                reply = await self.dispatch(websocket, raw)
                await websocket.send_json(reply)
        except WebSocketDisconnect:
            pass
        finally:
            self.disconnect(websocket)

    async def dispatch(self, websocket: Any, raw: Union[str, bytes]) -> Dict[str, Any]:
        """Handle one frame and return the reply to send back."""
        try:
            message = json.loads(raw)
        except ValueError:
            message = None
        if not isinstance(message, dict) or not isinstance(message.get("event"), str):
            return self._reply(
                "error",
                None,
                ResponseBuilder.error(
                    400,
                    "Malformed message",
                    {"body": ['Frames must be JSON objects with a string "event"']},
                ),
            )

        event = message["event"]
        message_id = message.get("id")
        data = message.get("data")
        if data is None:
            data = {}

        registration = self._registrations.get(event)
        if registration is None:
            return self._reply(event, message_id, ResponseBuilder.error(404, f"Unknown event '{event}'"))

        return self._reply(event, message_id, await self._run(registration, websocket, event, data))

    async def _run(
        self,
        registration: _Registration,
        websocket: Any,
        event: str,
        data: Any,
    ) -> ResponseBuilder:
        controller_cls = registration.controller
        query = dict(websocket.query_params)
        params = dict(websocket.path_params)

        all_data: Dict[str, Any] = {}
        all_data.update(params)
        all_data.update(query)
        if isinstance(data, dict):
            all_data.update(data)
        all_data.update(dict(websocket.headers))
        all_data.update({"event": event, "socket": websocket, "hub": self})

        try:
            for middleware in registration.middlewares:
                outcome = middleware(websocket, all_data)
                if inspect.isawaitable(outcome):
                    await outcome

            errors = controller_cls.validate_payload(params, query, data, controller_cls.validate())
            if errors:
                return ResponseBuilder.validation_error(errors)

            result = await controller_cls().socket_controller(websocket, data, all_data)
            if not isinstance(result, ResponseBuilder):
                raise TypeError(
                    f"{controller_cls.__name__}.socket_controller must return a "
                    f"ResponseBuilder, got {type(result).__name__}"
                )
            return result

        except ServekitError as exc:
            logger.warning("Socket event '%s' failed: %s | Context: %s", event, exc.message, exc.context)
            return ResponseBuilder.error(exc.status_code, exc.message, exc.errors)
        except Exception as exc:
            logger.error("Unexpected error in socket event '%s': %s", event, exc, exc_info=True)
            return ResponseBuilder.error(500, "An unexpected error occurred. Please try again.")

    @staticmethod
    def _reply(event: str, message_id: Any, result: ResponseBuilder) -> Dict[str, Any]:
        return {"event": event, "id": message_id, **result.to_json()}
