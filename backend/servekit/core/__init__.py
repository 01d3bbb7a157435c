"""
Servekit — Controller Core
==========================

    - master_controller.py: MasterController base class
    - request_builder.py:   RequestBuilder / PayloadType validation rules
    - response_builder.py:  ResponseBuilder response envelope
    - socket_events.py:     SocketEventHub (WebSocket event multiplexing)
"""

from servekit.core.master_controller import MasterController
from servekit.core.request_builder import Payload, PayloadType, RequestBuilder
from servekit.core.response_builder import EnvelopeResponse, ResponseBuilder
from servekit.core.socket_events import SocketEventHub

__all__ = [
    "MasterController",
    "Payload",
    "PayloadType",
    "RequestBuilder",
    "ResponseBuilder",
    "EnvelopeResponse",
    "SocketEventHub",
]
