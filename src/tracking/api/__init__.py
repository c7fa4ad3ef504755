from tracking.api.routes import location_router, order_router, participant_router
from tracking.api.sockets import socket_router

__all__ = ["location_router", "order_router", "participant_router", "socket_router"]
