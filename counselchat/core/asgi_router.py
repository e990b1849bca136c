"""
Composite ASGI Router for the CounselChat relay

Routes Socket.IO traffic (long-polling and WebSocket upgrades) to the
Socket.IO ASGIApp and everything else, including lifespan events, to
FastAPI.
"""

import logging
from typing import Dict, Any, Callable

logger = logging.getLogger(__name__)


class CompositeASGIRouter:
    """
    ASGI router that serves both FastAPI and Socket.IO applications
    without protocol conflicts.
    """

    def __init__(self, fastapi_app, socketio_app, socketio_path: str = "socket.io"):
        """
        Args:
            fastapi_app: FastAPI application instance
            socketio_app: Socket.IO ASGIApp instance
            socketio_path: Mount path of Socket.IO, without slashes
        """
        self.fastapi_app = fastapi_app
        self.socketio_app = socketio_app
        self.socketio_prefix = f"/{socketio_path.strip('/')}"
        logger.info(f"Composite ASGI router initialized (Socket.IO at {self.socketio_prefix}/)")

    async def __call__(self, scope: Dict[str, Any], receive: Callable, send: Callable) -> None:
        path = scope.get("path", "")

        if self._is_socketio_path(path):
            await self.socketio_app(scope, receive, send)
            return

        if scope["type"] == "lifespan":
            await self.fastapi_app(scope, receive, send)
            return

        try:
            await self.fastapi_app(scope, receive, send)
        except Exception as e:
            logger.error(f"Error in ASGI routing: {e}")
            await self._send_error_response(scope, send)

    def _is_socketio_path(self, path: str) -> bool:
        """True if path belongs to Socket.IO"""
        return path == self.socketio_prefix or path.startswith(f"{self.socketio_prefix}/")

    async def _send_error_response(self, scope: Dict[str, Any], send: Callable) -> None:
        """Send basic error response when the application fails before responding"""
        body = b'{"error": "ASGI routing failed"}'
        try:
            if scope["type"] == "http":
                await send({
                    "type": "http.response.start",
                    "status": 500,
                    "headers": [
                        [b"content-type", b"application/json"],
                        [b"content-length", str(len(body)).encode()]
                    ]
                })
                await send({
                    "type": "http.response.body",
                    "body": body
                })
            elif scope["type"] == "websocket":
                await send({
                    "type": "websocket.close",
                    "code": 1011,
                    "reason": "ASGI routing failed"
                })
        except Exception as e:
            logger.error(f"Failed to send error response: {e}")


def create_composite_asgi_app(fastapi_app, socketio_app, socketio_path: str = "socket.io"):
    """Factory function to create the composite ASGI application"""
    return CompositeASGIRouter(fastapi_app, socketio_app, socketio_path)
