"""
FastAPI server bridging carrier media streams to a realtime voice agent.

This module builds the FastAPI application: a health check, the call-setup
markup that points the carrier at the media-stream endpoint, and the
media-stream WebSocket endpoint itself. Settings are read once and passed
explicitly to everything that needs them.
"""

from html import escape
from typing import Optional

from fastapi import FastAPI, Request, Response, WebSocket
from fastapi.responses import PlainTextResponse

from callbridge.config.logging_config import configure_logging
from callbridge.config.settings import BridgeSettings
from callbridge.websocket_manager import WebSocketManager

APP_TITLE = "Telephony Voice Agent Bridge"
APP_VERSION = "1.0.0"


def build_stream_markup(host: str, settings: BridgeSettings) -> str:
    """
    Build the call-setup document telling the carrier where to stream audio.

    Args:
        host: Public host name of this server
        settings: Bridge settings (stream path and requested tracks)

    Returns:
        str: The XML document
    """
    url = escape(f"wss://{host}{settings.stream_path}", quote=True)
    track = escape(settings.stream_track, quote=True)
    return (
        f'<Response><Start><Stream url="{url}" track="{track}"/></Start>'
        f'<Pause length="3600"/></Response>'
    )


def create_app(settings: BridgeSettings, websocket_manager: Optional[WebSocketManager] = None) -> FastAPI:
    """
    Create the FastAPI application for the given settings.

    Args:
        settings: Read-only process settings
        websocket_manager: Optional manager to use instead of a fresh one

    Returns:
        FastAPI: The configured application
    """
    app = FastAPI(
        title=APP_TITLE,
        description="Bridges carrier media streams (8 kHz mu-law) to a realtime voice agent",
        version=APP_VERSION,
    )
    manager = websocket_manager or WebSocketManager(settings)
    app.state.settings = settings
    app.state.websocket_manager = manager

    @app.get("/", response_class=PlainTextResponse)
    async def root():
        """Plain health check for load balancers."""
        return "OK"

    @app.get("/health")
    async def health_check():
        """Health check endpoint for monitoring system status.

        Returns:
            dict: Status information including the number of active calls.
        """
        return {
            "status": "healthy",
            "openai_api_key_configured": settings.agent_key_configured,
            "active_calls": len(manager.active_calls),
        }

    @app.api_route("/twiml", methods=["GET", "POST"])
    async def call_setup(request: Request):
        """Serve the markup that starts a media stream to this server."""
        host = settings.public_host or request.headers.get("host", "localhost")
        return Response(content=build_stream_markup(host, settings), media_type="text/xml")

    @app.websocket(settings.stream_path)
    async def media_stream(websocket: WebSocket):
        """WebSocket endpoint for the carrier's bidirectional media stream.

        One connection carries one call; the manager pairs it with an agent
        session for the lifetime of the call.
        """
        await manager.handle_websocket(websocket)

    return app


settings = BridgeSettings.from_env()
logger = configure_logging(settings.log_level)
app = create_app(settings)


if __name__ == "__main__":
    import uvicorn

    logger.info(f"Starting server on http://{settings.host}:{settings.port}")
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        websocket_ping_interval=5,
        websocket_max_size=16777216,  # 16MB - large enough for audio chunks
        websocket_ping_timeout=20,
        http="h11"
    )
