"""
FastAPI server bridging Twilio phone calls to the Gemini Live API.

Twilio calls the /twiml webhook when a call arrives; the TwiML answer tells it
to open a bidirectional media stream to /media-stream, where each connection is
handed to the WebSocketManager for the rest of the call.
"""

import os
from pathlib import Path

import dotenv
from fastapi import FastAPI, Request, Response, WebSocket

from voice_relay.config.constants import MEDIA_STREAM_PATH
from voice_relay.config.logging_config import configure_logging
from voice_relay.config.settings import RelaySettings
from voice_relay.websocket_manager import WebSocketManager

# Load environment variables from .env file if it exists
env_path = Path(".") / ".env"
if env_path.exists():
    dotenv.load_dotenv(env_path)

logger = configure_logging()

PORT = int(os.getenv("PORT", "8000"))
HOST = os.getenv("HOST", "0.0.0.0")

# Keep the call alive after <Connect> in case the stream ends before the caller hangs up
STREAM_PAUSE_SECONDS = 3600

settings = RelaySettings.from_env()

app = FastAPI(
    title="Voice Relay",
    description="Bridge between Twilio Media Streams and the Gemini Live API",
    version="1.0.0",
)

websocket_manager = WebSocketManager(settings)


def build_twiml(host: str) -> str:
    """TwiML that connects the call to this server's media-stream endpoint."""
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        "<Response>"
        "<Connect>"
        f'<Stream url="wss://{host}{MEDIA_STREAM_PATH}" />'
        "</Connect>"
        f'<Pause length="{STREAM_PAUSE_SECONDS}" />'
        "</Response>"
    )


@app.api_route("/twiml", methods=["GET", "POST"])
async def twiml_webhook(request: Request):
    """Answer Twilio's incoming-call webhook with a <Connect><Stream> directive."""
    host = request.headers.get("host", f"{HOST}:{PORT}")
    logger.info(f"Incoming call webhook; streaming to wss://{host}{MEDIA_STREAM_PATH}")
    return Response(content=build_twiml(host), media_type="text/xml")


@app.websocket(MEDIA_STREAM_PATH)
async def media_stream_endpoint(websocket: WebSocket):
    """WebSocket endpoint for Twilio Media Streams; one connection per call."""
    await websocket_manager.handle_websocket(websocket)


@app.get("/health")
async def health_check():
    """Liveness check.

    Returns:
        dict: Status, whether a Gemini API key is configured, and the number
        of calls currently being relayed
    """
    return {
        "status": "healthy",
        "gemini_api_key_configured": bool(settings.api_key),
        "active_sessions": len(websocket_manager.session_registry),
    }


@app.get("/")
async def root():
    """Basic information about the service."""
    return {
        "name": "Voice Relay",
        "description": "Bridge between Twilio Media Streams and the Gemini Live API",
        "version": "1.0.0",
        "model": settings.model,
        "endpoints": {
            "/twiml": "Twilio voice webhook",
            MEDIA_STREAM_PATH: "WebSocket endpoint for Twilio Media Streams",
            "/health": "Health check endpoint",
        },
    }
