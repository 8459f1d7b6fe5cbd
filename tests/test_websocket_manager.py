import asyncio
import json
import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from fastapi import FastAPI, WebSocket
from fastapi.testclient import TestClient

from voice_relay.bot.gemini_live import AudioPeerConnectionError, GeminiLiveClient
from voice_relay.bot.session import CallSession, HandshakeState
from voice_relay.config.settings import RelaySettings
from voice_relay.models.gemini_schemas import WireSchema
from voice_relay.models.session_registry import SessionRegistry
from voice_relay.websocket_manager import WebSocketManager, default_peer_factory

DISCONNECT = {"type": "websocket.disconnect", "code": 1000}


def text_frame(payload):
    return {"type": "websocket.receive", "text": json.dumps(payload)}


@pytest.fixture
def settings():
    return RelaySettings(api_key="test-key", handshake_timeout_seconds=0.2)


@pytest.fixture
def peer():
    peer = AsyncMock(spec=GeminiLiveClient)
    peer.send_message.return_value = True

    async def no_events():
        return
        yield

    peer.events = MagicMock(side_effect=no_events)
    return peer


@pytest.fixture
def websocket():
    websocket = AsyncMock(spec=WebSocket)
    websocket.receive.return_value = DISCONNECT
    return websocket


def test_websocket_manager_initialization(settings):
    """Test that WebSocketManager initializes correctly"""
    manager = WebSocketManager(settings)
    assert manager.settings is settings
    assert isinstance(manager.session_registry, SessionRegistry)
    assert len(manager.session_registry) == 0


def test_default_peer_factory_uses_settings():
    settings = RelaySettings(api_key="abc", wire_schema="snake_case")
    client = default_peer_factory(settings)
    assert isinstance(client, GeminiLiveClient)
    assert client.url.endswith("?key=abc")
    assert client.schema == WireSchema.SNAKE


@pytest.mark.asyncio
async def test_handle_websocket_flow(settings, peer, websocket):
    """Test a connection is accepted, run and unregistered"""
    websocket.receive.side_effect = [
        text_frame({"event": "start", "start": {"streamSid": "MZ1"}}),
        text_frame({"event": "stop"}),
    ]
    seen = []
    manager = WebSocketManager(settings, peer_factory=lambda s: peer)

    original_run = CallSession.run

    async def run_and_record(session):
        seen.append(len(manager.session_registry))
        await original_run(session)

    with patch.object(CallSession, "run", run_and_record):
        await manager.handle_websocket(websocket)

    websocket.accept.assert_called_once()
    peer.connect.assert_called_once()
    peer.close.assert_called()
    websocket.close.assert_called_once()
    assert seen == [1]
    assert len(manager.session_registry) == 0


@pytest.mark.asyncio
async def test_handle_websocket_peer_unavailable(settings, websocket):
    """Test the caller's socket is closed when Gemini cannot be reached"""
    peer = AsyncMock(spec=GeminiLiveClient)
    peer.connect.side_effect = AudioPeerConnectionError("refused")
    manager = WebSocketManager(settings, peer_factory=lambda s: peer)

    await manager.handle_websocket(websocket)

    websocket.accept.assert_called_once()
    websocket.close.assert_called_once()
    peer.send_message.assert_not_called()
    assert len(manager.session_registry) == 0


@pytest.mark.asyncio
async def test_handle_websocket_exception(settings, peer, websocket):
    """Test that unexpected exceptions are contained and the session cleaned up"""
    peer.connect.side_effect = Exception("Test exception")
    manager = WebSocketManager(settings, peer_factory=lambda s: peer)

    # Should not raise
    await manager.handle_websocket(websocket)

    websocket.accept.assert_called_once()
    websocket.close.assert_called_once()
    peer.close.assert_called_once()
    assert len(manager.session_registry) == 0


@pytest.mark.asyncio
async def test_registry_tracks_each_session(settings, peer):
    manager = WebSocketManager(settings, peer_factory=lambda s: peer)
    first = CallSession(AsyncMock(spec=WebSocket), peer, settings)
    second = CallSession(AsyncMock(spec=WebSocket), peer, settings)
    manager.session_registry.add_session(first)
    manager.session_registry.add_session(second)

    assert first.connection_id != second.connection_id
    assert len(manager.session_registry) == 2

    manager.session_registry.remove_session(first.connection_id)
    manager.session_registry.remove_session("unknown")
    assert list(manager.session_registry.active_sessions.values()) == [second]
    assert second.state == HandshakeState.CONNECTING


def test_binary_twilio_frames_over_starlette():
    """A binary frame on a real Starlette socket is decoded, not fatal"""
    settings = RelaySettings(api_key="test-key", handshake_timeout_seconds=5)
    peer = AsyncMock(spec=GeminiLiveClient)
    peer.send_message.return_value = True

    async def idle_events():
        await asyncio.Event().wait()
        yield

    peer.events = MagicMock(side_effect=idle_events)
    manager = WebSocketManager(settings, peer_factory=lambda s: peer)
    sessions = []

    def record_session(*args):
        sessions.append(CallSession(*args))
        return sessions[-1]

    app = FastAPI()

    @app.websocket("/media-stream")
    async def media_stream(websocket: WebSocket):
        await manager.handle_websocket(websocket)

    with patch("voice_relay.websocket_manager.CallSession", side_effect=record_session):
        with TestClient(app) as client:
            with client.websocket_connect("/media-stream") as ws:
                ws.send_bytes(json.dumps({"event": "connected"}).encode())
                ws.send_bytes(json.dumps({"event": "start", "start": {"streamSid": "MZ9"}}).encode())
                ws.send_text(json.dumps({"event": "stop"}))
                assert ws.receive()["type"] == "websocket.close"

    session = sessions[0]
    assert session.session_id == "MZ9"
    assert session.close_reason == "stop event"
    assert session.state == HandshakeState.CLOSED
    assert len(manager.session_registry) == 0
