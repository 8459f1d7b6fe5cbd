import pytest
from fastapi.testclient import TestClient
from unittest.mock import patch, MagicMock

from voice_relay.main import app, build_twiml, websocket_manager

client = TestClient(app)


def test_health_check():
    """Test the health check endpoint returns correct response"""
    response = client.get("/health")
    assert response.status_code == 200

    response_json = response.json()
    assert response_json["status"] == "healthy"
    assert isinstance(response_json["gemini_api_key_configured"], bool)
    assert response_json["active_sessions"] == 0


def test_root_endpoint():
    """Test the root endpoint returns the correct API information"""
    response = client.get("/")
    assert response.status_code == 200

    response_json = response.json()
    assert response_json["name"] == "Voice Relay"
    assert response_json["version"] == "1.0.0"
    assert "model" in response_json
    assert "/media-stream" in response_json["endpoints"]
    assert "/twiml" in response_json["endpoints"]
    assert "/health" in response_json["endpoints"]


@pytest.mark.parametrize("method", ["get", "post"])
def test_twiml_webhook(method):
    response = getattr(client, method)("/twiml", headers={"host": "relay.example.com"})
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/xml")
    assert '<Stream url="wss://relay.example.com/media-stream" />' in response.text
    assert '<Pause length="3600" />' in response.text


def test_build_twiml_shape():
    twiml = build_twiml("abc.ngrok.io")
    assert twiml.startswith('<?xml version="1.0" encoding="UTF-8"?><Response><Connect>')
    assert twiml.endswith("</Response>")
    assert twiml.index("</Connect>") < twiml.index("<Pause")


def test_websocket_endpoint_initialization():
    """Test that websocket_manager is properly initialized"""
    assert websocket_manager is not None
    assert websocket_manager.session_registry is not None


@pytest.mark.asyncio
async def test_websocket_endpoint():
    """Test that websocket endpoint calls the handle_websocket method"""
    with patch("voice_relay.websocket_manager.WebSocketManager.handle_websocket") as mock_handle:
        mock_handle.return_value = None
        mock_websocket = MagicMock()

        websocket_route = next(route for route in app.routes if route.path == "/media-stream")
        await websocket_route.endpoint(mock_websocket)

        mock_handle.assert_called_once_with(mock_websocket)


def test_app_startup_configuration():
    """Test the app configuration on startup"""
    assert app.title == "Voice Relay"
    assert "Twilio" in app.description
    assert app.version == "1.0.0"

    route_paths = [route.path for route in app.routes]
    assert "/media-stream" in route_paths
    assert "/twiml" in route_paths
    assert "/health" in route_paths
    assert "/" in route_paths
