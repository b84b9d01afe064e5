import pytest
from fastapi.testclient import TestClient
from unittest.mock import AsyncMock, MagicMock

from callbridge.main import APP_TITLE, build_stream_markup, create_app
from callbridge.websocket_manager import WebSocketManager


@pytest.fixture
def manager(settings):
    return WebSocketManager(settings)


@pytest.fixture
def app(settings, manager):
    return create_app(settings, manager)


@pytest.fixture
def client(app):
    return TestClient(app)


def test_root_endpoint(client):
    """Test the root endpoint answers the plain health check"""
    response = client.get("/")
    assert response.status_code == 200
    assert response.text == "OK"


def test_health_check(client, manager):
    """Test the health check endpoint returns correct response"""
    manager.active_calls.add(MagicMock())
    response = client.get("/health")
    assert response.status_code == 200

    response_json = response.json()
    assert response_json["status"] == "healthy"
    assert response_json["openai_api_key_configured"] is True
    assert response_json["active_calls"] == 1


def test_health_check_without_key(settings):
    app = create_app(settings.model_copy(update={"openai_api_key": None}))
    response = TestClient(app).get("/health")
    assert response.json()["openai_api_key_configured"] is False


@pytest.mark.parametrize("method", ["get", "post"])
def test_call_setup_markup(client, method):
    response = getattr(client, method)("/twiml")
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/xml")
    assert response.text == (
        '<Response><Start><Stream url="wss://testserver/ws/twilio" track="both_tracks"/>'
        '</Start><Pause length="3600"/></Response>'
    )


def test_call_setup_uses_public_host(settings):
    app = create_app(settings.model_copy(update={"public_host": "bridge.example.com"}))
    response = TestClient(app).get("/twiml")
    assert 'url="wss://bridge.example.com/ws/twilio"' in response.text


def test_markup_escapes_values(settings):
    markup = build_stream_markup('evil"host', settings)
    assert 'url="wss://evil&quot;host/ws/twilio"' in markup


@pytest.mark.asyncio
async def test_websocket_endpoint(app, manager):
    """Test that websocket endpoint calls the handle_websocket method"""
    manager.handle_websocket = AsyncMock()
    mock_websocket = MagicMock()

    websocket_route = next(route for route in app.routes if route.path == "/ws/twilio")
    await websocket_route.endpoint(mock_websocket)

    manager.handle_websocket.assert_awaited_once_with(mock_websocket)


def test_custom_stream_path(settings):
    app = create_app(settings.model_copy(update={"stream_path": "/media"}))
    route_paths = [route.path for route in app.routes]
    assert "/media" in route_paths
    assert "/ws/twilio" not in route_paths


def test_app_startup_configuration(app):
    """Test the app configuration"""
    assert app.title == APP_TITLE
    assert app.version == "1.0.0"
    assert app.state.settings.stream_path == "/ws/twilio"

    route_paths = [route.path for route in app.routes]
    assert "/ws/twilio" in route_paths
    assert "/health" in route_paths
    assert "/twiml" in route_paths
    assert "/" in route_paths
