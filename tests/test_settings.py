import pytest
from pydantic import ValidationError

from callbridge.config.settings import BridgeSettings

ENV_VARS = (
    "OPENAI_API_KEY", "OPENAI_MODEL", "VOICE", "AGENT_AUDIO_FORMAT", "COMMIT_THRESHOLD_MS",
    "FALLBACK_AUDIO", "HEARTBEAT_INTERVAL_S", "STREAM_PATH", "PUBLIC_HOST", "PORT",
)


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    for name in ENV_VARS:
        # setenv first so values loaded from a .env file are undone after the test
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    # No .env file in the working directory
    monkeypatch.chdir(tmp_path)
    return monkeypatch


def test_defaults():
    settings = BridgeSettings()
    assert settings.openai_api_key is None
    assert settings.agent_key_configured is False
    assert settings.voice == "verse"
    assert settings.agent_audio_format == "pcm16"
    assert settings.commit_threshold_ms == 100
    assert settings.frame_ms == 20
    assert settings.fallback_interval_ms == 40
    assert settings.heartbeat_interval_s == 15.0
    assert settings.stream_path == "/ws/twilio"
    assert settings.port == 8080


def test_from_env(clean_env):
    clean_env.setenv("OPENAI_API_KEY", "sk-test")
    clean_env.setenv("VOICE", "alloy")
    clean_env.setenv("AGENT_AUDIO_FORMAT", "g711_ulaw")
    clean_env.setenv("COMMIT_THRESHOLD_MS", "200")
    clean_env.setenv("HEARTBEAT_INTERVAL_S", "2.5")
    clean_env.setenv("PORT", "9000")

    settings = BridgeSettings.from_env()

    assert settings.agent_key_configured is True
    assert settings.voice == "alloy"
    assert settings.agent_audio_format == "g711_ulaw"
    assert settings.commit_threshold_ms == 200
    assert settings.heartbeat_interval_s == 2.5
    assert settings.port == 9000


def test_from_env_reads_dotenv_file(clean_env, tmp_path):
    env_file = tmp_path / "bridge.env"
    env_file.write_text("PUBLIC_HOST=bridge.example.com\n")

    settings = BridgeSettings.from_env(env_file)

    assert settings.public_host == "bridge.example.com"


def test_empty_variables_use_defaults(clean_env):
    clean_env.setenv("OPENAI_API_KEY", "")
    settings = BridgeSettings.from_env()
    assert settings.agent_key_configured is False


def test_settings_are_immutable():
    settings = BridgeSettings()
    with pytest.raises(ValidationError):
        settings.voice = "alloy"


@pytest.mark.parametrize(
    "field, value",
    [
        ("agent_audio_format", "opus"),
        ("fallback_audio", "music"),
        ("stream_path", "ws/twilio"),
        ("commit_threshold_ms", 0),
        ("fallback_interval_ms", -40),
    ],
)
def test_invalid_values_rejected(field, value):
    with pytest.raises(ValidationError):
        BridgeSettings(**{field: value})
