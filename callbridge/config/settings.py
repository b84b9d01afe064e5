"""
Process-wide settings for the bridge.

Settings are read once at startup from environment variables (optionally loaded
from a .env file) into an immutable BridgeSettings value that is handed to the
FastAPI app factory and from there to every call. Nothing reads the environment
after startup.
"""

import os
from pathlib import Path
from typing import Optional

import dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator

from callbridge.config.constants import (
    AGENT_AUDIO_FORMATS,
    AGENT_FORMAT_PCM16,
    DEFAULT_GREETING_INSTRUCTIONS,
    DEFAULT_INSTRUCTIONS,
    DEFAULT_REALTIME_MODEL,
    DEFAULT_REALTIME_URL,
    DEFAULT_VOICE,
    FALLBACK_SILENCE,
    FALLBACK_TONE,
)


class BridgeSettings(BaseModel):
    """Read-only configuration shared by all calls."""

    model_config = ConfigDict(frozen=True)

    openai_api_key: Optional[str] = Field(None, description="Agent service credentials")
    openai_model: str = DEFAULT_REALTIME_MODEL
    realtime_url: str = DEFAULT_REALTIME_URL
    voice: str = DEFAULT_VOICE
    instructions: str = DEFAULT_INSTRUCTIONS
    greeting_instructions: str = DEFAULT_GREETING_INSTRUCTIONS
    agent_audio_format: str = AGENT_FORMAT_PCM16

    commit_threshold_ms: int = Field(100, gt=0)
    frame_ms: int = Field(20, gt=0)
    fallback_audio: str = FALLBACK_SILENCE
    fallback_interval_ms: int = Field(40, gt=0)
    heartbeat_interval_s: float = Field(15.0, gt=0)
    pending_audio_limit_ms: int = Field(5000, ge=0)
    agent_connect_timeout_s: float = Field(30.0, gt=0)

    stream_path: str = "/ws/twilio"
    stream_track: str = "both_tracks"
    public_host: Optional[str] = None
    host: str = "0.0.0.0"
    port: int = 8080
    log_level: str = "INFO"

    @field_validator("agent_audio_format")
    def validate_agent_audio_format(cls, v):
        """Only linear16 @16kHz and mu-law @8kHz are supported on the agent leg."""
        if v not in AGENT_AUDIO_FORMATS:
            raise ValueError(f"Unsupported agent audio format: {v}")
        return v

    @field_validator("fallback_audio")
    def validate_fallback_audio(cls, v):
        if v not in (FALLBACK_SILENCE, FALLBACK_TONE):
            raise ValueError(f"Unsupported fallback audio: {v}")
        return v

    @field_validator("stream_path")
    def validate_stream_path(cls, v):
        if not v.startswith("/"):
            raise ValueError("Stream path must start with '/'")
        return v

    @classmethod
    def from_env(cls, env_file: Optional[Path] = None) -> "BridgeSettings":
        """
        Build settings from environment variables.

        Args:
            env_file: Optional .env file to load first; defaults to ./.env if present

        Returns:
            BridgeSettings: The immutable settings value
        """
        env_path = env_file or Path(".") / ".env"
        if env_path.exists():
            dotenv.load_dotenv(env_path)

        mapping = {
            "openai_api_key": "OPENAI_API_KEY",
            "openai_model": "OPENAI_MODEL",
            "realtime_url": "OPENAI_REALTIME_URL",
            "voice": "VOICE",
            "instructions": "AGENT_INSTRUCTIONS",
            "greeting_instructions": "GREETING_INSTRUCTIONS",
            "agent_audio_format": "AGENT_AUDIO_FORMAT",
            "commit_threshold_ms": "COMMIT_THRESHOLD_MS",
            "frame_ms": "FRAME_MS",
            "fallback_audio": "FALLBACK_AUDIO",
            "fallback_interval_ms": "FALLBACK_INTERVAL_MS",
            "heartbeat_interval_s": "HEARTBEAT_INTERVAL_S",
            "pending_audio_limit_ms": "PENDING_AUDIO_LIMIT_MS",
            "agent_connect_timeout_s": "AGENT_CONNECT_TIMEOUT_S",
            "stream_path": "STREAM_PATH",
            "stream_track": "STREAM_TRACK",
            "public_host": "PUBLIC_HOST",
            "host": "HOST",
            "port": "PORT",
            "log_level": "LOG_LEVEL",
        }
        values = {}
        for field_name, env_name in mapping.items():
            value = os.getenv(env_name)
            if value:
                values[field_name] = value
        return cls(**values)

    @property
    def agent_key_configured(self) -> bool:
        return bool(self.openai_api_key)
