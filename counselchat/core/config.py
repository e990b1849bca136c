"""
CounselChat Relay Configuration

Environment-based configuration for the realtime relay service.
Values come from environment variables or a local `.env` file.
"""

from functools import lru_cache
from typing import List, Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings


DEVELOPMENT_PORT = 3001
DEFAULT_PORT = 10000


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    # Environment
    environment: str = Field(default="development", description="Runtime environment")
    debug: bool = Field(default=False, description="Debug mode")

    # Server
    host: str = Field(default="0.0.0.0", description="Bind address")
    port: Optional[int] = Field(
        default=None,
        description="Bind port (3001 in development, 10000 otherwise)"
    )

    # Database Configuration
    database_url: str = Field(
        default="sqlite+aiosqlite:///./counselchat.db",
        description="SQLAlchemy async database URL"
    )
    database_pool_size: int = Field(default=10, description="Connection pool size")
    database_max_overflow: int = Field(default=20, description="Max overflow connections")

    # Frontend / CORS
    client_url: str = Field(
        default="http://localhost:3000",
        description="Frontend URL allowed to open Socket.IO connections"
    )
    cors_origins: List[str] = Field(
        default=["http://localhost:3000"],
        description="Allowed CORS origins"
    )

    # Socket.IO Configuration
    socketio_path: str = Field(default="socket.io", description="Socket.IO mount path")
    socketio_ping_interval: int = Field(default=25, description="Engine.IO ping interval")
    socketio_ping_timeout: int = Field(default=20, description="Engine.IO ping timeout")

    # Relay behaviour
    strict_payload_validation: bool = Field(
        default=True,
        description="Reject inbound events with missing or malformed fields"
    )
    targeted_chat_delivery: bool = Field(
        default=False,
        description="Deliver chat events only to the two participants instead of everyone"
    )

    # Logging Configuration
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="text", description="Log format: json or text")

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v):
        v = v.strip().lower()
        if v not in ("development", "test", "production"):
            raise ValueError("Environment must be development, test or production")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        return v.upper()

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v):
        v = v.lower()
        if v not in ("json", "text"):
            raise ValueError("Log format must be json or text")
        return v

    @field_validator("socketio_path")
    @classmethod
    def validate_socketio_path(cls, v):
        return v.strip("/")

    @model_validator(mode="after")
    def apply_default_port(self):
        if self.port is None:
            self.port = DEVELOPMENT_PORT if self.environment == "development" else DEFAULT_PORT
        return self

    @property
    def allowed_origins(self) -> List[str]:
        """CORS origins including the configured frontend URL"""
        origins = list(self.cors_origins)
        if self.client_url and self.client_url not in origins:
            origins.append(self.client_url)
        return origins

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }


@lru_cache()
def get_settings() -> Settings:
    """Get cached application settings"""
    return Settings()


# Development helpers
def is_development() -> bool:
    """Check if running in development mode"""
    return get_settings().environment == "development"

