"""
Pydantic-based configuration models for the DudeChat server.

Every sub-configuration is a BaseSettings model with its own environment
prefix; AppConfig aggregates them and adds .env file support.
"""

import json
from typing import Annotated, Any

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode

from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)

# Shipped default for the admin statistics endpoint. Deployments are expected
# to override it; startup logs a warning while it is in use.
DEFAULT_ADMIN_KEY = "dudedude_admin_2024"


def _parse_env_list(candidate: Any) -> list[str]:
    """Parse a value from the environment as JSON list or CSV."""
    if candidate is None:
        return []
    if isinstance(candidate, list | tuple):
        return [str(item).strip() for item in candidate if str(item).strip()]
    s = str(candidate).strip()
    if not s:
        return []
    try:
        loaded = json.loads(s)
        if isinstance(loaded, list):
            return [str(item).strip() for item in loaded if str(item).strip()]
    except json.JSONDecodeError:
        pass
    return [item.strip() for item in s.split(",") if item.strip()]


class ServerConfig(BaseSettings):
    """Server network configuration."""

    host: str = Field(default="0.0.0.0", description="Server bind address")
    port: int = Field(
        default=3000,
        validation_alias=AliasChoices("server_port", "port"),
        description="Server port (SERVER_PORT or PORT)",
    )

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        """Validate port is in valid range."""
        if not 1024 <= v <= 65535:
            logger.error("Invalid server port", port=v, valid_range="1024-65535")
            raise ValueError("Port must be between 1024 and 65535")
        return v

    model_config = {"env_prefix": "SERVER_", "env_file": ".env", "case_sensitive": False, "extra": "ignore"}


class SecurityConfig(BaseSettings):
    """Security-sensitive configuration."""

    admin_key: str = Field(
        default=DEFAULT_ADMIN_KEY,
        validation_alias=AliasChoices("security_admin_key", "admin_key"),
        description="Shared secret for the admin statistics endpoint (SECURITY_ADMIN_KEY or ADMIN_KEY)",
    )

    @field_validator("admin_key")
    @classmethod
    def validate_admin_key(cls, v: str) -> str:
        """Reject an empty admin key; an empty secret would match an empty query."""
        if not v or not v.strip():
            raise ValueError("Admin key cannot be empty")
        return v

    @property
    def uses_default_admin_key(self) -> bool:
        """True when the shipped default secret is still in use."""
        return self.admin_key == DEFAULT_ADMIN_KEY

    model_config = {"env_prefix": "SECURITY_", "env_file": ".env", "case_sensitive": False, "extra": "ignore"}


class MatchmakingConfig(BaseSettings):
    """Session and relay limits."""

    max_name_length: int = Field(default=20, description="Maximum display name length")
    max_chat_length: int = Field(default=500, description="Maximum relayed chat text length")
    default_name: str = Field(default="Anonymous", description="Display name used when none is supplied")
    public_id_length: int = Field(default=8, description="Length of the displayable public session ID")
    max_message_size: int = Field(default=65536, description="Maximum inbound WebSocket frame size in bytes")

    @field_validator("max_name_length", "max_chat_length", "max_message_size")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        """Validate limits are positive."""
        if v < 1:
            raise ValueError("Limits must be at least 1")
        return v

    @field_validator("public_id_length")
    @classmethod
    def validate_public_id_length(cls, v: int) -> int:
        """Public IDs are cut from a 32 character hex UUID."""
        if not 4 <= v <= 32:
            raise ValueError("Public ID length must be between 4 and 32")
        return v

    model_config = {"env_prefix": "MATCHMAKING_", "env_file": ".env", "case_sensitive": False, "extra": "ignore"}


class LoggingConfig(BaseSettings):
    """Logging configuration."""

    environment: str = Field(default="local", description="Logging environment")
    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="human", description="Log format")
    log_base: str = Field(default="logs", description="Base log directory")
    rotation_max_size: str = Field(default="100MB", description="Log rotation max size")
    rotation_backup_count: int = Field(default=5, description="Number of backup log files")
    disable_logging: bool = Field(default=False, description="Disable file logging")

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate logging environment."""
        valid_environments = ["local", "unit_test", "e2e_test", "production"]
        if v not in valid_environments:
            raise ValueError(f"Environment must be one of {valid_environments}, got '{v}'")
        return v

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}, got '{v}'")
        return v_upper

    @field_validator("format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        """Validate log format."""
        valid_formats = ["json", "human", "colored"]
        if v not in valid_formats:
            raise ValueError(f"Log format must be one of {valid_formats}, got '{v}'")
        return v

    model_config = {"env_prefix": "LOGGING_", "env_file": ".env", "case_sensitive": False, "extra": "ignore"}

    def to_legacy_dict(self) -> dict:
        """Convert to the dict format expected by setup_enhanced_logging."""
        return {
            "environment": self.environment,
            "level": self.level,
            "format": self.format,
            "log_base": self.log_base,
            "rotation": {
                "max_size": self.rotation_max_size,
                "backup_count": self.rotation_backup_count,
            },
            "disable_logging": self.disable_logging,
        }


class CORSConfig(BaseSettings):
    """Cross-origin resource sharing configuration."""

    allow_origins: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: ["*"],
        description="Origins permitted to access the API",
    )
    allow_credentials: bool = Field(default=False, description="Whether credentialed requests are accepted")
    allow_methods: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: ["GET", "OPTIONS"],
        description="HTTP methods permitted by CORS responses",
    )
    allow_headers: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: ["Content-Type", "Accept", "Accept-Language"],
        description="Request headers permitted by CORS responses",
    )
    max_age: int = Field(default=600, description="Seconds browsers may cache CORS preflight responses")

    @field_validator("allow_origins", "allow_methods", "allow_headers", mode="before")
    @classmethod
    def parse_list(cls, value: Any) -> list[str]:
        """Accept CSV or JSON lists from the environment."""
        return _parse_env_list(value)

    @field_validator("allow_methods")
    @classmethod
    def normalize_methods(cls, value: list[str]) -> list[str]:
        """HTTP methods are upper case."""
        return [method.upper() for method in value]

    model_config = {"env_prefix": "CORS_", "env_file": ".env", "case_sensitive": False, "extra": "ignore"}


class AppConfig(BaseSettings):
    """
    Composite application configuration.

    This is the main configuration class that aggregates all other configs.
    Access via the get_config() function.
    """

    server: ServerConfig = Field(default_factory=ServerConfig)
    security: SecurityConfig = Field(default_factory=SecurityConfig)
    matchmaking: MatchmakingConfig = Field(default_factory=MatchmakingConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    cors: CORSConfig = Field(default_factory=CORSConfig)

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "case_sensitive": False, "extra": "ignore"}

    def to_legacy_dict(self) -> dict:
        """Convert to the dict format consumed by the logging setup."""
        return {
            "host": self.server.host,
            "port": self.server.port,
            "logging": self.logging.to_legacy_dict(),
            "matchmaking": self.matchmaking.model_dump(),
            "cors": self.cors.model_dump(),
        }
