"""Runtime configuration loaded from the environment."""

import logging
import os
from pathlib import Path
from typing import Mapping, Optional, Union

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator

ENV_VARS = {
    "database_path": "PROGRAM_REGISTRY_DATABASE",
    "host": "PROGRAM_REGISTRY_HOST",
    "port": "PROGRAM_REGISTRY_PORT",
    "log_level": "PROGRAM_REGISTRY_LOG_LEVEL",
    "server_url": "PROGRAM_REGISTRY_URL",
}

_LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


class RegistryConfig(BaseModel):
    """Settings for the server and CLI. CLI flags override these values."""
    database_path: Path = Path("program_registry.db")
    host: str = "0.0.0.0"
    port: int = Field(3000, ge=1, le=65535)
    log_level: str = "INFO"
    server_url: str = "http://localhost:3000"

    model_config = ConfigDict(frozen=True, extra="forbid")

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {list(_LOG_LEVELS)}, got '{v}'")
        return level

    @field_validator('server_url')
    @classmethod
    def validate_server_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"server_url must start with http:// or https://, got '{v}'")
        return v.rstrip("/")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "RegistryConfig":
        """Build a config from ENV_VARS; unset ones keep defaults."""
        env = os.environ if environ is None else environ
        values = {field: env[key] for field, key in ENV_VARS.items() if key in env}
        return cls(**values)

    @property
    def logging_level(self) -> int:
        return getattr(logging, self.log_level)


def load_config(env_file: Optional[Union[str, Path]] = None) -> RegistryConfig:
    """Load .env (without overriding the process environment), then read config."""
    load_dotenv(dotenv_path=env_file)
    return RegistryConfig.from_env()
