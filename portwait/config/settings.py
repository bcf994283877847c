import os
from typing import Optional

from dotenv import find_dotenv, load_dotenv
from pydantic import field_validator
from pydantic_settings import BaseSettings

_env_path = find_dotenv(usecwd=True)  # locate a .env file in the working dir or its parents
if _env_path:
    load_dotenv(_env_path)


def default_handoff_mode() -> str:
    # exec only replaces the process image on POSIX
    return "exec" if os.name == "posix" else "supervise"


class Settings(BaseSettings):
    # Probe targets, e.g. "db:5432,web:8000"
    PROBE_TARGETS: str = "web:8000"

    # Timing (seconds)
    PROBE_INTERVAL: float = 0.1
    PROBE_CONNECT_TIMEOUT: float = 1.0
    # Unset means wait forever
    PROBE_TIMEOUT: Optional[float] = None
    PROBE_MAX_ATTEMPTS: Optional[int] = None

    # Application-level check (optional)
    PROBE_HTTP_PATH: Optional[str] = None

    # Handoff
    HANDOFF_COMMAND: str = ""
    HANDOFF_MODE: str = default_handoff_mode()

    LOG_LEVEL: str = "INFO"

    @field_validator("PROBE_INTERVAL", "PROBE_CONNECT_TIMEOUT")
    @classmethod
    def _positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("must be greater than zero")
        return v

    @field_validator("PROBE_TIMEOUT", "PROBE_MAX_ATTEMPTS")
    @classmethod
    def _positive_or_unset(cls, v):
        if v is not None and v <= 0:
            raise ValueError("must be greater than zero when set")
        return v

    @field_validator("PROBE_HTTP_PATH")
    @classmethod
    def _leading_slash(cls, v: Optional[str]) -> Optional[str]:
        if not v:
            return None
        return v if v.startswith("/") else f"/{v}"

    @field_validator("HANDOFF_MODE")
    @classmethod
    def _known_mode(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in ("exec", "supervise"):
            raise ValueError("must be 'exec' or 'supervise'")
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def _upper_level(cls, v: str) -> str:
        return v.strip().upper()
