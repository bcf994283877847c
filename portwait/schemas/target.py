from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from portwait.core.exceptions.exceptions import InvalidTargetError


class ProbeTarget(BaseModel):
    """A host/port pair to wait on before handing off."""
    model_config = ConfigDict(frozen=True)

    host: str = Field(..., min_length=1, description="Host name or IP address")
    port: int = Field(..., ge=1, le=65535, description="TCP port")

    @field_validator("host")
    @classmethod
    def _strip_host(cls, v: str) -> str:
        v = v.strip()
        if v.startswith("[") and v.endswith("]"):
            v = v[1:-1]
        if not v:
            raise ValueError("host must not be empty")
        return v

    @classmethod
    def of(cls, host: str, port) -> "ProbeTarget":
        """Build a target, raising InvalidTargetError instead of pydantic's ValidationError."""
        try:
            return cls(host=host, port=port)
        except ValidationError as e:
            errors = "; ".join(f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors())
            raise InvalidTargetError(f"{host}:{port}", errors) from e

    @classmethod
    def parse(cls, value: str) -> "ProbeTarget":
        """Parse 'host:port' or '[ipv6]:port'."""
        text = (value or "").strip()
        if text.startswith("["):
            host, sep, rest = text[1:].partition("]")
            if not sep or not rest.startswith(":"):
                raise InvalidTargetError(value, "expected '[host]:port'")
            port = rest[1:]
        else:
            host, sep, port = text.rpartition(":")
            if not sep:
                raise InvalidTargetError(value, "expected 'host:port'")
            if ":" in host:
                raise InvalidTargetError(value, "IPv6 hosts must be bracketed, e.g. '[::1]:5432'")
        if not (port.isascii() and port.isdigit()):
            raise InvalidTargetError(value, f"port '{port}' is not a number")
        return cls.of(host, int(port))

    def __str__(self) -> str:
        if ":" in self.host:
            return f"[{self.host}]:{self.port}"
        return f"{self.host}:{self.port}"


class ProbeResult(BaseModel):
    """Outcome of waiting on one target."""
    target: ProbeTarget
    ready: bool = Field(..., description="Whether the target became reachable")
    attempts: int = Field(..., ge=0, description="Probe attempts made, including the successful one")
    elapsed_s: float = Field(..., ge=0, description="Seconds spent waiting")
    error: Optional[str] = Field(None, description="Last probe error, if any")
