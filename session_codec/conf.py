"""
Codec Configuration — Secret loading and validated settings.

Reads codec settings from environment variables:
    SESSION_CODEC_SECRET = <base64-encoded secret, >=64 bytes for v1/guess>
    SESSION_CODEC_PURPOSE = <optional purpose string>
    SESSION_CODEC_PAD_SIZE = <2..4096 or "none">
    SESSION_CODEC_OUTER_PAD_SIZE = <2..4096 or "none">
    SESSION_CODEC_MODE = v1 | v2 | guess
    SESSION_CODEC_SERIALIZER = native | json
    SESSION_CODEC_COMPRESS = true | false

Security Note:
    Never log secret material. Only log lengths, modes and pad sizes.
"""
import os
import base64
import secrets
import logging
from enum import Enum
from typing import Any, Optional

from pydantic import (
    BaseModel,
    Field,
    StrictInt,
    ValidationError,
    field_validator,
    model_validator,
)

from .exceptions import ConfigurationError

logger = logging.getLogger("session.codec")

MIN_PAD_SIZE = 2
MAX_PAD_SIZE = 4096
DEFAULT_PAD_SIZE = 32

V1_SECRET_LENGTH = 64
V2_SECRET_LENGTH = 32

_DISABLED = ("", "none", "null", "off", "disabled")
_TRUTHY = ("1", "true", "yes", "on")


class Mode(str, Enum):
    """Scheme selection mode."""
    V1 = "v1"
    V2 = "v2"
    GUESS = "guess"


class SerializerName(str, Enum):
    NATIVE = "native"
    JSON = "json"


def validate_pad_size(value: Any) -> Optional[int]:
    """Check a pad size is an integer in [2, 4096] or None (disabled).

    Raises:
        ValueError: If the value has the wrong type or is out of range.
    """
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(
            f"invalid pad_size: {value!r}; must be an integer or None"
        )
    if not MIN_PAD_SIZE <= value <= MAX_PAD_SIZE:
        raise ValueError(
            f"invalid pad_size: {value}, must be between "
            f"{MIN_PAD_SIZE} and {MAX_PAD_SIZE}"
        )
    return value


def required_secret_length(mode: Mode) -> int:
    """Minimum secret length for the schemes a mode needs."""
    return V2_SECRET_LENGTH if mode is Mode.V2 else V1_SECRET_LENGTH


def load_secret() -> bytes:
    """Load the codec secret from the SESSION_CODEC_SECRET env var.

    Returns:
        Raw secret bytes.

    Raises:
        RuntimeError: If the variable is not set.
        ConfigurationError: If the value is not valid base64.
    """
    raw = os.environ.get("SESSION_CODEC_SECRET")
    if not raw:
        raise RuntimeError(
            "No session codec secret found in environment. "
            "Set SESSION_CODEC_SECRET=<base64-encoded-64-byte-secret>"
        )
    try:
        secret = base64.b64decode(raw, validate=True)
    except ValueError as err:
        raise ConfigurationError(
            "SESSION_CODEC_SECRET is not valid base64"
        ) from err
    logger.debug("Loaded session codec secret (%d bytes)", len(secret))
    return secret


def _env_pad_size(name: str, default: Optional[int]) -> Optional[int]:
    raw = os.environ.get(name)
    if raw is None:
        return default
    if raw.strip().lower() in _DISABLED:
        return None
    try:
        return int(raw)
    except ValueError as err:
        raise ConfigurationError(
            f"{name} must be an integer or 'none', got {raw!r}"
        ) from err


def configuration_error(err: ValidationError) -> ConfigurationError:
    """Convert a pydantic error without echoing input values (the secret)."""
    problems = "; ".join(
        f"{'.'.join(str(part) for part in error['loc']) or 'config'}: {error['msg']}"
        for error in err.errors()
    )
    return ConfigurationError(f"Invalid session codec configuration: {problems}")


def generate_secret(length: int = V1_SECRET_LENGTH) -> str:
    """Generate a random secret and return it as a base64 string.

    This is a utility for operators to generate new secrets.

    Returns:
        Base64-encoded secret string.
    """
    return base64.b64encode(secrets.token_bytes(length)).decode("ascii")


class CodecConfig(BaseModel):
    """Validated codec configuration."""

    secret: bytes = Field(repr=False)
    purpose: Optional[str] = None
    pad_size: Optional[StrictInt] = Field(default=DEFAULT_PAD_SIZE)
    outer_pad_size: Optional[StrictInt] = None
    mode: Mode = Mode.GUESS
    serializer: SerializerName = SerializerName.JSON
    compress: bool = False

    model_config = {"frozen": True}

    @field_validator("secret", mode="before")
    @classmethod
    def copy_secret(cls, v: Any) -> bytes:
        """Accept any bytes-like secret and keep a private copy."""
        if not isinstance(v, (bytes, bytearray, memoryview)):
            raise ValueError(
                f"secret must be a bytes-like object, got {type(v).__name__}"
            )
        return bytes(v)

    @field_validator("pad_size", "outer_pad_size", mode="before")
    @classmethod
    def check_pad_size(cls, v: Any) -> Optional[int]:
        return validate_pad_size(v)

    @model_validator(mode="after")
    def validate_secret_length(self) -> "CodecConfig":
        """Ensure the secret is long enough for every scheme the mode builds."""
        required = required_secret_length(self.mode)
        if len(self.secret) < required:
            raise ValueError(
                f"invalid secret: it's {len(self.secret)}-byte long, "
                f"must be >={required} for mode {self.mode.value}"
            )
        return self

    @classmethod
    def from_env(cls) -> "CodecConfig":
        """Create CodecConfig by loading values from environment.

        Returns:
            Populated CodecConfig instance.
        """
        compress = os.environ.get("SESSION_CODEC_COMPRESS", "false")
        return cls(
            secret=load_secret(),
            purpose=os.environ.get("SESSION_CODEC_PURPOSE") or None,
            pad_size=_env_pad_size("SESSION_CODEC_PAD_SIZE", DEFAULT_PAD_SIZE),
            outer_pad_size=_env_pad_size("SESSION_CODEC_OUTER_PAD_SIZE", None),
            mode=os.environ.get("SESSION_CODEC_MODE", Mode.GUESS.value),
            serializer=os.environ.get(
                "SESSION_CODEC_SERIALIZER", SerializerName.JSON.value
            ),
            compress=compress.strip().lower() in _TRUTHY,
        )
