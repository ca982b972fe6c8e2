"""Session Codec — Encrypted, tamper-evident session cookie payloads.

Security Note (Threat Model):
    Tokens are handed to the client. Confidentiality and integrity rest on
    the secret given to SessionCodec; the codec never stores, rotates or
    distributes secrets. Padding hides message sizes up to the configured
    block size only.
"""

from .version import __version__
from .codec import SessionCodec
from .conf import CodecConfig, Mode, generate_secret, load_secret
from .dispatch import VersionDispatcher
from .schemes import CipherSchemeV1, CipherSchemeV2
from .exceptions import (
    CodecError,
    ConfigurationError,
    InvalidMessage,
    InvalidSignature,
    SerializationError,
)

__all__ = [
    "__version__",
    "SessionCodec",
    "CodecConfig",
    "Mode",
    "generate_secret",
    "load_secret",
    "VersionDispatcher",
    "CipherSchemeV1",
    "CipherSchemeV2",
    "CodecError",
    "ConfigurationError",
    "InvalidMessage",
    "InvalidSignature",
    "SerializationError",
]
