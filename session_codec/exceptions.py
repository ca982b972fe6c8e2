"""
Codec Errors.

Decoding raises either InvalidMessage or InvalidSignature; callers should
treat both as "no valid session" and start a fresh one.
"""


class CodecError(Exception):
    """Base class for every session codec error."""


class ConfigurationError(CodecError, ValueError):
    """Invalid secret, pad size, mode or serializer at construction time."""


class InvalidMessage(CodecError):
    """Malformed token or envelope: bad encoding, wrong version, truncated."""


class InvalidSignature(CodecError):
    """Authentication failed: tampered token, wrong secret or wrong purpose."""


class SerializationError(CodecError):
    """The value cannot be serialized by the configured backend."""
