"""
SessionCodec — Session data to encrypted cookie value, and back.

Write path:
    value -> serializer -> [compress] -> inner padding -> scheme.encrypt
          -> [outer padding] -> base64 text
Read path is the exact reverse; the version dispatcher picks the scheme
before anything is decrypted.

Security Note:
    Never log secrets, plaintext or token values. Only log modes, versions,
    sizes and error classes.
"""
import logging
from typing import Any, Optional, Union

from pydantic import ValidationError

from . import encoding
from .compression import Compressor, NoCompression
from .conf import (
    DEFAULT_PAD_SIZE,
    CodecConfig,
    Mode,
    SerializerName,
    configuration_error,
)
from .dispatch import VersionDispatcher
from .exceptions import InvalidMessage, InvalidSignature
from .padding import InnerPadder, OuterPadder
from .serializers import get_serializer

logger = logging.getLogger("session.codec")


class SessionCodec:
    """Encrypts session data into opaque cookie tokens.

    Every collaborator is built in ``__init__`` and never changed afterwards,
    so one instance can be shared across threads.

    Args:
        secret: Secret bytes (>=64 for ``v1``/``guess``, >=32 for ``v2``).
        purpose: Optional context string; tokens only decode under the
            same purpose they were minted with.
        pad_size: Inner block size (2..4096) or None to disable padding.
        outer_pad_size: Envelope block size (2..4096) or None (default).
        mode: ``v1``, ``v2`` or ``guess``. Guess reads both versions and
            writes V2.
        serializer: ``json`` (default) or ``native``.
        compress: Deflate the serialized payload before padding.
    """

    def __init__(
        self,
        secret: bytes,
        *,
        purpose: Optional[str] = None,
        pad_size: Optional[int] = DEFAULT_PAD_SIZE,
        outer_pad_size: Optional[int] = None,
        mode: Union[Mode, str] = Mode.GUESS,
        serializer: Union[SerializerName, str] = SerializerName.JSON,
        compress: bool = False,
    ):
        try:
            config = CodecConfig(
                secret=secret,
                purpose=purpose,
                pad_size=pad_size,
                outer_pad_size=outer_pad_size,
                mode=mode,
                serializer=serializer,
                compress=compress,
            )
        except ValidationError as err:
            raise configuration_error(err) from err
        self.config = config
        self._serializer = get_serializer(config.serializer.value)
        self._compressor = Compressor() if config.compress else NoCompression()
        self._inner = InnerPadder(config.pad_size)
        self._outer = OuterPadder(config.outer_pad_size)
        self._dispatcher = VersionDispatcher(
            config.secret,
            mode=config.mode,
            purpose=config.purpose,
            outer=self._outer,
        )
        logger.debug(
            "Session codec ready: mode=%s serializer=%s pad_size=%s "
            "outer_pad_size=%s compress=%s",
            config.mode.value, config.serializer.value, config.pad_size,
            config.outer_pad_size, config.compress,
        )

    @classmethod
    def from_config(cls, config: CodecConfig) -> "SessionCodec":
        return cls(
            config.secret,
            purpose=config.purpose,
            pad_size=config.pad_size,
            outer_pad_size=config.outer_pad_size,
            mode=config.mode,
            serializer=config.serializer,
            compress=config.compress,
        )

    @classmethod
    def from_env(cls) -> "SessionCodec":
        """Build a codec from SESSION_CODEC_* environment variables."""
        try:
            config = CodecConfig.from_env()
        except ValidationError as err:
            raise configuration_error(err) from err
        return cls.from_config(config)

    def __repr__(self) -> str:
        return (
            f'<SessionCodec mode={self.config.mode.value} '
            f'serializer={self.config.serializer.value}>'
        )

    @property
    def mode(self) -> Mode:
        return self.config.mode

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def encode(self, value: Any) -> str:
        """Serialize, pad, encrypt and text-encode a session value.

        Raises:
            SerializationError: If the value cannot be serialized.
        """
        payload = self._compressor.dump(self._serializer.serialize(value))
        scheme = self._dispatcher.for_encrypt()
        envelope = scheme.encrypt(self._inner.dump(payload))
        return encoding.encode(self._outer.dump(envelope), scheme.ALPHABET)

    def decode(self, token: Union[str, bytes]) -> Any:
        """Decode a token produced by ``encode``.

        Raises:
            InvalidMessage: If the token is malformed.
            InvalidSignature: If the token fails authentication.
        """
        scheme = self._dispatcher.for_decrypt(token)
        envelope = self._outer.load(encoding.decode(token, scheme.ALPHABET))
        payload = self._inner.load(scheme.decrypt(envelope))
        return self._serializer.deserialize(self._compressor.load(payload))

    def decode_or_default(self, token: Union[str, bytes], default: Any = None) -> Any:
        """Decode a token, returning ``default`` when it is not a valid session.

        Malformed and unauthenticated tokens are treated the same way: the
        token is discarded and the caller starts a fresh session.
        """
        if not token:
            return default
        try:
            return self.decode(token)
        except (InvalidMessage, InvalidSignature) as err:
            logger.info(
                "Discarding session token (%s): %s", type(err).__name__, err,
            )
            return default

    # payload-wrapper naming
    dump = encode
    load = decode
