"""
Version dispatch between cipher schemes.

Writes always use V2 unless the dispatcher is pinned to V1. Reads either use
the pinned scheme or, in guess mode, route on the version byte at the start
of the envelope, so tokens from both generations are accepted during a
migration window.
"""
import logging
from typing import Optional, Union

from . import encoding
from .conf import Mode
from .exceptions import InvalidMessage
from .padding import OuterPadder
from .schemes import V1_TAG, V2_TAG, CipherSchemeV1, CipherSchemeV2, Scheme

logger = logging.getLogger("session.codec")


class VersionDispatcher:
    """Selects the cipher scheme for each encrypt and decrypt call.

    Guess mode builds both schemes; pinned modes build only their own.
    """

    def __init__(
        self,
        secret: bytes,
        mode: Mode = Mode.GUESS,
        purpose: Optional[str] = None,
        outer: Optional[OuterPadder] = None,
    ):
        self.mode = Mode(mode)
        self._outer = outer or OuterPadder(None)
        self._v1: Optional[CipherSchemeV1] = None
        self._v2: Optional[CipherSchemeV2] = None
        if self.mode is not Mode.V2:
            self._v1 = CipherSchemeV1(secret, purpose)
        if self.mode is not Mode.V1:
            self._v2 = CipherSchemeV2(secret, purpose)

    def __repr__(self) -> str:
        return f'<VersionDispatcher mode={self.mode.value}>'

    def for_encrypt(self) -> Scheme:
        if self.mode is Mode.V1:
            return self._v1
        return self._v2

    def for_decrypt(self, token: Union[str, bytes]) -> Scheme:
        """Return the scheme that must decrypt this token.

        Raises:
            InvalidMessage: If guessing fails or the version is unknown.
        """
        if self.mode is Mode.V1:
            return self._v1
        if self.mode is Mode.V2:
            return self._v2
        if self._outer.enabled:
            version = self._padded_version(token)
        else:
            version = encoding.peek_version(token)
        return self.by_version(version)

    def by_version(self, version: int) -> Scheme:
        if version == V2_TAG:
            scheme = self._v2
        elif version == V1_TAG:
            scheme = self._v1
        else:
            raise InvalidMessage("invalid message")
        if scheme is None:
            raise InvalidMessage(f"version {version} is not enabled")
        logger.debug("Routing token to scheme v%d", version)
        return scheme

    def _padded_version(self, token: Union[str, bytes]) -> int:
        # outer padding hides the version byte behind the padding header
        if token is None:
            raise InvalidMessage("invalid message")
        envelope = self._outer.load(encoding.decode_any(token))
        if not envelope:
            raise InvalidMessage("invalid message")
        return envelope[0]
