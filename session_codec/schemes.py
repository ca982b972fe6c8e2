"""
Cipher schemes — the two envelope generations.

V1 (legacy): AES-256-CTR with a separate HMAC-SHA256.
    Format: [0x01][message_secret 32B][iv 16B][ciphertext][hmac 32B]
    Text: URL-safe base64.

V2 (current): AES-256-GCM.
    Format: [0x02][salt 32B][iv 12B][auth_tag 16B][ciphertext]
    Text: standard base64.

Both derive a fresh key per message as HMAC-SHA256(cipher_secret, random),
so the random value carried in the envelope never exposes the key.
"""
from typing import ClassVar, Optional, Union

from . import crypto
from .conf import V1_SECRET_LENGTH, V2_SECRET_LENGTH
from .encoding import Alphabet
from .exceptions import ConfigurationError, InvalidMessage

V1_TAG = 0x01
V2_TAG = 0x02

SECRET_SIZE = 32  # per-message secret / salt


def _secret_bytes(secret, minimum: int) -> bytes:
    if not isinstance(secret, (bytes, bytearray, memoryview)):
        raise ConfigurationError(
            f"secret must be a bytes-like object, got {type(secret).__name__}"
        )
    # copy first: the caller's buffer is never sliced or mutated
    secret = bytes(secret)
    if len(secret) < minimum:
        raise ConfigurationError(
            f"invalid secret: it's {len(secret)}-byte long, must be >={minimum}"
        )
    return secret


def _purpose_bytes(purpose: Optional[str]) -> bytes:
    return purpose.encode("utf-8") if purpose else b""


class CipherSchemeV1:
    """Legacy scheme: AES-256-CTR encryption plus HMAC-SHA256 signature.

    The secret must be at least 64 bytes: the first 32 bytes are the cipher
    secret, the remainder is the HMAC secret.
    """

    VERSION: ClassVar[int] = V1_TAG
    ALPHABET: ClassVar[Alphabet] = Alphabet.URLSAFE
    HEADER_SIZE: ClassVar[int] = 1 + SECRET_SIZE + crypto.CTR_IV_SIZE
    MIN_SIZE: ClassVar[int] = HEADER_SIZE + crypto.MAC_LENGTH

    def __init__(self, secret: bytes, purpose: Optional[str] = None):
        secret = _secret_bytes(secret, V1_SECRET_LENGTH)
        self._cipher_secret = secret[:crypto.KEY_LENGTH]
        self._hmac_secret = secret[crypto.KEY_LENGTH:]
        self._purpose = _purpose_bytes(purpose)

    def _signature(self, data: bytes) -> bytes:
        return crypto.hmac_sha256(self._hmac_secret, data + self._purpose)

    def encrypt(self, payload: bytes) -> bytes:
        message_secret = crypto.random_bytes(SECRET_SIZE)
        key = crypto.derive_key(self._cipher_secret, message_secret)
        iv = crypto.random_bytes(crypto.CTR_IV_SIZE)
        ciphertext = crypto.ctr_transform(key, iv, payload)
        data = bytes([self.VERSION]) + message_secret + iv + ciphertext
        return data + self._signature(data)

    def decrypt(self, envelope: bytes) -> bytes:
        """Verify and decrypt a V1 envelope.

        Raises:
            InvalidMessage: If the envelope is truncated or not version 1.
            InvalidSignature: If the HMAC does not match.
        """
        if len(envelope) < self.MIN_SIZE:
            raise InvalidMessage(
                f"message too short: {len(envelope)} bytes (minimum {self.MIN_SIZE})"
            )
        data = envelope[:-crypto.MAC_LENGTH]
        signature = envelope[-crypto.MAC_LENGTH:]
        crypto.verify_mac(self._hmac_secret, data + self._purpose, signature)
        if data[0] != self.VERSION:
            raise InvalidMessage("wrong version")
        message_secret = data[1:1 + SECRET_SIZE]
        iv = data[1 + SECRET_SIZE:self.HEADER_SIZE]
        key = crypto.derive_key(self._cipher_secret, message_secret)
        return crypto.ctr_transform(key, iv, data[self.HEADER_SIZE:])


class CipherSchemeV2:
    """Current scheme: AES-256-GCM authenticated encryption.

    The secret must be at least 32 bytes; only the first 32 are used.
    Version byte, salt and purpose are bound as associated data.
    """

    VERSION: ClassVar[int] = V2_TAG
    ALPHABET: ClassVar[Alphabet] = Alphabet.STANDARD
    HEADER_SIZE: ClassVar[int] = (
        1 + SECRET_SIZE + crypto.GCM_IV_SIZE + crypto.GCM_TAG_SIZE
    )

    def __init__(self, secret: bytes, purpose: Optional[str] = None):
        secret = _secret_bytes(secret, V2_SECRET_LENGTH)
        self._cipher_secret = secret[:crypto.KEY_LENGTH]
        self._purpose = _purpose_bytes(purpose)

    def _aad(self, salt: bytes) -> bytes:
        return bytes([self.VERSION]) + salt + self._purpose

    def encrypt(self, payload: bytes) -> bytes:
        salt = crypto.random_bytes(SECRET_SIZE)
        key = crypto.derive_key(self._cipher_secret, salt)
        iv = crypto.random_bytes(crypto.GCM_IV_SIZE)
        ciphertext, tag = crypto.aead_encrypt(key, iv, self._aad(salt), payload)
        return bytes([self.VERSION]) + salt + iv + tag + ciphertext

    def decrypt(self, envelope: bytes) -> bytes:
        """Verify and decrypt a V2 envelope.

        Empty ciphertexts are rejected along with anything else that is not
        longer than the 61-byte header.

        Raises:
            InvalidMessage: If the envelope is too short or not version 2.
            InvalidSignature: If AEAD verification fails.
        """
        if len(envelope) <= self.HEADER_SIZE:
            raise InvalidMessage("invalid message")
        if envelope[0] != self.VERSION:
            raise InvalidMessage("invalid message")
        salt = envelope[1:1 + SECRET_SIZE]
        iv_end = 1 + SECRET_SIZE + crypto.GCM_IV_SIZE
        iv = envelope[1 + SECRET_SIZE:iv_end]
        tag = envelope[iv_end:self.HEADER_SIZE]
        key = crypto.derive_key(self._cipher_secret, salt)
        return crypto.aead_decrypt(
            key, iv, self._aad(salt), envelope[self.HEADER_SIZE:], tag
        )


Scheme = Union[CipherSchemeV1, CipherSchemeV2]
