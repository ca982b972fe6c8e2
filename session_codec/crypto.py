"""
Codec Crypto Core — Key derivation, stream cipher, AEAD and MAC helpers.

- Key derivation: HMAC-SHA256(static_secret, per_message_secret)
- V1 layer: AES-256-CTR + HMAC-SHA256
- V2 layer: AES-256-GCM (AEAD)

Security Note:
    Never log keys, plaintext or ciphertext values.
    Nonces are random; collision probability negligible under normal usage.
"""
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import constant_time, hashes, hmac
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from .exceptions import InvalidSignature

KEY_LENGTH = 32  # AES-256
MAC_LENGTH = 32  # HMAC-SHA256
CTR_IV_SIZE = 16
GCM_IV_SIZE = 12  # 96-bit nonce
GCM_TAG_SIZE = 16


def random_bytes(size: int) -> bytes:
    return os.urandom(size)


# ---------------------------------------------------------------------------
# MAC and key derivation
# ---------------------------------------------------------------------------

def hmac_sha256(key: bytes, data: bytes) -> bytes:
    """Return the 32-byte HMAC-SHA256 of data under key."""
    mac = hmac.HMAC(key, hashes.SHA256())
    mac.update(data)
    return mac.finalize()


def derive_key(static_secret: bytes, message_secret: bytes) -> bytes:
    """Derive a per-message cipher key.

    The per-message secret travels in the envelope, so it is never used as
    the key itself; it is mixed with the static secret through HMAC.

    Args:
        static_secret: 32-byte cipher secret taken from the codec secret.
        message_secret: Random per-message secret (V1) or salt (V2).

    Returns:
        32-byte derived key.
    """
    return hmac_sha256(static_secret, message_secret)


def verify_mac(key: bytes, data: bytes, tag: bytes) -> None:
    """Check an HMAC-SHA256 tag in constant time.

    Raises:
        InvalidSignature: If the tag does not match.
    """
    if not constant_time.bytes_eq(hmac_sha256(key, data), tag):
        raise InvalidSignature("HMAC is invalid")


# ---------------------------------------------------------------------------
# Stream cipher (V1)
# ---------------------------------------------------------------------------

def ctr_transform(key: bytes, iv: bytes, data: bytes) -> bytes:
    """AES-256-CTR; the same call encrypts and decrypts."""
    transform = Cipher(algorithms.AES(key), modes.CTR(iv)).encryptor()
    return transform.update(data) + transform.finalize()


# ---------------------------------------------------------------------------
# AEAD (V2)
# ---------------------------------------------------------------------------

def aead_encrypt(
    key: bytes, iv: bytes, aad: bytes, plaintext: bytes
) -> tuple[bytes, bytes]:
    """Encrypt with AES-256-GCM.

    Returns:
        Tuple of (ciphertext, 16-byte auth tag).
    """
    sealed = AESGCM(key).encrypt(iv, plaintext, aad)
    return sealed[:-GCM_TAG_SIZE], sealed[-GCM_TAG_SIZE:]


def aead_decrypt(
    key: bytes, iv: bytes, aad: bytes, ciphertext: bytes, tag: bytes
) -> bytes:
    """Decrypt and verify AES-256-GCM.

    Raises:
        InvalidSignature: If authentication fails.
    """
    try:
        return AESGCM(key).decrypt(iv, ciphertext + tag, aad)
    except InvalidTag as err:
        raise InvalidSignature("authentication tag is invalid") from err
