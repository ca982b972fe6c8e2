"""
Text encoding for envelopes.

V1 tokens use the URL-safe base64 alphabet, V2 tokens the standard one.
Decoding is strict: characters from the other alphabet are rejected.
"""
import base64
import binascii
from enum import Enum
from typing import Union

from .exceptions import InvalidMessage

_URLSAFE_TO_STANDARD = bytes.maketrans(b"-_", b"+/")


class Alphabet(Enum):
    STANDARD = "standard"
    URLSAFE = "urlsafe"


def _ascii(text: Union[str, bytes]) -> bytes:
    if isinstance(text, (bytes, bytearray)):
        return bytes(text)
    if not isinstance(text, str):
        raise InvalidMessage("token must be text")
    try:
        return text.encode("ascii")
    except UnicodeEncodeError as err:
        raise InvalidMessage("token is not ASCII") from err


def normalize(text: Union[str, bytes]) -> bytes:
    """Map the URL-safe alphabet onto the standard one.

    Standard-alphabet input comes back unchanged.
    """
    return _ascii(text).translate(_URLSAFE_TO_STANDARD)


def encode(data: bytes, alphabet: Alphabet) -> str:
    if alphabet is Alphabet.URLSAFE:
        return base64.urlsafe_b64encode(data).decode("ascii")
    return base64.b64encode(data).decode("ascii")


def decode(text: Union[str, bytes], alphabet: Alphabet) -> bytes:
    """Decode a token written with the given alphabet.

    URL-safe tokens may omit their ``=`` padding.

    Raises:
        InvalidMessage: If the token is not valid for the alphabet.
    """
    data = _ascii(text)
    if alphabet is Alphabet.URLSAFE:
        if b"+" in data or b"/" in data:
            raise InvalidMessage("token is not URL-safe base64")
        data = data.translate(_URLSAFE_TO_STANDARD)
        data += b"=" * (-len(data) % 4)
    try:
        return base64.b64decode(data, validate=True)
    except binascii.Error as err:
        raise InvalidMessage("token is not valid base64") from err


def decode_any(text: Union[str, bytes]) -> bytes:
    """Decode a token written with either alphabet."""
    data = normalize(text)
    return decode(data + b"=" * (-len(data) % 4), Alphabet.STANDARD)


def peek_version(text: Union[str, bytes]) -> int:
    """Return the version byte of a token from its first 4 characters.

    Raises:
        InvalidMessage: If the token is too short or the prefix is not base64.
    """
    data = normalize(text)
    if len(data) < 4:
        raise InvalidMessage("invalid message")
    head = decode(data[:4], Alphabet.STANDARD)
    if not head:
        raise InvalidMessage("invalid message")
    return head[0]
