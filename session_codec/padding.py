"""
Length padding for session payloads.

Format: [pad_len 2B uint16 LE][pad_len random bytes][payload]

The padded length is always a multiple of the configured block size.
``InnerPadder`` obscures the serialized message size before encryption and
always writes the header; ``OuterPadder`` obscures the envelope size after
encryption and is a pass-through when disabled.
"""
import os
import struct
from typing import Optional

from .conf import validate_pad_size
from .exceptions import ConfigurationError, InvalidMessage

HEADER = struct.Struct("<H")


class Padder:
    """Block padding with a 2-byte little-endian length header."""

    always_header: bool = True

    def __init__(self, size: Optional[int]):
        try:
            self.size = validate_pad_size(size)
        except ValueError as err:
            raise ConfigurationError(str(err)) from err

    @property
    def enabled(self) -> bool:
        return self.size is not None

    def padding_length(self, length: int) -> int:
        """Padding needed so that header + padding + length fills whole blocks."""
        if self.size is None:
            return 0
        return -(HEADER.size + length) % self.size

    def dump(self, data: bytes) -> bytes:
        if not self.enabled and not self.always_header:
            return data
        pad_len = self.padding_length(len(data))
        return HEADER.pack(pad_len) + os.urandom(pad_len) + data

    def load(self, data: bytes) -> bytes:
        if not self.enabled and not self.always_header:
            return data
        if len(data) < HEADER.size:
            raise InvalidMessage("padding header is truncated")
        (pad_len,) = HEADER.unpack_from(data)
        start = HEADER.size + pad_len
        if start > len(data):
            raise InvalidMessage("padding length exceeds message size")
        return data[start:]

    def __repr__(self) -> str:
        return f'<{type(self).__name__} size={self.size}>'


class InnerPadder(Padder):
    always_header = True


class OuterPadder(Padder):
    always_header = False
