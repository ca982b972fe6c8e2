"""Optional zlib stage applied to serialized payloads before inner padding."""
import zlib

from .exceptions import InvalidMessage


class Compressor:
    """Deflates on dump, inflates on load."""

    def __init__(self, level: int = zlib.Z_DEFAULT_COMPRESSION):
        self.level = level

    def dump(self, data: bytes) -> bytes:
        return zlib.compress(data, self.level)

    def load(self, data: bytes) -> bytes:
        try:
            return zlib.decompress(data)
        except zlib.error as err:
            raise InvalidMessage("payload is not valid compressed data") from err


class NoCompression:
    """Pass-through used when compression is disabled."""

    def dump(self, data: bytes) -> bytes:
        return data

    def load(self, data: bytes) -> bytes:
        return data
