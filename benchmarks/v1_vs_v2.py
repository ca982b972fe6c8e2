"""Compare V1 and V2 encrypt, decrypt and tampered-decrypt throughput.

Usage:
    python benchmarks/v1_vs_v2.py [iterations]
"""
import os
import sys
import timeit
import logging

from session_codec import CodecError, SessionCodec

logging.basicConfig(level=logging.INFO, format="%(message)s")
logger = logging.getLogger("session.codec.bench")

DATA = {"payload": os.urandom(2048).hex()}
SECRET = os.urandom(64)


def tamper(token: str) -> str:
    return token[:-5] + ("A" if token[-5] != "A" else "B") + token[-4:]


def tampered_decode(codec: SessionCodec, token: str) -> None:
    try:
        codec.decode(token)
    except CodecError:
        return
    raise RuntimeError("tampered token was accepted")


def main(iterations: int = 2000) -> None:
    codecs = {
        "v1": SessionCodec(SECRET, mode="v1"),
        "v2": SessionCodec(SECRET, mode="v2"),
    }
    for name, codec in codecs.items():
        token = codec.encode(DATA)
        bad = tamper(token)
        timings = {
            "encrypt": timeit.timeit(lambda: codec.encode(DATA), number=iterations),
            "decrypt": timeit.timeit(lambda: codec.decode(token), number=iterations),
            "decrypt tampered": timeit.timeit(
                lambda: tampered_decode(codec, bad), number=iterations
            ),
        }
        for label, seconds in timings.items():
            logger.info(
                "%s %-17s %10.1f ops/s", name, label, iterations / seconds
            )


if __name__ == "__main__":
    main(int(sys.argv[1]) if len(sys.argv) > 1 else 2000)
