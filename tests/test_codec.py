"""
Tests for SessionCodec, the full encode/decode pipeline.

Tests cover:
- Round trips for every mode and serializer
- Writes always minting V2 unless pinned to V1
- Guess-mode reads of both generations
- Purpose scoping and tamper detection through the text layer
- Inner padding, outer padding and compression
- The "no valid session" fallback
- Configuration errors
- Concurrent use of one instance
"""
import os
import base64
from concurrent.futures import ThreadPoolExecutor

import pytest

from session_codec import (
    CodecConfig,
    ConfigurationError,
    InvalidMessage,
    InvalidSignature,
    SerializationError,
    SessionCodec,
)
from session_codec.conf import Mode


@pytest.fixture
def secret():
    return os.urandom(64)


@pytest.fixture
def codec(secret):
    return SessionCodec(secret)


def raw(token: str) -> bytes:
    """Decode a token from either alphabet."""
    data = token.replace("-", "+").replace("_", "/")
    return base64.b64decode(data + "=" * (-len(data) % 4))


class TestRoundTrip:
    """Tests for encode/decode symmetry."""

    def test_fixed_secret_scenario(self):
        """Test the documented 0x2E secret with V2."""
        codec = SessionCodec(b"\x2e" * 64, mode="v2")
        assert codec.decode(codec.encode({})) == {}
        assert codec.decode(codec.encode({"a": 10, "b": 20})) == {"a": 10, "b": 20}

    @pytest.mark.parametrize("mode", ["v1", "v2", "guess"])
    @pytest.mark.parametrize("serializer", ["json", "native"])
    def test_modes_and_serializers(self, secret, mode, serializer):
        codec = SessionCodec(secret, mode=mode, serializer=serializer)
        value = {"foo": "bar", "count": 3, "items": [1, 2, 3]}
        assert codec.decode(codec.encode(value)) == value

    def test_unicode(self, codec):
        value = {"foo": "bar \U0001F600"}
        assert codec.decode(codec.encode(value)) == value

    def test_native_keeps_non_string_keys(self, secret):
        codec = SessionCodec(secret, serializer="native")
        assert codec.decode(codec.encode({1: "one"})) == {1: "one"}

    def test_json_coerces_non_string_keys(self, secret):
        codec = SessionCodec(secret, serializer="json")
        assert codec.decode(codec.encode({1: "one"})) == {"1": "one"}

    def test_dump_load_aliases(self, codec):
        assert codec.load(codec.dump({"foo": "bar"})) == {"foo": "bar"}

    def test_bytes_token(self, codec):
        token = codec.encode({"foo": "bar"})
        assert codec.decode(token.encode("ascii")) == {"foo": "bar"}

    def test_unserializable_value(self, codec):
        with pytest.raises(SerializationError):
            codec.encode({"obj": object()})

    @pytest.mark.parametrize("value", [
        {"__session_bytes_b64__": "AAAA"},
        {"__session_dict__": {"__session_bytes_b64__": "AAAA"}},
    ])
    def test_wrapper_shaped_dict(self, codec, value):
        """Test dicts keyed like the JSON bytes wrapper survive untouched."""
        assert codec.decode(codec.encode(value)) == value


class TestVersions:
    """Tests for version selection through the codec."""

    def test_default_writes_v2(self, codec):
        token = codec.encode({"foo": "bar"})
        assert base64.b64decode(token)[0] == 0x02

    def test_v1_writes_v1(self, secret):
        token = SessionCodec(secret, mode=Mode.V1).encode({"foo": "bar"})
        assert base64.urlsafe_b64decode(token)[0] == 0x01

    def test_guess_reads_both(self, secret, codec):
        v1_token = SessionCodec(secret, mode="v1").encode({"foo": "bar"})
        v2_token = SessionCodec(secret, mode="v2").encode({"foo": "bar"})
        assert codec.decode(v1_token) == {"foo": "bar"}
        assert codec.decode(v2_token) == {"foo": "bar"}

    def test_forced_v2_rejects_v1(self, secret):
        v1_token = SessionCodec(secret, mode="v1").encode({"foo": "bar"})
        with pytest.raises((InvalidMessage, InvalidSignature)):
            SessionCodec(secret, mode="v2").decode(v1_token)

    def test_forced_v1_rejects_v2(self, secret):
        v2_token = SessionCodec(secret, mode="v2").encode({"foo": "bar"})
        with pytest.raises((InvalidMessage, InvalidSignature)):
            SessionCodec(secret, mode="v1").decode(v2_token)

    def test_v1_token_is_url_safe(self, secret):
        codec = SessionCodec(secret, mode="v1")
        for _ in range(20):
            token = codec.encode({"foo": "bar" * 10})
            assert "+" not in token and "/" not in token


class TestAuthentication:
    """Tests for purpose scoping and tampering."""

    def test_purpose_match(self, secret):
        codec = SessionCodec(secret, purpose="testing")
        assert codec.decode(codec.encode({"foo": "bar"})) == {"foo": "bar"}

    @pytest.mark.parametrize("mode", ["v1", "v2"])
    def test_purpose_mismatch(self, secret, mode):
        token = SessionCodec(secret, mode=mode, purpose="A").encode({"foo": "bar"})
        with pytest.raises(InvalidSignature):
            SessionCodec(secret, mode=mode, purpose="B").decode(token)
        with pytest.raises(InvalidSignature):
            SessionCodec(secret, mode=mode).decode(token)

    def test_tampered_v2_token(self, codec):
        data = bytearray(raw(codec.encode({"foo": "bar"})))
        data[-1] ^= 0x01
        with pytest.raises(InvalidSignature):
            codec.decode(base64.b64encode(bytes(data)).decode("ascii"))

    def test_tampered_v1_token(self, secret):
        codec = SessionCodec(secret, mode="v1")
        data = bytearray(raw(codec.encode({"foo": "bar"})))
        data[-1] ^= 0x01
        with pytest.raises(InvalidSignature):
            codec.decode(base64.urlsafe_b64encode(bytes(data)).decode("ascii"))

    def test_wrong_secret(self, codec):
        other = SessionCodec(os.urandom(64))
        with pytest.raises(InvalidSignature):
            other.decode(codec.encode({"foo": "bar"}))

    @pytest.mark.parametrize("token", ["", "abc", "!!!!", "not a token at all"])
    def test_malformed_tokens(self, codec, token):
        with pytest.raises(InvalidMessage):
            codec.decode(token)

    def test_short_v2_token(self, codec):
        token = base64.b64encode(b"\x02" + bytes(60)).decode("ascii")
        with pytest.raises(InvalidMessage):
            codec.decode(token)


class TestPadding:
    """Tests for inner and outer padding through the codec."""

    def test_v2_payload_multiple_of_pad_size(self, secret):
        codec = SessionCodec(secret, mode="v2", purpose="testing", pad_size=24)
        for value in ({}, {"foo": "bar" * 4}, {"foo": "x" * 500}):
            ciphertext = raw(codec.encode(value))[1 + 32 + 12 + 16:]
            assert len(ciphertext) % 24 == 0

    def test_v1_payload_multiple_of_pad_size(self, secret):
        codec = SessionCodec(secret, mode="v1", purpose="testing", pad_size=24)
        for value in ({}, {"foo": "bar" * 4}, {"foo": "x" * 500}):
            ciphertext = raw(codec.encode(value))[1 + 32 + 16:-32]
            assert len(ciphertext) % 24 == 0

    def test_padding_increases_size(self, secret):
        """Test padding grows the envelope by exactly the filler length."""
        unpadded = SessionCodec(secret, mode="v2", pad_size=None)
        padded = SessionCodec(secret, mode="v2", pad_size=64)
        without = raw(unpadded.encode(""))
        with_pad = raw(padded.encode(""))
        # json "" serializes to 2 bytes, plus the 2-byte padding header
        assert len(with_pad) - len(without) == 64 - 2 - 2

    def test_padding_disabled_roundtrip(self, secret):
        codec = SessionCodec(secret, purpose="testing", pad_size=None)
        assert codec.decode(codec.encode({"foo": "bar"})) == {"foo": "bar"}

    @pytest.mark.parametrize("mode", ["v1", "v2"])
    def test_outer_padding(self, secret, mode):
        codec = SessionCodec(secret, mode=mode, outer_pad_size=48)
        for value in ({}, {"foo": "bar"}, {"foo": "x" * 300}):
            token = codec.encode(value)
            assert len(raw(token)) % 48 == 0
            assert codec.decode(token) == value

    def test_outer_padding_guess_reads_v1(self, secret):
        writer = SessionCodec(secret, mode="v1", outer_pad_size=48)
        reader = SessionCodec(secret, outer_pad_size=48)
        assert reader.decode(writer.encode({"foo": "bar"})) == {"foo": "bar"}


class TestCompression:
    """Tests for the optional compression stage."""

    def test_roundtrip(self, secret):
        codec = SessionCodec(secret, compress=True)
        value = {"items": ["repeat"] * 200}
        assert codec.decode(codec.encode(value)) == value

    def test_compressed_is_smaller(self, secret):
        value = {"items": ["repeat"] * 200}
        plain = SessionCodec(secret).encode(value)
        compressed = SessionCodec(secret, compress=True).encode(value)
        assert len(compressed) < len(plain)

    def test_uncompressed_token_on_compressing_codec(self, secret):
        token = SessionCodec(secret).encode({"foo": "bar"})
        with pytest.raises(InvalidMessage):
            SessionCodec(secret, compress=True).decode(token)


class TestDecodeOrDefault:
    """Tests for the "no valid session" fallback."""

    def test_valid_token(self, codec):
        assert codec.decode_or_default(codec.encode({"foo": "bar"})) == {"foo": "bar"}

    @pytest.mark.parametrize(
        "token", [None, "", "garbage!", "AAAA", 12345, b"\xff\xfe\xfd\xfc"]
    )
    def test_invalid_token(self, codec, token):
        assert codec.decode_or_default(token, {}) == {}

    def test_tampered_token(self, codec):
        data = bytearray(raw(codec.encode({"foo": "bar"})))
        data[40] ^= 0x01
        token = base64.b64encode(bytes(data)).decode("ascii")
        assert codec.decode_or_default(token) is None


class TestConfiguration:
    """Tests for construction errors and secret handling."""

    def test_short_secret(self):
        with pytest.raises(ConfigurationError):
            SessionCodec(b"key")

    def test_guess_needs_64_bytes(self):
        with pytest.raises(ConfigurationError):
            SessionCodec(os.urandom(32))

    def test_v2_accepts_32_bytes(self):
        codec = SessionCodec(os.urandom(32), mode="v2")
        assert codec.decode(codec.encode({"a": 1})) == {"a": 1}

    @pytest.mark.parametrize("secret_value", ["x" * 64, ["foo"], None])
    def test_invalid_secret_type(self, secret_value):
        with pytest.raises(ConfigurationError):
            SessionCodec(secret_value)

    @pytest.mark.parametrize("pad_size", [1, 8023, "bar", True, 2.0])
    def test_invalid_pad_size(self, secret, pad_size):
        with pytest.raises(ConfigurationError):
            SessionCodec(secret, pad_size=pad_size)

    def test_invalid_outer_pad_size(self, secret):
        with pytest.raises(ConfigurationError):
            SessionCodec(secret, outer_pad_size=1)

    def test_invalid_mode(self, secret):
        with pytest.raises(ConfigurationError):
            SessionCodec(secret, mode="v3")

    def test_invalid_serializer(self, secret):
        with pytest.raises(ConfigurationError):
            SessionCodec(secret, serializer="yaml")

    def test_configuration_error_is_value_error(self):
        with pytest.raises(ValueError):
            SessionCodec(b"short")

    def test_error_does_not_echo_secret(self):
        secret = b"S3CR3T-material"
        with pytest.raises(ConfigurationError) as excinfo:
            SessionCodec(secret)
        assert "S3CR3T" not in str(excinfo.value)

    def test_does_not_alter_caller_secret(self):
        original = os.urandom(64)
        secret = bytearray(original)
        codec = SessionCodec(secret)
        token = codec.encode({"foo": "bar"})
        assert bytes(secret) == original
        secret[:] = bytes(64)
        assert codec.decode(token) == {"foo": "bar"}

    def test_from_config(self, secret):
        config = CodecConfig(secret=secret, mode="v1", purpose="testing")
        codec = SessionCodec.from_config(config)
        assert codec.config == config
        assert codec.mode is Mode.V1
        assert codec.decode(codec.encode({"foo": "bar"})) == {"foo": "bar"}

    def test_from_env(self, secret, monkeypatch):
        monkeypatch.setenv("SESSION_CODEC_SECRET", base64.b64encode(secret).decode())
        monkeypatch.setenv("SESSION_CODEC_PURPOSE", "cookie")
        monkeypatch.setenv("SESSION_CODEC_MODE", "v2")
        codec = SessionCodec.from_env()
        assert codec.config.purpose == "cookie"
        other = SessionCodec(secret, mode="v2", purpose="cookie")
        assert other.decode(codec.encode({"foo": "bar"})) == {"foo": "bar"}

    def test_from_env_invalid(self, secret, monkeypatch):
        monkeypatch.setenv("SESSION_CODEC_SECRET", base64.b64encode(secret).decode())
        monkeypatch.setenv("SESSION_CODEC_PAD_SIZE", "9000")
        with pytest.raises(ConfigurationError):
            SessionCodec.from_env()

    def test_from_env_pad_size_not_integer(self, secret, monkeypatch):
        monkeypatch.setenv("SESSION_CODEC_SECRET", base64.b64encode(secret).decode())
        monkeypatch.setenv("SESSION_CODEC_PAD_SIZE", "abc")
        with pytest.raises(ConfigurationError):
            SessionCodec.from_env()

    @pytest.mark.parametrize("value", ["not base64!", "s\u00e9cret"])
    def test_from_env_secret_not_base64(self, value, monkeypatch):
        monkeypatch.setenv("SESSION_CODEC_SECRET", value)
        with pytest.raises(ConfigurationError):
            SessionCodec.from_env()

    def test_repr_hides_secret(self, codec, secret):
        assert "SessionCodec" in repr(codec)
        assert repr(secret) not in repr(codec.config)


class TestConcurrency:
    """Tests for sharing one codec across threads."""

    def test_parallel_roundtrips(self, codec):
        values = [{"n": n, "name": f"user-{n}"} for n in range(200)]

        def roundtrip(value):
            return codec.decode(codec.encode(value))

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(roundtrip, values))
        assert results == values
