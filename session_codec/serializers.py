"""
Structured serializers for session payloads.

Two interchangeable backends, fixed per codec instance:

- ``native``: jsonpickle object graph. Keeps non-string dictionary keys,
  bytes, datetimes, sets and registered model objects.
- ``json``: orjson. Non-string dictionary keys are coerced to strings.
"""
import base64
from typing import Any, Protocol

import orjson
import jsonpickle
from jsonpickle.unpickler import loadclass
from datamodel import BaseModel
from pydantic import BaseModel as PydanticBaseModel

from .exceptions import ConfigurationError, InvalidMessage, SerializationError

_BYTES_WRAPPER_KEY = "__session_bytes_b64__"
_DICT_WRAPPER_KEY = "__session_dict__"
_WRAPPER_KEYS = (_BYTES_WRAPPER_KEY, _DICT_WRAPPER_KEY)


class Serializer(Protocol):
    name: str

    def serialize(self, value: Any) -> bytes:
        ...

    def deserialize(self, data: bytes) -> Any:
        ...


class ModelHandler(jsonpickle.handlers.BaseHandler):
    """ModelHandler.
    Stores datamodel instances by their attribute dictionary.
    """
    def flatten(self, obj, data):
        data['__dict__'] = self.context.flatten(obj.__dict__, reset=False)
        return data

    def restore(self, obj):
        mdl = loadclass(obj['py/object'])
        instance = mdl.__new__(mdl)
        instance.__dict__ = self.context.restore(obj['__dict__'], reset=False)
        return instance


class PydanticHandler(jsonpickle.handlers.BaseHandler):
    """PydanticHandler.
    Stores pydantic models by their field values and re-validates on restore.
    """
    def flatten(self, obj, data):
        data['fields'] = self.context.flatten(obj.model_dump(), reset=False)
        return data

    def restore(self, obj):
        mdl = loadclass(obj['py/object'])
        return mdl.model_validate(
            self.context.restore(obj['fields'], reset=False)
        )


jsonpickle.handlers.registry.register(BaseModel, ModelHandler, base=True)
jsonpickle.handlers.registry.register(PydanticBaseModel, PydanticHandler, base=True)


class NativeSerializer:
    """Object-graph serializer backed by jsonpickle."""

    name = "native"

    def serialize(self, value: Any) -> bytes:
        try:
            return jsonpickle.encode(value, keys=True).encode("utf-8")
        except Exception as err:
            raise SerializationError(
                f"Unable to serialize {type(value).__name__}: {err}"
            ) from err

    def deserialize(self, data: bytes) -> Any:
        try:
            return jsonpickle.decode(data.decode("utf-8"), keys=True)
        except Exception as err:
            raise InvalidMessage("payload is not a valid object graph") from err


class JSONSerializer:
    """JSON serializer backed by orjson.

    A bare ``bytes`` value is wrapped as ``{"__session_bytes_b64__": "<b64>"}``
    so it survives the round trip. A one-key dict that already looks like a
    wrapper is itself wrapped as ``{"__session_dict__": {...}}``.
    """

    name = "json"
    options = orjson.OPT_NON_STR_KEYS

    @staticmethod
    def _is_wrapper(value: Any) -> bool:
        return (
            isinstance(value, dict)
            and len(value) == 1
            and next(iter(value)) in _WRAPPER_KEYS
        )

    def serialize(self, value: Any) -> bytes:
        if isinstance(value, bytes):
            value = {_BYTES_WRAPPER_KEY: base64.b64encode(value).decode("ascii")}
        elif self._is_wrapper(value):
            value = {_DICT_WRAPPER_KEY: value}
        try:
            return orjson.dumps(value, option=self.options)
        except orjson.JSONEncodeError as err:
            raise SerializationError(
                f"Unable to serialize {type(value).__name__}: {err}"
            ) from err

    def deserialize(self, data: bytes) -> Any:
        try:
            parsed = orjson.loads(data)
        except orjson.JSONDecodeError as err:
            raise InvalidMessage("payload is not valid JSON") from err
        if not self._is_wrapper(parsed):
            return parsed
        if _DICT_WRAPPER_KEY in parsed:
            inner = parsed[_DICT_WRAPPER_KEY]
            if not self._is_wrapper(inner):
                raise InvalidMessage("payload has a malformed dict wrapper")
            return inner
        try:
            return base64.b64decode(parsed[_BYTES_WRAPPER_KEY], validate=True)
        except (TypeError, ValueError) as err:
            raise InvalidMessage("payload has a malformed bytes wrapper") from err


SERIALIZERS = {
    NativeSerializer.name: NativeSerializer,
    JSONSerializer.name: JSONSerializer,
}


def get_serializer(name: str) -> Serializer:
    """Return a serializer backend by name ("native" or "json").

    Raises:
        ConfigurationError: If the backend is unknown.
    """
    try:
        return SERIALIZERS[name]()
    except KeyError:
        raise ConfigurationError(
            f"Unsupported serializer: {name!r} (available: {sorted(SERIALIZERS)})"
        ) from None
