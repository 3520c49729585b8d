"""Module to support decoding and encoding of YAML and JSON documents."""

import json
import yaml

from collections.abc import Iterable
from contextlib import contextmanager
from typing import Any


# ----- type aliases -----


BinaryType = bytes | bytearray
JSONType = Any
StringType = str


# ----- errors -----


class CodecError(ValueError):
    """
    Error raised in the event that a value cannot be decoded or encoded.
    """

    __slots__ = {"message"}

    def __init__(self, message: str | None = None):
        self.message = message

    def __repr__(self):
        return f"{self.__class__.__name__}({self.message!r})"

    def __str__(self):
        return "" if self.message is None else str(self.message)


class EncodeError(CodecError):
    """..."""


class DecodeError(CodecError):
    """..."""


# ----- utilities -----


@contextmanager
def _wrap(exception):
    try:
        yield
    except Exception as e:
        if isinstance(e, exception):
            raise
        raise exception(str(e)) from e


class _Loader(yaml.SafeLoader):
    """YAML loader that keeps timestamps as strings, so documents remain JSON values."""


_Loader.add_constructor("tag:yaml.org,2002:timestamp", yaml.SafeLoader.construct_yaml_str)


def _key(key):
    if isinstance(key, str):
        return key
    if isinstance(key, bool) or key is None:
        return json.dumps(key)
    return str(key)


def _string_keys(value):
    if isinstance(value, dict):
        return {_key(k): _string_keys(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_string_keys(v) for v in value]
    return value


def _b2s(b: BinaryType | StringType) -> StringType:
    if isinstance(b, str):
        return b
    if not isinstance(b, bytes | bytearray):
        raise DecodeError(f"expecting bytes or str; received: {type(b).__name__}")
    with _wrap(DecodeError):
        return b.decode()


# ----- decoding -----


def decode_documents(data: BinaryType | StringType) -> list[Any]:
    """
    Decode a YAML stream into a list of documents. Empty documents in the stream are
    omitted. JSON, being a subset of YAML, is decoded as well. Mapping keys that are not
    strings are converted to strings, as they would be in JSON.
    """
    text = _b2s(data)
    with _wrap(DecodeError):
        return [
            _string_keys(doc) for doc in yaml.load_all(text, Loader=_Loader) if doc is not None
        ]


def decode_json(data: BinaryType | StringType) -> JSONType:
    """Decode a JSON document."""
    text = _b2s(data)
    with _wrap(DecodeError):
        return json.loads(text)


def yaml_to_json(data: BinaryType | StringType) -> StringType:
    """
    Convert a single YAML document into its JSON representation.

    Raises DecodeError if the input is not a single well-formed YAML document, or if the
    document cannot be represented in JSON.
    """
    text = _b2s(data)
    with _wrap(DecodeError):
        value = yaml.load(text, Loader=_Loader)
        return json.dumps(_string_keys(value))


# ----- encoding -----


def encode_json(value: JSONType) -> bytes:
    """
    Encode a value into its canonical JSON byte representation: keys sorted, no
    insignificant whitespace, UTF-8 encoded.
    """
    with _wrap(EncodeError):
        return json.dumps(
            value, sort_keys=True, separators=(",", ":"), ensure_ascii=False
        ).encode()


def encode_yaml(value: Any) -> StringType:
    """Encode a value as a YAML document, preserving mapping key order."""
    with _wrap(EncodeError):
        return yaml.safe_dump(value, sort_keys=False, default_flow_style=False)


def encode_documents(values: Iterable[Any]) -> StringType:
    """Encode values as a YAML stream, one document per value."""
    with _wrap(EncodeError):
        return yaml.safe_dump_all(list(values), sort_keys=False, default_flow_style=False)
