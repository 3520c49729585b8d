import json
import pytest

from kpatch.codec import (
    DecodeError,
    EncodeError,
    decode_documents,
    decode_json,
    encode_json,
    encode_yaml,
    yaml_to_json,
)


def test_decode_documents():
    assert decode_documents(b"a: 1\n---\n---\nb: [2]\n") == [{"a": 1}, {"b": [2]}]


def test_decode_documents_json():
    assert decode_documents('[{"op": "add"}]') == [[{"op": "add"}]]


def test_decode_documents_empty():
    assert decode_documents("") == []


def test_decode_documents_timestamp_string():
    assert decode_documents("created: 2001-12-14\n") == [{"created": "2001-12-14"}]


def test_decode_documents_malformed():
    with pytest.raises(DecodeError):
        decode_documents("a: [1\n")


def test_decode_documents_invalid_utf8():
    with pytest.raises(DecodeError):
        decode_documents(b"\xff\xfe")


def test_decode_documents_wrong_type():
    with pytest.raises(DecodeError):
        decode_documents(1)


def test_decode_json():
    assert decode_json(b'{"a": [1, 2]}') == {"a": [1, 2]}
    with pytest.raises(DecodeError):
        decode_json("a: 1")


def test_yaml_to_json():
    result = yaml_to_json("- op: add\n  path: /x\n  value: 1\n")
    assert json.loads(result) == [{"op": "add", "path": "/x", "value": 1}]


def test_yaml_to_json_multiple_documents():
    with pytest.raises(DecodeError):
        yaml_to_json("a: 1\n---\nb: 2\n")


def test_encode_json_canonical():
    encoded = encode_json({"b": [1, {"d": 1, "c": 2}], "a": None})
    assert encoded == b'{"a":null,"b":[1,{"c":2,"d":1}]}'


def test_encode_json_error():
    with pytest.raises(EncodeError):
        encode_json({"a": object()})


def test_encode_yaml_preserves_order():
    assert encode_yaml({"kind": "Pod", "apiVersion": "v1"}) == "kind: Pod\napiVersion: v1\n"



def test_decode_documents_string_keys():
    assert decode_documents("data:\n  1: a\n  true: b\n  b: [{2: c}]\n") == [
        {"data": {"1": "a", "true": "b", "b": [{"2": "c"}]}}
    ]


def test_yaml_to_json_string_keys():
    assert json.loads(yaml_to_json("- {1: a, b: c}\n")) == [{"1": "a", "b": "c"}]
