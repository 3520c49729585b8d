"""Resource document module."""

from __future__ import annotations

import collections.abc
import dataclasses

from copy import deepcopy
from kpatch.codec import DecodeError, decode_json, encode_json, encode_yaml
from kpatch.merge import strategic_merge
from typing import Any


@dataclasses.dataclass(frozen=True)
class Gvk:
    """
    Group, version and kind of a resource.

    The group and version are carried together in a resource's apiVersion field as
    "group/version"; resources in the core group carry the version alone.
    """

    group: str = ""
    version: str = ""
    kind: str = ""

    @classmethod
    def from_api_version(cls, api_version: str | None, kind: str | None) -> Gvk:
        group, _, version = (api_version or "").rpartition("/")
        return cls(group=group, version=version, kind=kind or "")

    @property
    def api_version(self) -> str:
        return f"{self.group}/{self.version}" if self.group else self.version

    def matches(self, other: Gvk) -> bool:
        """Return True if every field set in this Gvk equals the field in the other."""
        return all(
            not mine or mine == theirs
            for mine, theirs in (
                (self.group, other.group),
                (self.version, other.version),
                (self.kind, other.kind),
            )
        )

    def __str__(self):
        return "_".join(s or "~" for s in (self.group, self.version, self.kind))


@dataclasses.dataclass(frozen=True)
class ResId:
    """
    Identity of a resource: group, version, kind, name and namespace.
    """

    gvk: Gvk = Gvk()
    name: str = ""
    namespace: str = ""

    def matches(self, other: ResId) -> bool:
        """
        Return True if the other identity satisfies this one. Fields left empty in this
        identity are unconstrained; the name must always be equal.
        """
        return (
            self.name == other.name
            and self.gvk.matches(other.gvk)
            and (not self.namespace or self.namespace == other.namespace)
        )

    def __str__(self):
        return f"{self.gvk}|{self.namespace or '~'}|{self.name or '~'}"


def _mapping(value):
    return value if isinstance(value, collections.abc.Mapping) else {}


class Resource:
    """
    A structured configuration document, such as a Kubernetes manifest.

    Parameters:
    • body: decoded document; must be a mapping

    The resource owns its body; a copy is taken of the supplied mapping.
    """

    __slots__ = {"_body"}

    def __init__(self, body: collections.abc.Mapping[str, Any]):
        if not isinstance(body, collections.abc.Mapping):
            raise DecodeError(f"resource must be a mapping; received: {type(body).__name__}")
        self._body = deepcopy(dict(body))

    @property
    def body(self) -> dict[str, Any]:
        return self._body

    def _metadata(self) -> dict[str, Any]:
        metadata = self._body.get("metadata")
        if not isinstance(metadata, dict):
            metadata = self._body["metadata"] = {}
        return metadata

    @property
    def name(self) -> str:
        return _mapping(self._body.get("metadata")).get("name") or ""

    @name.setter
    def name(self, value: str) -> None:
        if value:
            self._metadata()["name"] = value
        else:
            self._metadata().pop("name", None)

    @property
    def namespace(self) -> str:
        return _mapping(self._body.get("metadata")).get("namespace") or ""

    @namespace.setter
    def namespace(self, value: str) -> None:
        if value:
            self._metadata()["namespace"] = value
        else:
            self._metadata().pop("namespace", None)

    @property
    def gvk(self) -> Gvk:
        return Gvk.from_api_version(self._body.get("apiVersion"), self._body.get("kind"))

    @gvk.setter
    def gvk(self, value: Gvk) -> None:
        for key, field in (("apiVersion", value.api_version), ("kind", value.kind)):
            if field:
                self._body[key] = field
            else:
                self._body.pop(key, None)

    @property
    def id(self) -> ResId:
        return ResId(gvk=self.gvk, name=self.name, namespace=self.namespace)

    @property
    def labels(self) -> dict[str, str]:
        return dict(_mapping(_mapping(self._body.get("metadata")).get("labels")))

    @property
    def annotations(self) -> dict[str, str]:
        return dict(_mapping(_mapping(self._body.get("metadata")).get("annotations")))

    def copy(self) -> Resource:
        """Return an independent copy of the resource."""
        return Resource(self._body)

    def marshal(self) -> bytes:
        """Return the canonical JSON byte representation of the resource."""
        return encode_json(self._body)

    def unmarshal(self, data: bytes | str) -> None:
        """Replace the content of the resource with a JSON document."""
        body = decode_json(data)
        if not isinstance(body, dict):
            raise DecodeError(f"resource must be a mapping; received: {type(body).__name__}")
        self._body = body

    def patch(self, patch: collections.abc.Mapping[str, Any]) -> None:
        """
        Merge a strategic merge patch document into the resource. The resource is left
        unchanged if the merge fails.
        """
        self._body = strategic_merge(deepcopy(self._body), patch)

    def to_yaml(self) -> str:
        return encode_yaml(self._body)

    def __eq__(self, other):
        if not isinstance(other, Resource):
            return NotImplemented
        return self._body == other._body

    def __repr__(self):
        return f"Resource({self.id})"
