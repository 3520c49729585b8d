"""
Patch transformer module.

A patch is supplied inline or by path, without declaring its format. The patch is
classified as either a strategic merge patch (a partial document merged into its targets)
or a JSON patch (an RFC 6902 operation list), then applied to the resources of a ResMap,
selected by the patch's own identity or by a target selector.
"""

from __future__ import annotations

import collections.abc
import dataclasses
import jsonpatch
import jsonpointer
import logging
import wrapt

from kpatch.codec import (
    DecodeError,
    EncodeError,
    decode_documents,
    decode_json,
    encode_json,
    yaml_to_json,
)
from kpatch.error import (
    AmbiguousPatchTypeError,
    ConfigError,
    ConflictingPatchSourceError,
    LoadError,
    MissingPatchSourceError,
    MissingTargetError,
    PatchApplyError,
    UnrecognizedPatchFormatError,
    wrap_exception,
)
from kpatch.loader import FileLoader, Loader
from kpatch.resmap import ResMap, flatten
from kpatch.resource import ResId, Resource
from kpatch.selector import Selector
from typing import Any


_logger = logging.getLogger(__name__)


@wrapt.decorator
def _operation(wrapped, instance, args, kwargs):
    if _logger.isEnabledFor(logging.DEBUG):
        owner = type(instance).__name__ if instance is not None else wrapped.__module__
        _logger.debug(
            "operation: %s.%s(%s)",
            owner,
            wrapped.__name__,
            ", ".join([repr(a) for a in args] + [f"{k}={v!r}" for k, v in kwargs.items()]),
        )
    return wrapped(*args, **kwargs)


# ----- patch source -----


@dataclasses.dataclass(frozen=True)
class Inline:
    """Patch supplied as inline text."""

    text: str


@dataclasses.dataclass(frozen=True)
class FileRef:
    """Patch supplied as a path to be loaded."""

    path: str


PatchSource = Inline | FileRef


def patch_source(
    *, patch: str | None = None, path: str | None = None, config: str | None = None
) -> PatchSource:
    """
    Return the source of a patch, given an inline patch or a path; exactly one must be
    specified. Empty values are treated as unspecified.

    Parameters:
    • patch: inline patch text
    • path: path of patch to load
    • config: configuration text to include in error messages
    """
    detail = f" in\n{config}" if config else ""
    if not patch and not path:
        raise MissingPatchSourceError(f"must specify one of patch and path{detail}")
    if patch and path:
        raise ConflictingPatchSourceError(
            f"patch and path can't be set at the same time{detail}"
        )
    return Inline(patch) if patch else FileRef(path)


@dataclasses.dataclass
class PatchSpec:
    """
    Patch transformer configuration.

    • patch: inline patch text
    • path: path of patch to load
    • target: selects the resources to patch
    • config: configuration text the specification was decoded from
    """

    patch: str | None = None
    path: str | None = None
    target: Selector | None = None
    config: str | None = dataclasses.field(default=None, compare=False, repr=False)

    @classmethod
    def from_config(cls, config: bytes | str | collections.abc.Mapping[str, Any]) -> PatchSpec:
        """
        Return a patch specification decoded from configuration, either YAML or JSON text
        or an already decoded mapping. Unknown fields are ignored.
        """
        text = None
        if isinstance(config, bytes | bytearray | str):
            with wrap_exception(catch=(DecodeError, UnicodeDecodeError), throw=ConfigError):
                text = config.decode() if isinstance(config, bytes | bytearray) else config
                documents = decode_documents(text)
            if len(documents) > 1:
                raise ConfigError(f"expecting a single patch configuration in\n{text}")
            config = documents[0] if documents else {}
        if not isinstance(config, collections.abc.Mapping):
            raise ConfigError(f"patch configuration must be a mapping; received: {config!r}")
        for key in sorted(set(config) - {"patch", "path", "target"}):
            _logger.debug("ignoring unknown patch configuration field: %s", key)
        values = {}
        for key in ("patch", "path"):
            value = config.get(key)
            if value is not None and not isinstance(value, str):
                raise ConfigError(f"{key} must be a string; received: {value!r}")
            values[key] = value
        target = config.get("target")
        return cls(
            **values,
            target=Selector.from_config(target) if target is not None else None,
            config=text,
        )

    def source(self) -> PatchSource:
        """Return the source of the patch."""
        return patch_source(patch=self.patch, path=self.path, config=self.config)


@_operation
def resolve_patch(source: PatchSource, loader: Loader | None = None) -> str:
    """
    Return the patch body of a patch source. Patches referenced by path are loaded through
    the specified loader; errors raised by the loader propagate unchanged.

    Parameters:
    • source: source of patch
    • loader: loads patches referenced by path  [FileLoader in current directory]
    """
    match source:
        case Inline(text=text):
            return text
        case FileRef(path=path):
            data = (loader or FileLoader()).load(path)
            if isinstance(data, str):
                return data
            with wrap_exception(catch=UnicodeDecodeError, throw=LoadError):
                return data.decode()
    raise TypeError(f"unsupported patch source: {source!r}")


# ----- classification -----


@dataclasses.dataclass(frozen=True)
class StrategicMergePatch:
    """Patch document merged field by field into its targets."""

    resource: Resource

    @property
    def id(self) -> ResId:
        return self.resource.id


@dataclasses.dataclass(frozen=True)
class JSONPatch:
    """RFC 6902 operations applied in order to each target."""

    operations: jsonpatch.JsonPatch


ClassifiedPatch = StrategicMergePatch | JSONPatch


def decode_strategic_merge_patch(body: str) -> StrategicMergePatch:
    """
    Decode a patch body as a strategic merge patch. The body must hold exactly one
    document, which must have a name.

    Raises DecodeError if the body is not a strategic merge patch.
    """
    documents = flatten(decode_documents(body))
    if len(documents) != 1:
        raise DecodeError(f"expecting a single document; found {len(documents)}")
    resource = Resource(documents[0])
    if not resource.name:
        raise DecodeError("document has no name")
    return StrategicMergePatch(resource)


def decode_json_patch(body: str) -> JSONPatch:
    """
    Decode a patch body as a JSON patch. Bodies that are not a JSON array literal are
    converted from YAML first.

    Raises DecodeError if the body is not a JSON patch.
    """
    ops = body.strip()
    if not ops:
        raise DecodeError("empty json patch operations")
    if not ops.startswith("["):
        ops = yaml_to_json(ops)
    operations = decode_json(ops)
    if not isinstance(operations, list):
        raise DecodeError("json patch must be a sequence of operations")
    with wrap_exception(catch=Exception, throw=DecodeError):
        return JSONPatch(jsonpatch.JsonPatch(operations))


def _attempt(decode, body):
    try:
        return decode(body)
    except DecodeError as de:
        _logger.debug("%s: %s", decode.__name__, de)
        return None


@_operation
def classify(body: str) -> ClassifiedPatch:
    """
    Classify a patch body as either a strategic merge patch or a JSON patch.

    Raises UnrecognizedPatchFormatError if the body is neither, and AmbiguousPatchTypeError
    if the body is both.
    """
    sm = _attempt(decode_strategic_merge_patch, body)
    jp = _attempt(decode_json_patch, body)
    if sm is None and jp is None:
        raise UnrecognizedPatchFormatError(
            f"unable to get either a Strategic Merge Patch or JSON patch 6902 from {body}"
        )
    if sm is not None and jp is not None:
        raise AmbiguousPatchTypeError(
            f"a patch can't be both a Strategic Merge Patch and JSON patch 6902 {body}"
        )
    _logger.debug("classified patch as %s", type(sm or jp).__name__)
    return sm or jp


# ----- application -----


class PatchTransformer:
    """
    Applies a classified patch to the resources of a ResMap.

    Parameters:
    • patch: classified patch to apply
    • target: selects the resources to patch
    • body: patch body, used to identify the patch in error messages

    A strategic merge patch without a target is applied to the single resource that
    matches its own identity. Every other patch requires a target; the patch is applied to
    each selected resource in collection order. A strategic merge patch is re-stamped with
    the identity of each resource it is merged into, allowing one patch to be broadcast to
    many resources.
    """

    def __init__(self, patch: ClassifiedPatch, target: Selector | None = None, body: str = ""):
        self.patch = patch
        self.target = target
        self.body = body

    @classmethod
    def from_config(
        cls,
        config: bytes | str | collections.abc.Mapping[str, Any],
        loader: Loader | None = None,
    ) -> PatchTransformer:
        """
        Return a patch transformer from its configuration, loading and classifying the
        patch.

        Parameters:
        • config: patch configuration, with patch, path and target fields
        • loader: loads patches referenced by path  [FileLoader in current directory]
        """
        spec = PatchSpec.from_config(config)
        body = resolve_patch(spec.source(), loader)
        return cls(classify(body), target=spec.target, body=body)

    def _merge(self, resource: Resource) -> None:
        patch = self.patch.resource.copy()
        patch.name = resource.name
        patch.namespace = resource.namespace
        patch.gvk = resource.gvk
        resource.patch(patch.body)

    def _apply(self, resource: Resource) -> None:
        try:
            document = decode_json(resource.marshal())
            modified = self.patch.operations.apply(document)
            resource.unmarshal(encode_json(modified))
        except (
            jsonpatch.JsonPatchException,
            jsonpointer.JsonPointerException,
            DecodeError,
            EncodeError,
            TypeError,
        ) as e:
            raise PatchApplyError(f"failed to apply json patch '{self.body}': {e}", e) from e

    @_operation
    def transform(self, resmap: ResMap) -> None:
        """Apply the patch to the resources of a ResMap, in place."""
        if isinstance(self.patch, StrategicMergePatch) and self.target is None:
            resource = resmap.get_by_id(self.patch.id)
            self._merge(resource)
            _logger.debug("patched %s", resource.id)
            return
        if self.target is None:
            raise MissingTargetError(f"must specify a target for patch {self.body}")
        for resource in resmap.select(self.target):
            match self.patch:
                case JSONPatch():
                    self._apply(resource)
                case StrategicMergePatch():
                    self._merge(resource)
            _logger.debug("patched %s", resource.id)
