"""Strategic merge patch module."""

import collections.abc

from copy import deepcopy
from kpatch.error import MergeError
from typing import Any


DIRECTIVE = "$patch"


# sequence fields merged item by item; values are candidate merge keys, in order of preference
merge_keys: dict[str, tuple[str, ...]] = {
    "conditions": ("type",),
    "containers": ("name",),
    "env": ("name",),
    "ephemeralContainers": ("name",),
    "hostAliases": ("ip",),
    "imagePullSecrets": ("name",),
    "initContainers": ("name",),
    "ports": ("containerPort", "port"),
    "topologySpreadConstraints": ("topologyKey",),
    "volumeDevices": ("devicePath",),
    "volumeMounts": ("mountPath",),
    "volumes": ("name",),
}


class _Delete:
    pass


_DELETE = _Delete()


def _strip(value):
    if isinstance(value, collections.abc.Mapping):
        return {k: _strip(v) for k, v in value.items() if k != DIRECTIVE}
    if isinstance(value, list):
        return [_strip(v) for v in value]
    return deepcopy(value)


def _merge_key(field, items):
    if not all(isinstance(item, collections.abc.Mapping) for item in items):
        return None
    candidates = merge_keys[field]
    for key in candidates:
        if all(key in item for item in items):
            return key
    raise MergeError(f"{field} item missing merge key: {candidates[0]}")


def _merge_list(target, patch, field):
    if not patch:
        return target
    key = _merge_key(field, patch)
    if key is None:
        return _strip(patch)
    result = list(target)
    for item in patch:
        index = next(
            (
                i
                for i, t in enumerate(result)
                if isinstance(t, collections.abc.Mapping) and t.get(key) == item[key]
            ),
            None,
        )
        merged = _merge(None if index is None else result[index], item)
        if merged is _DELETE:
            if index is not None:
                del result[index]
        elif index is None:
            result.append(merged)
        else:
            result[index] = merged
    return result


def _merge(target, patch, field=None):
    if isinstance(patch, collections.abc.Mapping):
        match patch.get(DIRECTIVE):
            case None:
                pass
            case "replace":
                return _strip(patch)
            case "delete":
                return _DELETE
            case directive:
                raise MergeError(f"unknown {DIRECTIVE} directive: {directive}")
        if not isinstance(target, collections.abc.MutableMapping):
            target = {}
        for key, value in patch.items():
            if value is None:
                target.pop(key, None)
                continue
            merged = _merge(target.get(key), value, key)  # recursive
            if merged is _DELETE:
                target.pop(key, None)
            else:
                target[key] = merged
        return target
    if isinstance(patch, list) and field in merge_keys:
        if not isinstance(target, list):
            target = []
        return _merge_list(target, patch, field)
    return _strip(patch)


def strategic_merge(target: dict[str, Any], patch: collections.abc.Mapping) -> dict[str, Any]:
    """
    Merge a strategic merge patch document into a target document, in place, and return
    the target.

    Mappings are merged recursively; a null value in the patch removes the field from the
    target. Sequences are replaced wholesale, except for fields listed in merge_keys, whose
    items are merged by matching on their merge key; unmatched patch items are appended.

    The "$patch" directive is honored in mappings and keyed sequence items: "replace"
    replaces the target value with the patch value, "delete" removes it.
    """
    if not isinstance(patch, collections.abc.Mapping):
        raise MergeError("strategic merge patch must be a mapping")
    result = _merge(target, patch)
    if result is _DELETE:
        raise MergeError(f"{DIRECTIVE}: delete cannot be applied to a whole document")
    if result is not target:
        target.clear()
        target.update(result)
    return target
