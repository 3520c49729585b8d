"""Resource selection module."""

from __future__ import annotations

import collections.abc
import dataclasses
import re

from kpatch.error import SelectorError
from kpatch.resource import Resource
from typing import Any


_label_key = r"[A-Za-z0-9]([-A-Za-z0-9_./]*[A-Za-z0-9])?"

_set_requirement = re.compile(rf"^({_label_key})\s+(in|notin)\s+\(([^()]*)\)$")
_equality_requirement = re.compile(rf"^({_label_key})\s*(==|!=|=)\s*(\S*)$")
_exists_requirement = re.compile(rf"^(!?)\s*({_label_key})$")


@dataclasses.dataclass(frozen=True)
class Requirement:
    """
    A single label selector requirement.

    • key: label key
    • operator: one of "in", "notin", "exists", "!"
    • values: values for "in" and "notin" operators
    """

    key: str
    operator: str
    values: frozenset[str] = frozenset()

    def matches(self, labels: collections.abc.Mapping[str, str]) -> bool:
        match self.operator:
            case "in":
                return self.key in labels and str(labels[self.key]) in self.values
            case "notin":
                return self.key not in labels or str(labels[self.key]) not in self.values
            case "exists":
                return self.key in labels
            case "!":
                return self.key not in labels
        raise SelectorError(f"unsupported operator: {self.operator}")


def _split(selector: str) -> list[str]:
    """Split a selector on commas that are not within parentheses."""
    terms, depth, current = [], 0, []
    for c in selector:
        if c == "(":
            depth += 1
        elif c == ")":
            depth -= 1
            if depth < 0:
                raise SelectorError(f"unbalanced parentheses in selector: {selector}")
        if c == "," and depth == 0:
            terms.append("".join(current))
            current = []
        else:
            current.append(c)
    if depth:
        raise SelectorError(f"unbalanced parentheses in selector: {selector}")
    terms.append("".join(current))
    return [t.strip() for t in terms]


def parse_label_selector(selector: str) -> list[Requirement]:
    """
    Parse a label selector expression into a list of requirements, all of which must be
    satisfied for the selector to match.

    Supported terms, joined by commas:
    • key=value, key==value, key!=value
    • key in (value1,value2), key notin (value1,value2)
    • key, !key
    """
    requirements = []
    if not selector or not selector.strip():
        return requirements
    for term in _split(selector):
        if not term:
            raise SelectorError(f"empty term in selector: {selector}")
        if m := _set_requirement.match(term):
            values = frozenset(v.strip() for v in m.group(4).split(",") if v.strip())
            requirements.append(Requirement(m.group(1), m.group(3), values))
        elif m := _equality_requirement.match(term):
            key, operator, value = m.group(1), m.group(3), m.group(4)
            requirements.append(
                Requirement(key, "notin" if operator == "!=" else "in", frozenset((value,)))
            )
        elif m := _exists_requirement.match(term):
            requirements.append(Requirement(m.group(2), "!" if m.group(1) else "exists"))
        else:
            raise SelectorError(f"invalid selector term: {term}")
    return requirements


def _compile(field: str, pattern: str) -> re.Pattern | None:
    if not pattern:
        return None
    try:
        return re.compile(f"^(?:{pattern})$")
    except re.error as e:
        raise SelectorError(f"invalid {field} pattern: {pattern}") from e


@dataclasses.dataclass(frozen=True)
class Selector:
    """
    Selects resources by identity and metadata.

    • group, version, kind, name, namespace: regular expressions, anchored at both ends,
      that the corresponding identity field must match; empty matches anything
    • label_selector: label selector expression over resource labels
    • annotation_selector: label selector expression over resource annotations
    """

    group: str = ""
    version: str = ""
    kind: str = ""
    name: str = ""
    namespace: str = ""
    label_selector: str = ""
    annotation_selector: str = ""

    _config_keys = {
        "group": "group",
        "version": "version",
        "kind": "kind",
        "name": "name",
        "namespace": "namespace",
        "labelSelector": "label_selector",
        "annotationSelector": "annotation_selector",
    }

    @classmethod
    def from_config(cls, config: collections.abc.Mapping[str, Any]) -> Selector:
        """Return a selector from its configuration mapping, as found in a patch target."""
        if not isinstance(config, collections.abc.Mapping):
            raise SelectorError(f"target must be a mapping; received: {config!r}")
        unknown = set(config) - set(cls._config_keys)
        if unknown:
            raise SelectorError(f"unknown target fields: {', '.join(sorted(unknown))}")
        return cls(
            **{
                attr: "" if config.get(key) is None else str(config[key])
                for key, attr in cls._config_keys.items()
            }
        )

    def matcher(self) -> collections.abc.Callable[[Resource], bool]:
        """
        Return a predicate that evaluates resources against the selector.

        Raises SelectorError if any of the selector expressions is malformed.
        """
        patterns = [
            (field, pattern)
            for field in ("group", "version", "kind", "name", "namespace")
            if (pattern := _compile(field, getattr(self, field)))
        ]
        labels = parse_label_selector(self.label_selector)
        annotations = parse_label_selector(self.annotation_selector)

        def match(resource: Resource) -> bool:
            id = resource.id
            values = {
                "group": id.gvk.group,
                "version": id.gvk.version,
                "kind": id.gvk.kind,
                "name": id.name,
                "namespace": id.namespace,
            }
            if not all(pattern.match(values[field]) for field, pattern in patterns):
                return False
            if labels and not all(r.matches(resource.labels) for r in labels):
                return False
            if annotations and not all(r.matches(resource.annotations) for r in annotations):
                return False
            return True

        return match

    def matches(self, resource: Resource) -> bool:
        """Return True if the resource is selected."""
        return self.matcher()(resource)
