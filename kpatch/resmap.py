"""Module to manage an ordered collection of resources."""

import collections.abc
import logging

from kpatch.codec import decode_documents, encode_documents
from kpatch.error import TargetNotFoundError
from kpatch.resource import ResId, Resource
from kpatch.selector import Selector


_logger = logging.getLogger(__name__)


def _is_list(document) -> bool:
    return (
        isinstance(document, collections.abc.Mapping)
        and str(document.get("kind") or "").endswith("List")
        and isinstance(document.get("items"), list)
    )


def flatten(documents: collections.abc.Iterable) -> list:
    """
    Flatten decoded documents into resource bodies: top-level sequences and list kinds
    (documents with a kind ending in "List" and an items sequence) contribute their items.
    """
    result = []
    for document in documents:
        if isinstance(document, list):
            result.extend(flatten(document))
        elif _is_list(document):
            result.extend(flatten(document["items"]))
        else:
            result.append(document)
    return result


class ResMap(collections.abc.Sequence):
    """
    An ordered collection of resources.

    The collection exposes its resources for in-place modification; their order and
    membership are fixed by the caller.
    """

    def __init__(self, resources: collections.abc.Iterable[Resource] = ()):
        self._resources = list(resources)

    @classmethod
    def from_bytes(cls, data: bytes | str) -> "ResMap":
        """Return a collection of resources decoded from a YAML or JSON stream."""
        return cls(Resource(body) for body in flatten(decode_documents(data)))

    def __getitem__(self, index):
        return self._resources[index]

    def __len__(self):
        return len(self._resources)

    def get_by_id(self, id: ResId) -> Resource:
        """
        Return the single resource that matches the specified identity. Fields left empty in
        the identity are unconstrained.

        Raises TargetNotFoundError if no resource or more than one resource matches.
        """
        matches = [r for r in self._resources if id.matches(r.id)]
        if not matches:
            raise TargetNotFoundError(f"no resource matches id: {id}")
        if len(matches) > 1:
            raise TargetNotFoundError(
                f"multiple resources match id {id}: {', '.join(str(r.id) for r in matches)}"
            )
        return matches[0]

    def select(self, selector: Selector) -> list[Resource]:
        """Return resources selected by the specified selector, in collection order."""
        match = selector.matcher()
        selected = [r for r in self._resources if match(r)]
        _logger.debug(
            "selector %s selected %d of %d resources", selector, len(selected), len(self)
        )
        return selected

    def to_yaml(self) -> str:
        """Return the resources encoded as a YAML stream."""
        return encode_documents(r.body for r in self._resources)
