"""
documap Reference Resolver — document references and batch loading.

A reference points at one document in another collection and is stored
as ``{"$ref": <collection>, "$id": <identity>}``. Resolving a value
replaces every reference inside it with the referenced instance, issuing
one lookup per referenced collection, however many references point
into it. References to missing documents resolve to ``None``.

Nothing is cached: each call re-reads the store.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Hashable, List, Mapping, Tuple, TYPE_CHECKING

from ..faults.domains import ResolutionFault, TypeCastFault
from .registry import ModelRegistry

if TYPE_CHECKING:
    from .base import Model

logger = logging.getLogger("documap.models.references")

__all__ = ["Reference", "resolve", "is_reference_shape", "REF_KEY", "REF_ID_KEY"]

REF_KEY = "$ref"
REF_ID_KEY = "$id"


def is_reference_shape(raw: Any) -> bool:
    """A mapping with exactly the ``$ref`` and ``$id`` entries."""
    return isinstance(raw, Mapping) and len(raw) == 2 and REF_KEY in raw and REF_ID_KEY in raw


@dataclass(frozen=True)
class Reference:
    """Pointer to a stored document: target collection and identity."""

    namespace: str
    target_id: Any

    def to_storage(self) -> Dict[str, Any]:
        return {REF_KEY: self.namespace, REF_ID_KEY: self.target_id}

    @classmethod
    def cast_from_storage(cls, raw: Any) -> Any:
        if raw is None or isinstance(raw, Reference):
            return raw
        if not is_reference_shape(raw):
            raise TypeCastFault(None, raw, cls, "expected {'$ref': ..., '$id': ...}")
        return cls(raw[REF_KEY], raw[REF_ID_KEY])

    @classmethod
    def of(cls, document: Model) -> Reference:
        """Reference to a saved mapped instance."""
        if document.id is None:
            raise TypeCastFault(None, document, cls, "document has no identity yet")
        return cls(document._meta.collection, document.id)

    def resolve(self) -> Any:
        return resolve(self)

    def __repr__(self) -> str:
        return f"Reference({self.namespace!r}, {self.target_id!r})"


def _collect(value: Any, found: Dict[str, List[Any]]) -> None:
    if isinstance(value, Reference):
        ids = found.setdefault(value.namespace, [])
        if value.target_id not in ids:
            ids.append(value.target_id)
    elif isinstance(value, Mapping):
        for item in value.values():
            _collect(item, found)
    elif isinstance(value, (list, tuple, set, frozenset)):
        for item in value:
            _collect(item, found)


def _substitute(value: Any, loaded: Dict[Tuple[str, Hashable], Any]) -> Any:
    if isinstance(value, Reference):
        return loaded.get((value.namespace, value.target_id))
    if isinstance(value, Mapping):
        return {k: _substitute(v, loaded) for k, v in value.items()}
    if isinstance(value, (list, set, frozenset)):
        return [_substitute(v, loaded) for v in value]
    if isinstance(value, tuple):
        return tuple(_substitute(v, loaded) for v in value)
    return value


def resolve(value: Any) -> Any:
    """
    Replace every Reference in ``value`` with the document it points to.

    Accepts a single Reference, a sequence or a mapping (nested to any
    depth); other values come back unchanged. Sets come back as lists.

    Raises:
        ResolutionFault: A reference names a collection no mapped class is bound to.
    """
    wanted: Dict[str, List[Any]] = {}
    _collect(value, wanted)
    if not wanted:
        return list(value) if isinstance(value, (set, frozenset)) else value

    loaded: Dict[Tuple[str, Hashable], Any] = {}
    for namespace, ids in wanted.items():
        model_cls = ModelRegistry.for_collection(namespace)
        if model_cls is None:
            raise ResolutionFault(namespace, "no mapped class is bound to this collection")
        logger.debug(f"Resolving {len(ids)} reference(s) into '{namespace}'")
        for instance in model_cls.query().in_ids(ids):
            loaded[(namespace, instance.id)] = instance

    if isinstance(value, (set, frozenset)):
        value = list(value)
    return _substitute(value, loaded)
