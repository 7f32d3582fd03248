"""
documap Model Options — parsed from the inner Meta class.

Holds the per-class mapping metadata: discriminator, collection binding,
abstractness, index declarations and the discriminator lineage used by
the class resolver.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Tuple, Type, TYPE_CHECKING

if TYPE_CHECKING:
    from .base import Model
    from .fields import Index


__all__ = ["Options", "CollectionBinding", "default_collection_name"]


@dataclass(frozen=True)
class CollectionBinding:
    """
    Where documents of a mapped class live.

    ``connection`` is the alias passed to ``get_database()``; ``database``
    of ``None`` means the connection's default database.
    """

    name: str
    database: Optional[str] = None
    connection: str = "default"


_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")


def default_collection_name(class_name: str) -> str:
    """``BlogPost`` -> ``blog_posts``, ``Address`` -> ``addresses``."""
    snake = _CAMEL_BOUNDARY.sub("_", class_name).lower()
    if snake.endswith(("s", "x", "z", "ch", "sh")):
        return snake + "es"
    if snake.endswith("y") and len(snake) > 1 and snake[-2] not in "aeiou":
        return snake[:-1] + "ies"
    return snake + "s"


def _as_binding(value: Any, model_name: str) -> CollectionBinding:
    from ..faults.domains import ModelRegistrationFault

    if isinstance(value, CollectionBinding):
        return value
    if isinstance(value, str) and value:
        return CollectionBinding(name=value)
    raise ModelRegistrationFault(
        model_name,
        f"collection must be a non-empty string or CollectionBinding, got {value!r}",
    )


class Options:
    """
    Parsed mapping options.

    Attributes:
        model_name: Class name
        discriminator: Value written under ``_type`` (defaults to the class name)
        abstract: Abstract classes carry fields but are never registered
        binding: CollectionBinding shared by a class and its mapped descendants
        indexes: Index declarations from ``Meta.indexes``
        root: Outermost class sharing this binding, abstract or concrete; it
            owns the collection and queries through it see every document
        lineage: Discriminators of mapped ancestors, outermost first, self last
    """

    __slots__ = (
        "model_name",
        "discriminator",
        "abstract",
        "binding",
        "indexes",
        "root",
        "lineage",
        "_model_cls",
    )

    def __init__(
        self,
        model_name: str,
        meta: Optional[type] = None,
        collection_attr: Any = None,
        parents: Sequence[type] = (),
    ):
        self.model_name = model_name
        self.abstract: bool = bool(meta.__dict__.get("abstract", False)) if meta else False
        self.discriminator: str = (getattr(meta, "discriminator", None) if meta else None) or model_name
        self.indexes: List[Index] = list(getattr(meta, "indexes", []) or []) if meta else []

        parent_opts = [
            p._meta for p in parents
            if getattr(p, "_meta", None) is not None
        ]
        concrete_parent = next((o for o in parent_opts if not o.abstract), None)

        self.root: Optional[Type[Model]] = None
        self.lineage: Tuple[str, ...] = tuple(dict.fromkeys(
            name for o in parent_opts for name in o.lineage
        ))

        explicit = collection_attr
        if explicit is None and meta is not None:
            explicit = getattr(meta, "collection", None)

        if explicit is not None:
            self.binding: Optional[CollectionBinding] = _as_binding(explicit, model_name)
        elif concrete_parent is not None:
            self.binding = concrete_parent.binding
        else:
            inherited = next((o.binding for o in parent_opts if o.binding is not None), None)
            self.binding = inherited

        self._model_cls: Optional[Type[Model]] = None

    def contribute_to_class(self, model_cls: Type[Model]) -> None:
        """Bind to the finished class and fill in class-dependent defaults."""
        self._model_cls = model_cls
        self.lineage = self.lineage + (self.discriminator,)
        if self.binding is None:
            if self.abstract:
                return
            self.binding = CollectionBinding(name=default_collection_name(model_cls.__name__))
        self.root = self._outermost_sharing_binding(model_cls)

    def _outermost_sharing_binding(self, model_cls: Type[Model]) -> Type[Model]:
        for klass in reversed(model_cls.__mro__):
            opts = klass.__dict__.get("_meta")
            if opts is not None and opts.binding == self.binding:
                return klass
        return model_cls

    @property
    def collection(self) -> Optional[str]:
        return self.binding.name if self.binding else None

    def descends_from(self, discriminator: str) -> bool:
        """True if ``discriminator`` names this class or a mapped ancestor."""
        return discriminator in self.lineage

    def __repr__(self) -> str:
        return (
            f"<Options {self.model_name} discriminator={self.discriminator!r} "
            f"collection={self.collection!r} abstract={self.abstract}>"
        )
