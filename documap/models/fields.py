"""
documap Model Fields — declared attributes of mapped classes.

A field pairs a declared type with a default. The declared type decides
how values travel between memory and storage (see ``casting``):

    class Shape(Model):
        color = Field(str, default="black")
        tags = Field(list, default=list)          # producer: fresh list per instance
        created = Field(datetime, default=utcnow)
        owner = Field(Reference)
        origin = Field(Point)                     # Embeddable or mapped class

Custom value types take part in casting by implementing the
``Embeddable`` capability.
"""

from __future__ import annotations

import copy
from abc import ABC, abstractmethod
from typing import Any, List, Optional, Sequence, Tuple, Type, TYPE_CHECKING

from ..db.backends.base import normalize_index_keys

if TYPE_CHECKING:
    from .base import Model

__all__ = [
    "Field",
    "Embeddable",
    "Index",
    "UNSET",
    "ID_KEY",
    "DISCRIMINATOR_KEY",
]

# Storage keys owned by the mapper
ID_KEY = "_id"
DISCRIMINATOR_KEY = "_type"


# ── Sentinel ─────────────────────────────────────────────────────────────────

class _Unset:
    """Sentinel for distinguishing 'not set' from None."""
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self):
        return "<UNSET>"

    def __bool__(self):
        return False

UNSET = _Unset()


# ── Embeddable capability ────────────────────────────────────────────────────


class Embeddable(ABC):
    """
    Capability for custom value types stored inside documents.

    Implementers provide an instance-level ``to_storage()`` returning a
    storage-safe value, and a class-level ``cast_from_storage(raw)`` that
    rebuilds an instance (returning ``None`` for ``None``). Subclassing is
    optional: any class exposing both operations is recognised.

        class Point(Embeddable):
            def __init__(self, x, y):
                self.x, self.y = x, y

            def to_storage(self):
                return [self.x, self.y]

            @classmethod
            def cast_from_storage(cls, raw):
                return None if raw is None else cls(*raw)
    """

    @abstractmethod
    def to_storage(self) -> Any:
        ...

    @classmethod
    @abstractmethod
    def cast_from_storage(cls, raw: Any) -> Any:
        ...

    @classmethod
    def __subclasshook__(cls, candidate: type) -> Any:
        if cls is Embeddable:
            to_storage = getattr(candidate, "to_storage", None)
            cast = getattr(candidate, "cast_from_storage", None)
            if callable(to_storage) and callable(cast):
                return True
        return NotImplemented


# ── Field ────────────────────────────────────────────────────────────────────


class Field:
    """
    A declared attribute: name, declared type and default.

    ``default`` is either a constant (deep-copied for each instance) or a
    zero-argument callable invoked once per instance. Fields are not
    changed after their class is built; redeclaring a name replaces the
    field in that class's registry only.
    """

    def __init__(
        self,
        declared_type: Any = object,
        *,
        default: Any = UNSET,
        help_text: str = "",
    ):
        self.declared_type = declared_type
        self.default = default
        self.help_text = help_text

        # Set when the owning class is built
        self.name: str = ""
        self.model: Optional[Type[Model]] = None

    def __set_name__(self, owner: type, name: str) -> None:
        self.name = name
        self.model = owner

    def __repr__(self) -> str:
        type_name = getattr(self.declared_type, "__name__", repr(self.declared_type))
        return f"<Field {self.name}: {type_name}>"

    def has_default(self) -> bool:
        return self.default is not UNSET

    def get_default(self) -> Any:
        """Produce the default for a new instance, calling it if callable."""
        if self.default is UNSET:
            return None
        if callable(self.default):
            return self.default()
        return copy.deepcopy(self.default)

    def to_storage(self, value: Any) -> Any:
        from .casting import to_storage
        return to_storage(value, self.declared_type, field=self.name)

    def from_storage(self, raw: Any) -> Any:
        from .casting import from_storage
        return from_storage(raw, self.declared_type, field=self.name)

    def clone(self) -> Field:
        return Field(self.declared_type, default=self.default, help_text=self.help_text)


# ── Index declarations ───────────────────────────────────────────────────────


class Index:
    """
    Named index declaration carried by a mapped class.

    Creation is left to the storage adapter (``Model.ensure_indexes()``).

    Usage:
        class Meta:
            indexes = [
                Index(["email"], unique=True),
                Index([("created", "desc"), "color"], name="recent_by_color"),
            ]
    """

    def __init__(self, fields: Sequence[Any], *, unique: bool = False, name: Optional[str] = None):
        if not fields:
            raise ValueError("Index requires at least one field")
        self.fields = list(fields)
        self.unique = unique
        self.name = name

    def keys(self) -> List[Tuple[str, int]]:
        return normalize_index_keys(self.fields)

    def __repr__(self) -> str:
        flag = " unique" if self.unique else ""
        return f"<Index {self.name or self.keys()}{flag}>"
