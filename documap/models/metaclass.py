"""
documap Model Metaclass — field collection, Meta parsing, registration.

Each mapped class gets its own field registry: a copy of its parents'
registries taken when the class is built, plus the fields declared in its
body. Later changes to a parent never reach existing subclasses.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Any, Dict, Tuple

from ..faults.domains import ModelRegistrationFault
from .fields import DISCRIMINATOR_KEY, ID_KEY, UNSET, Field
from .options import Options

__all__ = ["ModelMeta"]

RESERVED_NAMES = frozenset({"id", ID_KEY, DISCRIMINATOR_KEY})


def check_field(model_name: str, name: str, field: Field) -> None:
    """Reject reserved names and undeclarable types."""
    from .casting import is_supported_type

    if name in RESERVED_NAMES or name.startswith("_"):
        raise ModelRegistrationFault(model_name, f"field name '{name}' is reserved")
    if not is_supported_type(field.declared_type):
        raise ModelRegistrationFault(
            model_name,
            f"field '{name}' declares unsupported type {field.declared_type!r}; "
            f"custom types must implement to_storage() and cast_from_storage()",
        )


class ModelMeta(type):
    """
    Metaclass for mapped classes.

    Handles:
    - Field collection (inherited by value, then own declarations)
    - Meta class and ``collection`` attribute parsing → Options
    - Registration in ModelRegistry (skipped for abstract classes)
    """

    def __new__(
        mcs,
        name: str,
        bases: Tuple[type, ...],
        namespace: Dict[str, Any],
        **kwargs,
    ) -> ModelMeta:
        # Don't process the base Model class itself
        parents = [b for b in bases if isinstance(b, ModelMeta)]
        if not parents:
            return super().__new__(mcs, name, bases, namespace)

        meta_class = namespace.pop("Meta", None)
        collection_attr = namespace.pop("collection", None)

        # Inherit fields from parents
        fields: Dict[str, Field] = {}
        for parent in bases:
            if hasattr(parent, "_fields"):
                fields.update(parent._fields)

        # Own declarations replace inherited ones by name
        new_fields: Dict[str, Field] = {}
        for key, value in list(namespace.items()):
            if isinstance(value, Field):
                new_fields[key] = value
                fields[key] = value
                del namespace[key]

        for fname, field in new_fields.items():
            check_field(name, fname, field)

        opts = Options(name, meta_class, collection_attr, parents)

        cls = super().__new__(mcs, name, bases, namespace)

        for fname, field in new_fields.items():
            field.__set_name__(cls, fname)

        cls._fields = MappingProxyType(fields)
        cls._meta = opts
        opts.contribute_to_class(cls)

        if not opts.abstract:
            from .registry import ModelRegistry
            ModelRegistry.register(cls)

        return cls

    def declare_field(cls, name: str, declared_type: Any = object, default: Any = UNSET, **kwargs) -> Field:
        """
        Add or replace a field on this class after it was built.

        Subclasses that already exist keep the registry they copied.
        """
        field = Field(declared_type, default=default, **kwargs)
        check_field(cls.__name__, name, field)
        field.__set_name__(cls, name)
        fields = dict(cls._fields)
        fields[name] = field
        cls._fields = MappingProxyType(fields)
        return field
