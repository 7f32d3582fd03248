"""
documap Type Caster — moves values between memory and storage.

``to_storage(value, declared_type)`` produces a storage-safe value and
``from_storage(raw, declared_type)`` rebuilds the in-memory value. For
every supported declared type T and valid value v:

    from_storage(to_storage(v, T), T) == v

Supported declared types:

- ``object`` / ``Any``: untyped, containers are walked recursively
- ``str``, ``int``, ``float``, ``bool``, ``datetime`` (naive UTC), ``date``,
  ``Decimal`` (stored as str), ``UUID`` (stored as str)
- ``list``, ``tuple``, ``set``, ``frozenset``, ``dict`` and their typing
  forms (``List[T]``, ``Dict[str, T]``, ...), ``Optional[T]``
- mapped classes, also named by string forward reference
- ``Reference``
- any class implementing the ``Embeddable`` capability
"""

from __future__ import annotations

import datetime
import typing
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping, Optional, Tuple
from uuid import UUID

from ..faults.domains import ResolutionFault, TypeCastFault
from .fields import DISCRIMINATOR_KEY, Embeddable
from .metaclass import ModelMeta
from .references import Reference, is_reference_shape
from .registry import ModelRegistry

__all__ = ["to_storage", "from_storage", "is_supported_type"]

SCALAR_TYPES = (str, int, float, bool, datetime.datetime, datetime.date, Decimal, UUID)
SEQUENCE_TYPES = (list, tuple, set, frozenset)
UNTYPED = (None, object, Any)

_TRUE_STRINGS = frozenset({"true", "1", "yes"})
_FALSE_STRINGS = frozenset({"false", "0", "no"})


# ── Declared type inspection ─────────────────────────────────────────────────


def _unwrap(declared_type: Any) -> Any:
    """Strip ``Optional[...]`` and turn forward references into names."""
    if isinstance(declared_type, typing.ForwardRef):
        return declared_type.__forward_arg__
    if typing.get_origin(declared_type) is typing.Union:
        args = [a for a in typing.get_args(declared_type) if a is not type(None)]
        if len(args) == 1:
            return _unwrap(args[0])
    return declared_type


def _container(declared_type: Any) -> Optional[Tuple[type, Any]]:
    """Return ``(container, element_type)`` for container types, else None."""
    if declared_type in SEQUENCE_TYPES or declared_type is dict:
        return declared_type, object
    origin = typing.get_origin(declared_type)
    if origin in SEQUENCE_TYPES:
        args = typing.get_args(declared_type)
        return origin, (args[0] if args else object)
    if origin is dict:
        args = typing.get_args(declared_type)
        return dict, (args[1] if len(args) == 2 else object)
    return None


def _is_mapped(declared_type: Any) -> bool:
    return isinstance(declared_type, ModelMeta) and getattr(declared_type, "_meta", None) is not None


def _is_embeddable(declared_type: Any) -> bool:
    return isinstance(declared_type, type) and issubclass(declared_type, Embeddable)


def is_supported_type(declared_type: Any) -> bool:
    """Whether values of ``declared_type`` can be stored."""
    declared_type = _unwrap(declared_type)
    if declared_type in UNTYPED or isinstance(declared_type, str):
        return True
    if declared_type in SCALAR_TYPES or declared_type is Reference:
        return True
    container = _container(declared_type)
    if container is not None:
        return is_supported_type(container[1])
    return _is_mapped(declared_type) or _is_embeddable(declared_type)


def _resolve_name(name: str, field: Optional[str]) -> type:
    model_cls = ModelRegistry.get(name)
    if model_cls is None:
        raise ResolutionFault(name, f"field '{field}' refers to an unregistered class")
    return model_cls


# ── Scalars ──────────────────────────────────────────────────────────────────


def _naive_utc(value: datetime.datetime) -> datetime.datetime:
    """Datetimes are held as naive UTC, the form pymongo reads back."""
    if value.tzinfo is None:
        return value
    return value.astimezone(datetime.timezone.utc).replace(tzinfo=None)


def _coerce_scalar(value: Any, declared_type: type, field: Optional[str]) -> Any:
    """Bring ``value`` to the in-memory form of ``declared_type``."""
    try:
        if declared_type is bool:
            if isinstance(value, bool):
                return value
            if isinstance(value, int) and value in (0, 1):
                return bool(value)
            if isinstance(value, str) and value.strip().lower() in _TRUE_STRINGS | _FALSE_STRINGS:
                return value.strip().lower() in _TRUE_STRINGS
        elif declared_type is int:
            if isinstance(value, int):
                return int(value)
            if isinstance(value, (float, Decimal)) and value == int(value):
                return int(value)
            if isinstance(value, str):
                return int(value.strip())
        elif declared_type is float:
            if isinstance(value, (int, float, Decimal)) and not isinstance(value, bool):
                return float(value)
            if isinstance(value, str):
                return float(value.strip())
        elif declared_type is str:
            if isinstance(value, str):
                return value
            if isinstance(value, (int, float, Decimal, UUID)) and not isinstance(value, bool):
                return str(value)
        elif declared_type is datetime.datetime:
            if isinstance(value, datetime.datetime):
                return _naive_utc(value)
            if isinstance(value, datetime.date):
                return datetime.datetime.combine(value, datetime.time.min)
            if isinstance(value, str):
                return _naive_utc(datetime.datetime.fromisoformat(value))
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                return _naive_utc(datetime.datetime.fromtimestamp(value, tz=datetime.timezone.utc))
        elif declared_type is datetime.date:
            if isinstance(value, datetime.datetime):
                return value.date()
            if isinstance(value, datetime.date):
                return value
            if isinstance(value, str):
                return datetime.date.fromisoformat(value[:10])
        elif declared_type is Decimal:
            if isinstance(value, Decimal):
                return value
            if isinstance(value, (int, float, str)) and not isinstance(value, bool):
                return Decimal(str(value))
        elif declared_type is UUID:
            if isinstance(value, UUID):
                return value
            if isinstance(value, str):
                return UUID(value)
            if isinstance(value, bytes) and len(value) == 16:
                return UUID(bytes=value)
    except (ValueError, TypeError, OverflowError, InvalidOperation) as exc:
        raise TypeCastFault(field, value, declared_type, str(exc)) from exc
    raise TypeCastFault(field, value, declared_type)


def _scalar_to_storage(value: Any, declared_type: type, field: Optional[str]) -> Any:
    value = _coerce_scalar(value, declared_type, field)
    if declared_type is datetime.date:
        return datetime.datetime.combine(value, datetime.time.min)
    if declared_type in (Decimal, UUID):
        return str(value)
    return value


# ── Untyped values ───────────────────────────────────────────────────────────


def _untyped_to_storage(value: Any, field: Optional[str]) -> Any:
    if isinstance(value, Reference):
        return value.to_storage()
    if isinstance(type(value), ModelMeta):
        if value.id is not None:
            return Reference.of(value).to_storage()
        return type(value).to_storage(value)
    if isinstance(value, Embeddable):
        return value.to_storage()
    if isinstance(value, Mapping):
        return {str(k): _untyped_to_storage(v, field) for k, v in value.items()}
    if isinstance(value, SEQUENCE_TYPES):
        return [_untyped_to_storage(v, field) for v in value]
    return value


def _untyped_from_storage(raw: Any, field: Optional[str]) -> Any:
    if is_reference_shape(raw):
        return Reference.cast_from_storage(raw)
    if isinstance(raw, Mapping):
        tag = raw.get(DISCRIMINATOR_KEY)
        model_cls = ModelRegistry.get(tag) if isinstance(tag, str) else None
        if model_cls is not None:
            return model_cls.instantiate(raw)
        return {k: _untyped_from_storage(v, field) for k, v in raw.items()}
    if isinstance(raw, list):
        return [_untyped_from_storage(v, field) for v in raw]
    return raw


# ── Public API ───────────────────────────────────────────────────────────────


def to_storage(value: Any, declared_type: Any = object, field: Optional[str] = None) -> Any:
    """Convert an in-memory value to its storage form."""
    if value is None:
        return None
    declared_type = _unwrap(declared_type)
    if isinstance(declared_type, str):
        declared_type = _resolve_name(declared_type, field)

    if declared_type in UNTYPED:
        return _untyped_to_storage(value, field)

    if declared_type is Reference:
        if isinstance(value, Reference):
            return value.to_storage()
        if isinstance(type(value), ModelMeta):
            if value.id is None:
                raise TypeCastFault(field, value, Reference, "document has no identity yet")
            return Reference.of(value).to_storage()
        if is_reference_shape(value):
            return dict(value)
        raise TypeCastFault(field, value, Reference)

    if _is_mapped(declared_type):
        if not isinstance(value, declared_type):
            raise TypeCastFault(field, value, declared_type, f"expected {declared_type.__name__} instance")
        return type(value).to_storage(value)

    container = _container(declared_type)
    if container is not None:
        kind, element_type = container
        if kind is dict:
            if not isinstance(value, Mapping):
                raise TypeCastFault(field, value, declared_type, "expected a mapping")
            return {str(k): to_storage(v, element_type, field) for k, v in value.items()}
        if isinstance(value, (str, bytes, Mapping)) or not isinstance(value, SEQUENCE_TYPES):
            raise TypeCastFault(field, value, declared_type, "expected a sequence")
        return [to_storage(v, element_type, field) for v in value]

    if declared_type in SCALAR_TYPES:
        return _scalar_to_storage(value, declared_type, field)

    if _is_embeddable(declared_type):
        if not isinstance(value, declared_type):
            raise TypeCastFault(field, value, declared_type, f"expected {declared_type.__name__} instance")
        return value.to_storage()

    raise TypeCastFault(field, value, declared_type, "unsupported declared type")


def from_storage(raw: Any, declared_type: Any = object, field: Optional[str] = None) -> Any:
    """Rebuild an in-memory value from its storage form."""
    if raw is None:
        return None
    declared_type = _unwrap(declared_type)
    if isinstance(declared_type, str):
        declared_type = _resolve_name(declared_type, field)

    if declared_type in UNTYPED:
        return _untyped_from_storage(raw, field)

    if declared_type is Reference:
        if isinstance(raw, Reference):
            return raw
        if not is_reference_shape(raw):
            raise TypeCastFault(field, raw, Reference, "expected {'$ref': ..., '$id': ...}")
        return Reference.cast_from_storage(raw)

    if _is_mapped(declared_type):
        if not isinstance(raw, Mapping):
            raise TypeCastFault(field, raw, declared_type, "expected an embedded document")
        return declared_type.instantiate(raw)

    container = _container(declared_type)
    if container is not None:
        kind, element_type = container
        if kind is dict:
            if not isinstance(raw, Mapping):
                raise TypeCastFault(field, raw, declared_type, "expected a mapping")
            return {k: from_storage(v, element_type, field) for k, v in raw.items()}
        if not isinstance(raw, (list, tuple)):
            raise TypeCastFault(field, raw, declared_type, "expected an array")
        return kind(from_storage(v, element_type, field) for v in raw)

    if declared_type in SCALAR_TYPES:
        return _coerce_scalar(raw, declared_type, field)

    if _is_embeddable(declared_type):
        return declared_type.cast_from_storage(raw)

    raise TypeCastFault(field, raw, declared_type, "unsupported declared type")
