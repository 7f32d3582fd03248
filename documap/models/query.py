"""
documap Query Builder — immutable, lazily executed criteria.

A Criteria names the originating mapped class, a selector and a set of
driver options. Every refinement returns a new Criteria; nothing runs
until a terminal operation (``all``, ``first``, iteration, ``count`` ...)
is invoked, and each terminal call re-issues the driver query.

Usage:
    big_red = Circle.query().where(color="red").where({"radius": {"$gt": 5}})
    big_red = big_red.sort(("radius", "desc")).limit(10)

    for circle in big_red:      # executes
        ...
    big_red.count()             # executes again

Selector and option merges are shallow: a key given in a refinement
replaces the whole value stored under that key.

Custom finders are plain functions decorated with ``@finder``. Reached
through the class, they receive a fresh root Criteria; reached through a
Criteria, they receive that Criteria, so finders chain:

    class Circle(Shape):
        @finder
        def large(scope, min_radius=10):
            return scope.where({"radius": {"$gte": min_radius}})

        @finder
        def colored(scope, color):
            return scope.where(color=color)

    Circle.large().colored("red").all()
"""

from __future__ import annotations

import copy
import functools
import logging
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping, Optional, Type, TYPE_CHECKING

from ..db.backends.base import normalize_sort
from ..faults.domains import QueryFault
from .fields import ID_KEY

if TYPE_CHECKING:
    from .base import Model

logger = logging.getLogger("documap.models.query")

__all__ = ["Criteria", "finder"]


class finder:
    """Declare a composable query method on a mapped class."""

    def __init__(self, func: Callable[..., Any]):
        self.func = func
        functools.update_wrapper(self, func)

    def __set_name__(self, owner: type, name: str) -> None:
        self.name = name

    def __get__(self, instance: Any, owner: Optional[type] = None) -> Callable[..., Any]:
        if owner is None:
            owner = type(instance)
        return self.bind(owner.query())

    def bind(self, scope: Criteria) -> Callable[..., Any]:
        return functools.partial(self.func, scope)


def _lookup_finder(model_cls: type, name: str) -> Optional[finder]:
    for klass in model_cls.__mro__:
        candidate = klass.__dict__.get(name)
        if candidate is not None:
            return candidate if isinstance(candidate, finder) else None
    return None


class Criteria:
    """
    Immutable query description bound to a mapped class.

    ``selector`` and ``options`` are read-only views.
    """

    __slots__ = ("_model_cls", "_selector", "_options")

    def __init__(
        self,
        model_cls: Type[Model],
        selector: Optional[Mapping[str, Any]] = None,
        options: Optional[Mapping[str, Any]] = None,
    ):
        object.__setattr__(self, "_model_cls", model_cls)
        object.__setattr__(self, "_selector", MappingProxyType(copy.deepcopy(dict(selector or {}))))
        object.__setattr__(self, "_options", MappingProxyType(copy.deepcopy(dict(options or {}))))

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError("Criteria is immutable; use refine() to derive a new one")

    # ── Accessors ────────────────────────────────────────────────────

    @property
    def model(self) -> Type[Model]:
        return self._model_cls

    @property
    def selector(self) -> Mapping[str, Any]:
        return self._selector

    @property
    def options(self) -> Mapping[str, Any]:
        return self._options

    @property
    def collection(self) -> str:
        return self._model_cls._meta.collection

    # ── Refinement ───────────────────────────────────────────────────

    def refine(
        self,
        selector: Optional[Mapping[str, Any]] = None,
        options: Optional[Mapping[str, Any]] = None,
    ) -> Criteria:
        """Return a new Criteria with ``selector``/``options`` merged over this one's."""
        for label, part in (("selector", selector), ("options", options)):
            if part is not None and not isinstance(part, Mapping):
                raise QueryFault(
                    self._model_cls.__name__,
                    "refine",
                    f"{label} must be a mapping, got {type(part).__name__}",
                )
        merged_selector: Dict[str, Any] = dict(self._selector)
        merged_selector.update(selector or {})
        merged_options: Dict[str, Any] = dict(self._options)
        merged_options.update(options or {})
        return Criteria(self._model_cls, merged_selector, merged_options)

    def where(self, selector: Optional[Mapping[str, Any]] = None, **conditions: Any) -> Criteria:
        """Merge selector entries; keyword arguments are equality conditions."""
        merged = dict(selector or {})
        merged.update(conditions)
        return self.refine(selector=merged)

    def sort(self, *keys: Any) -> Criteria:
        """
        Set the sort order.

        Each key is a field name (ascending) or a ``(name, direction)`` pair.
        """
        order: List[List[Any]] = []
        for key in keys:
            if isinstance(key, str):
                order.append([key, 1])
            elif isinstance(key, (list, tuple)) and len(key) == 2 and isinstance(key[0], str):
                order.append([key[0], key[1]])
            else:
                raise QueryFault(self._model_cls.__name__, "sort", f"invalid sort key {key!r}")
        try:
            normalize_sort(order)
        except ValueError as exc:
            raise QueryFault(self._model_cls.__name__, "sort", str(exc)) from exc
        return self.refine(options={"sort": order})

    def limit(self, count: int) -> Criteria:
        if not isinstance(count, int) or count < 0:
            raise QueryFault(self._model_cls.__name__, "limit", "must be a non-negative integer")
        return self.refine(options={"limit": count})

    def skip(self, count: int) -> Criteria:
        if not isinstance(count, int) or count < 0:
            raise QueryFault(self._model_cls.__name__, "skip", "must be a non-negative integer")
        return self.refine(options={"skip": count})

    def fields(self, *names: str) -> Criteria:
        """Restrict the stored fields returned."""
        return self.refine(options={"fields": list(names)})

    def in_ids(self, ids: Iterable[Any]) -> Criteria:
        return self.where({ID_KEY: {"$in": list(ids)}})

    # ── Execution ────────────────────────────────────────────────────

    def raw(self) -> Iterator[Dict[str, Any]]:
        """Execute and return raw documents."""
        opts = self._model_cls._meta
        if opts.binding is None:
            raise QueryFault(self._model_cls.__name__, "execute", "class is not bound to a collection")
        db = self._model_cls._get_db()
        logger.debug(
            f"find {opts.binding.name} selector={dict(self._selector)} options={dict(self._options)}"
        )
        return db.find(
            opts.binding.name,
            dict(self._selector),
            dict(self._options),
            database=opts.binding.database,
        )

    def __iter__(self) -> Iterator[Model]:
        instantiate = self._model_cls.instantiate
        for document in self.raw():
            yield instantiate(document)

    def all(self) -> List[Model]:
        return list(self)

    def first(self) -> Optional[Model]:
        return next(iter(self.limit(1)), None)

    def count(self) -> int:
        opts = self._model_cls._meta
        if opts.binding is None:
            raise QueryFault(self._model_cls.__name__, "count", "class is not bound to a collection")
        db = self._model_cls._get_db()
        logger.debug(f"count {opts.binding.name} selector={dict(self._selector)}")
        return db.count(opts.binding.name, dict(self._selector), database=opts.binding.database)

    def exists(self) -> bool:
        return next(self.limit(1).raw(), None) is not None

    # ── Finders ──────────────────────────────────────────────────────

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        method = _lookup_finder(self._model_cls, name)
        if method is None:
            raise AttributeError(
                f"'{type(self).__name__}' for {self._model_cls.__name__} has no attribute or finder '{name}'"
            )
        return method.bind(self)

    # ── Dunder ───────────────────────────────────────────────────────

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, Criteria):
            return NotImplemented
        return (
            self._model_cls is other._model_cls
            and dict(self._selector) == dict(other._selector)
            and dict(self._options) == dict(other._options)
        )

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return (
            f"<Criteria {self._model_cls.__name__} selector={dict(self._selector)} "
            f"options={dict(self._options)}>"
        )
