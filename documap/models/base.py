"""
documap Model base class — mapped documents.

    class Shape(Model):
        collection = "shapes"

        color = Field(str, default="black")

    class Circle(Shape):
        radius = Field(float, default=1.0)

    circle = Circle(radius=2.5).save()
    Shape.query().all()          # -> [<Circle id=...>]
    Shape.find(circle.id)        # -> <Circle id=...>

Subclasses share their root's collection; each stored document carries
its class discriminator under ``_type`` so reads come back as the most
specific class. Attributes assigned on an instance that are not declared
fields are kept, persisted verbatim and reported by ``undeclared``.
"""

from __future__ import annotations

import logging
from typing import Any, ClassVar, Dict, Iterable, List, Mapping, Optional

from ..db.engine import DocumentDatabase, get_database
from ..faults.domains import IdentityFault, QueryFault, ResolutionFault, TypeCastFault
from .fields import DISCRIMINATOR_KEY, ID_KEY, Field
from .metaclass import ModelMeta
from .options import Options
from .query import Criteria
from .references import Reference, resolve
from .registry import ModelRegistry

logger = logging.getLogger("documap.models")

__all__ = ["Model"]


def _is_data_descriptor(model_cls: type, name: str) -> bool:
    """True if ``name`` resolves on the class to a property or other data descriptor."""
    for klass in model_cls.__mro__:
        if name in klass.__dict__:
            kind = type(klass.__dict__[name])
            return hasattr(kind, "__set__") or hasattr(kind, "__delete__")
    return False


class Model(metaclass=ModelMeta):
    """
    Base class for mapped classes.

    API:
        doc = Circle(radius=2).save()
        doc = Circle.create(radius=2)
        Circle.find(doc.id)
        Circle.where(color="red").sort("radius").all()
        doc.delete()
        doc.reload()
        doc.resolve("owner")
    """

    # Class-level attributes set by metaclass
    _fields: ClassVar[Mapping[str, Field]] = {}
    _meta: ClassVar[Options]

    def __init__(self, **kwargs: Any):
        """Create an instance (in-memory, not persisted)."""
        self._init_state()
        identity = kwargs.pop("id", kwargs.pop(ID_KEY, None))
        for attr_name, field in self._fields.items():
            if attr_name in kwargs:
                setattr(self, attr_name, kwargs.pop(attr_name))
            else:
                setattr(self, attr_name, field.get_default())
        for name, value in kwargs.items():
            setattr(self, name, value)
        if identity is not None:
            self.id = identity

    def _init_state(self) -> None:
        object.__setattr__(self, "_id", None)
        object.__setattr__(self, "_undeclared", {})

    # ── Attributes ───────────────────────────────────────────────────

    def __setattr__(self, name: str, value: Any) -> None:
        if name.startswith("_") or name in self._fields or _is_data_descriptor(type(self), name):
            object.__setattr__(self, name, value)
        else:
            self._undeclared[name] = value

    def __getattribute__(self, name: str) -> Any:
        # Undeclared values shadow class attributes such as methods and finders
        if not name.startswith("_"):
            undeclared = object.__getattribute__(self, "__dict__").get("_undeclared")
            if undeclared and name in undeclared and not _is_data_descriptor(type(self), name):
                return undeclared[name]
        return object.__getattribute__(self, name)

    def __delattr__(self, name: str) -> None:
        if name in self.__dict__.get("_undeclared", {}):
            del self._undeclared[name]
        else:
            object.__delattr__(self, name)

    @property
    def id(self) -> Any:
        """Storage identity, ``None`` until first saved."""
        return self.__dict__.get("_id")

    @id.setter
    def id(self, value: Any) -> None:
        current = self.__dict__.get("_id")
        if current is not None and value != current:
            raise IdentityFault(type(self).__name__, current, value)
        object.__setattr__(self, "_id", value)

    @property
    def undeclared(self) -> Dict[str, Any]:
        """Attributes present on this instance that are not declared fields."""
        return dict(self._undeclared)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} id={self.id}>"

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, Model) or type(self) is not type(other):
            return NotImplemented
        if self.id is None or other.id is None:
            return self is other
        return self.id == other.id

    def __hash__(self) -> int:
        if self.id is None:
            return id(self)
        return hash((self.__class__.__name__, self.id))

    # ── Class-level DB ───────────────────────────────────────────────

    @classmethod
    def _get_db(cls) -> DocumentDatabase:
        """Database handle for this class's connection alias."""
        binding = cls._meta.binding
        return get_database(binding.connection if binding else None)

    @classmethod
    def _require_binding(cls, operation: str) -> None:
        if cls._meta.abstract:
            raise QueryFault(cls.__name__, operation, "abstract classes have no stored instances")
        if cls._meta.binding is None:
            raise QueryFault(cls.__name__, operation, "class is not bound to a collection")

    # ── Instantiation ────────────────────────────────────────────────

    @classmethod
    def instantiate(cls, raw: Mapping[str, Any]) -> Model:
        """
        Build an instance from a raw stored document.

        The discriminator picks the class (see ``ModelRegistry.resolve``);
        every default is applied first, then declared fields are cast
        from storage and unknown keys are kept as undeclared attributes.
        """
        if not isinstance(raw, Mapping):
            raise TypeCastFault(None, raw, cls, "a stored document must be a mapping")

        target = ModelRegistry.resolve(raw.get(DISCRIMINATOR_KEY), cls)
        instance = target.__new__(target)
        instance._init_state()
        for attr_name, field in target._fields.items():
            object.__setattr__(instance, attr_name, field.get_default())

        for key, value in raw.items():
            if key in (ID_KEY, DISCRIMINATOR_KEY):
                continue
            field = target._fields.get(key)
            if field is not None:
                object.__setattr__(instance, key, field.from_storage(value))
            else:
                instance._undeclared[key] = value

        if raw.get(ID_KEY) is not None:
            instance.id = raw[ID_KEY]
        return instance

    def to_storage(self) -> Dict[str, Any]:
        """Storage document for this instance: identity, discriminator, fields, extras."""
        document: Dict[str, Any] = {}
        if self.id is not None:
            document[ID_KEY] = self.id
        document[DISCRIMINATOR_KEY] = self._meta.discriminator
        for attr_name, field in self._fields.items():
            document[attr_name] = field.to_storage(self.__dict__.get(attr_name))
        for name, value in self._undeclared.items():
            document[name] = value
        return document

    def to_reference(self) -> Reference:
        return Reference.of(self)

    # ── Persistence ──────────────────────────────────────────────────

    def save(self) -> Model:
        """
        Persist every declared field.

        The first save inserts and records the storage-assigned identity;
        later saves replace the stored document.
        """
        cls = type(self)
        cls._require_binding("save")
        binding = cls._meta.binding
        db = cls._get_db()
        document = cls.to_storage(self)

        if self.id is None:
            new_id = db.insert_one(binding.name, document, database=binding.database)
            self.id = new_id
            logger.debug(f"Inserted {cls.__name__} id={new_id} into {binding.name}")
        else:
            db.replace_one(binding.name, self.id, document, database=binding.database)
            logger.debug(f"Replaced {cls.__name__} id={self.id} in {binding.name}")
        return self

    @classmethod
    def create(cls, **data: Any) -> Model:
        """
        Create and persist a new document.

        Usage:
            circle = Circle.create(radius=3)
        """
        return cls(**data).save()

    def delete(self) -> int:
        """Remove the stored document. Returns the number of documents removed."""
        cls = type(self)
        cls._require_binding("delete")
        if self.id is None:
            raise QueryFault(cls.__name__, "delete", "instance has not been saved")
        binding = cls._meta.binding
        removed = cls._get_db().delete_many(binding.name, {ID_KEY: self.id}, database=binding.database)
        logger.debug(f"Deleted {cls.__name__} id={self.id} from {binding.name}")
        return removed

    def reload(self) -> Model:
        """Refresh declared fields and extras from storage."""
        cls = type(self)
        if self.id is None:
            raise QueryFault(cls.__name__, "reload", "instance has not been saved")
        fresh = cls.query().where({ID_KEY: self.id}).first()
        if fresh is None:
            raise ResolutionFault(f"{cls._meta.collection}/{self.id}", "document no longer exists")
        for attr_name in fresh._fields:
            object.__setattr__(self, attr_name, fresh.__dict__.get(attr_name))
        object.__setattr__(self, "_undeclared", dict(fresh._undeclared))
        return self

    def resolve(self, attr_name: str) -> Any:
        """Value of ``attr_name`` with every reference loaded."""
        return resolve(getattr(self, attr_name))

    # ── Query API ────────────────────────────────────────────────────

    @classmethod
    def query(cls) -> Criteria:
        """
        Root criteria: every document this class can load.

        The collection root (possibly an abstract base) sees the whole
        collection. Any other class is scoped to the discriminators of
        itself and its descendants, so siblings sharing a collection never
        load each other.
        """
        opts = cls._meta
        if opts.root is None or opts.root is cls:
            return Criteria(cls)
        return Criteria(cls, {DISCRIMINATOR_KEY: {"$in": ModelRegistry.subtree(cls)}})

    @classmethod
    def where(cls, selector: Optional[Mapping[str, Any]] = None, **conditions: Any) -> Criteria:
        return cls.query().where(selector, **conditions)

    @classmethod
    def find(cls, doc_id: Any) -> Optional[Model]:
        """Instance with identity ``doc_id``, or None."""
        return cls.query().where({ID_KEY: doc_id}).first()

    @classmethod
    def find_many(cls, ids: Iterable[Any]) -> List[Model]:
        return cls.query().in_ids(ids).all()

    @classmethod
    def all(cls) -> List[Model]:
        return cls.query().all()

    @classmethod
    def first(cls) -> Optional[Model]:
        return cls.query().first()

    @classmethod
    def count(cls) -> int:
        return cls.query().count()

    @classmethod
    def ensure_indexes(cls) -> List[str]:
        """Create the indexes declared in this class's Meta."""
        if cls._meta.abstract or not cls._meta.indexes:
            return []
        binding = cls._meta.binding
        db = cls._get_db()
        names: List[str] = []
        for index in cls._meta.indexes:
            names.append(
                db.create_index(
                    binding.name,
                    index.keys(),
                    unique=index.unique,
                    name=index.name,
                    database=binding.database,
                )
            )
        return names
