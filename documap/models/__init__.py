"""
documap Model System — metaclass-driven object/document mapping.

Usage:
    from documap.models import Model, Field, Reference, finder

    class Shape(Model):
        collection = "shapes"

        color = Field(str, default="black")
        owner = Field(Reference)

        class Meta:
            indexes = [Index(["color"])]

    class Circle(Shape):
        radius = Field(float, default=1.0)

        @finder
        def large(scope, min_radius=10):
            return scope.where({"radius": {"$gte": min_radius}})

Public API:
    - Model: Base class for mapped classes
    - Field, Index, Embeddable, UNSET: Declarations
    - Criteria, finder: Query builder
    - Reference, resolve: Document references
    - ModelRegistry: Global class registry
    - to_storage, from_storage: Type caster
"""

from .fields import (
    DISCRIMINATOR_KEY,
    ID_KEY,
    UNSET,
    Embeddable,
    Field,
    Index,
)
from .options import CollectionBinding, Options, default_collection_name
from .metaclass import ModelMeta
from .registry import ModelRegistry
from .references import Reference, resolve, is_reference_shape
from .casting import from_storage, is_supported_type, to_storage
from .query import Criteria, finder
from .base import Model

__all__ = [
    "Model",
    "ModelMeta",
    "ModelRegistry",
    "Options",
    "CollectionBinding",
    "default_collection_name",
    "Field",
    "Index",
    "Embeddable",
    "UNSET",
    "ID_KEY",
    "DISCRIMINATOR_KEY",
    "Criteria",
    "finder",
    "Reference",
    "resolve",
    "is_reference_shape",
    "to_storage",
    "from_storage",
    "is_supported_type",
]
