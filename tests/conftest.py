"""
Shared test fixtures for the documap test suite.

Every test starts with an empty model registry and a fresh in-memory
database registered as the default alias. Mapped classes are declared
inside fixtures or test bodies so discriminators never leak between tests.
"""

from types import SimpleNamespace

import pytest

from documap.db import configure_database, reset_databases
from documap.models import Field, Model, ModelRegistry, Reference, finder


@pytest.fixture(autouse=True)
def clean_registry():
    """Isolate ModelRegistry between tests."""
    state = ModelRegistry.snapshot()
    ModelRegistry.reset()
    yield
    ModelRegistry.restore(state)


@pytest.fixture(autouse=True)
def memory_db():
    """Fresh memory:// database registered as the default alias."""
    db = configure_database("memory://testdb")
    yield db
    reset_databases()


@pytest.fixture
def shapes():
    """A small polymorphic hierarchy sharing the ``shapes`` collection."""

    class Shape(Model):
        collection = "shapes"

        color = Field(str, default="black")
        tags = Field(list, default=list)

        @finder
        def colored(scope, color):
            return scope.where(color=color)

    class Circle(Shape):
        radius = Field(float, default=1.0)

        @finder
        def larger_than(scope, radius):
            return scope.where({"radius": {"$gt": radius}})

    class Square(Shape):
        side = Field(int, default=1)

    return SimpleNamespace(Shape=Shape, Circle=Circle, Square=Square)


@pytest.fixture
def people():
    """Owner/pet pair linked by references."""

    class Person(Model):
        collection = "people"

        name = Field(str)

    class Pet(Model):
        collection = "pets"

        name = Field(str)
        owner = Field(Reference)
        friends = Field(list, default=list)

    return SimpleNamespace(Person=Person, Pet=Pet)
