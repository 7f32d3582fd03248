"""
Tests for the Criteria builder (documap.models.query).

Covers:
- refine() merge law for selectors and options
- Immutability and branch safety
- Lazy execution and re-execution
- Convenience refinements (where/sort/limit/skip/fields/in_ids)
- Finder composition
"""

from __future__ import annotations

from unittest.mock import patch

import pytest

from documap.faults import QueryFault
from documap.models import Criteria, Field, Model, finder


@pytest.fixture
def populated(shapes):
    for color, radius in [("red", 1.0), ("blue", 5.0), ("red", 10.0), ("green", 20.0)]:
        shapes.Circle.create(color=color, radius=radius)
    shapes.Square.create(color="red", side=4)
    return shapes


# ============================================================================
# Merge law
# ============================================================================

class TestRefine:

    def test_merge_law_example(self, shapes):
        c = shapes.Shape.query().refine({"radius": 1}, {}).refine({}, {"sort": [["color", "asc"]]})
        assert c.selector == {"radius": 1}
        assert c.options == {"sort": [["color", "asc"]]}

    def test_last_write_wins_per_key(self, shapes):
        c = shapes.Shape.query().refine(
            {"color": "red", "radius": 1}, {"limit": 5, "skip": 2}
        ).refine({"radius": {"$gt": 3}}, {"limit": 10})
        assert c.selector == {"color": "red", "radius": {"$gt": 3}}
        assert c.options == {"limit": 10, "skip": 2}

    def test_whole_key_replacement_for_compound_options(self, shapes):
        c = shapes.Shape.query().sort("color", ("radius", "desc")).sort("side")
        assert c.options == {"sort": [["side", 1]]}

    def test_refine_returns_new_criteria(self, shapes):
        base = shapes.Shape.query()
        refined = base.refine({"color": "red"})
        assert refined is not base
        assert base.selector == {}

    def test_branches_independent(self, shapes):
        base = shapes.Shape.query().where(color="red")
        left = base.where(radius=1)
        right = base.limit(3)
        assert left.selector == {"color": "red", "radius": 1}
        assert left.options == {}
        assert right.selector == {"color": "red"}
        assert right.options == {"limit": 3}

    def test_rejects_non_mapping(self, shapes):
        with pytest.raises(QueryFault):
            shapes.Shape.query().refine(["color", "red"])
        with pytest.raises(QueryFault):
            shapes.Shape.query().refine(options="limit=1")

    def test_criteria_is_immutable(self, shapes):
        c = shapes.Shape.query()
        with pytest.raises(AttributeError):
            c.limit_value = 3
        with pytest.raises(TypeError):
            c.selector["color"] = "red"

    def test_caller_mutation_does_not_leak(self, shapes):
        selector = {"tags": {"$in": ["a"]}}
        c = shapes.Shape.query().refine(selector)
        selector["tags"]["$in"].append("b")
        assert c.selector == {"tags": {"$in": ["a"]}}

    def test_equality_and_repr(self, shapes):
        a = shapes.Shape.query().where(color="red")
        b = shapes.Shape.query().where({"color": "red"})
        assert a == b
        assert "Shape" in repr(a)

    def test_model_and_collection(self, shapes):
        c = shapes.Circle.query()
        assert c.model is shapes.Circle
        assert c.collection == "shapes"

    def test_subclass_root_is_scoped(self, shapes):
        assert shapes.Shape.query().selector == {}
        assert shapes.Square.query().selector == {"_type": {"$in": ["Square"]}}


# ============================================================================
# Conveniences
# ============================================================================

class TestConveniences:

    def test_where_keywords_and_mapping(self, shapes):
        c = shapes.Shape.where({"radius": {"$gte": 2}}, color="red")
        assert c.selector == {"radius": {"$gte": 2}, "color": "red"}

    def test_sort_keys(self, shapes):
        c = shapes.Shape.query().sort("color", ("radius", -1))
        assert c.options["sort"] == [["color", 1], ["radius", -1]]

    def test_sort_invalid(self, shapes):
        with pytest.raises(QueryFault):
            shapes.Shape.query().sort(42)

    def test_sort_direction_checked_when_built(self, shapes):
        with pytest.raises(QueryFault) as exc_info:
            shapes.Shape.query().sort(("radius", "sideways"))
        assert exc_info.value.metadata["operation"] == "sort"

    def test_sort_named_directions(self, shapes):
        c = shapes.Shape.query().sort(("radius", "desc"), ("color", "asc"))
        assert c.options["sort"] == [["radius", "desc"], ["color", "asc"]]

    def test_limit_and_skip_validation(self, shapes):
        with pytest.raises(QueryFault):
            shapes.Shape.query().limit(-1)
        with pytest.raises(QueryFault):
            shapes.Shape.query().skip("2")

    def test_in_ids(self, shapes):
        assert shapes.Shape.query().in_ids((1, 2)).selector == {"_id": {"$in": [1, 2]}}


# ============================================================================
# Execution
# ============================================================================

class TestExecution:

    def test_refine_never_touches_storage(self, shapes, memory_db):
        with patch.object(memory_db.adapter, "find", wraps=memory_db.adapter.find) as find:
            shapes.Shape.query().where(color="red").sort("radius").limit(2)
            assert find.call_count == 0

    def test_each_terminal_reexecutes(self, populated, memory_db):
        c = populated.Shape.where(color="red")
        with patch.object(memory_db.adapter, "find", wraps=memory_db.adapter.find) as find:
            c.all()
            list(c)
            c.first()
            assert find.call_count == 3

    def test_idempotent_reexecution(self, populated):
        c = populated.Shape.query().sort("color", "radius")
        assert list(c.raw()) == list(c.raw())

    def test_reflects_live_storage(self, populated):
        c = populated.Circle.where(color="green")
        assert len(c.all()) == 1
        populated.Circle.create(color="green")
        assert len(c.all()) == 2

    def test_mixed_types_under_one_collection(self, populated):
        results = populated.Shape.where(color="red").sort("radius").all()
        assert sorted(type(r).__name__ for r in results) == ["Circle", "Circle", "Square"]

    def test_sort_limit_skip(self, populated):
        radii = [c.radius for c in populated.Circle.query().sort(("radius", "desc")).skip(1).limit(2)]
        assert radii == [10.0, 5.0]

    def test_fields_projection(self, populated):
        raw = next(populated.Circle.where(color="blue").fields("radius").raw())
        assert set(raw) == {"_id", "radius"}

    def test_first(self, populated):
        assert populated.Circle.query().sort("radius").first().radius == 1.0
        assert populated.Circle.where(color="purple").first() is None

    def test_count_and_exists(self, populated):
        assert populated.Shape.where(color="red").count() == 3
        assert populated.Circle.where(color="red").count() == 2
        assert populated.Circle.where(color="red").exists()
        assert not populated.Circle.where(color="purple").exists()

    def test_abstract_cannot_execute(self):
        class Base(Model):
            class Meta:
                abstract = True

        with pytest.raises(QueryFault):
            Base.query().all()
        with pytest.raises(QueryFault):
            Base.query().count()


# ============================================================================
# Finders
# ============================================================================

class TestFinders:

    def test_finder_on_class(self, populated):
        c = populated.Shape.colored("red")
        assert isinstance(c, Criteria)
        assert c.selector == {"color": "red"}

    def test_finders_chain_on_criteria(self, populated):
        c = populated.Circle.larger_than(3).colored("red")
        assert c.selector == {
            "_type": {"$in": ["Circle"]},
            "radius": {"$gt": 3},
            "color": "red",
        }
        assert [x.radius for x in c] == [10.0]

    def test_finder_composes_with_direct_refinement(self, populated):
        direct = populated.Circle.query().where(color="red").where({"radius": {"$gt": 3}})
        via_finders = populated.Circle.query().colored("red").larger_than(3)
        assert direct == via_finders

    def test_finder_calling_finder(self, shapes):
        class Disc(shapes.Circle):
            @finder
            def big_red(scope):
                return scope.colored("red").larger_than(5)

        c = Disc.big_red()
        assert c.selector["color"] == "red"
        assert c.selector["radius"] == {"$gt": 5}

    def test_subclass_finder_not_on_parent_criteria(self, shapes):
        with pytest.raises(AttributeError):
            shapes.Shape.query().larger_than(3)

    def test_private_names_not_resolved(self, shapes):
        with pytest.raises(AttributeError):
            shapes.Shape.query()._private

    def test_non_finder_method_not_exposed(self):
        class Doc(Model):
            title = Field(str)

            @classmethod
            def helper(cls):
                return "x"

        with pytest.raises(AttributeError):
            Doc.query().helper
