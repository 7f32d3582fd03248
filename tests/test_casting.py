"""
Tests for the type caster (documap.models.casting).

Covers:
- Scalar coercions in both directions
- Typed and untyped containers
- Embedded mapped classes and Embeddable values
- References inside fields and untyped containers
- TypeCastFault on structurally incompatible values
"""

from __future__ import annotations

import datetime
from decimal import Decimal
from typing import Dict, List, Optional, Set, Tuple
from uuid import UUID, uuid4

import pytest

from documap.faults import ResolutionFault, TypeCastFault
from documap.models import Field, Model, Reference, from_storage, to_storage


class Money:
    def __init__(self, amount, currency):
        self.amount = amount
        self.currency = currency

    def __eq__(self, other):
        return (self.amount, self.currency) == (other.amount, other.currency)

    def to_storage(self):
        return {"amount": str(self.amount), "currency": self.currency}

    @classmethod
    def cast_from_storage(cls, raw):
        if raw is None:
            return None
        return cls(Decimal(raw["amount"]), raw["currency"])


# ============================================================================
# Scalars
# ============================================================================

class TestScalars:

    @pytest.mark.parametrize("declared, value", [
        (str, "hello"),
        (int, 42),
        (float, 2.5),
        (bool, True),
        (datetime.datetime, datetime.datetime(2024, 5, 1, 12, 30)),
        (datetime.date, datetime.date(2024, 5, 1)),
        (Decimal, Decimal("19.99")),
        (UUID, UUID("12345678-1234-5678-1234-567812345678")),
    ])
    def test_round_trip(self, declared, value):
        assert from_storage(to_storage(value, declared), declared) == value

    def test_none_passes_through(self):
        assert to_storage(None, int) is None
        assert from_storage(None, int) is None

    def test_date_stored_as_midnight_datetime(self):
        stored = to_storage(datetime.date(2024, 1, 2), datetime.date)
        assert stored == datetime.datetime(2024, 1, 2, 0, 0)

    def test_decimal_and_uuid_stored_as_strings(self):
        uid = uuid4()
        assert to_storage(Decimal("1.10"), Decimal) == "1.10"
        assert to_storage(uid, UUID) == str(uid)

    def test_numeric_coercions(self):
        assert from_storage(3, float) == 3.0
        assert isinstance(from_storage(3, float), float)
        assert from_storage(4.0, int) == 4
        assert from_storage("17", int) == 17
        assert from_storage("2.5", float) == 2.5
        assert from_storage(5, str) == "5"

    def test_bool_coercions(self):
        assert from_storage(1, bool) is True
        assert from_storage(0, bool) is False
        assert from_storage("false", bool) is False
        assert from_storage("Yes", bool) is True

    def test_datetime_from_iso_string(self):
        assert from_storage("2024-03-04T05:06:07", datetime.datetime) == datetime.datetime(2024, 3, 4, 5, 6, 7)

    def test_datetimes_are_naive_utc(self):
        expected = datetime.datetime(2024, 3, 4, 5, 6, 7)
        epoch = datetime.datetime(2024, 3, 4, 5, 6, 7, tzinfo=datetime.timezone.utc).timestamp()
        offset = datetime.timezone(datetime.timedelta(hours=2))
        assert from_storage(epoch, datetime.datetime) == expected
        assert from_storage("2024-03-04T07:06:07+02:00", datetime.datetime) == expected
        assert to_storage(datetime.datetime(2024, 3, 4, 7, 6, 7, tzinfo=offset), datetime.datetime) == expected
        assert from_storage(epoch, datetime.datetime).tzinfo is None

    def test_date_from_datetime(self):
        assert from_storage(datetime.datetime(2024, 3, 4), datetime.date) == datetime.date(2024, 3, 4)

    @pytest.mark.parametrize("declared, raw", [
        (int, "abc"),
        (int, 2.5),
        (float, "x"),
        (bool, 2),
        (str, ["a"]),
        (datetime.datetime, "not a date"),
        (Decimal, "1.2.3"),
        (UUID, "nope"),
        (int, {"a": 1}),
    ])
    def test_incompatible_raw_raises(self, declared, raw):
        with pytest.raises(TypeCastFault) as exc_info:
            from_storage(raw, declared, field="value")
        fault = exc_info.value
        assert fault.field == "value"
        assert fault.raw == raw
        assert fault.declared_type is declared
        assert fault.code == "TYPE_CAST_FAILED"

    def test_optional_unwrapped(self):
        assert from_storage("7", Optional[int]) == 7


# ============================================================================
# Containers
# ============================================================================

class TestContainers:

    def test_typed_list(self):
        stored = to_storage([Decimal("1.5"), Decimal("2")], List[Decimal])
        assert stored == ["1.5", "2"]
        assert from_storage(stored, List[Decimal]) == [Decimal("1.5"), Decimal("2")]

    def test_typed_dict(self):
        when = datetime.date(2024, 2, 2)
        stored = to_storage({"start": when}, Dict[str, datetime.date])
        assert stored == {"start": datetime.datetime(2024, 2, 2)}
        assert from_storage(stored, Dict[str, datetime.date]) == {"start": when}

    def test_set_and_tuple_round_trip(self):
        assert from_storage(to_storage({1, 2, 3}, Set[int]), Set[int]) == {1, 2, 3}
        assert from_storage(to_storage((1, 2), Tuple[int, ...]), Tuple[int, ...]) == (1, 2)

    def test_sequence_stored_as_list(self):
        assert to_storage((1, 2), tuple) == [1, 2]

    def test_list_expected(self):
        with pytest.raises(TypeCastFault):
            from_storage("abc", List[int])

    def test_mapping_expected(self):
        with pytest.raises(TypeCastFault):
            from_storage([1, 2], dict)

    def test_string_is_not_a_sequence(self):
        with pytest.raises(TypeCastFault):
            to_storage("abc", list)

    def test_untyped_nested_structure(self):
        value = {"a": [1, {"b": "c"}], "d": None}
        assert from_storage(to_storage(value, object), object) == value

    def test_untyped_embeddable_converted(self):
        stored = to_storage({"price": Money(Decimal("5"), "EUR")}, dict)
        assert stored == {"price": {"amount": "5", "currency": "EUR"}}


# ============================================================================
# Mapped classes, references, embeddables
# ============================================================================

class TestMappedValues:

    def test_embeddable_round_trip(self):
        value = Money(Decimal("12.50"), "USD")
        stored = to_storage(value, Money)
        assert stored == {"amount": "12.50", "currency": "USD"}
        assert from_storage(stored, Money) == value

    def test_embedded_mapped_class(self):
        class Address(Model):
            city = Field(str)

        class Customer(Model):
            address = Field(Address)

        customer = Customer(address=Address(city="Oslo"))
        stored = customer.to_storage()
        assert stored["address"] == {"_type": "Address", "city": "Oslo"}

        loaded = Customer.instantiate(stored)
        assert isinstance(loaded.address, Address)
        assert loaded.address.city == "Oslo"

    def test_embedded_subclass_restored_polymorphically(self, shapes):
        class Drawing(Model):
            main = Field(shapes.Shape)

        stored = Drawing(main=shapes.Circle(radius=3.0)).to_storage()
        loaded = Drawing.instantiate(stored)
        assert type(loaded.main) is shapes.Circle
        assert loaded.main.radius == 3.0

    def test_embedded_requires_instance(self, shapes):
        with pytest.raises(TypeCastFault):
            to_storage({"radius": 1}, shapes.Circle, field="main")

    def test_embedded_requires_mapping(self, shapes):
        with pytest.raises(TypeCastFault):
            from_storage([1, 2], shapes.Circle)

    def test_forward_reference_by_name(self):
        class Node(Model):
            label = Field(str)
            child = Field("Node")

        tree = Node(label="root", child=Node(label="leaf"))
        loaded = Node.instantiate(tree.to_storage())
        assert loaded.child.label == "leaf"
        assert loaded.child.child is None

    def test_unknown_forward_reference(self):
        with pytest.raises(ResolutionFault):
            to_storage({"x": 1}, "Missing", field="thing")

    def test_reference_field(self, people):
        owner = people.Person(name="Ann").save()
        stored = to_storage(owner, Reference)
        assert stored == {"$ref": "people", "$id": owner.id}
        assert from_storage(stored, Reference) == Reference("people", owner.id)

    def test_reference_requires_identity(self, people):
        with pytest.raises(TypeCastFault):
            to_storage(people.Person(name="Unsaved"), Reference)

    def test_reference_requires_ref_shape(self):
        with pytest.raises(TypeCastFault):
            from_storage({"id": 1}, Reference)

    def test_untyped_saved_instance_becomes_reference(self, people):
        owner = people.Person(name="Ann").save()
        stored = to_storage([owner], list)
        assert stored == [{"$ref": "people", "$id": owner.id}]
        assert from_storage(stored, list) == [Reference("people", owner.id)]

    def test_untyped_unsaved_instance_embedded(self, people):
        stored = to_storage({"who": people.Person(name="Bo")}, dict)
        assert stored == {"who": {"_type": "Person", "name": "Bo"}}
        loaded = from_storage(stored, dict)
        assert isinstance(loaded["who"], people.Person)
        assert loaded["who"].name == "Bo"

    def test_untyped_unknown_type_tag_left_alone(self):
        raw = {"_type": "NotRegistered", "x": 1}
        assert from_storage(raw, object) == raw
