#  -*- coding: utf-8 -*-
"""
Test suite for the Serializer Registry & Resolver.

Tests cover:
- Built-in scalar serializers: strict kinds, numpy ranges, text forms
- Enum serializers by member name
- Custom-serializable types
- Collections, sets and maps, including null elements
- Resolution order: overrides first, static resolution by declared type
- Resolution failures
"""

from __future__ import annotations

import dataclasses
import datetime
import enum
import uuid

from decimal import Decimal
from pathlib import Path
from typing import Optional

import numpy
import pandas
import pytest

from configtree import (Configuration, NULL, Mapping, Properties, Scalar, Sequence, Set,
                        SetEncoding, Serializer, SerializerResolutionError, ShapeMismatchError,
                        NullPolicyViolation, register_serializable_type, remove_serializable_type)
from configtree.serializers import (BooleanSerializer, ConfigurationSerializer, EnumSerializer,
                                    FloatSerializer, IntegerSerializer, SerializerResolver,
                                    StringSerializer)


class Level(enum.Enum):
    LOW = 'low'
    HIGH = 'high'


@dataclasses.dataclass(frozen=True)
class Interval:
    low: float = 0.0
    high: float = 1.0


class Animal(Configuration):
    name: str = 'rex'


class Dog(Animal):
    tricks: int = 3


class Kennel(Configuration):
    pet: Animal
    intervals: list[Interval]


class Opaque:
    pass


@pytest.fixture
def resolver() -> SerializerResolver:
    return Properties().serializers


@pytest.fixture
def complex_type():
    register_serializable_type(complex,
                               lambda value: [value.real, value.imag],
                               lambda data: complex(*data))
    yield complex
    remove_serializable_type(complex)


class UpperStringSerializer(Serializer):

    def serialize(self, value):
        return Scalar(value.upper())

    def deserialize(self, node):
        return node.value.lower()


# ========== ========== ========== ========== Scalars
class TestScalarSerializers:
    """Strict scalar conversions."""

    def test_boolean(self, resolver: SerializerResolver) -> None:
        serializer = resolver.resolve(bool)

        assert isinstance(serializer, BooleanSerializer)
        assert serializer.serialize(True) == Scalar(True)
        assert serializer.deserialize(Scalar(False)) is False

        with pytest.raises(ShapeMismatchError):
            serializer.deserialize(Scalar(1))

    def test_integer_rejects_booleans_and_floats(self, resolver: SerializerResolver) -> None:
        serializer = resolver.resolve(int)

        assert serializer.deserialize(Scalar(42)) == 42

        with pytest.raises(ShapeMismatchError):
            serializer.deserialize(Scalar(True))

        with pytest.raises(ShapeMismatchError):
            serializer.deserialize(Scalar(1.5))

    def test_numpy_integer_range(self, resolver: SerializerResolver) -> None:
        serializer = resolver.resolve(numpy.int8)

        assert isinstance(serializer, IntegerSerializer)
        assert serializer.serialize(numpy.int8(-5)) == Scalar(-5)
        assert serializer.deserialize(Scalar(127)) == numpy.int8(127)

        with pytest.raises(ShapeMismatchError):
            serializer.deserialize(Scalar(128))

    def test_float_accepts_integers(self, resolver: SerializerResolver) -> None:
        serializer = resolver.resolve(float)

        assert isinstance(serializer, FloatSerializer)
        assert serializer.deserialize(Scalar(3)) == 3.0
        assert isinstance(serializer.deserialize(Scalar(3)), float)

        with pytest.raises(ShapeMismatchError):
            serializer.deserialize(Scalar(False))

    def test_string(self, resolver: SerializerResolver) -> None:
        serializer = resolver.resolve(str)

        assert isinstance(serializer, StringSerializer)
        assert serializer.deserialize(Scalar('text')) == 'text'

        with pytest.raises(ShapeMismatchError):
            serializer.deserialize(Scalar(1))

    def test_scalar_rejects_containers(self, resolver: SerializerResolver) -> None:
        with pytest.raises(ShapeMismatchError):
            resolver.resolve(int).deserialize(Sequence([Scalar(1)]))

        with pytest.raises(ShapeMismatchError):
            resolver.resolve(str).deserialize(Mapping())

    @pytest.mark.parametrize('signature, value, text', [
        (Decimal, Decimal('1.10'), '1.10'),
        (datetime.date, datetime.date(2024, 2, 29), '2024-02-29'),
        (datetime.time, datetime.time(13, 30), '13:30:00'),
        (datetime.datetime, datetime.datetime(2024, 1, 2, 3, 4, 5), '2024-01-02T03:04:05'),
        (uuid.UUID, uuid.UUID(int=1), '00000000-0000-0000-0000-000000000001'),
        (Path, Path('a') / 'b', str(Path('a') / 'b')),
    ])
    def test_text_forms(self, resolver: SerializerResolver, signature, value, text) -> None:
        serializer = resolver.resolve(signature)

        assert serializer.serialize(value) == Scalar(text)
        assert serializer.deserialize(Scalar(text)) == value

    def test_timedelta(self, resolver: SerializerResolver) -> None:
        serializer = resolver.resolve(datetime.timedelta)
        value = datetime.timedelta(days=1, seconds=90)

        node = serializer.serialize(value)

        assert isinstance(node.value, str)
        assert serializer.deserialize(node) == value

    def test_pandas_temporal(self, resolver: SerializerResolver) -> None:
        stamp = pandas.Timestamp('2024-05-01 12:00:00')
        delta = pandas.Timedelta(hours=5)

        assert resolver.resolve(pandas.Timestamp).deserialize(Scalar(stamp.isoformat())) == stamp
        assert resolver.resolve(pandas.Timedelta).deserialize(Scalar(delta.isoformat())) == delta

    def test_decimal_accepts_numbers(self, resolver: SerializerResolver) -> None:
        assert resolver.resolve(Decimal).deserialize(Scalar(2)) == Decimal('2')

    def test_unparsable_text(self, resolver: SerializerResolver) -> None:
        with pytest.raises(ShapeMismatchError):
            resolver.resolve(datetime.date).deserialize(Scalar('yesterday'))

        with pytest.raises(ShapeMismatchError):
            resolver.resolve(Decimal).deserialize(Scalar('many'))

    def test_builtins_are_shared(self) -> None:
        assert Properties().serializers.resolve(int) is Properties().serializers.resolve(int)


# ========== ========== ========== ========== Enums and custom types
class TestEnumAndCustom:
    """Enums by name and registered custom types."""

    def test_enum_by_name(self, resolver: SerializerResolver) -> None:
        serializer = resolver.resolve(Level)

        assert isinstance(serializer, EnumSerializer)
        assert serializer.serialize(Level.HIGH) == Scalar('HIGH')
        assert serializer.deserialize(Scalar('LOW')) is Level.LOW

    def test_unknown_enum_name_lists_members(self, resolver: SerializerResolver) -> None:
        with pytest.raises(ShapeMismatchError, match='LOW, HIGH'):
            resolver.resolve(Level).deserialize(Scalar('MEDIUM'))

    def test_custom_type(self, complex_type) -> None:
        serializer = Properties().serializers.resolve(complex)

        assert serializer.serialize(1 + 2j) == Sequence([Scalar(1.0), Scalar(2.0)])
        assert serializer.deserialize(Sequence([Scalar(1.0), Scalar(2.0)])) == 1 + 2j

    def test_custom_type_removed_after_resolution(self, complex_type) -> None:
        serializer = Properties().serializers.resolve(complex)
        remove_serializable_type(complex)

        with pytest.raises(SerializerResolutionError):
            serializer.serialize(1j)

    def test_collections_cannot_be_registered(self) -> None:
        with pytest.raises(TypeError):
            register_serializable_type(list[int], list, list)

        with pytest.raises(TypeError):
            register_serializable_type(Animal, str, str)


# ========== ========== ========== ========== Collections
class TestCollections:
    """Sequences, sets and maps."""

    def test_list(self, resolver: SerializerResolver) -> None:
        serializer = resolver.resolve(list[int])

        assert serializer.serialize([1, 2]) == Sequence([Scalar(1), Scalar(2)])
        assert serializer.deserialize(Sequence([Scalar(3)])) == [3]

    def test_tuple(self, resolver: SerializerResolver) -> None:
        serializer = resolver.resolve(tuple[str, ...])

        assert serializer.deserialize(Sequence([Scalar('a'), Scalar('b')])) == ('a', 'b')

    def test_set_as_sorted_sequence(self, resolver: SerializerResolver) -> None:
        node = resolver.resolve(set[int]).serialize({3, 1, 2})

        assert type(node) is Sequence
        assert node == Sequence([Scalar(1), Scalar(2), Scalar(3)])

    def test_set_encoding(self) -> None:
        resolver = Properties(set_encoding=SetEncoding.SET).serializers
        node = resolver.resolve(frozenset[str]).serialize(frozenset({'b', 'a'}))

        assert isinstance(node, Set)
        assert resolver.resolve(frozenset[str]).deserialize(node) == frozenset({'a', 'b'})

    def test_set_of_aggregates_stays_a_sequence(self) -> None:
        resolver = Properties(set_encoding=SetEncoding.SET).serializers
        node = resolver.resolve(frozenset[Interval]).serialize(frozenset({Interval()}))

        assert type(node) is Sequence

    def test_set_of_aggregates_in_canonical_order(self, resolver: SerializerResolver) -> None:
        value = frozenset({Interval(2.0, 3.0), Interval(0.0, 1.0), Interval(1.0, 1.5)})

        node = resolver.resolve(frozenset[Interval]).serialize(value)

        assert [item['low'] for item in node.items] == [Scalar(0.0), Scalar(1.0), Scalar(2.0)]

    def test_nested_collections(self, resolver: SerializerResolver) -> None:
        serializer = resolver.resolve(dict[str, list[int]])
        value = {'a': [1, 2], 'b': []}

        assert serializer.deserialize(serializer.serialize(value)) == value

    def test_map_with_enum_and_int_keys(self, resolver: SerializerResolver) -> None:
        by_level = resolver.resolve(dict[Level, int])
        by_number = resolver.resolve(dict[int, str])

        assert by_level.serialize({Level.LOW: 1}) == Mapping({'LOW': Scalar(1)})
        assert by_level.deserialize(Mapping({'HIGH': Scalar(2)})) == {Level.HIGH: 2}
        assert by_number.deserialize(Mapping({7: Scalar('seven')})) == {7: 'seven'}

    def test_collection_shape_mismatch_has_path(self, resolver: SerializerResolver) -> None:
        with pytest.raises(ShapeMismatchError) as info:
            resolver.resolve(list[int]).deserialize(Sequence([Scalar(1), Scalar('two')]))

        assert info.value.path == (1,)

        with pytest.raises(ShapeMismatchError):
            resolver.resolve(list[int]).deserialize(Scalar(1))

    def test_null_elements_dropped_by_default(self, resolver: SerializerResolver) -> None:
        serializer = resolver.resolve(list[Optional[str]])

        assert serializer.serialize(['a', None]) == Sequence([Scalar('a')])
        assert serializer.deserialize(Sequence([NULL, Scalar('b')])) == ['b']

    def test_null_elements_kept_when_enabled(self) -> None:
        serializer = Properties(output_nulls=True, input_nulls=True).serializers.resolve(list[Optional[str]])

        assert serializer.serialize(['a', None]) == Sequence([Scalar('a'), NULL])
        assert serializer.deserialize(Sequence([NULL, Scalar('b')])) == [None, 'b']

    def test_null_element_in_primitive_slot(self) -> None:
        serializer = Properties(input_nulls=True).serializers.resolve(list[int])

        with pytest.raises(NullPolicyViolation) as info:
            serializer.deserialize(Sequence([Scalar(1), NULL]))

        assert info.value.path == (1,)

    def test_null_map_values(self) -> None:
        serializer = Properties(output_nulls=True, input_nulls=True).serializers.resolve(dict[str, Optional[int]])

        assert serializer.serialize({'a': None}) == Mapping({'a': NULL})
        assert serializer.deserialize(Mapping({'a': NULL})) == {'a': None}

        with pytest.raises(NullPolicyViolation):
            Properties(input_nulls=True).serializers.resolve(dict[str, int]).deserialize(Mapping({'a': NULL}))


# ========== ========== ========== ========== Resolution
class TestResolution:
    """Resolution order and failures."""

    def test_override_wins(self) -> None:
        override = UpperStringSerializer(str)
        resolver = Properties(serializer_overrides={str: override}).serializers

        assert resolver.resolve(str) is override
        assert resolver.resolve(list[str]).serialize(['a']) == Sequence([Scalar('A')])

    def test_override_of_parameterized_signature(self) -> None:
        override = UpperStringSerializer(list[str])
        resolver = Properties(serializer_overrides={list[str]: override}).serializers

        assert resolver.resolve(list[str]) is override
        assert resolver.resolve(list[int]) is not override

    def test_overrides_are_read_only(self) -> None:
        properties = Properties(serializer_overrides={str: UpperStringSerializer(str)})

        with pytest.raises(TypeError):
            properties.serializer_overrides[int] = UpperStringSerializer(int)

    def test_aggregate_serializer(self, resolver: SerializerResolver) -> None:
        serializer = resolver.resolve(Interval)

        assert isinstance(serializer, ConfigurationSerializer)
        assert serializer.serialize(Interval(1.0, 2.0)) == Mapping({'low': Scalar(1.0), 'high': Scalar(2.0)})
        assert serializer.deserialize(Mapping({'high': Scalar(5.0)})) == Interval(0.0, 5.0)

    def test_static_resolution_drops_subclass_state(self, resolver: SerializerResolver) -> None:
        # declared Animal, holding a Dog: only Animal's components are written
        node = resolver.resolve(Animal).serialize(Dog(name='fido', tricks=9))

        assert node == Mapping({'name': Scalar('fido')})
        assert type(resolver.resolve(Animal).deserialize(node)) is Animal

    def test_serializers_cached_per_signature(self, resolver: SerializerResolver) -> None:
        assert resolver.resolve(list[int]) is resolver.resolve(list[int])
        assert resolver.resolve(Optional[list[int]]) is resolver.resolve(list[int])

    def test_unresolvable_signature(self, resolver: SerializerResolver) -> None:
        with pytest.raises(SerializerResolutionError):
            resolver.resolve(Opaque)

        with pytest.raises(SerializerResolutionError):
            resolver.resolve(list)

    def test_resolution_error_is_a_type_error(self, resolver: SerializerResolver) -> None:
        with pytest.raises(TypeError):
            resolver.resolve(Opaque)

    def test_component_serializers(self, resolver: SerializerResolver) -> None:
        from configtree import describe

        descriptor = describe(Kennel)

        assert isinstance(resolver.for_component(descriptor['pet']), ConfigurationSerializer)
        assert resolver.for_component(descriptor['intervals']) is resolver.resolve(list[Interval])
