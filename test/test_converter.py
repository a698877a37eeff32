#  -*- coding: utf-8 -*-
"""
Test suite for the Object ⇄ Tree Converter.

Tests cover:
- Round-trips of class-like and record-like instances
- Key order and inheritance ordering
- The null matrix: output_nulls and input_nulls
- Absent keys, shape mismatches and error paths
- Name formatters applied symmetrically
- Decoding on top of a base instance
- Values rejected by property parsers
"""

from __future__ import annotations

import dataclasses
import datetime
import enum

from decimal import Decimal
from pathlib import Path
from typing import Optional

import pytest

from configtree import (Configuration, ConfigProperty, ConfigurationError, NULL, Mapping, NameFormatters,
                        NullPolicyViolation, Properties, Scalar, Sequence, ShapeMismatchError, component,
                        config_property, decode, describe, encode)


class Mode(enum.Enum):
    FAST = 1
    SAFE = 2


@dataclasses.dataclass(frozen=True)
class Endpoint:
    host: str = component(default='localhost', comment='Host name')
    port: int = 80


class Settings(Configuration):
    name: str = ConfigProperty(default='app', comment='Application name')
    retries: int = 3
    ratio: float = 0.5
    enabled: bool = True
    mode: Mode = Mode.SAFE
    started: datetime.date = datetime.date(2024, 1, 1)
    budget: Decimal = Decimal('9.99')
    home: Path = Path('/tmp')
    tags: list[str] = ConfigProperty(default_factory=lambda: ['a', 'b'])
    limits: dict[str, int] = ConfigProperty(default_factory=dict)
    endpoint: Endpoint = ConfigProperty(default_factory=Endpoint, comment='Remote endpoint')
    mirrors: list[Endpoint] = ConfigProperty(default_factory=list)
    note: Optional[str] = ConfigProperty(default=None, comment='Free text')


class Base(Configuration):
    first: int = 1
    second: int = 2


class Derived(Base):
    third: int = 3
    fourth: int = 4


class CamelCase(Configuration):
    maxPlayers: int = 8
    serverName: str = 'main'


class Clashing(Configuration):
    my_field: int = 1
    myField: int = 2


class Counters(Configuration):
    count: int = 5
    label: Optional[str] = 'label'
    limit: Optional[int] = 10


class Inner(Configuration):
    a: int = 1


class Outer(Configuration):
    inner: Inner = ConfigProperty(default_factory=Inner)
    tags: list[str] = ConfigProperty(default_factory=list)


class Positive(Configuration):
    label: str = 'label'
    retries: int

    @config_property(default=3, comment='Must be positive')
    def retries(self, value):
        if value < 0:
            raise ValueError('retries must be positive')
        return value


# ========== ========== ========== ========== Round-trip
class TestRoundTrip:
    """decode(encode(instance)) == instance."""

    def test_defaults(self) -> None:
        descriptor = describe(Settings)
        instance = Settings()

        assert decode(encode(instance, descriptor), descriptor) == instance

    def test_modified_values(self) -> None:
        descriptor = describe(Settings)
        instance = Settings(name='other',
                            retries=0,
                            mode=Mode.FAST,
                            tags=[],
                            limits={'x': 1},
                            endpoint=Endpoint('example.org', 8080),
                            mirrors=[Endpoint('a', 1), Endpoint('b', 2)],
                            note='hello')

        assert decode(encode(instance, descriptor), descriptor) == instance

    def test_record(self) -> None:
        descriptor = describe(Endpoint)

        assert decode(encode(Endpoint('h', 1), descriptor), descriptor) == Endpoint('h', 1)

    def test_plain_python_form(self) -> None:
        tree = encode(Settings(), describe(Settings))

        assert tree.to_python() == {
            'name': 'app',
            'retries': 3,
            'ratio': 0.5,
            'enabled': True,
            'mode': 'SAFE',
            'started': '2024-01-01',
            'budget': '9.99',
            'home': str(Path('/tmp')),
            'tags': ['a', 'b'],
            'limits': {},
            'endpoint': {'host': 'localhost', 'port': 80},
            'mirrors': [],
        }

    def test_trees_are_fresh(self) -> None:
        descriptor = describe(Settings)
        instance = Settings()

        first = encode(instance, descriptor)
        second = encode(instance, descriptor)

        assert first == second
        assert first is not second
        assert first['endpoint'] is not second['endpoint']


# ========== ========== ========== ========== Ordering
class TestOrdering:
    """Keys follow the component order."""

    def test_inheritance_ordering(self) -> None:
        tree = encode(Derived(), describe(Derived))

        assert list(tree.keys()) == ['first', 'second', 'third', 'fourth']

    def test_keys_are_component_names(self) -> None:
        tree = encode(Settings(note='x'), describe(Settings))

        assert list(tree.keys()) == [c.name for c in describe(Settings)]

    def test_comments_attached(self) -> None:
        tree = encode(Settings(), describe(Settings))

        assert tree.comment('name') == ('Application name',)
        assert tree.comment('retries') == ()
        assert tree['endpoint'].comment('host') == ('Host name',)


# ========== ========== ========== ========== Null matrix
class TestNullMatrix:
    """output_nulls and input_nulls."""

    def test_null_omitted_with_its_comment(self) -> None:
        tree = encode(Settings(), describe(Settings), Properties(output_nulls=False))

        assert 'note' not in tree
        assert tree.comment('note') == ()

    def test_null_emitted_with_its_comment(self) -> None:
        tree = encode(Settings(), describe(Settings), Properties(output_nulls=True))

        assert tree['note'] is NULL
        assert tree.comment('note') == ('Free text',)

    def test_null_input_ignored_by_default(self) -> None:
        tree = Mapping({'label': NULL, 'count': NULL})

        decoded = decode(tree, describe(Counters), Properties(input_nulls=False))

        assert decoded.label == 'label'
        assert decoded.count == 5

    def test_null_input_overrides_default(self) -> None:
        tree = Mapping({'label': NULL, 'limit': NULL})

        decoded = decode(tree, describe(Counters), Properties(input_nulls=True))

        assert decoded.label is None
        assert decoded.limit is None

    def test_null_input_into_primitive_slot(self) -> None:
        with pytest.raises(NullPolicyViolation) as info:
            decode(Mapping({'count': NULL}), describe(Counters), Properties(input_nulls=True))

        assert info.value.path == ('count',)

    def test_null_violation_is_a_value_error(self) -> None:
        with pytest.raises(ValueError):
            decode(Mapping({'count': NULL}), describe(Counters), Properties(input_nulls=True))


# ========== ========== ========== ========== Decode
class TestDecode:
    """Absent keys, mismatches and bases."""

    def test_absent_keys_keep_defaults(self) -> None:
        decoded = decode(Mapping({'retries': Scalar(9)}), describe(Settings))

        assert decoded.retries == 9
        assert decoded.name == 'app'
        assert decoded.endpoint == Endpoint()

    def test_unknown_keys_ignored(self) -> None:
        decoded = decode(Mapping({'unknown': Scalar(1)}), describe(Base))

        assert decoded == Base()

    def test_shape_mismatch(self) -> None:
        with pytest.raises(ShapeMismatchError) as info:
            decode(Mapping({'tags': Scalar('a')}), describe(Settings))

        assert info.value.path == ('tags',)

    def test_nested_error_path(self) -> None:
        tree = Mapping({'mirrors': Sequence([Mapping({'port': Scalar('high')})])})

        with pytest.raises(ShapeMismatchError) as info:
            decode(tree, describe(Settings))

        assert info.value.path == ('mirrors', 0, 'port')
        assert "mirrors.0.port" in str(info.value)

    def test_root_must_be_a_mapping(self) -> None:
        with pytest.raises(ShapeMismatchError):
            decode(Sequence(), describe(Settings))

    def test_decode_on_base(self) -> None:
        base = Settings(retries=7, endpoint=Endpoint('base', 1))

        decoded = decode(Mapping({'endpoint': Mapping({'port': Scalar(2)})}), describe(Settings), base=base)

        # nested aggregates merge field by field
        assert decoded.endpoint == Endpoint('base', 2)
        assert decoded.retries == 7

    def test_failed_decode_leaves_base_untouched(self) -> None:
        base = Settings(retries=7)
        tree = Mapping({'retries': Scalar(1), 'tags': Scalar('not a list')})

        with pytest.raises(ShapeMismatchError):
            decode(tree, describe(Settings), base=base)

        assert base.retries == 7

    def test_failed_decode_leaves_nested_base_untouched(self) -> None:
        base = Outer()
        tree = Mapping({'inner': Mapping({'a': Scalar(5)}), 'tags': Scalar('not a list')})

        with pytest.raises(ShapeMismatchError):
            decode(tree, describe(Outer), base=base)

        assert base.inner.a == 1
        assert base.tags == []

    def test_decode_updates_nested_base(self) -> None:
        base = Outer()

        decoded = decode(Mapping({'inner': Mapping({'a': Scalar(5)})}), describe(Outer), base=base)

        assert decoded is base
        assert base.inner.a == 5


# ========== ========== ========== ========== Parsers
class TestParsers:
    """Values rejected by a property parser."""

    def test_rejected_value_reports_its_key(self) -> None:
        base = Positive(label='kept')
        tree = Mapping({'label': Scalar('new'), 'retries': Scalar(-1)})

        with pytest.raises(ShapeMismatchError) as info:
            decode(tree, describe(Positive), base=base)

        assert info.value.path == ('retries',)
        assert 'retries must be positive' in str(info.value)
        assert base.label == 'kept'

    def test_rejected_value_key_is_formatted(self) -> None:
        properties = Properties(name_formatter=NameFormatters.UPPER_UNDERSCORE)

        with pytest.raises(ShapeMismatchError) as info:
            decode(Mapping({'RETRIES': Scalar(-1)}), describe(Positive), properties)

        assert info.value.path == ('RETRIES',)

    def test_accepted_value(self) -> None:
        decoded = decode(Mapping({'retries': Scalar(5)}), describe(Positive))

        assert decoded.retries == 5


# ========== ========== ========== ========== Encode
class TestEncode:
    """Encoding checks."""

    def test_wrong_instance_type(self) -> None:
        with pytest.raises(ShapeMismatchError):
            encode(Base(), describe(Settings))

    def test_value_error_path(self) -> None:
        instance = Settings()
        instance.limits = {'a': 'not an int'}

        with pytest.raises(ConfigurationError) as info:
            encode(instance, describe(Settings))

        assert info.value.path[0] == 'limits'

    def test_name_formatter_symmetry(self) -> None:
        properties = Properties(name_formatter=NameFormatters.UPPER_UNDERSCORE)
        descriptor = describe(CamelCase)

        tree = encode(CamelCase(maxPlayers=2), descriptor, properties)

        assert list(tree.keys()) == ['MAX_PLAYERS', 'SERVER_NAME']
        assert decode(tree, descriptor, properties) == CamelCase(maxPlayers=2)

    def test_custom_name_formatter(self) -> None:
        properties = Properties(name_formatter=lambda name: f'x-{name}')
        tree = encode(Base(), describe(Base), properties)

        assert list(tree.keys()) == ['x-first', 'x-second']

    def test_formatter_collision(self) -> None:
        properties = Properties(name_formatter=NameFormatters.LOWER_UNDERSCORE)

        with pytest.raises(ConfigurationError, match='my_field'):
            encode(Clashing(), describe(Clashing), properties)
