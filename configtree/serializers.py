#  -*- coding: utf-8 -*-
"""
Bidirectional converters between typed values and tree nodes.

A ``Serializer`` converts values of one declared type signature to a
``Node`` and back. Resolution is static: a serializer is chosen from the
declared signature of a component, never from the runtime type of a value.
A field declared with a configuration type but holding an instance of a
richer subclass is therefore serialized with the declared type's components
only.

``SerializerResolver.resolve`` looks, in order, for:

1. a user override registered in ``Properties.serializer_overrides`` for the
   exact signature,
2. a built-in serializer for the scalar, enum and custom-serializable
   categories,
3. a configuration serializer for nested configuration types,
4. a collection or map serializer, built by resolving the element, key and
   value signatures recursively.

Serializers for fixed scalar types are immutable and shared; the others are
built on demand and cached per signature by the resolver.
"""

from __future__ import annotations

import copy
import datetime
import decimal
import json
import logging
import threading
import uuid

from abc import ABC, abstractmethod
from pathlib import PurePath

import numpy
import pandas

# ---------- ---------- ---------- ---------- ---------- ---------- typing
from typing import TYPE_CHECKING, Any, Callable

from .descriptor import (AggregateShape, Component, CustomShape, MappingShape, OverrideShape,
                         ScalarShape, SequenceShape, Shape, TypeDescriptor, shape_of)
from .errors import (ConfigurationError, NullPolicyViolation, SerializerResolutionError,
                     ShapeMismatchError, TypeDiscoveryError)
from .nodes import NULL, Mapping, Node, Null, Scalar, Sequence, Set, from_python, strip_comments
from .typeinfo import custom_type_process, is_boolean_type, is_integral_type, is_primitive_type, type_name

if TYPE_CHECKING:
    from .properties import Properties


logger = logging.getLogger(__name__)


def expect(node: Node, node_type: type[Node], signature: Any) -> None:
    """Raise ``ShapeMismatchError`` unless ``node`` is a ``node_type``."""
    if not isinstance(node, node_type):
        raise ShapeMismatchError(f"Expected a {node_type.kind} for {type_name(signature)}, "
                                 f"found a {node.kind}")


class Serializer(ABC):
    """Converter between values of ``signature`` and tree nodes."""

    # ========== ========== ========== ========== ========== special methods
    def __init__(self, signature: Any) -> None:
        self._signature = signature

    def __repr__(self) -> str:
        return f'{type(self).__name__}({type_name(self._signature)})'

    # ========== ========== ========== ========== ========== public methods
    @abstractmethod
    def serialize(self, value: Any) -> Node:
        ...

    @abstractmethod
    def deserialize(self, node: Node) -> Any:
        ...

    def merge(self, node: Node, base: Any) -> Any:
        """Deserialize ``node`` on top of ``base``; only aggregates merge field by field."""
        return self.deserialize(node)

    # ---------- ---------- ---------- ---------- ---------- properties
    @property
    def signature(self) -> Any:
        return self._signature


# ========== ========== ========== ========== ========== scalars
class BooleanSerializer(Serializer):

    def serialize(self, value: Any) -> Node:
        if not isinstance(value, (bool, numpy.bool_)):
            raise ShapeMismatchError(f"Expected a boolean, given {value!r}")

        return Scalar(bool(value))

    def deserialize(self, node: Node) -> Any:
        expect(node, Scalar, self.signature)

        if not isinstance(node.value, bool):
            raise ShapeMismatchError(f"Expected a boolean, found {node.value!r}")

        return node.value if self.signature is bool else self.signature(node.value)


class IntegerSerializer(Serializer):

    def serialize(self, value: Any) -> Node:
        if isinstance(value, (bool, numpy.bool_)) or not isinstance(value, (int, numpy.integer)):
            raise ShapeMismatchError(f"Expected an integer, given {value!r}")

        return Scalar(int(value))

    def deserialize(self, node: Node) -> Any:
        expect(node, Scalar, self.signature)

        value = node.value

        if isinstance(value, bool) or not isinstance(value, int):
            raise ShapeMismatchError(f"Expected an integer, found {value!r}")

        if self.signature is int:
            return value

        limits = numpy.iinfo(self.signature)

        if not limits.min <= value <= limits.max:
            raise ShapeMismatchError(f"Value {value} does not fit {type_name(self.signature)} "
                                     f"[{limits.min}, {limits.max}]")

        return self.signature(value)


class FloatSerializer(Serializer):

    def serialize(self, value: Any) -> Node:
        if isinstance(value, (bool, numpy.bool_)) or not isinstance(value, (int, float, numpy.number)):
            raise ShapeMismatchError(f"Expected a number, given {value!r}")

        return Scalar(float(value))

    def deserialize(self, node: Node) -> Any:
        expect(node, Scalar, self.signature)

        value = node.value

        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ShapeMismatchError(f"Expected a number, found {value!r}")

        return float(value) if self.signature is float else self.signature(value)


class StringSerializer(Serializer):

    def serialize(self, value: Any) -> Node:
        if not isinstance(value, str):
            raise ShapeMismatchError(f"Expected a string, given {value!r}")

        return Scalar(value)

    def deserialize(self, node: Node) -> Any:
        expect(node, Scalar, self.signature)

        if not isinstance(node.value, str):
            raise ShapeMismatchError(f"Expected a string, found {node.value!r}")

        return node.value


class TextFormSerializer(Serializer):
    """Serializer of scalars persisted through their text form."""

    def __init__(self,
                 signature: Any,
                 to_text: Callable[[Any], str],
                 from_text: Callable[[str], Any],
                 accept_numbers: bool = False) -> None:

        super().__init__(signature)
        self._to_text = to_text
        self._from_text = from_text
        self._accept_numbers = accept_numbers

    def serialize(self, value: Any) -> Node:
        if not isinstance(value, self.signature):
            raise ShapeMismatchError(f"Expected {type_name(self.signature)}, given {value!r}")

        return Scalar(self._to_text(value))

    def deserialize(self, node: Node) -> Any:
        expect(node, Scalar, self.signature)

        text = node.value

        if self._accept_numbers and isinstance(text, (int, float)) and not isinstance(text, bool):
            text = str(text)

        if not isinstance(text, str):
            raise ShapeMismatchError(f"Expected a string for {type_name(self.signature)}, found {text!r}")

        try:
            return self._from_text(text)
        except (ValueError, ArithmeticError) as error:
            raise ShapeMismatchError(f"Cannot parse {text!r} as {type_name(self.signature)}: {error}") from error


class EnumSerializer(TextFormSerializer):
    """Enums are persisted by member name."""

    def __init__(self, signature: Any) -> None:
        super().__init__(signature, lambda member: member.name, self._member)

    def _member(self, name: str) -> Any:
        try:
            return self.signature[name]
        except KeyError:
            names = ', '.join(member.name for member in self.signature)
            raise ValueError(f"expected one of {names}") from None


def _timedelta_text(value: datetime.timedelta) -> str:
    return pandas.Timedelta(value).isoformat()


def _parse_timedelta(text: str) -> datetime.timedelta:
    return pandas.Timedelta(text).to_pytimedelta()


def _parse_decimal(text: str) -> decimal.Decimal:
    try:
        return decimal.Decimal(text)
    except decimal.InvalidOperation as error:
        raise ValueError(f"invalid decimal {text!r}") from error


_SHARED: dict[Any, Serializer] = {
    bool: BooleanSerializer(bool),
    int: IntegerSerializer(int),
    float: FloatSerializer(float),
    str: StringSerializer(str),
    decimal.Decimal: TextFormSerializer(decimal.Decimal, str, _parse_decimal, accept_numbers=True),
    datetime.date: TextFormSerializer(datetime.date, datetime.date.isoformat, datetime.date.fromisoformat),
    datetime.time: TextFormSerializer(datetime.time, datetime.time.isoformat, datetime.time.fromisoformat),
    datetime.datetime: TextFormSerializer(datetime.datetime, datetime.datetime.isoformat,
                                          datetime.datetime.fromisoformat),
    datetime.timedelta: TextFormSerializer(datetime.timedelta, _timedelta_text, _parse_timedelta),
    pandas.Timestamp: TextFormSerializer(pandas.Timestamp, pandas.Timestamp.isoformat, pandas.Timestamp),
    pandas.Timedelta: TextFormSerializer(pandas.Timedelta, pandas.Timedelta.isoformat, pandas.Timedelta),
    uuid.UUID: TextFormSerializer(uuid.UUID, str, uuid.UUID),
}
"""Built-in serializers of fixed types, shared by every resolver"""


def builtin_serializer(shape: ScalarShape) -> Serializer:
    """Return the built-in serializer of a scalar shape."""
    signature = shape.signature

    if signature in _SHARED:
        return _SHARED[signature]

    if shape.category == 'enum':
        return EnumSerializer(signature)

    if shape.category == 'utility' and issubclass(signature, PurePath):
        return TextFormSerializer(signature, str, signature)

    if is_boolean_type(signature):
        return BooleanSerializer(signature)

    if is_integral_type(signature):
        return IntegerSerializer(signature)

    if shape.category == 'floating':
        return FloatSerializer(signature)

    raise SerializerResolutionError(f"No built-in serializer for {type_name(signature)}")


class CustomSerializer(Serializer):
    """Serializer of a type registered with ``register_serializable_type``."""

    def serialize(self, value: Any) -> Node:
        process = self._process()

        try:
            return from_python(process['serialize'](value))
        except (TypeError, ValueError) as error:
            raise ShapeMismatchError(f"Cannot serialize {type_name(self.signature)}: {error}") from error

    def deserialize(self, node: Node) -> Any:
        process = self._process()

        try:
            return process['deserialize'](node.to_python())
        except (TypeError, ValueError, KeyError) as error:
            raise ShapeMismatchError(f"Cannot deserialize {type_name(self.signature)}: {error}") from error

    def _process(self) -> dict[str, Callable[[Any], Any]]:
        try:
            return custom_type_process(self.signature)
        except KeyError:
            raise SerializerResolutionError(f"{type_name(self.signature)} is no longer registered "
                                            f"as serializable type") from None


# ========== ========== ========== ========== ========== containers
class SequenceSerializer(Serializer):
    """Serializer of lists, homogeneous tuples, sets and frozensets."""

    def __init__(self, shape: SequenceShape, element: Serializer, properties: Properties) -> None:
        super().__init__(shape.signature)
        self._shape = shape
        self._element = element
        self._properties = properties

    def serialize(self, value: Any) -> Node:
        items: list[Node] = []
        nulls: list[Node] = []

        for index, item in enumerate(value):

            if item is None:
                if self._properties.output_nulls:
                    # nulls go last so that set ordering stays deterministic
                    (nulls if self._is_set else items).append(NULL)
                continue

            try:
                node = self._element.serialize(item)
            except ConfigurationError as error:
                raise error.prefixed(index)

            # elements have no key path to attach comments to
            items.append(strip_comments(node))

        if not self._is_set:
            return Sequence(items)

        items.sort(key=_set_order)

        if self._properties.set_encoding.value == 'set' and isinstance(self._shape.element, ScalarShape):
            return Set(items + nulls)

        return Sequence(items + nulls)

    def deserialize(self, node: Node) -> Any:
        expect(node, Sequence, self.signature)

        items = []

        for index, item in enumerate(node.items):

            if isinstance(item, Null):

                if not self._properties.input_nulls:
                    continue

                if not self._shape.element_nullable and not _accepts_null(self._shape.element):
                    raise NullPolicyViolation(f"Elements of {type_name(self.signature)} cannot be null",
                                              (index,))
                items.append(None)
                continue

            try:
                items.append(self._element.deserialize(item))
            except ConfigurationError as error:
                raise error.prefixed(index)

        try:
            return self._shape.container(items)
        except TypeError as error:
            raise ShapeMismatchError(f"Cannot build {type_name(self.signature)}: {error}") from error

    @property
    def _is_set(self) -> bool:
        return self._shape.container in (set, frozenset)


class MappingSerializer(Serializer):
    """Serializer of ``dict[K, V]``; keys are stored as scalar values."""

    def __init__(self,
                 shape: MappingShape,
                 key: Serializer,
                 value: Serializer,
                 properties: Properties) -> None:

        super().__init__(shape.signature)
        self._shape = shape
        self._key = key
        self._value = value
        self._properties = properties

    def serialize(self, value: Any) -> Node:
        tree = Mapping()

        for key, item in value.items():

            encoded_key = self._key.serialize(key).to_python()

            if item is None:
                if self._properties.output_nulls:
                    tree.put(encoded_key, NULL)
                continue

            try:
                tree.put(encoded_key, strip_comments(self._value.serialize(item)))
            except ConfigurationError as error:
                raise error.prefixed(encoded_key)

        return tree

    def deserialize(self, node: Node) -> Any:
        expect(node, Mapping, self.signature)

        result = {}

        for encoded_key, item in node.items():

            try:
                key = self._key.deserialize(from_python(encoded_key))
            except ConfigurationError as error:
                raise error.prefixed(encoded_key)

            if isinstance(item, Null):

                if not self._properties.input_nulls:
                    continue

                if not self._shape.value_nullable and not _accepts_null(self._shape.value):
                    raise NullPolicyViolation(f"Values of {type_name(self.signature)} cannot be null",
                                              (encoded_key,))
                result[key] = None
                continue

            try:
                result[key] = self._value.deserialize(item)
            except ConfigurationError as error:
                raise error.prefixed(encoded_key)

        return result


def _set_order(node: Node) -> tuple[str, Any]:
    """Sort key of set elements, independent of hashing."""
    if isinstance(node, Scalar):
        return type(node.value).__name__, node.value

    return node.kind, json.dumps(_canonical(node), sort_keys=True, default=str)


def _canonical(node: Node) -> Any:

    if isinstance(node, Mapping):
        return {str(key): _canonical(item) for key, item in node.items()}

    if isinstance(node, Sequence):
        # nested sets were already sorted when serialized
        return [_canonical(item) for item in node.items]

    return node.to_python()


def _accepts_null(shape: Shape) -> bool:
    return not is_primitive_type(shape.signature)


class ConfigurationSerializer(Serializer):
    """Serializer of nested configuration types, through the converter."""

    def __init__(self, descriptor: TypeDescriptor, properties: Properties) -> None:
        super().__init__(descriptor.type)
        self._descriptor = descriptor
        self._properties = properties

    def serialize(self, value: Any) -> Node:
        from .converter import encode
        return encode(value, self._descriptor, self._properties)

    def deserialize(self, node: Node) -> Any:
        from .converter import decode
        return decode(node, self._descriptor, self._properties)

    def merge(self, node: Node, base: Any) -> Any:
        from .converter import decode

        if base is not None and not self._descriptor.is_record:
            # the enclosing decode may still fail
            base = copy.deepcopy(base)

        return decode(node, self._descriptor, self._properties, base=base)

    @property
    def descriptor(self) -> TypeDescriptor:
        return self._descriptor


# ========== ========== ========== ========== ========== resolution
class SerializerResolver:
    """
    Resolves and caches the serializers of declared type signatures.

    Parameters
    ----------
    properties : Properties
        Options forwarded to container and configuration serializers. The
        overrides of ``properties`` take precedence over everything else.
    """

    # ========== ========== ========== ========== ========== special methods
    def __init__(self, properties: Properties) -> None:
        self._properties = properties
        self._cache: dict[Any, Serializer] = {}
        self._lock = threading.RLock()

    # ========== ========== ========== ========== ========== public methods
    def resolve(self, signature: Any) -> Serializer:
        """
        Return the serializer of a declared type signature.

        Raises
        ------
        SerializerResolutionError
            If no serializer matches ``signature``.
        """
        override = self._override(signature)

        if override is not None:
            return override

        try:
            shape = shape_of(signature, self._properties.field_filter, self._properties.serializer_overrides)
        except TypeDiscoveryError as error:
            raise SerializerResolutionError(f"No serializer for {type_name(signature)}: {error}") from error

        return self.resolve_shape(shape)

    def for_component(self, component: Component) -> Serializer:
        """Return the serializer of a component of a discovered type."""
        if component.shape is None:
            raise SerializerResolutionError(f"Component '{component.name}' was not discovered")

        return self.resolve_shape(component.shape)

    def resolve_shape(self, shape: Shape) -> Serializer:

        override = self._override(shape.signature)

        if override is not None:
            return override

        serializer = self._cache.get(shape.signature)

        if serializer is not None:
            return serializer

        with self._lock:
            serializer = self._cache.get(shape.signature)

            if serializer is None:
                serializer = self._build(shape)
                self._cache[shape.signature] = serializer
                logger.debug(f"Resolved {serializer!r}")

        return serializer

    # ========== ========== ========== ========== ========== private methods
    def _override(self, signature: Any) -> Serializer | None:
        try:
            return self._properties.serializer_overrides.get(signature)
        except TypeError:
            # unhashable signature
            return None

    def _build(self, shape: Shape) -> Serializer:

        if isinstance(shape, CustomShape):
            return CustomSerializer(shape.signature)

        if isinstance(shape, ScalarShape):
            return builtin_serializer(shape)

        if isinstance(shape, OverrideShape):
            raise SerializerResolutionError(f"No override registered for {type_name(shape.signature)}")

        if isinstance(shape, AggregateShape):
            return ConfigurationSerializer(shape.descriptor, self._properties)

        if isinstance(shape, SequenceShape):
            return SequenceSerializer(shape, self.resolve_shape(shape.element), self._properties)

        if isinstance(shape, MappingShape):
            return MappingSerializer(shape,
                                     self.resolve_shape(shape.key),
                                     self.resolve_shape(shape.value),
                                     self._properties)

        raise SerializerResolutionError(f"No serializer for {type_name(shape.signature)}")


__all__ = [
    'Serializer',
    'BooleanSerializer',
    'IntegerSerializer',
    'FloatSerializer',
    'StringSerializer',
    'TextFormSerializer',
    'EnumSerializer',
    'CustomSerializer',
    'SequenceSerializer',
    'MappingSerializer',
    'ConfigurationSerializer',
    'SerializerResolver',
    'builtin_serializer',
]
