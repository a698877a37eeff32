#  -*- coding: utf-8 -*-
"""
Conversion of configuration instances to trees and back.

``encode`` walks the components of a descriptor in order and emits one key
per component, with the component's comment attached to the key. ``decode``
is its inverse: keys are looked up with the same name formatter, absent keys
leave the component at its default (or at the value of ``base``), and nulls
follow the null-input policy of the ``Properties``.

Every failure is raised with the key path of the failing value and aborts the
whole conversion; no partially decoded instance is ever returned.
"""

from __future__ import annotations

# ---------- ---------- ---------- ---------- ---------- ---------- typing
from typing import Any

from .descriptor import Component, TypeDescriptor
from .errors import ConfigurationError, NullPolicyViolation, ShapeMismatchError
from .nodes import NULL, Mapping, Node, Null
from .properties import Properties
from .serializers import ConfigurationSerializer
from .typeinfo import type_name


DEFAULT_PROPERTIES = Properties()


def encode(instance: Any, descriptor: TypeDescriptor, properties: Properties | None = None) -> Mapping:
    """
    Convert a configuration instance into a ``Mapping`` tree.

    Parameters
    ----------
    instance : object
        Instance of ``descriptor.type`` (or of a subclass, whose extra state
        is not serialized).
    descriptor : TypeDescriptor
        Descriptor of the declared type.
    properties : Properties, optional
        Conversion options.

    Returns
    -------
    Mapping
        A fresh tree; keys follow the component order, each carrying the
        component's comment lines.

    Raises
    ------
    ConfigurationError
        If a value cannot be serialized. The error path locates the value.
    """
    properties = properties or DEFAULT_PROPERTIES
    resolver = properties.serializers

    if not isinstance(instance, descriptor.type):
        raise ShapeMismatchError(f"Expected an instance of {type_name(descriptor.type)}, "
                                 f"given {type(instance).__name__}")

    tree = Mapping()

    for component in descriptor:

        key = properties.format_name(component.name)

        if key in tree:
            raise ConfigurationError(f"Name formatter maps two components of "
                                     f"{type_name(descriptor.type)} to key '{key}'")

        value = descriptor.value_of(instance, component)

        if value is None:
            if properties.output_nulls:
                tree.put(key, NULL, component.comment)
            continue

        try:
            node = resolver.for_component(component).serialize(value)
        except ConfigurationError as error:
            raise error.prefixed(key)

        tree.put(key, node, component.comment)

    return tree


def decode(node: Node,
           descriptor: TypeDescriptor,
           properties: Properties | None = None,
           base: Any = None) -> Any:
    """
    Convert a ``Mapping`` tree into a configuration instance.

    Parameters
    ----------
    node : Node
        The tree; must be a ``Mapping``.
    descriptor : TypeDescriptor
        Descriptor of the type to build.
    properties : Properties, optional
        Conversion options.
    base : object, optional
        Instance providing the values of absent components. Nested aggregates
        present in the tree are decoded on top of the corresponding values of
        ``base``, field by field. A class-like base is updated in place, and
        only once every component has been decoded: a failed decode leaves it
        untouched.

    Returns
    -------
    object
        The decoded instance.

    Raises
    ------
    ShapeMismatchError
        If a node's kind does not match the declared type.
    NullPolicyViolation
        If ``input_nulls`` is set and a null targets a non-nullable slot.
    """
    properties = properties or DEFAULT_PROPERTIES
    resolver = properties.serializers

    if not isinstance(node, Mapping):
        raise ShapeMismatchError(f"Expected a mapping for {type_name(descriptor.type)}, found a {node.kind}")

    values: dict[str, Any] = {}

    for component in descriptor:

        key = properties.format_name(component.name)

        if key not in node:
            continue

        child = node[key]

        if isinstance(child, Null):
            if accepts_null(component, properties, key):
                values[component.name] = None
            continue

        serializer = resolver.for_component(component)

        try:
            if base is not None:
                values[component.name] = serializer.merge(child, descriptor.value_of(base, component))
            else:
                values[component.name] = serializer.deserialize(child)

        except ConfigurationError as error:
            raise error.prefixed(key)

    return descriptor.build(values, base, key_of=properties.format_name)


def accepts_null(component: Component, properties: Properties, key: Any) -> bool:
    """
    Apply the null-input policy to an explicit null found at ``key``.

    Returns True when the component must be set to None, False when the null
    is treated as an absent key.
    """
    if not properties.input_nulls:
        return False

    if not component.nullable:
        raise NullPolicyViolation(f"Component '{component.name}' of {type_name(component.owner)} "
                                  f"cannot be null", (key,))

    return True


def unknown_keys(node: Mapping, descriptor: TypeDescriptor, properties: Properties | None = None) -> list[tuple]:
    """
    Key paths of ``node`` with no matching component.

    Nested aggregates are inspected recursively through keys; collections are
    not.
    """
    properties = properties or DEFAULT_PROPERTIES
    resolver = properties.serializers

    by_key = {properties.format_name(component.name): component for component in descriptor}
    paths: list[tuple] = []

    for key, child in node.items():

        component = by_key.get(key)

        if component is None:
            paths.append((key,))
            continue

        if component.is_aggregate and isinstance(child, Mapping):
            nested = resolver.for_component(component)

            if isinstance(nested, ConfigurationSerializer):
                paths.extend((key, *path) for path in unknown_keys(child, nested.descriptor, properties))

    return paths


__all__ = [
    'encode',
    'decode',
    'accepts_null',
    'unknown_keys',
]
