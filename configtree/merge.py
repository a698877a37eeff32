#  -*- coding: utf-8 -*-
"""
Reconciliation of a default instance with a previously persisted tree.

``merge`` is the lenient sibling of ``decode`` used by ``update``. Every
component present and type-compatible in the persisted tree overrides the
default; absent components, nulls treated as absent, and values whose shape no
longer matches the declared type keep the default. Nested aggregates are
merged field by field instead of being replaced as a whole, so a partially
filled section keeps the defaults of its missing keys.

Keys of the persisted tree with no matching component are obsolete; they have
nothing to merge into and disappear from the re-encoded tree.
"""

from __future__ import annotations

import copy
import logging

# ---------- ---------- ---------- ---------- ---------- ---------- typing
from typing import Any

from .converter import DEFAULT_PROPERTIES, accepts_null
from .descriptor import TypeDescriptor
from .errors import ConfigurationError, ShapeMismatchError
from .nodes import Mapping, Node, Null
from .properties import Properties
from .serializers import ConfigurationSerializer
from .typeinfo import type_name


logger = logging.getLogger(__name__)


def merge(node: Node, descriptor: TypeDescriptor, properties: Properties | None = None, base: Any = None) -> Any:
    """
    Merge a persisted tree into ``base``.

    Parameters
    ----------
    node : Node
        The persisted tree.
    descriptor : TypeDescriptor
        Descriptor of the current type.
    properties : Properties, optional
        Conversion options.
    base : object, optional
        The instance providing the defaults; ``descriptor.new_default()``
        when omitted. Class-like bases are updated in place.

    Returns
    -------
    object
        The merged instance.

    Raises
    ------
    NullPolicyViolation
        If ``input_nulls`` is set and a null targets a non-nullable slot.
    """
    properties = properties or DEFAULT_PROPERTIES
    resolver = properties.serializers

    if base is None:
        base = descriptor.new_default()

    if not isinstance(node, Mapping):
        logger.warning(f"Persisted {node.kind} for {type_name(descriptor.type)} ignored, "
                       f"a mapping was expected")
        return base

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
        current = descriptor.value_of(base, component)

        try:
            if isinstance(serializer, ConfigurationSerializer) and isinstance(child, Mapping):
                values[component.name] = merge(child, serializer.descriptor, properties, copy.deepcopy(current))
            else:
                values[component.name] = serializer.deserialize(child)

        except ShapeMismatchError as error:
            # incompatible values keep the default
            logger.warning(f"Persisted value of '{key}' kept at its default: {error}")

        except ConfigurationError as error:
            raise error.prefixed(key)

    return descriptor.build(values, base, key_of=properties.format_name, lenient=True)


__all__ = [
    'merge',
]
