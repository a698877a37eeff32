#  -*- coding: utf-8 -*-
"""
Options shared by every conversion, save, load and update.

``Properties`` is an immutable snapshot; derive modified copies with
``evolve``. Serializers resolved for a ``Properties`` instance are cached on
it, so reuse one instance for repeated operations.

Examples
--------
>>> properties = Properties(output_nulls=True, name_formatter=NameFormatters.UPPER_UNDERSCORE)
>>> properties.format_name('maxPlayers')
'MAX_PLAYERS'
>>> properties.evolve(output_nulls=False).output_nulls
False
"""

from __future__ import annotations

import dataclasses
import enum

from dataclasses import dataclass, field
from functools import cached_property
from types import MappingProxyType

# ---------- ---------- ---------- ---------- ---------- ---------- typing
from typing import TYPE_CHECKING, Any, Callable, Mapping

from .descriptor import Component, TypeDescriptor, default_field_filter, describe

if TYPE_CHECKING:
    from .serializers import Serializer, SerializerResolver


class NameFormatters(enum.Enum):
    """
    Ready-to-use name formatters, mapping component names to tree keys.

    ``IDENTITY`` keeps the name, ``LOWER_UNDERSCORE`` turns ``myField`` into
    ``my_field``, ``UPPER_UNDERSCORE`` turns ``myField`` and ``my_field`` into
    ``MY_FIELD``, and ``LOWER_KEBAB`` turns ``myField`` and ``my_field`` into
    ``my-field``.
    """

    IDENTITY = 'identity'
    LOWER_UNDERSCORE = 'lower_underscore'
    UPPER_UNDERSCORE = 'upper_underscore'
    LOWER_KEBAB = 'lower_kebab'

    def __call__(self, name: str) -> str:

        if self is NameFormatters.IDENTITY:
            return name

        if self is NameFormatters.UPPER_UNDERSCORE:
            builder = []

            for char in name:
                if char.islower():
                    builder.append(char.upper())
                elif char.isupper():
                    builder.append('_' + char)
                else:
                    builder.append(char)

            return ''.join(builder)

        builder = []

        for char in name:
            if char.isupper():
                builder.append('_' + char.lower())
            else:
                builder.append(char)

        formatted = ''.join(builder)

        if self is NameFormatters.LOWER_KEBAB:
            return formatted.replace('_', '-')

        return formatted


class SetEncoding(enum.Enum):
    """How sets are represented in the tree."""

    SEQUENCE = 'sequence'
    """As ordinary sequences, understood by every codec"""

    SET = 'set'
    """As ``Set`` nodes, for codecs with a set syntax (scalar elements only)"""


@dataclass(frozen=True)
class Properties:
    """
    Immutable options of configtree operations.

    Attributes
    ----------
    output_nulls : bool
        Emit explicit nulls for ``None`` values. When False (the default), keys
        holding ``None`` are omitted together with their comments, and
        ``None`` elements of collections are dropped.
    input_nulls : bool
        Honour explicit nulls of persisted trees. When False (the default),
        a null is treated as a missing key and the default survives.
    name_formatter : callable
        Maps component names to keys, on encode and decode alike.
    field_filter : callable
        ``Component -> bool``; components rejected are not serialized. The
        default keeps every component not marked as ignored.
    serializer_overrides : mapping
        Exact type signature to ``Serializer``, taking precedence over the
        built-in serializers.
    set_encoding : SetEncoding
        Representation of sets.
    header, footer : str or None
        Text emitted by text codecs before and after the tree.
    """

    output_nulls: bool = False
    input_nulls: bool = False
    name_formatter: Callable[[str], str] = NameFormatters.IDENTITY
    field_filter: Callable[[Component], bool] = default_field_filter
    serializer_overrides: Mapping[Any, Serializer] = field(default_factory=dict)
    set_encoding: SetEncoding = SetEncoding.SEQUENCE
    header: str | None = None
    footer: str | None = None

    def __post_init__(self) -> None:
        overrides = MappingProxyType(dict(self.serializer_overrides))
        object.__setattr__(self, 'serializer_overrides', overrides)

    # ========== ========== ========== ========== ========== public methods
    def format_name(self, name: str) -> str:
        return self.name_formatter(name)

    def evolve(self, **changes: Any) -> Properties:
        """Return a copy with ``changes`` applied."""
        return dataclasses.replace(self, **changes)

    def describe(self, cls: type) -> TypeDescriptor:
        """Descriptor of ``cls`` under the field filter and overrides of these properties."""
        return describe(cls, self.field_filter, self.serializer_overrides)

    # ---------- ---------- ---------- ---------- ---------- properties
    @cached_property
    def serializers(self) -> SerializerResolver:
        """Serializer resolver bound to these properties."""
        from .serializers import SerializerResolver

        return SerializerResolver(self)


__all__ = [
    'NameFormatters',
    'SetEncoding',
    'Properties',
]
