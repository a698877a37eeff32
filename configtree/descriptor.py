#  -*- coding: utf-8 -*-
"""
Discovery of the serializable shape of configuration types.

``describe(cls)`` walks the components of a class-like (``Configuration``) or
record-like (dataclass) type, ancestors first, and produces a validated,
immutable ``TypeDescriptor``. Every component's declared type is reduced to a
``Shape``:

- ``ScalarShape``: one of the built-in scalar categories or an enum,
- ``OverrideShape``: a type handled by a user serializer override,
- ``CustomShape``: a type registered with ``register_serializable_type``,
- ``SequenceShape``: ``list[X]``, ``tuple[X, ...]``, ``set[X]``, ``frozenset[X]``,
- ``MappingShape``: ``dict[K, V]`` with a scalar or enum key,
- ``AggregateShape``: a nested configuration type and its descriptor.

Anything else is rejected with ``TypeDiscoveryError`` before any instance is
touched: open or raw types, unions other than ``Optional``, cyclic type
graphs, shadowed component names and class-like types that cannot be built
without arguments.

Descriptors are cached per ``(type, field_filter, overrides)``, where
``overrides`` are the signatures of the user serializer overrides in effect:
an overridden signature is accepted as is, whatever its type. Discovery runs
under a process-wide lock, so concurrent first uses of a type observe one
descriptor.
Failed discoveries are not cached: every later use walks the type again and
raises again.
"""

from __future__ import annotations

import copy
import dataclasses
import inspect
import logging
import threading
import types
import typing

from dataclasses import dataclass, field

# ---------- ---------- ---------- ---------- ---------- ---------- typing
from typing import Any, Callable, Iterable, Iterator, TypeAlias

import pandas

from rich.text import Text
from rich.console import RenderableType

from .comments import Comment
from .configuration import (MISSING, METADATA_KEY, ConfigProperty,
                            is_class_configuration_type, is_classvar, is_configuration_type,
                            is_record_type, own_annotations)
from .display import Displayable
from .errors import ShapeMismatchError, TypeDiscoveryError
from .typeinfo import (check_not_wildcard, is_nullable, is_serializable_type,
                       scalar_category, type_name, unwrap_optional, zero_value)


logger = logging.getLogger(__name__)

FieldFilter: TypeAlias = Callable[['Component'], bool]


# ========== ========== ========== ========== ========== shapes
@dataclass(frozen=True)
class Shape:
    """Validated, serializable shape of a declared type (``Optional`` removed)."""
    signature: Any

    def describe(self) -> str:
        return type_name(self.signature)


@dataclass(frozen=True)
class ScalarShape(Shape):
    category: str


@dataclass(frozen=True)
class OverrideShape(Shape):
    ...


@dataclass(frozen=True)
class CustomShape(Shape):
    ...


@dataclass(frozen=True)
class SequenceShape(Shape):
    container: type
    element: Shape
    element_nullable: bool


@dataclass(frozen=True)
class MappingShape(Shape):
    key: Shape
    value: Shape
    value_nullable: bool


@dataclass(frozen=True)
class AggregateShape(Shape):
    descriptor: TypeDescriptor = field(compare=False, repr=False)


# ========== ========== ========== ========== ========== components
@dataclass(frozen=True)
class Component:
    """
    One serializable field of a configuration type.

    Identity is ``(owner, name)``. ``annotation`` is the declared type as
    written (resolved), ``shape`` its validated reduction; ``shape`` is None
    for components discarded by the field filter, whose types are not
    validated.
    """
    name: str
    owner: type
    annotation: Any = field(compare=False)
    comment: Comment = field(default=(), compare=False)
    ignored: bool = field(default=False, compare=False)
    shape: Shape | None = field(default=None, compare=False, repr=False)

    @property
    def signature(self) -> Any:
        """Declared type without ``Optional``."""
        return unwrap_optional(self.annotation)[0]

    @property
    def nullable(self) -> bool:
        return is_nullable(self.annotation)

    @property
    def is_aggregate(self) -> bool:
        return isinstance(self.shape, AggregateShape)


def default_field_filter(component: Component) -> bool:
    """Default field filter: keep every component not marked as ignored."""
    return not component.ignored


# ========== ========== ========== ========== ========== descriptors
class TypeDescriptor(Displayable):
    """
    Validated shape description of a configuration type.

    Attributes
    ----------
    type : type
        The described configuration type.
    components : tuple of Component
        Serializable components, ancestors first, declaration order within a
        type.
    ignored : tuple of Component
        Components discarded by the field filter.
    is_record : bool
        True for dataclasses, built through their all-arguments constructor.
    """

    # ========== ========== ========== ========== ========== special methods
    def __init__(self,
                 type_: type,
                 components: tuple[Component, ...],
                 ignored: tuple[Component, ...],
                 field_filter: FieldFilter,
                 defaults: dict[str, Callable[[], Any]]) -> None:

        self._type = type_
        self._components = components
        self._by_name = {component.name: component for component in components}
        self._ignored = ignored
        self._field_filter = field_filter
        self._defaults = defaults

    def __iter__(self) -> Iterator[Component]:
        return iter(self._components)

    def __len__(self) -> int:
        return len(self._components)

    def __contains__(self, name: str) -> bool:
        return name in self._by_name

    def __getitem__(self, name: str) -> Component:
        return self._by_name[name]

    def __repr__(self) -> str:
        names = ', '.join(component.name for component in self._components)
        return f'TypeDescriptor({type_name(self._type)}: {names})'

    # ========== ========== ========== ========== ========== protected methods
    def _title(self) -> Text:
        kind = 'record' if self.is_record else 'configuration'
        return Text(f'{type_name(self._type)} ({kind})')

    def _content(self) -> RenderableType:
        frame = pandas.DataFrame(
            {
                'name': [c.name for c in self._components],
                'type': [c.shape.describe() for c in self._components],
                'nullable': ['yes' if c.nullable else 'no' for c in self._components],
                'comment': [' / '.join(c.comment) for c in self._components],
            },
            columns=['name', 'type', 'nullable', 'comment'],
        )
        return self.format_as_table(frame, show_index=False)

    # ========== ========== ========== ========== ========== public methods
    def new_default(self) -> Any:
        """Construct the canonical default instance."""
        if not self.is_record:
            return self._type()

        return self._type(**{name: produce() for name, produce in self._defaults.items()})

    def build(self,
              values: dict[str, Any],
              base: Any = None,
              *,
              key_of: Callable[[str], Any] | None = None,
              lenient: bool = False) -> Any:
        """
        Construct an instance from component values.

        Parameters
        ----------
        values : dict
            Values of the components to set, by component name.
        base : object, optional
            Instance providing the values of the missing components. A
            class-like base is updated in place and returned; record-like
            bases are immutable and a new record is built.
        key_of : callable, optional
            Maps component names to the keys reported in error paths.
        lenient : bool, default False
            Keep the current value of a component whose parser rejects the
            new one, with a warning, instead of raising.

        Returns
        -------
        object
            The new (or updated) instance.

        Raises
        ------
        ShapeMismatchError
            If a parser (or a record's constructor) rejects a value. A
            class-like base is left untouched in that case: values are set on
            a copy first and copied back once every one is accepted.
        """
        key_of = key_of or (lambda name: name)

        if not self.is_record:
            staged = copy.copy(base) if base is not None else self._type()

            for name, value in values.items():

                try:
                    setattr(staged, name, value)

                except (TypeError, ValueError) as error:
                    if not lenient:
                        raise ShapeMismatchError(f"Value rejected: {error}", (key_of(name),)) from error

                    logger.warning(f"Persisted value of '{key_of(name)}' kept at its default: {error}")

            if base is None:
                return staged

            vars(base).update(vars(staged))
            return base

        arguments = {}

        for name, produce in self._defaults.items():

            if name in values:
                arguments[name] = values[name]

            elif base is not None:
                arguments[name] = getattr(base, name)

            else:
                arguments[name] = produce()

        try:
            return self._type(**arguments)
        except (TypeError, ValueError) as error:
            raise ShapeMismatchError(f"Cannot build {type_name(self._type)}: {error}") from error

    def value_of(self, instance: Any, component: Component) -> Any:
        return getattr(instance, component.name)

    # ---------- ---------- ---------- ---------- ---------- properties
    @property
    def type(self) -> type:
        return self._type

    @property
    def components(self) -> tuple[Component, ...]:
        return self._components

    @property
    def ignored(self) -> tuple[Component, ...]:
        return self._ignored

    @property
    def field_filter(self) -> FieldFilter:
        return self._field_filter

    @property
    def is_record(self) -> bool:
        return is_record_type(self._type)


# ========== ========== ========== ========== ========== discovery
_descriptors: dict[tuple[type, FieldFilter, frozenset], TypeDescriptor] = {}
_lock = threading.RLock()


def describe(cls: type,
             field_filter: FieldFilter = default_field_filter,
             overrides: Iterable[Any] = ()) -> TypeDescriptor:
    """
    Return the validated descriptor of a configuration type.

    Parameters
    ----------
    cls : type
        A ``Configuration`` subclass or a dataclass.
    field_filter : callable, optional
        Predicate deciding which components take part in serialization.
    overrides : iterable, optional
        Signatures handled by user serializer overrides (the keys of
        ``Properties.serializer_overrides``). They are accepted whatever
        their type.

    Returns
    -------
    TypeDescriptor
        The cached descriptor; later calls with the same arguments return the
        same object.

    Raises
    ------
    TypeDiscoveryError
        If the type or any type reachable from it is invalid.
    """
    overrides = frozenset(overrides)
    descriptor = _descriptors.get((cls, field_filter, overrides))

    if descriptor is not None:
        return descriptor

    with _lock:
        return _Discovery(field_filter, overrides).describe(cls)


def shape_of(annotation: Any,
             field_filter: FieldFilter = default_field_filter,
             overrides: Iterable[Any] = ()) -> Shape:
    """Validate a declared type signature and return its shape."""
    signature, _ = unwrap_optional(annotation)

    with _lock:
        return _Discovery(field_filter, frozenset(overrides)).shape(signature)


class _Discovery:
    """Depth-first walk of a type graph, holding the set of open types."""

    def __init__(self, field_filter: FieldFilter, overrides: frozenset) -> None:
        self.field_filter = field_filter
        self.overrides = overrides
        self.open: list[type] = []

    # ========== ========== ========== ========== ========== public methods
    def describe(self, cls: type) -> TypeDescriptor:

        descriptor = _descriptors.get((cls, self.field_filter, self.overrides))

        if descriptor is not None:
            return descriptor

        if cls in self.open:
            cycle = ' -> '.join(type_name(tp) for tp in (*self.open[self.open.index(cls):], cls))
            raise TypeDiscoveryError(f"Cyclic type graph: {cycle}")

        if not is_configuration_type(cls):
            raise TypeDiscoveryError(f"{type_name(cls)} is neither a Configuration subclass nor a dataclass")

        self.open.append(cls)

        try:
            descriptor = self._build(cls)
        finally:
            self.open.pop()

        _descriptors[(cls, self.field_filter, self.overrides)] = descriptor
        logger.debug(f"Discovered {descriptor!r}")

        return descriptor

    def shape(self, signature: Any) -> Shape:

        if self._is_overridden(signature):
            return OverrideShape(signature)

        check_not_wildcard(signature)

        if is_serializable_type(signature):
            return CustomShape(signature)

        category = scalar_category(signature)

        if category is not None:
            return ScalarShape(signature, category)

        if is_configuration_type(signature):
            return AggregateShape(signature, self.describe(signature))

        origin = typing.get_origin(signature)
        args = typing.get_args(signature)

        if origin is typing.Union or origin is types.UnionType:
            raise TypeDiscoveryError(f"Union type {type_name(signature)} is not supported; only Optional unions are")

        if signature in (list, tuple, set, frozenset, dict) or (origin is not None and not args):
            raise TypeDiscoveryError(f"Raw type {type_name(signature)} must be parameterized")

        if origin in (list, set, frozenset):
            element, element_nullable = unwrap_optional(args[0])
            return SequenceShape(signature, origin, self.shape(element), element_nullable)

        if origin is tuple:

            if len(args) != 2 or args[1] is not Ellipsis:
                raise TypeDiscoveryError(f"Only homogeneous tuples (tuple[X, ...]) are supported, "
                                         f"given {type_name(signature)}")

            element, element_nullable = unwrap_optional(args[0])
            return SequenceShape(signature, tuple, self.shape(element), element_nullable)

        if origin is dict:
            key, key_nullable = unwrap_optional(args[0])
            key_shape = self.shape(key)

            if key_nullable or not isinstance(key_shape, (ScalarShape, OverrideShape)):
                raise TypeDiscoveryError(f"Map keys must be scalar, string or enum types, "
                                         f"given {type_name(args[0])}")

            value, value_nullable = unwrap_optional(args[1])
            return MappingShape(signature, key_shape, self.shape(value), value_nullable)

        if origin is not None:
            raise TypeDiscoveryError(f"Parameterized type {type_name(signature)} has no registered serializer")

        raise TypeDiscoveryError(f"Unsupported type {type_name(signature)}")

    # ========== ========== ========== ========== ========== private methods
    def _is_overridden(self, signature: Any) -> bool:
        try:
            return signature in self.overrides
        except TypeError:
            # unhashable signature
            return False

    def _build(self, cls: type) -> TypeDescriptor:

        try:
            hints = typing.get_type_hints(cls, include_extras=True)
        except NameError as error:
            raise TypeDiscoveryError(f"Cannot resolve the annotations of {type_name(cls)}: {error}") from error

        if is_record_type(cls):
            candidates, defaults = self._record_components(cls, hints)
        else:
            candidates, defaults = self._class_components(cls, hints), {}

        components: list[Component] = []
        ignored: list[Component] = []

        for candidate in candidates:

            if not self.field_filter(candidate):
                ignored.append(candidate)
                continue

            try:
                shape = self.shape(candidate.signature)
            except TypeDiscoveryError as error:
                raise error.prefixed(candidate.name)

            components.append(dataclasses.replace(candidate, shape=shape))

        if is_record_type(cls):
            for candidate in ignored:
                if isinstance(defaults[candidate.name], _Required):
                    raise TypeDiscoveryError(f"Ignored record component {type_name(cls)}.{candidate.name} "
                                             f"must have a default")

        return TypeDescriptor(cls, tuple(components), tuple(ignored), self.field_filter, defaults)

    def _class_components(self, cls: type, hints: dict[str, Any]) -> list[Component]:

        try:
            inspect.signature(cls).bind()
        except TypeError as error:
            raise TypeDiscoveryError(f"Missing required constructor: {type_name(cls)} "
                                     f"cannot be constructed without arguments") from error

        owners: dict[str, type] = {}
        candidates: list[Component] = []

        for base in reversed(cls.__mro__):

            if not is_class_configuration_type(base):
                continue

            for name, annotation in own_annotations(base).items():

                if is_classvar(annotation):
                    continue

                if name in owners:
                    raise TypeDiscoveryError(f"Component '{name}' of {type_name(owners[name])} "
                                             f"is shadowed by {type_name(base)}")

                owners[name] = base

                attribute = inspect.getattr_static(cls, name, MISSING)

                if not name.startswith('_') and not isinstance(attribute, ConfigProperty):
                    raise TypeDiscoveryError(f"Component '{name}' of {type_name(base)} "
                                             f"is shadowed by a plain attribute")

                if isinstance(attribute, ConfigProperty):
                    comment, ignore = attribute.comment, attribute.ignore
                else:
                    comment, ignore = (), False

                candidates.append(Component(name=name,
                                            owner=base,
                                            annotation=hints[name],
                                            comment=comment,
                                            ignored=ignore or name.startswith('_')))

        return candidates

    def _record_components(self, cls: type, hints: dict[str, Any]) -> tuple[list[Component], dict]:

        owners: dict[str, type] = {}

        for base in reversed(cls.__mro__):

            if not is_record_type(base):
                continue

            for name, annotation in own_annotations(base).items():

                if is_classvar(annotation):
                    continue

                if name in owners:
                    raise TypeDiscoveryError(f"Component '{name}' of {type_name(owners[name])} "
                                             f"is shadowed by {type_name(base)}")

                owners[name] = base

        candidates: list[Component] = []
        defaults: dict[str, Callable[[], Any]] = {}

        for record_field in dataclasses.fields(cls):

            if not record_field.init:
                continue

            metadata = record_field.metadata.get(METADATA_KEY, {})
            annotation = hints[record_field.name]

            candidates.append(Component(name=record_field.name,
                                        owner=owners.get(record_field.name, cls),
                                        annotation=annotation,
                                        comment=metadata.get('comment', ()),
                                        ignored=metadata.get('ignore', False)))

            defaults[record_field.name] = _record_default(record_field, annotation)

        return candidates, defaults


class _Required:
    """Default producer of a record component declared without default."""

    def __init__(self, annotation: Any) -> None:
        self.annotation = annotation

    def __call__(self) -> Any:
        inner, optional = unwrap_optional(self.annotation)
        return None if optional else zero_value(inner)


def _record_default(record_field: dataclasses.Field, annotation: Any) -> Callable[[], Any]:

    if record_field.default_factory is not dataclasses.MISSING:
        return record_field.default_factory

    if record_field.default is not dataclasses.MISSING:
        default = record_field.default
        return lambda: default

    return _Required(annotation)


__all__ = [
    'Shape',
    'ScalarShape',
    'OverrideShape',
    'CustomShape',
    'SequenceShape',
    'MappingShape',
    'AggregateShape',
    'Component',
    'TypeDescriptor',
    'default_field_filter',
    'describe',
    'shape_of',
]
