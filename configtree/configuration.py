#  -*- coding: utf-8 -*-
"""
Declarative description of configuration types.

Two kinds of aggregate types can be mapped to trees:

- class-like types, subclasses of ``Configuration``. Every annotated class
  attribute is a component; its metadata is attached with a
  ``ConfigProperty`` descriptor, or it is declared with a plain default,
- record-like types, ``dataclasses.dataclass`` types. Metadata is attached
  with ``component``, a thin wrapper over ``dataclasses.field``.

Examples
--------
>>> class Server(Configuration):
...     host: str = ConfigProperty(default='localhost', comment='Host name')
...     port: int = 8080
...     tags: list[str] = ConfigProperty(default_factory=list)
>>> server = Server(port=9000)
>>> server.host, server.port, server.tags
('localhost', 9000, [])

>>> from dataclasses import dataclass
>>> @dataclass(frozen=True)
... class Point:
...     x: int = component(default=0, comment='abscissa')
...     y: int = 0
"""

from __future__ import annotations

import copy
import dataclasses
import inspect
import re
import sys
import typing

if sys.version_info >= (3, 14):
    # lazily evaluated annotations
    import annotationlib

from abc import ABCMeta

# ---------- ---------- ---------- ---------- ---------- ---------- typing
from typing import TypeVar, Callable, Any, TypeAlias, Self, Type

from .comments import Comment, CommentSource, normalize_comment
from .typeinfo import unwrap_optional, zero_value


T = TypeVar('T')
"""Represent the type of the property"""

Factory: TypeAlias = Callable[[], T]
Parser: TypeAlias = Callable[[object, Any], T]

METADATA_KEY = 'configtree'
"""Key of the ``dataclasses.field`` metadata entry read by configtree"""

_CLASSVAR_PATTERN = re.compile(r'^\s*(typing\.)?ClassVar\b')


class _Missing:

    def __repr__(self) -> str:
        return 'MISSING'


MISSING: Any = _Missing()


# ========== ========== ========== ========== ========== ==========
class ConfigProperty:

    # ========== ========== ========== ========== ========== class attributes
    __slots__ = ('_default', '_default_factory', '_parser',
                 '_comment', '_ignore',
                 'name', 'private_name', 'owner', '__doc__', '__weakref__')

    # ========== ========== ========== ========== ========== special methods
    def __init__(self,
                 default: Any = MISSING,
                 *,
                 default_factory: Factory | None = None,
                 comment: CommentSource = None,
                 ignore: bool = False,
                 parser: Parser | None = None,
                 doc: str | None = None) -> None:
        """
        Declare one component of a ``Configuration``.

        Parameters
        ----------
        default : object, optional
            Default value. Mutable defaults are deep-copied for every instance.
            When omitted (and no ``default_factory`` is given), the component
            defaults to ``False``, ``0`` or ``0.0`` for primitive types and to
            ``None`` otherwise.
        default_factory : callable, optional
            Zero-argument callable producing the default value.
        comment : str or iterable of str, optional
            Comment lines emitted before the component's key.
        ignore : bool, default False
            Exclude the component from serialization and update.
        parser : callable, optional
            ``parser(instance, value) -> value`` applied on every assignment.
        doc : str, optional
            Docstring of the property.
        """

        if default is not MISSING and default_factory is not None:
            raise ValueError("Cannot specify both default and default_factory")

        self._default: Any = default
        self._default_factory: Factory | None = default_factory
        self._parser: Parser | None = parser

        self._comment: Comment = normalize_comment(comment)
        self._ignore: bool = ignore

        self.__doc__: str | None = doc

    def __set_name__(self, owner: type, name: str) -> None:
        """Called when the descriptor is assigned to a class attribute."""
        self.name: str = name
        self.owner: type = owner
        self.private_name: str = f"_config_property__{name}"

    def __get__(self, instance: object | None, owner: type) -> Any:
        """Get the property value."""
        if instance is None:
            # Accessing from class, return descriptor for introspection
            return self

        try:
            return instance.__dict__[self.private_name]
        except KeyError:
            value = self.default_value()
            instance.__dict__[self.private_name] = value
            return value

    def __set__(self, instance: object, value: Any) -> None:
        """Set the property value."""
        if self._parser is not None:
            value = self._parser(instance, value)

        instance.__dict__[self.private_name] = value

    def __repr__(self) -> str:
        name = getattr(self, 'name', '?')
        return f'ConfigProperty({name})'

    # ========== ========== ========== ========== ========== public methods
    def default_value(self) -> Any:
        """Produce a fresh default value for a new instance."""
        if self._default_factory is not None:
            return self._default_factory()

        if self._default is not MISSING:
            return copy.deepcopy(self._default)

        annotation = _resolved_annotations(self.owner).get(self.name)
        inner, optional = unwrap_optional(annotation)

        return None if optional else zero_value(inner)

    def parser(self, func: Parser) -> Self:
        """Set the parser function."""
        prop = type(self)(
            self._default,
            default_factory=self._default_factory,
            comment=self._comment,
            ignore=self._ignore,
            parser=func,
            doc=self.__doc__,
        )
        return prop

    # ---------- ---------- ---------- ---------- ---------- properties
    @property
    def comment(self) -> Comment:
        """Comment lines attached to the property."""
        return self._comment

    @property
    def ignore(self) -> bool:
        """Check if property is excluded from serialization."""
        return self._ignore


def config_property(default: Any = MISSING,
                    *,
                    default_factory: Factory | None = None,
                    comment: CommentSource = None,
                    ignore: bool = False) -> Callable[[Parser], ConfigProperty]:
    """
    Decorator form of ``ConfigProperty`` where the decorated function is the parser.

    Examples
    --------
    >>> class Limits(Configuration):
    ...     retries: int
    ...     @config_property(default=10, comment='Must be positive')
    ...     def retries(self, value):
    ...         if value < 0:
    ...             raise ValueError('retries must be positive')
    ...         return value
    """

    def decorator(parser: Parser) -> ConfigProperty:
        return ConfigProperty(
            default,
            default_factory=default_factory,
            comment=comment,
            ignore=ignore,
            parser=parser,
            doc=parser.__doc__,
        )

    return decorator


def component(default: Any = MISSING,
              *,
              default_factory: Factory | Any = MISSING,
              comment: CommentSource = None,
              ignore: bool = False,
              **kwargs: Any) -> Any:
    """
    Declare a record component (``dataclasses.field``) with configtree metadata.

    Parameters
    ----------
    default, default_factory
        As in ``dataclasses.field``.
    comment : str or iterable of str, optional
        Comment lines emitted before the component's key.
    ignore : bool, default False
        Exclude the component from serialization and update. Ignored
        components must have a default.
    **kwargs
        Forwarded to ``dataclasses.field``.
    """
    metadata = dict(kwargs.pop('metadata', None) or {})
    metadata[METADATA_KEY] = {
        'comment': normalize_comment(comment),
        'ignore': ignore,
    }

    if default is not MISSING:
        kwargs['default'] = default

    if default_factory is not MISSING:
        kwargs['default_factory'] = default_factory

    return dataclasses.field(metadata=metadata, **kwargs)


# ========== ========== ========== ========== ========== ==========
def is_classvar(annotation: Any) -> bool:
    """Test if an annotation (possibly a string) declares a ``ClassVar``."""
    if isinstance(annotation, str):
        return _CLASSVAR_PATTERN.match(annotation) is not None

    return annotation is typing.ClassVar or typing.get_origin(annotation) is typing.ClassVar


def own_annotations(cls: type) -> dict[str, Any]:
    """Annotations declared by ``cls`` itself, in declaration order."""
    if sys.version_info >= (3, 14):
        # names must be known before forward references can be resolved
        return dict(annotationlib.get_annotations(cls, format=annotationlib.Format.FORWARDREF))

    return dict(inspect.get_annotations(cls))


def _resolved_annotations(cls: type) -> dict[str, Any]:
    hints = cls.__dict__.get('_config_type_hints')

    if hints is None:
        hints = typing.get_type_hints(cls, include_extras=True)
        cls._config_type_hints = hints

    return hints


class ConfigurationMetatype(ABCMeta):

    # ========== ========== ========== ========== ========== special methods
    def __new__(mcs,
                name: str,
                bases: tuple[type, ...],
                namespace: dict[str, Any],
                **kwargs: Any) -> Type[Configuration]:

        cls = super().__new__(mcs, name, bases, namespace, **kwargs)

        # ---------- ---------- ---------- ---------- ---------- ----------
        # annotated attributes become properties
        for attr_name, annotation in own_annotations(cls).items():

            if attr_name.startswith('_') or is_classvar(annotation):
                continue

            value = namespace.get(attr_name, MISSING)

            if isinstance(value, ConfigProperty):
                continue

            prop = ConfigProperty(default=value)
            prop.__set_name__(cls, attr_name)
            setattr(cls, attr_name, prop)

        # ---------- ---------- ---------- ---------- ---------- ----------
        properties: dict[str, ConfigProperty] = {}

        for base in reversed(cls.__mro__):

            if base is object:
                continue  # just for not wasting time

            # annotation order first; bare annotations were appended to __dict__
            for attr_name in [*own_annotations(base), *base.__dict__]:

                attr_value = base.__dict__.get(attr_name)

                if isinstance(attr_value, ConfigProperty):
                    properties[attr_name] = attr_value

        cls._config_properties = properties

        # ---------- ---------- ---------- ---------- ---------- ----------
        return cls

    # ---------- ---------- ---------- ---------- ---------- properties
    @property
    def config_properties(cls) -> dict[str, ConfigProperty]:
        return {**cls._config_properties}


class Configuration(metaclass=ConfigurationMetatype):
    """
    Base class of class-like configuration types.

    Instances are created with no arguments, every component holding its
    default; keyword arguments override the defaults. Subclasses that
    override ``__init__`` must keep it callable without arguments.
    """

    # ========== ========== ========== ========== ========== special methods
    def __init__(self, **kwargs: Any) -> None:

        properties = type(self)._config_properties

        for key, prop in properties.items():
            setattr(self, key, prop.default_value())

        for key, value in kwargs.items():

            if key not in properties:
                raise TypeError(f"{type(self).__name__} has no configuration property '{key}'")

            setattr(self, key, value)

    def __eq__(self, other: object) -> bool:

        if type(other) is not type(self):
            return NotImplemented

        for key in type(self)._config_properties:

            if getattr(self, key) != getattr(other, key):
                return False

        return True

    __hash__ = None

    def __repr__(self) -> str:
        values = ', '.join(f'{key}={getattr(self, key)!r}' for key in type(self)._config_properties)
        return f'{type(self).__name__}({values})'


# ========== ========== ========== ========== ========== ==========
def is_record_type(tp: Any) -> bool:
    return isinstance(tp, type) and dataclasses.is_dataclass(tp)


def is_class_configuration_type(tp: Any) -> bool:
    return isinstance(tp, type) and issubclass(tp, Configuration) and tp is not Configuration


def is_configuration_type(tp: Any) -> bool:
    """Test if ``tp`` is an aggregate (class-like or record-like) configuration type."""
    return is_class_configuration_type(tp) or is_record_type(tp)


__all__ = [
    'MISSING',
    'ConfigProperty',
    'config_property',
    'component',
    'Configuration',
    'is_configuration_type',
    'is_record_type',
]
