#  -*- coding: utf-8 -*-
"""
The closed universe of types that configtree knows how to map.

This module classifies declared types into the scalar categories understood
by the built-in serializers, unwraps ``Optional`` declarations, provides the
zero values used for primitive slots that have no default, and keeps the
process-wide registry of custom-serializable types.
"""

from __future__ import annotations

import datetime
import decimal
import enum
import types
import typing
import uuid

from pathlib import PurePath

import numpy
import pandas

# ---------- ---------- ---------- ---------- ---------- ---------- typing
from typing import Any, Callable, TypeAlias

from .errors import TypeDiscoveryError


ToPython: TypeAlias = Callable[[Any], Any]
FromPython: TypeAlias = Callable[[Any], Any]

# Order matters: pandas types subclass the datetime ones, datetime subclasses date
TEMPORAL_TYPES: tuple[type, ...] = (
    pandas.Timestamp,
    pandas.Timedelta,
    datetime.datetime,
    datetime.date,
    datetime.time,
    datetime.timedelta,
)

_custom_types: dict[Any, dict[str, Callable[[Any], Any]]] = {}


# ========== ========== ========== ========== ========== ==========
def is_boolean_type(tp: Any) -> bool:
    return tp is bool or tp is numpy.bool_


def is_integral_type(tp: Any) -> bool:
    if tp is int:
        return True

    return isinstance(tp, type) and issubclass(tp, numpy.integer)


def is_floating_type(tp: Any) -> bool:
    if tp is float:
        return True

    return isinstance(tp, type) and issubclass(tp, numpy.floating)


def is_primitive_type(tp: Any) -> bool:
    """Test if ``tp`` is a primitive slot type, i.e. one that cannot hold null."""
    return is_boolean_type(tp) or is_integral_type(tp) or is_floating_type(tp)


def scalar_category(tp: Any) -> str | None:
    """
    Return the scalar category of ``tp``, or None if it is not a scalar type.

    Parameters
    ----------
    tp : type
        A declared type with ``Optional`` already removed.

    Returns
    -------
    str or None
        One of ``'boolean'``, ``'integral'``, ``'floating'``, ``'string'``,
        ``'big-numeric'``, ``'temporal'``, ``'utility'`` or ``'enum'``.

    Examples
    --------
    >>> scalar_category(int)
    'integral'
    >>> scalar_category(list[int]) is None
    True
    """
    if is_boolean_type(tp):
        return 'boolean'

    if is_integral_type(tp):
        return 'integral'

    if is_floating_type(tp):
        return 'floating'

    if not isinstance(tp, type):
        return None

    if tp is str:
        return 'string'

    if tp is decimal.Decimal:
        return 'big-numeric'

    if tp in TEMPORAL_TYPES:
        return 'temporal'

    if tp is uuid.UUID or issubclass(tp, PurePath):
        return 'utility'

    if issubclass(tp, enum.Enum):
        return 'enum'

    return None


def zero_value(tp: Any) -> Any:
    """Default value of a slot declared with ``tp`` and no explicit default."""
    if is_boolean_type(tp):
        return False

    if is_integral_type(tp):
        return 0

    if is_floating_type(tp):
        return 0.0

    return None


def unwrap_optional(annotation: Any) -> tuple[Any, bool]:
    """
    Split an annotation into the underlying type and its explicit nullability.

    ``Annotated`` extras are discarded. Unions other than ``X | None`` are
    returned unchanged, for the caller to reject.

    Examples
    --------
    >>> unwrap_optional(int | None)
    (<class 'int'>, True)
    >>> unwrap_optional(int)
    (<class 'int'>, False)
    """
    if typing.get_origin(annotation) is typing.Annotated:
        annotation = typing.get_args(annotation)[0]

    origin = typing.get_origin(annotation)

    if origin is typing.Union or origin is types.UnionType:
        args = [arg for arg in typing.get_args(annotation) if arg is not type(None)]

        if len(args) == 1:
            inner, _ = unwrap_optional(args[0])
            return inner, True

    return annotation, False


def is_nullable(annotation: Any) -> bool:
    """A slot is nullable when declared Optional or when it is not primitive."""
    inner, optional = unwrap_optional(annotation)
    return optional or not is_primitive_type(inner)


def type_name(tp: Any) -> str:
    """Readable name of a type signature, for messages."""
    if isinstance(tp, type) and typing.get_origin(tp) is None:
        module = tp.__module__

        if module is None or module == 'builtins':
            return tp.__qualname__

        return f"{module}.{tp.__qualname__}"

    return repr(tp).replace('typing.', '')


# ========== ========== ========== ========== ========== custom types
def register_serializable_type(signature: Any,
                               serialize: ToPython,
                               deserialize: FromPython) -> None:
    """
    Register a custom-serializable type.

    Parameters
    ----------
    signature : type or parameterized type
        Exact declared signature, e.g. ``complex`` or ``Interval[int]``.
    serialize : callable
        Converts an instance into plain Python values (``None``, scalars,
        lists, sets, dicts).
    deserialize : callable
        Inverse of ``serialize``.

    Raises
    ------
    TypeError
        If ``signature`` is a collection or a configuration type, which are
        always mapped structurally.
    """
    from .configuration import is_configuration_type

    origin = typing.get_origin(signature) or signature

    if origin in (list, dict, set, frozenset, tuple) or is_configuration_type(origin):
        raise TypeError(f'Cannot register {type_name(signature)} as serializable type')

    _custom_types[signature] = {
        'serialize': serialize,
        'deserialize': deserialize,
    }


def remove_serializable_type(signature: Any) -> None:
    """Remove a custom-serializable type."""
    _custom_types.pop(signature, None)


def is_serializable_type(signature: Any) -> bool:
    """Test if ``signature`` was registered as custom-serializable type."""
    try:
        return signature in _custom_types
    except TypeError:
        # unhashable signature
        return False


def custom_type_process(signature: Any) -> dict[str, Callable[[Any], Any]]:
    return _custom_types[signature]


def check_not_wildcard(annotation: Any) -> None:
    """Reject open types: ``Any``, ``object`` and type variables."""
    if annotation is typing.Any or annotation is object:
        raise TypeDiscoveryError(f"Wildcard type {type_name(annotation)} is not supported")

    if isinstance(annotation, typing.TypeVar):
        raise TypeDiscoveryError(f"Type variable {annotation!r} is not supported")


__all__ = [
    'TEMPORAL_TYPES',
    'is_boolean_type',
    'is_integral_type',
    'is_floating_type',
    'is_primitive_type',
    'is_nullable',
    'scalar_category',
    'zero_value',
    'unwrap_optional',
    'type_name',
    'register_serializable_type',
    'remove_serializable_type',
    'is_serializable_type',
]
