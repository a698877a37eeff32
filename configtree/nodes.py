#  -*- coding: utf-8 -*-
"""
The generic, format-agnostic tree exchanged with text codecs.

A tree is composed of:

- ``Scalar``: a boolean, integral, floating or string leaf,
- ``Sequence``: an ordered list of nodes,
- ``Set``: a ``Sequence`` that a codec may render with set syntax,
- ``Mapping``: keys mapped to nodes, in emission order, with optional comment
  lines attached to each key,
- ``Null`` (the ``NULL`` singleton): an explicit null.

Trees are created fresh by every encode and are never shared between calls.
Codecs usually work with plain Python containers, so every node converts to
and from that form with ``to_python`` and ``from_python``. Comments are
dropped by ``to_python``; codecs that support comments walk the nodes.

Examples
--------
>>> tree = Mapping({'host': Scalar('localhost'), 'ports': Sequence([Scalar(80)])})
>>> tree.to_python()
{'host': 'localhost', 'ports': [80]}
>>> from_python({'host': 'localhost'}) == Mapping({'host': Scalar('localhost')})
True
"""

from __future__ import annotations

import datetime

from abc import ABC, abstractmethod
from collections.abc import Iterable, Iterator

import numpy

# ---------- ---------- ---------- ---------- ---------- ---------- typing
from typing import Any, TypeAlias

ScalarValue: TypeAlias = bool | int | float | str


class Node(ABC):
    """Base class of every tree node."""

    # ========== ========== ========== ========== ========== class attributes
    __slots__ = ()

    kind: str = 'node'

    # ========== ========== ========== ========== ========== public methods
    @abstractmethod
    def to_python(self) -> Any:
        """Convert the node into plain Python containers and scalars."""
        ...


class Scalar(Node):

    # ========== ========== ========== ========== ========== class attributes
    __slots__ = ('value',)

    kind = 'scalar'

    # ========== ========== ========== ========== ========== special methods
    def __init__(self, value: ScalarValue) -> None:
        if not isinstance(value, (bool, int, float, str)):
            raise TypeError(f"Scalar nodes hold bool, int, float or str values, "
                            f"given {type(value).__name__}")

        self.value: ScalarValue = value

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Scalar):
            return NotImplemented

        # True == 1 in Python, but not in the tree
        return type(self.value) is type(other.value) and self.value == other.value

    def __hash__(self) -> int:
        return hash((type(self.value), self.value))

    def __repr__(self) -> str:
        return f'Scalar({self.value!r})'

    # ========== ========== ========== ========== ========== public methods
    def to_python(self) -> ScalarValue:
        return self.value


class Sequence(Node):

    # ========== ========== ========== ========== ========== class attributes
    __slots__ = ('items',)

    kind = 'sequence'

    # ========== ========== ========== ========== ========== special methods
    def __init__(self, items: Iterable[Node] = ()) -> None:
        self.items: list[Node] = list(items)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Sequence):
            return NotImplemented

        return type(self) is type(other) and self.items == other.items

    __hash__ = None

    def __iter__(self) -> Iterator[Node]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)

    def __getitem__(self, index: int) -> Node:
        return self.items[index]

    def __repr__(self) -> str:
        return f'{type(self).__name__}({self.items!r})'

    # ========== ========== ========== ========== ========== public methods
    def to_python(self) -> list[Any]:
        return [item.to_python() for item in self.items]


class Set(Sequence):
    """A sequence whose codec representation is a set."""

    # ========== ========== ========== ========== ========== class attributes
    __slots__ = ()

    kind = 'set'

    # ========== ========== ========== ========== ========== special methods
    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Sequence):
            return NotImplemented

        if type(self) is not type(other) or len(self.items) != len(other.items):
            return False

        try:
            return set(self.items) == set(other.items)
        except TypeError:
            # unhashable elements
            return self.items == other.items

    __hash__ = None

    # ========== ========== ========== ========== ========== public methods
    def to_python(self) -> set[Any]:
        return {item.to_python() for item in self.items}


class Mapping(Node):

    # ========== ========== ========== ========== ========== class attributes
    __slots__ = ('entries', 'comments')

    kind = 'mapping'

    # ========== ========== ========== ========== ========== special methods
    def __init__(self,
                 entries: dict[Any, Node] | None = None,
                 comments: dict[Any, tuple[str, ...]] | None = None) -> None:

        self.entries: dict[Any, Node] = dict(entries or {})
        self.comments: dict[Any, tuple[str, ...]] = dict(comments or {})

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Mapping):
            return NotImplemented

        # emission order is part of the tree
        return list(self.entries.items()) == list(other.entries.items())

    __hash__ = None

    def __contains__(self, key: Any) -> bool:
        return key in self.entries

    def __getitem__(self, key: Any) -> Node:
        return self.entries[key]

    def __iter__(self) -> Iterator[Any]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def __repr__(self) -> str:
        return f'Mapping({self.entries!r})'

    # ========== ========== ========== ========== ========== public methods
    def get(self, key: Any, default: Node | None = None) -> Node | None:
        return self.entries.get(key, default)

    def items(self) -> Iterable[tuple[Any, Node]]:
        return self.entries.items()

    def keys(self) -> Iterable[Any]:
        return self.entries.keys()

    def put(self, key: Any, node: Node, comment: Iterable[str] = ()) -> None:
        """Add ``key`` at the end of the mapping, with optional comment lines."""
        self.entries[key] = node

        comment = tuple(comment)
        if comment:
            self.comments[key] = comment
        else:
            self.comments.pop(key, None)

    def comment(self, key: Any) -> tuple[str, ...]:
        """Return the comment lines attached to ``key`` (empty if none)."""
        return self.comments.get(key, ())

    def without_comments(self) -> Mapping:
        """Return a copy of this mapping with the comments of the whole subtree removed."""
        return Mapping({key: strip_comments(node) for key, node in self.entries.items()})

    def to_python(self) -> dict[Any, Any]:
        return {key: node.to_python() for key, node in self.entries.items()}


class Null(Node):
    """Explicit null. Use the ``NULL`` singleton."""

    # ========== ========== ========== ========== ========== class attributes
    __slots__ = ()

    kind = 'null'

    _instance: Null | None = None

    # ========== ========== ========== ========== ========== special methods
    def __new__(cls) -> Null:
        if cls._instance is None:
            cls._instance = super().__new__(cls)

        return cls._instance

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Null)

    def __hash__(self) -> int:
        return hash(None)

    def __repr__(self) -> str:
        return 'NULL'

    # ========== ========== ========== ========== ========== public methods
    def to_python(self) -> None:
        return None


NULL = Null()


# ========== ========== ========== ========== ========== ==========
def strip_comments(node: Node) -> Node:
    """Return ``node`` with every comment of its subtree removed."""
    if isinstance(node, Mapping):
        return node.without_comments()

    if isinstance(node, Sequence):
        return type(node)(strip_comments(item) for item in node.items)

    return node


def from_python(value: Any) -> Node:
    """
    Build a tree from plain Python values, as produced by text codecs.

    Parameters
    ----------
    value : object
        ``None``, a scalar, a list/tuple, a set/frozenset or a dict, nested
        arbitrarily.

    Returns
    -------
    Node
        The corresponding tree.

    Raises
    ------
    TypeError
        If ``value`` contains an object with no tree representation.

    Notes
    -----
    Codecs that resolve implicit types (YAML turns ``2024-01-01`` into a
    ``date``) hand back temporal objects; they are converted to their ISO 8601
    string so that the temporal serializers can parse them. NumPy scalars are
    unwrapped with ``item()``.
    """
    if value is None:
        return NULL

    if isinstance(value, Node):
        return value

    if isinstance(value, numpy.generic):
        value = value.item()

    if isinstance(value, (bool, int, float, str)):
        return Scalar(value)

    if isinstance(value, (datetime.date, datetime.time)):
        return Scalar(value.isoformat())

    if isinstance(value, (set, frozenset)):
        return Set(from_python(item) for item in value)

    if isinstance(value, (list, tuple)):
        return Sequence(from_python(item) for item in value)

    if isinstance(value, dict):
        return Mapping({key: from_python(item) for key, item in value.items()})

    raise TypeError(f"No tree representation for objects of type {type(value).__name__}")


__all__ = [
    'Node',
    'Scalar',
    'Sequence',
    'Set',
    'Mapping',
    'Null',
    'NULL',
    'from_python',
    'strip_comments',
]
