#  -*- coding: utf-8 -*-
"""
Persisted targets: where trees are read from and written to.

A ``Target`` holds at most one persisted tree. Three targets are provided:

- ``MemoryTarget`` keeps the last written tree in memory,
- ``YamlFile`` stores the tree as YAML text, with comments,
- ``Hdf5File`` stores the tree in an HDF5 file.

File targets write to a temporary sibling file that is moved into place only
once it is complete, so a failed write leaves the previous file untouched.

HDF5 encoding rules
-------------------
The tree is stored under the group ``root``:

- Null:
  Stored as attribute value "NoneType:None".
- Scalar:
  Stored directly as an attribute.
- Sequence, Set:
  Stored as a subgroup with ``__container_type__ = "list"`` (``"set"``) and
  items stored under numeric string keys ("0", "1", ...).
- Mapping:
  Stored as a subgroup with ``__container_type__ = "dict"``; items are stored
  under numeric string keys and the original keys, with their types and order,
  in the JSON attribute ``__keys__``.

Comments are not persisted in HDF5 files.
"""

from __future__ import annotations

import json
import logging
import os

from abc import ABC, abstractmethod
from pathlib import Path

import h5py
import numpy

# ---------- ---------- ---------- ---------- ---------- ---------- typing
from typing import Any, TYPE_CHECKING

from .codec import YamlCodec
from .nodes import NULL, Mapping, Node, Null, Scalar, Sequence, Set, from_python

if TYPE_CHECKING:
    from .properties import Properties


logger = logging.getLogger(__name__)

NONE_MARKER = 'NoneType:None'


class Target(ABC):
    """Storage of one persisted tree."""

    @abstractmethod
    def exists(self) -> bool:
        """Test if a persisted tree exists."""
        ...

    @abstractmethod
    def read(self) -> Mapping:
        """
        Return the persisted tree.

        Raises
        ------
        FileNotFoundError
            If nothing was persisted yet.
        """
        ...

    @abstractmethod
    def write(self, tree: Mapping, properties: Properties | None = None) -> None:
        """Replace the persisted tree with ``tree``."""
        ...


# ========== ========== ========== ========== ========== memory
class MemoryTarget(Target):
    """In-memory target, mostly useful for tests and previews."""

    def __init__(self, tree: Mapping | None = None) -> None:
        self.tree: Mapping | None = copy_tree(tree) if tree is not None else None
        self.writes: int = 0

    def __repr__(self) -> str:
        return f'MemoryTarget({self.tree!r})'

    def exists(self) -> bool:
        return self.tree is not None

    def read(self) -> Mapping:
        if self.tree is None:
            raise FileNotFoundError("Nothing was written to this target yet")

        return copy_tree(self.tree)

    def write(self, tree: Mapping, properties: Properties | None = None) -> None:
        self.tree = copy_tree(tree)
        self.writes += 1


def copy_tree(node: Node) -> Node:
    """Deep copy of a tree, comments included."""
    if isinstance(node, Mapping):
        return Mapping({key: copy_tree(child) for key, child in node.items()}, dict(node.comments))

    if isinstance(node, Sequence):
        return type(node)(copy_tree(item) for item in node.items)

    return node


# ========== ========== ========== ========== ========== files
class FileTarget(Target):
    """Target backed by a file at ``path``."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def __repr__(self) -> str:
        return f'{type(self).__name__}({str(self.path)!r})'

    def exists(self) -> bool:
        return self.path.is_file()

    def read(self) -> Mapping:

        if not self.path.is_file():
            raise FileNotFoundError(f"Path {self.path} does not exist")

        logger.debug(f"Reading {self.path}")
        return self._read()

    def write(self, tree: Mapping, properties: Properties | None = None) -> None:

        self.path.parent.mkdir(parents=True, exist_ok=True)

        temporary = self.path.with_name(f'.{self.path.name}.{os.getpid()}.tmp')

        try:
            self._write(temporary, tree, properties)
            os.replace(temporary, self.path)

        except BaseException:
            temporary.unlink(missing_ok=True)
            raise

        logger.debug(f"Wrote {self.path}")

    # ========== ========== ========== ========== ========== protected methods
    @abstractmethod
    def _read(self) -> Mapping:
        ...

    @abstractmethod
    def _write(self, path: Path, tree: Mapping, properties: Properties | None) -> None:
        ...


class YamlFile(FileTarget):
    """
    YAML file target.

    Parameters
    ----------
    path : str or Path
        File path.
    codec : YamlCodec, optional
        Codec converting trees to text and back.
    encoding : str, default 'utf-8'
        Text encoding of the file.
    """

    def __init__(self, path: Path | str, codec: YamlCodec | None = None, encoding: str = 'utf-8') -> None:
        super().__init__(path)
        self.codec = codec or YamlCodec()
        self.encoding = encoding

    def _read(self) -> Mapping:
        return self.codec.loads(self.path.read_text(encoding=self.encoding))

    def _write(self, path: Path, tree: Mapping, properties: Properties | None) -> None:
        path.write_text(self.codec.dumps(tree, properties), encoding=self.encoding)


class Hdf5File(FileTarget):
    """HDF5 file target, following the encoding rules of this module."""

    def _read(self) -> Mapping:
        with h5py.File(self.path, 'r') as file:
            return self._load_node(file['root'])

    def _write(self, path: Path, tree: Mapping, properties: Properties | None) -> None:
        with h5py.File(path, 'w') as file:
            self._save_node('root', tree, file)

    # ========== ========== ========== ========== ========== protected methods
    @staticmethod
    def _save_node(key: str, node: Node, group: h5py.Group) -> None:
        """
        Save a node under a given key inside an HDF5 group.

        Raises
        ------
        TypeError
            If the node cannot be persisted.
        """
        if isinstance(node, Null):
            group.attrs[key] = NONE_MARKER

        elif isinstance(node, Scalar):
            group.attrs[key] = node.value

        elif isinstance(node, Sequence):
            subgroup = group.create_group(key, track_order=True)
            subgroup.attrs['__container_type__'] = 'set' if isinstance(node, Set) else 'list'

            for idx, item in enumerate(node.items):
                Hdf5File._save_node(str(idx), item, subgroup)

        elif isinstance(node, Mapping):
            subgroup = group.create_group(key, track_order=True)
            subgroup.attrs['__container_type__'] = 'dict'
            subgroup.attrs['__keys__'] = json.dumps(list(node.keys()))

            for idx, item in enumerate(node.entries.values()):
                Hdf5File._save_node(str(idx), item, subgroup)

        else:
            raise TypeError(f"{type(node).__name__} nodes cannot be saved in h5py.Groups")

    @staticmethod
    def _load_node(value: Any) -> Node:
        """
        Load a node from an HDF5 group or attribute recursively.

        Raises
        ------
        ValueError
            If a group has an unknown ``__container_type__``.
        """
        if isinstance(value, h5py.Group):

            data = {k: Hdf5File._load_node(v) for k, v in value.items()}
            data.update({k: Hdf5File._load_node(v) for k, v in value.attrs.items()
                         if not k.startswith('__')})

            # it must have a __container_type__ attr
            container_type = value.attrs['__container_type__']
            items = [data[key] for key in sorted(data.keys(), key=int)]

            if container_type == 'list':
                return Sequence(items)

            if container_type == 'set':
                return Set(items)

            if container_type == 'dict':
                keys = json.loads(value.attrs['__keys__'])
                return Mapping(dict(zip(keys, items)))

            raise ValueError(f"Could not resolve __container_type__={container_type}")

        if isinstance(value, str) and value == NONE_MARKER:
            return NULL

        if isinstance(value, bytes):
            value = value.decode('utf-8')

        if isinstance(value, numpy.bool_):
            return Scalar(bool(value))

        return from_python(value)  # basically numbers and strings


__all__ = [
    'Target',
    'MemoryTarget',
    'FileTarget',
    'YamlFile',
    'Hdf5File',
    'copy_tree',
]
