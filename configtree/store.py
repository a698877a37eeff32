#  -*- coding: utf-8 -*-
"""
The operation surface: save, load and update configuration instances.

``target`` is a ``Target`` or a path. Paths ending in ``.h5`` or ``.hdf5`` are
stored with ``Hdf5File``, every other path with ``YamlFile``.

Every operation either completes or leaves the target untouched: the tree is
fully encoded before anything is written, and file targets replace their file
atomically.

Concurrent ``update`` calls on the same target are not serialized; guard them
with a lock scoped to the target if they can happen.

Examples
--------
>>> class Limits(Configuration):
...     retries: int = ConfigProperty(default=3, comment='Attempts before giving up')
...     timeout: float = 2.5
>>> limits = update('limits.yml', Limits)   # created with the defaults
>>> limits.retries
3
"""

from __future__ import annotations

import logging

from pathlib import Path

# ---------- ---------- ---------- ---------- ---------- ---------- typing
from typing import Any, Generic, TypeVar

from .converter import DEFAULT_PROPERTIES, decode, encode, unknown_keys
from .merge import merge
from .properties import Properties
from .targets import Hdf5File, Target, YamlFile
from .typeinfo import type_name


logger = logging.getLogger(__name__)

T = TypeVar('T')

HDF5_SUFFIXES = ('.h5', '.hdf5')


def as_target(target: Target | Path | str) -> Target:
    """Wrap a path into the file target matching its suffix."""
    if isinstance(target, Target):
        return target

    path = Path(target)

    if path.suffix.lower() in HDF5_SUFFIXES:
        return Hdf5File(path)

    return YamlFile(path)


def save(target: Target | Path | str, cls: type[T], instance: T, properties: Properties | None = None) -> None:
    """
    Encode ``instance`` as declared type ``cls`` and write it to ``target``.

    Raises
    ------
    ConfigurationError
        If the type is invalid or a value cannot be encoded. Nothing is
        written in that case.
    """
    properties = properties or DEFAULT_PROPERTIES

    tree = encode(instance, properties.describe(cls), properties)
    as_target(target).write(tree, properties)


def load(target: Target | Path | str, cls: type[T], properties: Properties | None = None) -> T:
    """
    Read ``target`` and decode it as ``cls``.

    Components absent from the persisted tree keep their defaults.

    Raises
    ------
    FileNotFoundError
        If the target holds no tree.
    ConfigurationError
        If the type is invalid or the tree does not match it.
    """
    properties = properties or DEFAULT_PROPERTIES

    descriptor = properties.describe(cls)
    tree = as_target(target).read()

    return decode(tree, descriptor, properties)


def update(target: Target | Path | str, cls: type[T], properties: Properties | None = None) -> T:
    """
    Reconcile the persisted tree of ``target`` with the current shape of ``cls``.

    When nothing is persisted yet, the default instance is saved. Otherwise
    the persisted tree is merged into a default instance: persisted values
    that still match their components survive, missing or incompatible ones
    take their defaults, and obsolete keys are dropped. The merged instance is
    then always re-encoded and written back.

    Returns
    -------
    object
        The merged instance.
    """
    properties = properties or DEFAULT_PROPERTIES
    target = as_target(target)

    descriptor = properties.describe(cls)
    instance = descriptor.new_default()

    if not target.exists():
        logger.info(f"Creating {target!r} with the defaults of {type_name(cls)}")

    else:
        persisted = target.read()

        for path in unknown_keys(persisted, descriptor, properties):
            logger.info(f"Dropping obsolete key '{'.'.join(str(key) for key in path)}' from {target!r}")

        instance = merge(persisted, descriptor, properties, instance)

    target.write(encode(instance, descriptor, properties), properties)

    return instance


class ConfigurationStore(Generic[T]):
    """
    The three operations bound to one configuration type and one ``Properties``.

    Examples
    --------
    >>> store = ConfigurationStore(Limits)
    >>> limits = store.update('limits.yml')
    >>> store.save('limits.yml', limits)
    """

    # ========== ========== ========== ========== ========== special methods
    def __init__(self, cls: type[T], properties: Properties | None = None) -> None:
        self.type = cls
        self.properties = properties or DEFAULT_PROPERTIES

        # invalid types fail here rather than on first use
        self.descriptor = self.properties.describe(cls)

    def __repr__(self) -> str:
        return f'ConfigurationStore({type_name(self.type)})'

    # ========== ========== ========== ========== ========== public methods
    def save(self, target: Target | Path | str, instance: T) -> None:
        save(target, self.type, instance, self.properties)

    def load(self, target: Target | Path | str) -> T:
        return load(target, self.type, self.properties)

    def update(self, target: Target | Path | str) -> T:
        return update(target, self.type, self.properties)

    def encode(self, instance: T) -> Any:
        return encode(instance, self.descriptor, self.properties)

    def decode(self, tree: Any, base: T | None = None) -> T:
        return decode(tree, self.descriptor, self.properties, base)


__all__ = [
    'as_target',
    'save',
    'load',
    'update',
    'ConfigurationStore',
]
