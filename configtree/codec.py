#  -*- coding: utf-8 -*-
"""
YAML text codec for trees.

The codec is the only part of configtree that produces or parses text. Values
are rendered with PyYAML's safe dumper, one top-level key at a time, so that
the comment lines attached to the keys of nested mappings can be written in
front of them with an indentation proportional to their depth::

    # Connection settings
    server:
      # Host name
      host: localhost
      port: 8080
    tags:
    - a
    - b

Comments are write-only: they are regenerated from the configuration types on
every save, and ``loads`` discards whatever comments the text holds.
"""

from __future__ import annotations

import yaml

# ---------- ---------- ---------- ---------- ---------- ---------- typing
from typing import Any, TYPE_CHECKING

from .errors import ShapeMismatchError
from .nodes import Mapping, Node, Null, Scalar, Sequence, Set, from_python

if TYPE_CHECKING:
    from .properties import Properties


INDENT = '  '


class _OrderedSet(list):
    """Set elements in emission order, dumped with the ``!!set`` tag."""


class _Dumper(yaml.SafeDumper):
    ...


def _represent_ordered_set(dumper: yaml.SafeDumper, data: _OrderedSet) -> yaml.Node:
    return dumper.represent_mapping('tag:yaml.org,2002:set', {item: None for item in data})


_Dumper.add_representer(_OrderedSet, _represent_ordered_set)


class YamlCodec:
    """
    Converts ``Mapping`` trees to YAML text and back.

    Parameters
    ----------
    width : int, optional
        Preferred line width passed to the YAML emitter.
    """

    # ========== ========== ========== ========== ========== special methods
    def __init__(self, width: int = 4096) -> None:
        self.width = width

    # ========== ========== ========== ========== ========== public methods
    def dumps(self, tree: Mapping, properties: Properties | None = None) -> str:
        """
        Render ``tree`` as YAML, with comments, header and footer.

        Parameters
        ----------
        tree : Mapping
            Tree to render.
        properties : Properties, optional
            Source of the header and footer text.

        Returns
        -------
        str
            The YAML document.
        """
        lines: list[str] = []

        header = properties.header if properties is not None else None
        footer = properties.footer if properties is not None else None

        if header is not None:
            lines.extend(_comment_block(header, ''))

        self._dump_mapping(tree, 0, lines)

        if footer is not None:
            lines.extend(_comment_block(footer, ''))

        return ''.join(f'{line}\n' for line in lines)

    def loads(self, text: str) -> Mapping:
        """
        Parse a YAML document into a tree.

        An empty document is an empty mapping.

        Raises
        ------
        ShapeMismatchError
            If the text is not valid YAML or its root is not a mapping.
        """
        try:
            document = yaml.safe_load(text)
        except yaml.YAMLError as error:
            raise ShapeMismatchError(f"Invalid YAML document: {error}") from error

        if document is None:
            return Mapping()

        if not isinstance(document, dict):
            raise ShapeMismatchError(f"Expected a mapping at the root of the YAML document, "
                                     f"found {type(document).__name__}")

        return from_python(document)

    # ========== ========== ========== ========== ========== private methods
    def _dump_mapping(self, tree: Mapping, depth: int, lines: list[str]) -> None:

        indent = INDENT * depth

        for key, node in tree.items():

            lines.extend(_comment_block(tree.comment(key), indent))

            if isinstance(node, Mapping) and len(node):
                lines.append(indent + self._dump({key: None}).rstrip('\n').removesuffix(' null'))
                self._dump_mapping(node, depth + 1, lines)
                continue

            for line in self._dump({key: _plain(node)}).splitlines():
                lines.append(indent + line)

    def _dump(self, value: Any) -> str:
        return yaml.dump(value,
                         Dumper=_Dumper,
                         default_flow_style=False,
                         sort_keys=False,
                         allow_unicode=True,
                         width=self.width)


def _comment_block(comment: str | tuple[str, ...], indent: str) -> list[str]:

    if isinstance(comment, str):
        comment = tuple(comment.split('\n'))

    return [f'{indent}# {line}' if line else '' for line in comment]


def _plain(node: Node) -> Any:
    """Plain YAML-representable form of ``node``; sets keep their emission order."""
    if isinstance(node, Set):
        return _OrderedSet(_plain(item) for item in node.items)

    if isinstance(node, Sequence):
        return [_plain(item) for item in node.items]

    if isinstance(node, Mapping):
        return {key: _plain(item) for key, item in node.items()}

    if isinstance(node, (Scalar, Null)):
        return node.to_python()

    raise TypeError(f"Cannot render {type(node).__name__} as YAML")


__all__ = [
    'YamlCodec',
]
