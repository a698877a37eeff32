#  -*- coding: utf-8 -*-
"""
Comment lines attached to configuration components.

A comment is an ordered tuple of lines; an empty line stands for a blank
line in the rendered text. Comments are attached to the keys of the
``Mapping`` emitted for a configuration type, and only aggregates reachable
through a chain of keys carry them: aggregates stored inside sequences, sets
or maps have no stable key path and are emitted without comments.
"""

from __future__ import annotations

from collections.abc import Iterable

# ---------- ---------- ---------- ---------- ---------- ---------- typing
from typing import TypeAlias


Comment: TypeAlias = tuple[str, ...]
CommentSource: TypeAlias = str | Iterable[str] | None


def normalize_comment(comment: CommentSource) -> Comment:
    """
    Convert a user supplied comment into a tuple of lines.

    Examples
    --------
    >>> normalize_comment('first\\nsecond')
    ('first', 'second')
    >>> normalize_comment(['a', '', 'b'])
    ('a', '', 'b')
    >>> normalize_comment(None)
    ()
    """
    if comment is None:
        return ()

    if isinstance(comment, str):
        return tuple(comment.split('\n'))

    lines: list[str] = []

    for entry in comment:
        if not isinstance(entry, str):
            raise TypeError(f"Comment lines must be strings, given {type(entry).__name__}")

        lines.extend(entry.split('\n'))

    return tuple(lines)


__all__ = [
    'Comment',
    'normalize_comment',
]
