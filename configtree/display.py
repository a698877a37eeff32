#  -*- coding: utf-8 -*-
"""
Rich terminal display of descriptors and trees.

``Displayable`` renders an object as a Rich panel whose title and body are
provided by subclasses; ``TypeDescriptor`` uses it to list the components of
a configuration type. ``render_tree`` turns a tree into a ``rich.tree.Tree``
showing keys, values and attached comments.

Display settings are themselves a configuration type, so a theme can be
saved, loaded and updated like any other configuration.
"""

from __future__ import annotations

import pandas

from abc import ABC, abstractmethod

from io import StringIO

from rich.markup import escape
from rich.text import Text
from rich.panel import Panel
from rich.console import Console, RenderableType
from rich.table import Table
from rich.tree import Tree
from rich import box
from rich.align import Align

from typing import Any

from .configuration import Configuration, ConfigProperty
from .nodes import Mapping, Node, Null, Scalar, Sequence


# ========== ========== ========== ========== ========== ==========
class DisplaySettings(Configuration):
    """
    Configuration for terminal display formatting.

    All styling properties use Rich's style syntax, supporting colors,
    attributes (bold, italic), and combinations.

    Examples
    --------
    Persist a theme and pick up new settings on later runs::

        settings = configtree.update('theme.yml', DisplaySettings)
        Displayable.display_settings = settings
    """

    console_width: int = ConfigProperty(default=150, comment='Maximum console output width in characters')

    property_style: str = ConfigProperty(default='bold bright_yellow', comment='Style of keys in forms and trees')
    comment_style: str = ConfigProperty(default='dim italic', comment='Style of comment lines in trees')

    panel_border_style: str = ConfigProperty(default='bright_cyan')
    panel_box: str = ConfigProperty(default='ROUNDED', comment='Box style name from rich.box')
    panel_title_align: str = ConfigProperty(default='center')

    table_header_style: str | None = ConfigProperty(default='bold bright_yellow')
    table_spacing: int = ConfigProperty(default=4, comment='Spacing between table columns')


class Displayable(ABC):
    """
    Abstract base for objects with Rich terminal display.

    Subclasses define content through ``_title()`` and ``_content()``, while
    this class handles formatting, styling, and rendering. Integrates with
    Rich's protocol (``__rich__``) and provides string output (``__str__``).
    """

    # ========== ========== ========== ========== ========== class attributes
    display_settings: DisplaySettings = DisplaySettings()

    # ========== ========== ========== ========== ========== special methods
    def __str__(self) -> str:
        string_io = StringIO()
        console = Console(file=string_io,
                          force_terminal=True,
                          width=self.display_settings.console_width)

        console.print(self._display_panel())

        return string_io.getvalue()

    def __rich__(self) -> RenderableType:
        return self._display_panel()

    # ========== ========== ========== ========== ========== protected methods
    @abstractmethod
    def _title(self) -> Text:
        """Generate panel title."""
        ...

    @abstractmethod
    def _content(self) -> RenderableType:
        """Generate panel body content."""
        ...

    def _display_panel(self) -> Panel:
        return Panel(
            self._content(),
            title=self._title(),
            border_style=self.display_settings.panel_border_style,
            title_align=self.display_settings.panel_title_align,
            expand=False,
            box=getattr(box, self.display_settings.panel_box)
        )

    # ========== ========== ========== ========== ========== public methods
    def format_as_table(self,
                        frame: pandas.DataFrame,
                        show_index: bool = True,
                        align_header: str = 'center',
                        max_rows: int = 31) -> Table:
        """
        Format a DataFrame as Rich table.

        Parameters
        ----------
        frame : pandas.DataFrame
            Data to display.
        show_index : bool, optional
            Include index column. Default True.
        align_header : str, optional
            Header alignment. Default 'center'.
        max_rows : int, optional
            Max rows before truncation. Default 31.

        Returns
        -------
        Table
            Formatted Rich Table.

        Notes
        -----
        Numeric columns are right aligned, everything else left aligned.
        Truncation shows the first n/2 rows, '...', and the last n/2 rows.
        """
        _frame = frame.reset_index() if show_index else frame.copy()

        columns = _frame.columns

        table = Table.grid(padding=(0, self.display_settings.table_spacing), expand=False)

        for column in columns:

            if pandas.api.types.is_numeric_dtype(_frame[column]):
                table.add_column(justify='right')
            else:
                table.add_column(justify='left')

        table.add_row(*(Align(escape(str(col)), align_header) for col in columns),
                      style=self.display_settings.table_header_style)

        __frame = _frame.astype(str)

        if len(__frame) <= max_rows:
            for _, row in __frame.iterrows():
                table.add_row(*(escape(value) for value in row.values))

        else:
            n_rows: int = (max_rows - 1) // 2

            for _, row in __frame.head(n_rows).iterrows():
                table.add_row(*(escape(value) for value in row.values))

            table.add_row(*(Align.center('...') for _ in columns))

            for _, row in __frame.tail(n_rows).iterrows():
                table.add_row(*(escape(value) for value in row.values))

        return table


# ========== ========== ========== ========== ========== ==========
def render_tree(node: Node, label: str = 'root', settings: DisplaySettings | None = None) -> Tree:
    """
    Render a tree as a ``rich.tree.Tree``.

    Parameters
    ----------
    node : Node
        Tree to render.
    label : str, optional
        Label of the root.
    settings : DisplaySettings, optional
        Styles to use. Defaults to ``Displayable.display_settings``.

    Returns
    -------
    Tree
        Renderable tree. Comment lines are shown before the key they are
        attached to.
    """
    settings = settings or Displayable.display_settings

    tree = Tree(Text(label, style=settings.property_style))
    _add_children(tree, node, settings)

    return tree


def _describe_leaf(node: Node) -> str:

    if isinstance(node, Null):
        return 'null'

    if isinstance(node, Scalar):
        return repr(node.value)

    return ''


def _add_children(tree: Tree, node: Node, settings: DisplaySettings) -> None:

    if isinstance(node, Mapping):
        entries: list[tuple[Any, Node]] = list(node.items())
    elif isinstance(node, Sequence):
        entries = [(f'[{index}]', item) for index, item in enumerate(node.items)]
    else:
        return

    for key, child in entries:

        label = Text()

        if isinstance(node, Mapping):
            for line in node.comment(key):
                label.append(f'# {line}\n', style=settings.comment_style)

        label.append(str(key), style=settings.property_style)

        leaf = _describe_leaf(child)
        if leaf:
            label.append(f': {leaf}')

        _add_children(tree.add(label), child, settings)


__all__ = [
    'DisplaySettings',
    'Displayable',
    'render_tree',
]
