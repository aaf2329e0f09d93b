# -*- coding: utf-8 -*-
"""
Flattens {| ... |} wikitable syntax into plain lines.
"""
import re

from .templates import split_params

CELL_SEPARATOR = " | "


class TableFlattener:
    """
    Line-oriented table conversion.

    - ``{| ...`` and ``|}`` delimiters and ``|-`` row separators are removed
    - ``|+ caption`` keeps the caption text
    - ``! a !! b`` header lines and ``| a || b`` cell lines become ``a | b``
    """

    def __init__(self):
        self._table_start = re.compile(r"^[ \t]*\{\|[^\n]*$", re.MULTILINE)
        self._table_end = re.compile(r"^[ \t]*\|\}[ \t]*$", re.MULTILINE)
        self._caption = re.compile(r"^[ \t]*\|\+[ \t]*([^\n]*)", re.MULTILINE)
        self._row_separator = re.compile(r"^[ \t]*\|-[^\n]*", re.MULTILINE)
        self._header = re.compile(r"^[ \t]*![ \t]*([^\n]*)", re.MULTILINE)
        self._cells = re.compile(r"^[ \t]*\|[ \t]*([^\n]*)", re.MULTILINE)

    def flatten(self, text: str) -> str:
        text = self._table_start.sub("", text)
        text = self._table_end.sub("", text)
        text = self._caption.sub(lambda m: self._cell_text(m.group(1)), text)
        text = self._row_separator.sub("", text)
        text = self._header.sub(lambda m: self._join_cells(m.group(1), "!!"), text)
        return self._cells.sub(lambda m: self._join_cells(m.group(1), "||"), text)

    def _join_cells(self, line: str, separator: str) -> str:
        cells = (self._cell_text(cell) for cell in line.split(separator))
        return CELL_SEPARATOR.join(cell for cell in cells if cell)

    @staticmethod
    def _cell_text(cell: str) -> str:
        """Drop a leading ``attr="..." |`` block from a cell, keep its text."""
        parts = split_params(cell)
        if len(parts) > 1 and "=" in parts[0]:
            return "|".join(parts[1:]).strip()
        return cell.strip()
