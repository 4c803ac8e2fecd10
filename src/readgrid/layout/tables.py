"""Table sub-renderer: bordered grid with wrapped cell content."""

from __future__ import annotations

from readgrid.content.models import Table
from readgrid.layout.cells import BODY_STYLE, Cell, CellStyle, LayoutLine, Role, synthetic
from readgrid.layout.config import StyleConfig
from readgrid.layout.inlines import segments_for_inlines
from readgrid.layout.wrap import Glyph, glyph_width, glyphs_to_cells, wrap_glyphs
from readgrid.mathrender.renderer import MathRenderer


MIN_COLUMN_WIDTH = 3
BORDER_STYLE = CellStyle(role=Role.TABLE_BORDER)
HEADER_STYLE = CellStyle(role=Role.TABLE_HEADER, bold=True)


def column_widths(natural: list[int], available: int) -> list[int]:
    """Fit natural column widths into ``available`` columns.

    Columns never shrink below ``MIN_COLUMN_WIDTH``; when the natural total is
    too wide every column is scaled proportionally and any rounding excess is
    taken from the widest column.
    """

    desired = [max(MIN_COLUMN_WIDTH, width) for width in natural]
    total = sum(desired)
    if total <= available or not desired:
        return desired

    scale = max(0, available) / total
    widths = [max(MIN_COLUMN_WIDTH, int(width * scale)) for width in desired]

    excess = sum(widths) - available
    while excess > 0:
        widest = max(range(len(widths)), key=lambda index: (widths[index], -index))
        room = widths[widest] - MIN_COLUMN_WIDTH
        if room <= 0:
            break
        cut = min(room, excess)
        widths[widest] -= cut
        excess -= cut
    return widths


def _border(widths: list[int], left: str, join: str, right: str) -> LayoutLine:
    glyphs = left + join.join("─" * (width + 2) for width in widths) + right
    return LayoutLine(cells=tuple(synthetic(glyphs, BORDER_STYLE)))


def _cell_glyphs(table: Table, config: StyleConfig, renderer: MathRenderer) -> list[list[list[Glyph]]]:
    rows: list[list[list[Glyph]]] = []
    for row in table.rows:
        base = HEADER_STYLE if row.header else BODY_STYLE
        cells: list[list[Glyph]] = []
        for cell in row.cells:
            glyphs: list[Glyph] = []
            for segment in segments_for_inlines(cell.inlines, base, config, renderer, allow_tall_math=False):
                if isinstance(segment, list):
                    glyphs.extend(segment)
            cells.append(glyphs)
        rows.append(cells)
    return rows


def layout_table(
    table: Table,
    block_index: int,
    width: int,
    config: StyleConfig,
    renderer: MathRenderer,
) -> list[LayoutLine]:
    cell_rows = _cell_glyphs(table, config, renderer)
    columns = max(len(row) for row in cell_rows)

    natural = [0] * columns
    for row in cell_rows:
        for column, glyphs in enumerate(row):
            natural[column] = max(natural[column], glyph_width(glyphs))

    overhead = (columns + 1) + 2 * columns
    widths = column_widths(natural, width - overhead)

    lines: list[LayoutLine] = [_border(widths, "┌", "┬", "┐")]
    for row_index, row in enumerate(cell_rows):
        wrapped = [
            wrap_glyphs(row[column] if column < len(row) else [], widths[column], config.wrap_mode)
            for column in range(columns)
        ]
        height = max(len(column_lines) for column_lines in wrapped)

        for line_no in range(height):
            cells: list[Cell] = synthetic("│ ", BORDER_STYLE)
            for column in range(columns):
                column_lines = wrapped[column]
                glyphs = column_lines[line_no] if line_no < len(column_lines) else []
                content = glyphs_to_cells(glyphs)[: widths[column]]
                cells.extend(content)
                cells.extend(synthetic(" " * (widths[column] - len(content))))
                cells.extend(synthetic(" │ " if column < columns - 1 else " │", BORDER_STYLE))
            lines.append(LayoutLine(cells=tuple(cells[:width]), block_index=block_index))

        if table.rows[row_index].header and row_index < len(cell_rows) - 1:
            lines.append(_border(widths, "├", "┼", "┤"))
    lines.append(_border(widths, "└", "┴", "┘"))

    return [
        LayoutLine(cells=line.cells[:width], block_index=block_index, code_line=line.code_line)
        for line in lines
    ]
