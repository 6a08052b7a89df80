from typing import Dict, Iterable, List, Optional, Union

from attr import Factory, attrib, attrs

from . import instructions as ops
from .errors import DuplicateDeclarationError, MovementError, UndeclaredReferenceError
from .traits import Coords

# 2^20 and 2^14 are Excel limits for the amount of rows and columns respectively.
MAX_ROW = 2 ** 20
MAX_COL = 2 ** 14

Placement = Union[ops.PlaceCellOp, ops.PlaceImageOp]


def ensure_in_grid(row: int, col: int, what: str = 'Cursor'):
    if row not in range(0, MAX_ROW) or col not in range(0, MAX_COL):
        raise MovementError(f'Illegal coords have been reached: {what} at ({row}, {col}) is outside the sheet.')


@attrs(auto_attribs=True)
class SheetCursor(object):
    """Write position within one sheet.

    Attributes:
        name: Name of the sheet this cursor belongs to.
        row: Current row, zero-based.
        col: Current column, zero-based.
        anchors: Positions recorded by `anchor(@name)`, write-once within the sheet.
        run_start_col:
            Column where the current run of row emissions began, the target of a carriage return. None until
            the first row after the sheet opens or after a move.
    """
    name: str
    row: int = 0
    col: int = 0
    anchors: Dict[str, Coords] = Factory(dict)
    run_start_col: Optional[int] = None

    @property
    def coords(self) -> Coords:
        return self.row, self.col


@attrs(auto_attribs=True)
class LayoutEngine(object):
    """Turns cursor directives into addressed instructions, collected in `instructions` in emission order.

    One engine serves one run; every sheet gets a fresh :class:`SheetCursor`."""
    instructions: List[ops.AnyInstruction] = Factory(list)
    cursor: Optional[SheetCursor] = attrib(default=None, init=False)

    def open_sheet(self, name: str):
        self.cursor = SheetCursor(name)
        self.instructions.append(ops.NewSheet.named(name))

    def declare_anchor(self, name: str):
        if name in self.cursor.anchors:
            raise DuplicateDeclarationError(
                f'Anchor @{name} is already declared in sheet {self.cursor.name!r} '
                f'at {self.cursor.anchors[name]}'
            )
        self.cursor.anchors[name] = self.cursor.coords

    def move(self, anchor: Optional[str], d_row: int, d_col: int):
        """Move by (`d_row`, `d_col`) from `anchor`, or from the cursor when `anchor` is None."""
        if anchor is None:
            row, col = self.cursor.coords
        else:
            try:
                row, col = self.cursor.anchors[anchor]
            except KeyError as e:
                raise UndeclaredReferenceError(f'Anchor @{anchor} is not declared') from e

        row, col = row + d_row, col + d_col
        ensure_in_grid(row, col)
        self.cursor.row, self.cursor.col = row, col
        self.cursor.run_start_col = None

    def carriage_return(self):
        """Return to the column where the current run of rows began; the row is left as is."""
        if self.cursor.run_start_col is not None:
            self.cursor.col = self.cursor.run_start_col

    def emit_row(self, cells: Iterable[Placement]):
        """Place `cells` left to right starting at the cursor, then go down exactly one row.

        The column advances by each cell's colspan; rowspan never affects the cursor."""
        cursor = self.cursor
        if cursor.run_start_col is None:
            cursor.run_start_col = cursor.col

        for cell in cells:
            ensure_in_grid(cursor.row, cursor.col)
            if cell.is_merged:
                ensure_in_grid(
                    cursor.row + cell.rowspan - 1,
                    cursor.col + cell.colspan - 1,
                    'Bottom right corner of a merge region'
                )
            self.instructions.append(cell.at(cursor.row, cursor.col))
            cursor.col += cell.colspan

        cursor.row += 1

    def column_width(self, first: int, last: int, unit: str, size: float):
        ensure_in_grid(0, last, 'Column')
        self.instructions.append(ops.SetColumnWidth.columns(first, last).with_size(size, unit))

    def row_height(self, index: int, unit: str, size: float):
        ensure_in_grid(index, 0, 'Row')
        self.instructions.append(ops.SetRowHeight.row(index).with_size(size, unit))

    def autofit(self):
        self.instructions.append(ops.AutofitColumns)
