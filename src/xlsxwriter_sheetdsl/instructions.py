"""The resolved instruction stream a template compiles to.

Every instruction is a frozen attrs object built from a prototype with builder methods, e.g.
``PlaceCell.at(2, 0).of_kind('num').with_data(12.0)``. Coordinates are absolute and zero-based."""
from typing import TYPE_CHECKING, Union

from attr import attrs, evolve

from . import traits
from .nodes import CELL_KINDS, IMAGE_MODES

if TYPE_CHECKING:
    from .sinks import Sink


class Instruction(object):
    """Base class for all instructions."""


@attrs(auto_attribs=True, frozen=True, order=False)
class NewSheetOp(Instruction, traits.ExecutableInstruction):
    """An instruction to start a new sheet :func:`named` so; every instruction up to the next one targets it."""
    name: str = ''

    def named(self, name: str):
        return evolve(self, name=name)

    def execute(self, sink: 'Sink'):
        sink.new_sheet(self.name)


@attrs(auto_attribs=True, frozen=True, order=False)
class SetColumnWidthOp(Instruction, traits.FractionalSize, traits.ExecutableInstruction):
    """An instruction to set the width of :func:`columns` from `first` to `last` inclusive :func:`with_size`."""
    first: int = 0
    last: int = 0

    def columns(self, first: int, last: int):
        if first > last:
            raise ValueError(f'Column range {first}..{last} is reversed')
        return evolve(self, first=int(first), last=int(last))

    def execute(self, sink: 'Sink'):
        sink.set_column_width(self.first, self.last, self.unit, self.size)


@attrs(auto_attribs=True, frozen=True, order=False)
class SetRowHeightOp(Instruction, traits.FractionalSize, traits.ExecutableInstruction):
    """An instruction to set the height of the row at :func:`index` :func:`with_size`."""
    index: int = 0

    def row(self, index: int):
        return evolve(self, index=int(index))

    def execute(self, sink: 'Sink'):
        sink.set_row_height(self.index, self.unit, self.size)


@attrs(auto_attribs=True, frozen=True, order=False)
class PlaceCellOp(
    Instruction, traits.Position, traits.Span, traits.Data, traits.Style, traits.ExecutableInstruction
):
    """An instruction to place a cell :func:`of_kind` str, num or date :func:`at` some coords :func:`with_data`,
    perhaps :func:`with_style` and :func:`spanning` a merge region.

    `data` is a str for str cells, a float for num cells and an Excel serial for date cells; None is a blank."""
    kind: str = 'str'

    def of_kind(self, kind: str):
        if kind not in CELL_KINDS or kind == 'img':
            raise ValueError(f'Cell kind {kind} is not valid: valid values are str, num and date')
        return evolve(self, kind=kind)

    def execute(self, sink: 'Sink'):
        sink.place_cell(self.row, self.col, self.kind, self.data, self.style, self.colspan, self.rowspan)


@attrs(auto_attribs=True, frozen=True, order=False)
class PlaceImageOp(Instruction, traits.Position, traits.Span, traits.Style, traits.ExecutableInstruction):
    """An instruction to place the image :func:`from_path` :func:`at` some coords, either embedded in the cell or
    inserted over it depending on `mode`."""
    path: str = ''
    mode: str = 'embed'

    def from_path(self, path: str, mode: str = 'embed'):
        if mode not in IMAGE_MODES:
            raise ValueError(f'Image mode {mode} is not valid: valid values are {IMAGE_MODES}')
        return evolve(self, path=str(path), mode=mode)

    def execute(self, sink: 'Sink'):
        sink.place_image(self.row, self.col, self.path, self.mode, self.style, self.colspan, self.rowspan)


@attrs(auto_attribs=True, frozen=True, order=False)
class AutofitColumnsOp(Instruction, traits.ExecutableInstruction):
    """An advisory instruction to fit the columns of the current sheet to their content."""

    def execute(self, sink: 'Sink'):
        sink.autofit()


AnyInstruction = Union[NewSheetOp, SetColumnWidthOp, SetRowHeightOp, PlaceCellOp, PlaceImageOp, AutofitColumnsOp]

NewSheet = NewSheetOp()
SetColumnWidth = SetColumnWidthOp()
SetRowHeight = SetRowHeightOp()
PlaceCell = PlaceCellOp()
PlaceString = PlaceCell.of_kind('str')
PlaceNumber = PlaceCell.of_kind('num')
PlaceDate = PlaceCell.of_kind('date')
PlaceImage = PlaceImageOp()
AutofitColumns = AutofitColumnsOp()
