from abc import abstractmethod
from numbers import Integral, Real
from typing import Any, Optional, TYPE_CHECKING, Tuple, TypeVar

from attr import attrib, attrs, evolve

from .formats import FormatDict
from .nodes import SIZE_UNITS

if TYPE_CHECKING:
    from .sinks import Sink

T = TypeVar('T')

Coords = Tuple[int, int]


@attrs(auto_attribs=True)
class Trait(object):
    pass


@attrs(auto_attribs=True, frozen=True, order=False)
class FractionalSize(Trait):
    """Instructions with this trait carry a real-valued `size` measured in `unit`, either chars or pixels."""
    unit: str = 'chars'
    size: float = 0.0

    def with_size(self: T, size: Real, unit: str = 'chars') -> T:
        """Specify the real-valued `size` and its `unit` for this object."""
        if unit not in SIZE_UNITS:
            raise ValueError(f'Unit {unit} is not valid: valid values are {SIZE_UNITS}')
        return evolve(self, size=float(size), unit=unit)


@attrs(auto_attribs=True, frozen=True, order=False)
class Position(Trait):
    """Instructions with this trait target a specific cell at `row` and `col`"""
    row: int = -1
    col: int = -1

    def at(self: T, row: Integral, col: Integral) -> T:
        """Target the cell at `row` and `col` for this object."""
        return evolve(self, row=int(row), col=int(col))

    @property
    def coords(self) -> Coords:
        return self.row, self.col


@attrs(auto_attribs=True, frozen=True, order=False)
class Span(Trait):
    """Instructions with this trait cover `colspan` columns and `rowspan` rows starting at their position."""
    colspan: int = 1
    rowspan: int = 1

    def spanning(self: T, colspan: Integral = 1, rowspan: Integral = 1) -> T:
        """Specify how many columns and rows this object covers."""
        if colspan < 1 or rowspan < 1:
            raise ValueError(f'Span must be at least 1x1, got {colspan}x{rowspan}')
        return evolve(self, colspan=int(colspan), rowspan=int(rowspan))

    @property
    def is_merged(self) -> bool:
        return self.colspan > 1 or self.rowspan > 1


@attrs(auto_attribs=True, frozen=True, order=False)
class Data(Trait):
    """Instructions with this trait provide some `data` to the sink for writing. None means a blank cell."""
    data: Any = None

    def with_data(self: T, data: Any) -> T:
        """Specify the `data` for this object."""
        return evolve(self, data=data)


@attrs(auto_attribs=True, frozen=True, order=False)
class Style(Trait):
    """Instructions with this trait carry a resolved `style`, or None to use the sink's defaults."""
    style: Optional[FormatDict] = attrib(default=None, repr=False)

    def with_style(self: T, style) -> T:
        """Merge `style` into the style of this object."""
        if style is None:
            return self
        return evolve(self, style=(self.style or FormatDict()) | style)


class ExecutableInstruction(Trait):
    """Instructions with this trait are executed against a sink, in the order they were produced."""

    @abstractmethod
    def execute(self, sink: 'Sink'):
        """Perform this instruction on `sink`."""
        raise NotImplementedError
