"""Syntax tree produced by :mod:`.parser` and walked by :mod:`.interpreter`.

Names are stored without their sigils: `:header` becomes `header`, `@top` becomes `top` and `$row.name` becomes
the root `row` with the segments `('name',)`."""
from typing import List, Optional, Tuple

from attr import attrib, attrs

from .values import Value

Position = Tuple[int, int]

CELL_KINDS = ('str', 'num', 'date', 'img')
IMAGE_MODES = ('embed', 'insert')
SIZE_UNITS = ('chars', 'pixels')


class Expr(object):
    """Base class for expressions."""


@attrs(auto_attribs=True, frozen=True)
class Literal(Expr):
    value: Value


@attrs(auto_attribs=True, frozen=True)
class VariablePath(Expr):
    name: str
    segments: Tuple[str, ...] = ()

    def __str__(self):
        return '$' + '.'.join((self.name, *self.segments))


@attrs(auto_attribs=True, frozen=True)
class BinaryOp(Expr):
    operator: str
    left: Expr
    right: Expr


@attrs(auto_attribs=True, frozen=True)
class Negate(Expr):
    operand: Expr


@attrs(auto_attribs=True, frozen=True)
class StyleModifier(object):
    name: str
    arguments: Tuple[Expr, ...] = attrib(factory=tuple, converter=tuple)
    position: Optional[Position] = attrib(default=None, eq=False, repr=False)


@attrs(auto_attribs=True, frozen=True)
class FormatDeclaration(object):
    name: str
    modifiers: Tuple[StyleModifier, ...] = attrib(factory=tuple, converter=tuple)
    position: Optional[Position] = attrib(default=None, eq=False, repr=False)


class Statement(object):
    """Base class for everything that may appear inside a sheet body."""
    position: Optional[Position] = None


@attrs(auto_attribs=True, frozen=True)
class ColumnSpec(Statement):
    first: int
    last: int
    unit: str
    size: float
    position: Optional[Position] = attrib(default=None, eq=False, repr=False)


@attrs(auto_attribs=True, frozen=True)
class RowSpec(Statement):
    index: int
    unit: str
    size: float
    position: Optional[Position] = attrib(default=None, eq=False, repr=False)


@attrs(auto_attribs=True, frozen=True)
class AnchorDecl(Statement):
    name: str
    position: Optional[Position] = attrib(default=None, eq=False, repr=False)


@attrs(auto_attribs=True, frozen=True)
class Move(Statement):
    anchor: Optional[str]
    d_row: int
    d_col: int
    position: Optional[Position] = attrib(default=None, eq=False, repr=False)


@attrs(auto_attribs=True, frozen=True)
class CarriageReturn(Statement):
    position: Optional[Position] = attrib(default=None, eq=False, repr=False)


@attrs(auto_attribs=True, frozen=True)
class Autofit(Statement):
    position: Optional[Position] = attrib(default=None, eq=False, repr=False)


@attrs(auto_attribs=True, frozen=True)
class Cell(object):
    """A cell constructor. For `img` cells `content` is the path expression."""
    kind: str
    content: Expr
    format_ref: Optional[str] = None
    colspan: int = 1
    rowspan: int = 1
    image_mode: Optional[str] = None
    position: Optional[Position] = attrib(default=None, eq=False, repr=False)


@attrs(auto_attribs=True, frozen=True)
class RowEmit(Statement):
    cells: Tuple[Cell, ...] = attrib(factory=tuple, converter=tuple)
    position: Optional[Position] = attrib(default=None, eq=False, repr=False)


@attrs(auto_attribs=True, frozen=True)
class ForLoop(Statement):
    variable: str
    source: Expr
    body: Tuple[Statement, ...] = attrib(factory=tuple, converter=tuple)
    position: Optional[Position] = attrib(default=None, eq=False, repr=False)


@attrs(auto_attribs=True, frozen=True)
class Sheet(object):
    name: str
    statements: Tuple[Statement, ...] = attrib(factory=tuple, converter=tuple)
    position: Optional[Position] = attrib(default=None, eq=False, repr=False)


@attrs(auto_attribs=True, frozen=True)
class Document(object):
    formats: List[FormatDeclaration] = attrib(factory=list, converter=list, hash=False)
    sheets: List[Sheet] = attrib(factory=list, converter=list, hash=False)
