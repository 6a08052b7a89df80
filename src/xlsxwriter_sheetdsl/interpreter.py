import re
from collections import deque
from typing import Any, Iterable, List, Mapping, Optional, TYPE_CHECKING, Union

from . import instructions as ops
from .errors import ExecutionError, MalformedDateError, SheetDSLError, TypeMismatchError
from .evaluator import Environment, as_text, evaluate
from .formats import FormatTable
from .layout import LayoutEngine, Placement
from .nodes import (
    AnchorDecl, Autofit, CarriageReturn, Cell, ColumnSpec, Document, ForLoop, Move, RowEmit, RowSpec, Statement,
)
from .parser import parse
from .values import (
    DateValue, MappingValue, NullValue, NumberValue, SequenceValue, StringValue, Value, ingest_environment,
    finite_number, parse_timestamp,
)

if TYPE_CHECKING:
    from .sinks import Sink

_DECIMAL_RE = re.compile(r'[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?')


def cell_data(kind: str, value: Value) -> Any:
    """Convert the evaluated content of a `kind` cell into the data of its placement instruction.

    Null content is a blank cell whatever the kind.

    Raises:
        TypeMismatchError: the content cannot be shown in a cell of this kind.
        MalformedDateError: a date cell got something that is neither a date nor an ISO-8601 string.
        TemplateArithmeticError: a num cell got a numeric string that is not a finite number.
    """
    value_type = type(value)
    if value_type in (SequenceValue, MappingValue):
        raise TypeMismatchError(f'A {value.KIND} cannot be placed in a {kind} cell')
    if value_type is NullValue:
        return None

    if kind == 'str':
        return as_text(value)
    elif kind == 'num':
        if value_type is NumberValue:
            return value.value
        if value_type is StringValue and _DECIMAL_RE.fullmatch(value.value.strip()):
            return finite_number(value.value)
        raise TypeMismatchError(f'A num cell expects a number, got {as_text(value)!r}')
    elif kind == 'date':
        if value_type is DateValue:
            return value.serial
        if value_type is StringValue:
            return parse_timestamp(value.value)
        raise MalformedDateError(f'A date cell expects a date or an ISO-8601 string, got a {value.KIND}')

    raise ValueError(f'Unknown cell kind {kind}')


def describe(statement: Statement) -> str:
    """Short form of `statement` for error reports; loop bodies are left out."""
    if type(statement) is ForLoop:
        return f'for ${statement.variable} in {statement.source}'
    return repr(statement)


class TemplateInterpreter(object):
    """
    A single run of a parsed template over one data tree. It owns every piece of mutable state of the run: the
    layout engine with its cursor, the loop stack and the resolved formats, so separate runs share nothing.

    Call :func:`run` once to get the complete instruction list; the first error aborts the run.

    Parameters:
        document: Parsed template.
        data: Mapping of top-level names made available as `$name`.
        index_variable:
            Name under which every loop iteration also binds its zero-based iteration number, or None to bind
            nothing. The loop variable wins when both have the same name.
    """

    def __init__(
            self,
            document: Document,
            data: Optional[Mapping[str, Any]] = None,
            index_variable: Optional[str] = 'index',
    ):
        self.document = document
        self.env = Environment(ingest_environment(data))
        self.index_variable = index_variable

        self.layout = LayoutEngine()
        self.loop_stack = deque()
        self.formats: Optional[FormatTable] = None

    def run(self) -> List[ops.AnyInstruction]:
        self.formats = FormatTable.build(self.document.formats, self.env)

        for sheet in self.document.sheets:
            self.layout.open_sheet(sheet.name)
            self._run_block(sheet.statements, self.env)

        return self.layout.instructions

    def _run_block(self, statements: Iterable[Statement], env: Environment):
        for statement in statements:
            try:
                self._run_statement(statement, env)
            except SheetDSLError as e:
                raise e.with_context(
                    position=statement.position,
                    sheet=self.layout.cursor.name,
                    loop_stack=self.loop_stack,
                    statement=describe(statement),
                    anchors=self.layout.cursor.anchors,
                )

    def _run_statement(self, statement: Statement, env: Environment):
        statement_type = type(statement)
        if statement_type is RowEmit:
            self.layout.emit_row([self._prepare_cell(cell, env) for cell in statement.cells])
        elif statement_type is ForLoop:
            self._run_loop(statement, env)
        elif statement_type is CarriageReturn:
            self.layout.carriage_return()
        elif statement_type is Move:
            self.layout.move(statement.anchor, statement.d_row, statement.d_col)
        elif statement_type is AnchorDecl:
            self.layout.declare_anchor(statement.name)
        elif statement_type is ColumnSpec:
            self.layout.column_width(statement.first, statement.last, statement.unit, statement.size)
        elif statement_type is RowSpec:
            self.layout.row_height(statement.index, statement.unit, statement.size)
        elif statement_type is Autofit:
            self.layout.autofit()
        else:
            raise TypeError(f'Unknown statement of type {statement_type}: {statement}')

    def _run_loop(self, loop: ForLoop, env: Environment):
        source = evaluate(loop.source, env)
        source_type = type(source)
        if source_type is SequenceValue:
            items = source.items
        elif source_type is MappingValue:
            items = tuple(source.items.values())
        else:
            raise TypeMismatchError(f'{loop.source} is not iterable: it is a {source.KIND}')

        for index, item in enumerate(items):
            frame = env
            if self.index_variable is not None:
                frame = frame.bind(self.index_variable, NumberValue(index))
            frame = frame.bind(loop.variable, item)

            self.loop_stack.append((loop.variable, index))
            try:
                self._run_block(loop.body, frame)
            finally:
                self.loop_stack.pop()

    def _prepare_cell(self, cell: Cell, env: Environment) -> Placement:
        try:
            style = self.formats.resolve(cell.format_ref)
            content = evaluate(cell.content, env)

            if cell.kind == 'img':
                if type(content) is not StringValue:
                    raise TypeMismatchError(f'An image path must be a string, got a {content.KIND}')
                placement = ops.PlaceImage.from_path(content.value, cell.image_mode)
            else:
                placement = ops.PlaceCell.of_kind(cell.kind).with_data(cell_data(cell.kind, content))
        except SheetDSLError as e:
            raise e.with_context(position=cell.position)

        return placement.with_style(style).spanning(cell.colspan, cell.rowspan)


def compile_template(
        source: Union[str, Document],
        data: Optional[Mapping[str, Any]] = None,
        index_variable: Optional[str] = 'index',
) -> List[ops.AnyInstruction]:
    """Compile template `source` against `data` into the complete, ordered instruction list.

    Raises:
        SheetDSLError: the first error found; no partial result is returned.
    """
    document = isinstance(source, Document) and source or parse(source)
    return TemplateInterpreter(document, data, index_variable).run()


def execute(instruction_list: Iterable[ops.AnyInstruction], sink: 'Sink'):
    """Execute every instruction in order against `sink`.

    Raises:
        ExecutionError: `sink` failed; the error records which instruction it failed on.
    """
    for instruction_num, instruction in enumerate(instruction_list):
        try:
            instruction.execute(sink)
        except SheetDSLError as e:
            raise ExecutionError(e.message, instruction_num, instruction) from e
        except Exception as e:
            raise ExecutionError('Uncaught exception', instruction_num, instruction) from e


def render(
        source: Union[str, Document],
        sink: 'Sink',
        data: Optional[Mapping[str, Any]] = None,
        index_variable: Optional[str] = 'index',
) -> 'Sink':
    """Compile `source` completely, then execute the result against `sink` and return it.

    The sink sees nothing if compilation fails. Closing the sink is up to the caller."""
    execute(compile_template(source, data, index_variable), sink)
    return sink
