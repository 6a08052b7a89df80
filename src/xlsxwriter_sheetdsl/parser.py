"""Template text to :class:`~.nodes.Document`.

This is a purely syntactic pass: names are not checked against declarations and expressions are not evaluated."""
import re

from lark import Lark, Token, Transformer, v_args
from lark.exceptions import UnexpectedCharacters, UnexpectedInput, UnexpectedToken, VisitError

from .errors import SheetDSLError, TemplateSyntaxError
from .nodes import (
    AnchorDecl, Autofit, BinaryOp, CarriageReturn, Cell, ColumnSpec, Document, FormatDeclaration, ForLoop, Literal,
    Move, Negate, RowEmit, RowSpec, Sheet, StyleModifier, VariablePath,
)
from .values import NumberValue, StringValue, finite_number

_PARSER = Lark.open('grammar.lark', rel_to=__file__, parser='lalr', propagate_positions=True)

_ESCAPES = {'n': '\n', 'r': '\r', 't': '\t'}
_ESCAPE_RE = re.compile(r'\\(.)', re.DOTALL)


def decode_string(literal: str) -> str:
    """Strip the quotes of a string literal and resolve its backslash escapes.

    Examples:
        >>> decode_string(r'"a\\tb \\"c\\""')
        'a\\tb "c"'
    """
    return _ESCAPE_RE.sub(lambda m: _ESCAPES.get(m.group(1), m.group(1)), literal[1:-1])


def _position(meta):
    line = getattr(meta, 'line', None)
    return line is not None and (line, meta.column) or None


def _token_position(token: Token):
    return token.line, token.column


@v_args(inline=True)
class DocumentBuilder(Transformer):
    """Turns the lark parse tree into :mod:`.nodes` objects."""

    def start(self, *items):
        return Document(
            formats=[item for item in items if isinstance(item, FormatDeclaration)],
            sheets=[item for item in items if isinstance(item, Sheet)],
        )

    @v_args(meta=True, inline=True)
    def format_declaration(self, meta, name, *modifiers):
        return FormatDeclaration(name[1:], modifiers, _position(meta))

    @v_args(meta=True, inline=True)
    def modifier(self, meta, name, *arguments):
        return StyleModifier(str(name), arguments, _position(meta))

    @v_args(meta=True, inline=True)
    def sheet(self, meta, name, *statements):
        return Sheet(decode_string(name), statements, _position(meta))

    @v_args(meta=True, inline=True)
    def column_spec(self, meta, first, last, unit, size):
        if int(first) > int(last):
            raise TemplateSyntaxError(
                f'Column range {first}..{last} is reversed',
                *_token_position(first)
            )
        return ColumnSpec(int(first), int(last), str(unit), float(size), _position(meta))

    @v_args(meta=True, inline=True)
    def row_spec(self, meta, index, unit, size):
        return RowSpec(int(index), str(unit), float(size), _position(meta))

    @v_args(meta=True, inline=True)
    def anchor(self, meta, name):
        return AnchorDecl(name[1:], _position(meta))

    @v_args(meta=True, inline=True)
    def move(self, meta, *parts):
        anchor = len(parts) == 3 and parts[0][1:] or None
        d_row, d_col = parts[-2:]
        return Move(anchor, int(d_row), int(d_col), _position(meta))

    @v_args(meta=True, inline=True)
    def cr(self, meta):
        return CarriageReturn(_position(meta))

    @v_args(meta=True, inline=True)
    def autofit(self, meta):
        return Autofit(_position(meta))

    @v_args(meta=True, inline=True)
    def row_block(self, meta, *cells):
        return RowEmit(cells, _position(meta))

    @v_args(meta=True, inline=True)
    def for_loop(self, meta, variable, source, *body):
        if '.' in variable:
            raise TemplateSyntaxError(
                f'Loop variable {variable} must be a plain name, not a path',
                *_token_position(variable)
            )
        return ForLoop(variable[1:], source, body, _position(meta))

    @v_args(meta=True, inline=True)
    def value_cell(self, meta, kind, content, *options):
        return self._build_cell(meta, str(kind), content, options)

    @v_args(meta=True, inline=True)
    def image_cell(self, meta, path, *options):
        image_mode = 'embed'
        if options and isinstance(options[0], Token) and options[0].type == 'IMAGE_MODE':
            image_mode = str(options[0])
            options = options[1:]
        return self._build_cell(meta, 'img', path, options, image_mode)

    @staticmethod
    def _build_cell(meta, kind, content, options, image_mode=None):
        settings = {}
        for option, value, position in options:
            if option in settings:
                if option == 'format_ref':
                    raise TemplateSyntaxError(f'A {kind} cell may reference at most one format', *position)
                raise TemplateSyntaxError(f'A {kind} cell sets {option} twice', *position)
            if option != 'format_ref' and value < 1:
                raise TemplateSyntaxError(f'{option} must be at least 1, got {value}', *position)
            settings[option] = value

        return Cell(
            kind,
            content,
            format_ref=settings.get('format_ref'),
            colspan=settings.get('colspan', 1),
            rowspan=settings.get('rowspan', 1),
            image_mode=image_mode,
            position=_position(meta),
        )

    def format_ref(self, name):
        return 'format_ref', name[1:], _token_position(name)

    def colspan(self, count):
        return 'colspan', int(count), _token_position(count)

    def rowspan(self, count):
        return 'rowspan', int(count), _token_position(count)

    def number(self, token):
        try:
            return Literal(NumberValue(finite_number(token)))
        except SheetDSLError as e:
            raise e.with_context(position=_token_position(token))

    def string(self, token):
        return Literal(StringValue(decode_string(token)))

    def variable(self, token):
        name, *segments = token[1:].split('.')
        return VariablePath(name, tuple(segments))

    def add(self, left, right):
        return BinaryOp('+', left, right)

    def sub(self, left, right):
        return BinaryOp('-', left, right)

    def mul(self, left, right):
        return BinaryOp('*', left, right)

    def div(self, left, right):
        return BinaryOp('/', left, right)

    def neg(self, operand):
        return Negate(operand)


def _end_position(source: str):
    return source.count('\n') + 1, len(source) - source.rfind('\n')


def _syntax_error(error: UnexpectedInput, source: str) -> TemplateSyntaxError:
    line, column = getattr(error, 'line', None), getattr(error, 'column', None)
    has_position = line is not None and line > 0
    if not has_position:
        line, column = _end_position(source)

    if isinstance(error, UnexpectedCharacters):
        message = f'Unexpected character {error.char!r}'
    elif isinstance(error, UnexpectedToken) and error.token.type != '$END':
        message = f'Unexpected {error.token.value!r}'
    else:
        message = 'Unexpected end of template'

    expected = getattr(error, 'expected', None) or getattr(error, 'allowed', None)
    if expected:
        message = f"{message}, expected one of: {', '.join(sorted(expected))}"

    context = has_position and error.get_context(source) or None
    return TemplateSyntaxError(message, line, column, context)


def parse(source: str) -> Document:
    """Parse template `source` into a :class:`~.nodes.Document`.

    Raises:
        TemplateSyntaxError: if `source` does not conform to the grammar; nothing is partially parsed.
    """
    try:
        tree = _PARSER.parse(source)
    except UnexpectedInput as e:
        raise _syntax_error(e, source) from e

    try:
        return DocumentBuilder().transform(tree)
    except VisitError as e:
        if isinstance(e.orig_exc, SheetDSLError):
            raise e.orig_exc from None
        raise
