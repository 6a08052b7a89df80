from collections import defaultdict
from typing import Any, Callable, Dict, Iterable, Optional, Tuple, Type

from attr import Factory, attrs
from xlsxwriter import Workbook as XlsxWriterWorkbook
from xlsxwriter.format import Format

from .errors import DuplicateDeclarationError, SheetDSLError, TypeMismatchError, UndeclaredReferenceError
from .evaluator import Environment, evaluate
from .nodes import FormatDeclaration, StyleModifier
from .values import NumberValue, StringValue, Value


class FormatDict(Dict[str, Any]):
    """A special variant of vanilla dictionary that implement __or__ and __hash__. Used to hold and merge resolved
    styles, keyed by XlsxWriter format properties.

    Examples:
        >>> F = FormatDict
        >>> F1 = F({'bold': True})
        >>> F2 = F({'font_size': 12})
        >>> F3 = F({'bold': True,  'font_size': 12})
        >>> F1 | F2 == F3
        True
        >>> hash(F1 | F2) == hash(F3)
        True
    """

    def __or__(self, other):
        return FormatDict({
            **self,
            **other
        })

    def __ror__(self, other):
        return FormatDict({
            **other,
            **self
        })

    def __hash__(self):
        return hash((*sorted(self.items()),))


@attrs(auto_attribs=True)
class FormatHandler(object):
    """This object is used to handle adding new formats when necessary. Only one should be used per Workbook."""
    target: XlsxWriterWorkbook
    _memoized: Dict[FormatDict, Format] = Factory(dict)

    def verify_format(self, format_: FormatDict) -> Format:
        if format_ not in self._memoized:
            self._memoized[format_] = self.target.add_format(dict(format_))
        return self._memoized[format_]


def ensure_format_uniqueness(class_):
    """A class decorator used to verify that all formats in the decorated class are unique and use FormatDict."""
    hashes = defaultdict(list)
    for attr in dir(class_):
        if not attr.startswith('_'):
            attr_value = getattr(class_, attr)
            if not isinstance(attr_value, FormatDict):
                raise TypeError(f'Format {attr_value} must be a FormatDict')
            hashes[hash(attr_value)].append(attr)

    for formats in hashes.values():
        if len(formats) > 1:
            raise ValueError(f'{formats} are the same')

    return class_


@ensure_format_uniqueness
class KindDefaults(object):
    """Styles a sink starts from for each cell kind, before the cell's own format is merged over them."""
    base = FormatDict({})
    number = base | {'num_format': '0.00'}
    date = base | {'num_format': 'dd/mm/yyyy hh:mm'}


BORDER_STYLES = {
    'none': 0,
    'thin': 1,
    'medium': 2,
    'dashed': 3,
    'dotted': 4,
    'thick': 5,
    'double': 6,
    'hair': 7,
    'medium_dashed': 8,
    'dash_dot': 9,
    'medium_dash_dot': 10,
    'dash_dot_dot': 11,
    'medium_dash_dot_dot': 12,
    'slant_dash_dot': 13,
}

ALIGNMENTS = {
    'left': ('align', 'left'),
    'right': ('align', 'right'),
    'center': ('align', 'center'),
    'top': ('valign', 'top'),
    'bottom': ('valign', 'bottom'),
    'verticalcenter': ('valign', 'vcenter'),
}


@attrs(auto_attribs=True, frozen=True)
class StyleAttribute(object):
    """A recognized style modifier.

    Attributes:
        accepts: Value classes the single argument may have; empty for modifiers that take no argument.
        build: Turns the argument's Python value, if any, into XlsxWriter format properties.
    """
    accepts: Tuple[Type[Value], ...]
    build: Callable[..., Dict[str, Any]]


def _flag(property_, value=True):
    return StyleAttribute((), lambda: {property_: value})


def _text(property_):
    return StyleAttribute((StringValue,), lambda text: {property_: text})


def _number(property_, converter=float):
    return StyleAttribute((NumberValue,), lambda number: {property_: converter(number)})


def _keyword(property_, table, what):
    def build(keyword):
        try:
            return {property_: table[keyword]}
        except KeyError as e:
            raise TypeMismatchError(
                f'{keyword!r} is not a {what}, expected one of: {", ".join(table)}'
            ) from e

    return StyleAttribute((StringValue,), build)


def _alignment(keyword):
    try:
        property_, value = ALIGNMENTS[keyword]
    except KeyError as e:
        raise TypeMismatchError(
            f'{keyword!r} is not an alignment, expected one of: {", ".join(ALIGNMENTS)}'
        ) from e
    return {property_: value}


def _num_format(value):
    # A number selects one of Excel's built-in formats by index.
    if isinstance(value, float):
        value = int(value)
    return {'num_format': value}


STYLE_ATTRIBUTES: Dict[str, StyleAttribute] = {
    'bold': _flag('bold'),
    'italic': _flag('italic'),
    'underline': _flag('underline', 1),
    'strikethrough': _flag('font_strikeout'),
    'super': _flag('font_script', 1),
    'sub': _flag('font_script', 2),
    'wrap': _flag('text_wrap'),
    'color': _text('font_color'),
    'background_color': _text('bg_color'),
    'num': StyleAttribute((StringValue, NumberValue), _num_format),
    'align': StyleAttribute((StringValue,), _alignment),
    'indent': _number('indent', int),
    'font_name': _text('font_name'),
    'font_size': _number('font_size'),
    'border': _keyword('border', BORDER_STYLES, 'border style'),
    'border_top': _keyword('top', BORDER_STYLES, 'border style'),
    'border_bottom': _keyword('bottom', BORDER_STYLES, 'border style'),
    'border_left': _keyword('left', BORDER_STYLES, 'border style'),
    'border_right': _keyword('right', BORDER_STYLES, 'border style'),
    'border_color': _text('border_color'),
    'border_top_color': _text('top_color'),
    'border_bottom_color': _text('bottom_color'),
    'border_left_color': _text('left_color'),
    'border_right_color': _text('right_color'),
}


def apply_modifier(modifier: StyleModifier, env: Environment) -> FormatDict:
    """Evaluate the arguments of `modifier` and return the format properties it sets."""
    try:
        attribute = STYLE_ATTRIBUTES[modifier.name]
    except KeyError as e:
        raise UndeclaredReferenceError(f'Unknown style modifier {modifier.name}') from e

    expected_count = attribute.accepts and 1 or 0
    if len(modifier.arguments) != expected_count:
        raise TypeMismatchError(
            f'Style modifier {modifier.name} takes {expected_count} argument(s), got {len(modifier.arguments)}'
        )

    arguments = [evaluate(argument, env) for argument in modifier.arguments]
    for argument in arguments:
        if not isinstance(argument, attribute.accepts):
            kinds = ' or '.join(kind.KIND for kind in attribute.accepts)
            raise TypeMismatchError(f'Style modifier {modifier.name} expects a {kinds}, got a {argument.KIND}')

    return FormatDict(attribute.build(*(argument.value for argument in arguments)))


def resolve_declaration(declaration: FormatDeclaration, env: Environment) -> FormatDict:
    """Merge the modifiers of `declaration` in order; a later modifier overwrites the properties an earlier one set."""
    style = FormatDict()
    for modifier in declaration.modifiers:
        try:
            style = style | apply_modifier(modifier, env)
        except SheetDSLError as e:
            raise e.with_context(position=modifier.position, statement=f':{declaration.name}')
    return style


@attrs(auto_attribs=True)
class FormatTable(object):
    """Resolved styles of every format declared in a document, by name."""
    styles: Dict[str, FormatDict] = Factory(dict)

    @classmethod
    def build(cls, declarations: Iterable[FormatDeclaration], env: Environment) -> 'FormatTable':
        table = cls()
        for declaration in declarations:
            if declaration.name in table.styles:
                raise DuplicateDeclarationError(
                    f'Format :{declaration.name} is already declared',
                    position=declaration.position
                )
            table.styles[declaration.name] = resolve_declaration(declaration, env)
        return table

    def resolve(self, format_ref: Optional[str]) -> Optional[FormatDict]:
        """The style for `format_ref`, or None when the cell references no format."""
        if format_ref is None:
            return None
        try:
            return self.styles[format_ref]
        except KeyError as e:
            raise UndeclaredReferenceError(f'Format :{format_ref} is not declared') from e
