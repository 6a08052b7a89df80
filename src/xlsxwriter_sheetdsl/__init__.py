"""Sheet DSL for XlsxWriter: a small templating language that describes sheets, rows, merged cells, styles and images
in terms of a moving cursor, filled in from injected data. A template is `parse`d, then compiled by
`compile_template` into a flat list of instructions addressed to absolute coordinates, which `render` executes against
a sink such as `XlsxSink` or `CsvSink`, all the while resolving named formats into `FormatDict`s."""

from . import errors, formats, instructions, interpreter, parser, sinks, utils, values

from .errors import (
    DuplicateDeclarationError, ExecutionError, MalformedDateError, MovementError, SheetDSLError,
    TemplateArithmeticError, TemplateSyntaxError, TypeMismatchError, UndeclaredReferenceError,
)
from .interpreter import compile_template, render
from .parser import parse
from .sinks import CsvSink, Sink, XlsxSink

__all__ = [
    'errors', 'formats', 'instructions', 'interpreter', 'parser', 'sinks', 'utils', 'values',
    'compile_template', 'render', 'parse', 'Sink', 'XlsxSink', 'CsvSink',
    'SheetDSLError', 'TemplateSyntaxError', 'UndeclaredReferenceError', 'TypeMismatchError',
    'TemplateArithmeticError', 'MalformedDateError', 'DuplicateDeclarationError', 'MovementError', 'ExecutionError',
]
