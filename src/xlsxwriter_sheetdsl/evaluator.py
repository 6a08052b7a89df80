import math
import operator
from typing import Dict, Tuple

from attr import attrib, attrs, evolve

from .errors import TemplateArithmeticError, TypeMismatchError, UndeclaredReferenceError
from .nodes import BinaryOp, Expr, Literal, Negate, VariablePath
from .values import (
    DateValue, MappingValue, NullValue, NumberValue, SequenceValue, StringValue, Value, render_date, render_number,
)

_ARITHMETIC = {
    '+': operator.add,
    '-': operator.sub,
    '*': operator.mul,
    '/': operator.truediv,
}


@attrs(auto_attribs=True, frozen=True)
class Environment(object):
    """Names visible at one point of a run.

    Attributes:
        data: The injected top-level names.
        frames: Loop bindings as `(name, value)` pairs, innermost last. They shadow `data`.
    """
    data: Dict[str, Value] = attrib(factory=dict, hash=False)
    frames: Tuple[Tuple[str, Value], ...] = ()

    def bind(self, name: str, value: Value) -> 'Environment':
        """A new environment where `name` is bound to `value`; this one is left untouched."""
        return evolve(self, frames=(*self.frames, (name, value)))

    def lookup(self, name: str) -> Value:
        for bound_name, value in reversed(self.frames):
            if bound_name == name:
                return value
        try:
            return self.data[name]
        except KeyError as e:
            raise UndeclaredReferenceError(f'Unresolved path: ${name} is not defined') from e


def as_text(value: Value) -> str:
    """Text of a scalar value as it appears in concatenations and string cells."""
    value_type = type(value)
    if value_type is StringValue:
        return value.value
    elif value_type is NumberValue:
        return render_number(value.value)
    elif value_type is DateValue:
        return render_date(value.serial)
    elif value_type is NullValue:
        return ''
    raise TypeMismatchError(f'A {value.KIND} has no text form')


def resolve_path(path: VariablePath, env: Environment) -> Value:
    """Follow `path` from its root name through sequence indices and mapping keys."""
    value = env.lookup(path.name)

    for segment in path.segments:
        value_type = type(value)
        if value_type is SequenceValue:
            if not segment.isdigit():
                raise TypeMismatchError(f'Unresolved path {path}: a sequence cannot be indexed by {segment!r}')
            index = int(segment)
            if index >= len(value.items):
                raise UndeclaredReferenceError(
                    f'Unresolved path {path}: index {index} is out of range for a sequence of {len(value.items)}'
                )
            value = value.items[index]
        elif value_type is MappingValue:
            try:
                value = value.items[segment]
            except KeyError as e:
                raise UndeclaredReferenceError(f'Unresolved path {path}: there is no key {segment!r}') from e
        else:
            raise TypeMismatchError(f'Unresolved path {path}: cannot look up {segment!r} in a {value.KIND}')

    return value


def apply_operator(symbol: str, left: Value, right: Value) -> Value:
    """Apply binary `symbol` to two evaluated operands.

    `+` between a string and a number, in either order, or between two strings concatenates; this is the only
    coercion there is. Everything else requires two numbers."""
    if symbol == '+' and StringValue in (type(left), type(right)):
        if {type(left), type(right)} <= {StringValue, NumberValue}:
            return StringValue(as_text(left) + as_text(right))

    if type(left) is not NumberValue or type(right) is not NumberValue:
        raise TypeMismatchError(f'Operator {symbol} cannot be applied to {left.KIND} and {right.KIND}')

    if symbol == '/' and right.value == 0:
        raise TemplateArithmeticError(f'Division by zero: {render_number(left.value)} / 0')

    result = _ARITHMETIC[symbol](left.value, right.value)
    if not math.isfinite(result):
        raise TemplateArithmeticError(
            f'{render_number(left.value)} {symbol} {render_number(right.value)} is not a finite number'
        )
    return NumberValue(result)


def evaluate(expr: Expr, env: Environment) -> Value:
    """Evaluate `expr` in `env`.

    Raises:
        UndeclaredReferenceError: a variable path does not resolve.
        TypeMismatchError: an operator or path segment was applied to the wrong kind of value.
        TemplateArithmeticError: division by zero or a non-finite result.
    """
    expr_type = type(expr)
    if expr_type is Literal:
        return expr.value
    elif expr_type is VariablePath:
        return resolve_path(expr, env)
    elif expr_type is Negate:
        operand = evaluate(expr.operand, env)
        if type(operand) is not NumberValue:
            raise TypeMismatchError(f'Cannot negate a {operand.KIND}')
        return NumberValue(-operand.value)
    elif expr_type is BinaryOp:
        return apply_operator(expr.operator, evaluate(expr.left, env), evaluate(expr.right, env))

    raise TypeError(f'Unknown expression of type {expr_type}: {expr}')
