from datetime import date, datetime, time

from pytest import fixture, mark, raises

from xlsxwriter_sheetdsl.errors import (
    MalformedDateError, TemplateArithmeticError, TypeMismatchError, UndeclaredReferenceError,
)
from xlsxwriter_sheetdsl.evaluator import Environment, as_text, evaluate
from xlsxwriter_sheetdsl.parser import parse
from xlsxwriter_sheetdsl.values import (
    DateValue, MappingValue, Null, NumberValue, SequenceValue, StringValue, datetime_to_serial, ingest,
    ingest_environment, parse_timestamp, render_date, render_number, serial_to_datetime,
)


def expression(source):
    return parse(f'sheet("S") [ str({source}) ]').sheets[0].statements[0].cells[0].content


@fixture
def env():
    return Environment(ingest_environment({
        'arr': [10, 20, 30],
        'dict': {'inner': 'value', 'nested': {'deep': 1.5}},
        'name': 'Ada',
        'nothing': None,
        'when': date(2020, 1, 1),
    }))


def run(source, env):
    return evaluate(expression(source), env)


class TestArithmetic:
    def test_precedence(self, env):
        assert run('1 + 2 * 2 + (1 + 3) * 2', env) == NumberValue(13)

    def test_left_associative(self, env):
        assert run('8 - 4 - 2', env) == NumberValue(2)
        assert run('8 / 4 / 2', env) == NumberValue(1)

    def test_unary_minus(self, env):
        assert run('-2 * -3', env) == NumberValue(6)
        assert run('-(1 + 2)', env) == NumberValue(-3)

    def test_division_by_zero(self, env):
        with raises(TemplateArithmeticError, match='Division by zero'):
            run('1 / (2 - 2)', env)

    def test_overflow(self, env):
        with raises(TemplateArithmeticError, match='not a finite number'):
            run('1e308 * 10', env)

    def test_numbers_only(self, env):
        with raises(TypeMismatchError, match='Operator - cannot be applied to string and number'):
            run('"a" - 1', env)

        with raises(TypeMismatchError, match='Cannot negate a string'):
            run('-"a"', env)


class TestConcatenation:
    def test_number_and_string(self, env):
        assert run('1.27 + "%"', env) == StringValue('1.27%')
        assert run('"#" + 2', env) == StringValue('#2')

    def test_integral_numbers_lose_fraction(self, env):
        assert run('"n=" + 4 / 2', env) == StringValue('n=2')

    def test_strings(self, env):
        assert run('$name + " Lovelace"', env) == StringValue('Ada Lovelace')

    def test_left_to_right(self, env):
        assert run('1 + 2 + "x"', env) == StringValue('3x')
        assert run('"x" + 1 + 2', env) == StringValue('x12')

    @mark.parametrize('source', ['"a" + $nothing', '"a" + $when', '"a" + $arr'])
    def test_no_other_coercion(self, env, source):
        with raises(TypeMismatchError):
            run(source, env)


class TestPaths:
    def test_sequence_elements(self, env):
        assert run('$arr.0', env) == NumberValue(10)
        assert run('$arr.1', env) == NumberValue(20)
        assert run('$arr.2', env) == NumberValue(30)

    def test_mapping_keys(self, env):
        assert run('$dict.inner', env) == StringValue('value')
        assert run('$dict.nested.deep * 2', env) == NumberValue(3)

    def test_whole_values(self, env):
        assert run('$arr', env) == SequenceValue([NumberValue(10), NumberValue(20), NumberValue(30)])
        assert run('$nothing', env) is Null

    def test_missing_root(self, env):
        with raises(UndeclaredReferenceError, match=r'Unresolved path: \$missing is not defined'):
            run('$missing', env)

    def test_missing_key(self, env):
        with raises(UndeclaredReferenceError, match=r'Unresolved path \$dict.nope'):
            run('$dict.nope', env)

    def test_index_out_of_range(self, env):
        with raises(UndeclaredReferenceError, match='out of range'):
            run('$arr.3', env)

    def test_non_integer_index(self, env):
        with raises(TypeMismatchError, match='cannot be indexed'):
            run('$arr.first', env)

    def test_segment_on_scalar(self, env):
        with raises(TypeMismatchError, match='cannot look up'):
            run('$name.length', env)


class TestEnvironment:
    def test_frames_shadow_data(self, env):
        inner = env.bind('name', StringValue('Grace'))

        assert inner.lookup('name') == StringValue('Grace')
        assert env.lookup('name') == StringValue('Ada')

    def test_innermost_frame_wins(self, env):
        inner = env.bind('x', NumberValue(1)).bind('x', NumberValue(2))

        assert inner.lookup('x') == NumberValue(2)


class TestValues:
    def test_ingest(self):
        assert ingest({'a': [1, 'two', None, True]}) == MappingValue({
            'a': SequenceValue([NumberValue(1), StringValue('two'), Null, NumberValue(1)])
        })

    def test_ingest_dates(self):
        assert ingest(datetime(1900, 1, 1)) == DateValue(1)
        assert ingest(date(2020, 1, 1)) == DateValue(43831)
        assert ingest(time(12)) == DateValue(0.5)

    def test_ingest_rejects_unknown(self):
        with raises(TypeMismatchError, match='Cannot use a set'):
            ingest({1, 2})

        with raises(TypeMismatchError, match='keys must be strings'):
            ingest({1: 'a'})

    def test_ingest_rejects_non_finite(self):
        with raises(TemplateArithmeticError, match='not a finite number'):
            ingest({'x': float('nan')})

        with raises(TemplateArithmeticError, match='not a finite number'):
            ingest([float('-inf')])

        with raises(TemplateArithmeticError, match='too large'):
            ingest(10 ** 400)

    def test_environment_must_be_mapping(self):
        with raises(TypeMismatchError, match='must be a mapping'):
            ingest_environment([1, 2])

        assert ingest_environment(None) == {}

    def test_serials_skip_fake_leap_day(self):
        assert datetime_to_serial(datetime(1900, 2, 28)) == 59
        assert datetime_to_serial(datetime(1900, 3, 1)) == 61
        assert serial_to_datetime(61) == datetime(1900, 3, 1)
        assert serial_to_datetime(43831.75) == datetime(2020, 1, 1, 18)

    def test_parse_timestamp(self):
        assert parse_timestamp('2020-01-01') == 43831
        assert parse_timestamp('2020-01-01T06:00:00') == 43831.25
        assert parse_timestamp('2020-01-01T06:00:00Z') == 43831.25
        assert parse_timestamp('18:00') == 0.75

    @mark.parametrize('text', ['', 'yesterday', 'noon', 'not a date'])
    def test_parse_timestamp_rejects(self, text):
        with raises(MalformedDateError):
            parse_timestamp(text)

    def test_render(self):
        assert render_number(2.0) == '2'
        assert render_number(-0.5) == '-0.5'
        assert render_date(43831) == '2020-01-01'
        assert render_date(43831.25) == '2020-01-01T06:00:00'
        assert render_date(0.75) == '18:00:00'

    def test_as_text(self):
        assert as_text(DateValue(43831)) == '2020-01-01'
        assert as_text(Null) == ''

        with raises(TypeMismatchError):
            as_text(SequenceValue())
