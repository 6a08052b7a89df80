"""Runtime values of the template language.

Both template literals and the data injected into a run are represented by the small set of frozen classes below.
Injected Python data goes through :func:`ingest` once, before interpretation starts, and is never mutated afterwards.
"""
import math
from datetime import date, datetime, time, timedelta
from numbers import Real
from typing import Any, ClassVar, Dict, Mapping, Optional, Tuple

from attr import attrib, attrs

from .errors import MalformedDateError, TemplateArithmeticError, TypeMismatchError

# Excel's 1900 date system counts 1900-02-29 as a real day, so serials past it are shifted by one.
_EPOCH = datetime(1899, 12, 31)
_FAKE_LEAP_DAY = 60


class Value(object):
    """Base class for all runtime values."""
    KIND: ClassVar[str] = 'value'


@attrs(auto_attribs=True, frozen=True)
class NullValue(Value):
    KIND = 'null'


@attrs(auto_attribs=True, frozen=True)
class NumberValue(Value):
    KIND = 'number'
    value: float = attrib(default=0.0, converter=float)


@attrs(auto_attribs=True, frozen=True)
class StringValue(Value):
    KIND = 'string'
    value: str = ''


@attrs(auto_attribs=True, frozen=True)
class DateValue(Value):
    """A point in time stored as its Excel serial number."""
    KIND = 'date'
    serial: float = attrib(default=0.0, converter=float)


@attrs(auto_attribs=True, frozen=True)
class SequenceValue(Value):
    KIND = 'sequence'
    items: Tuple[Value, ...] = attrib(factory=tuple, converter=tuple)


@attrs(auto_attribs=True, frozen=True)
class MappingValue(Value):
    """Keyed values in insertion order."""
    KIND = 'mapping'
    items: Dict[str, Value] = attrib(factory=dict, hash=False)


Null = NullValue()


def render_number(number: float) -> str:
    """Canonical decimal rendering: integral numbers lose the fractional part, others use the shortest repr.

    Examples:
        >>> render_number(2.0), render_number(1.27), render_number(-0.5)
        ('2', '1.27', '-0.5')
    """
    if number.is_integer() and abs(number) < 1e16:
        return str(int(number))
    return repr(number)


def finite_number(number) -> float:
    """Convert `number` to a float that a cell can hold.

    Raises:
        TemplateArithmeticError: `number` is infinite, NaN or too large for a float.
    """
    try:
        converted = float(number)
    except OverflowError as e:
        raise TemplateArithmeticError(f'{str(number)[:40]} is too large to be used as a number') from e
    if not math.isfinite(converted):
        raise TemplateArithmeticError(f'{str(number)[:40]} is not a finite number')
    return converted


def datetime_to_serial(value) -> float:
    """Convert a `datetime`, `date` or `time` into an Excel serial in the 1900 date system.

    Timezone information is dropped and the wall-clock time is kept."""
    if isinstance(value, time):
        return (value.hour * 3600 + value.minute * 60 + value.second + value.microsecond / 1e6) / 86400
    if not isinstance(value, datetime):
        value = datetime(value.year, value.month, value.day)

    delta = value.replace(tzinfo=None) - _EPOCH
    serial = delta.days + (delta.seconds + delta.microseconds / 1e6) / 86400
    if serial >= _FAKE_LEAP_DAY:
        serial += 1
    return serial


def serial_to_datetime(serial: float) -> datetime:
    if serial > _FAKE_LEAP_DAY:
        serial -= 1
    return _EPOCH + timedelta(days=serial)


def render_date(serial: float) -> str:
    """ISO-8601 text for a serial; serials below one day are rendered as a bare time."""
    moment = serial_to_datetime(serial)
    if serial < 1:
        return moment.time().isoformat()
    if moment.time() == time():
        return moment.date().isoformat()
    return moment.isoformat()


def parse_timestamp(text: str) -> float:
    """Parse an ISO-8601 date, date-time or time into an Excel serial.

    Raises:
        MalformedDateError: if `text` is none of those.
    """
    candidate = text[:-1] + '+00:00' if text.endswith('Z') else text
    try:
        return datetime_to_serial(datetime.fromisoformat(candidate))
    except ValueError:
        pass
    try:
        return datetime_to_serial(time.fromisoformat(candidate))
    except ValueError as e:
        raise MalformedDateError(f'{text!r} is not a valid ISO-8601 timestamp') from e


def ingest(data: Any) -> Value:
    """Convert plain Python data into a :class:`Value` tree."""
    if isinstance(data, Value):
        return data
    if data is None:
        return Null
    if isinstance(data, Real):
        return NumberValue(finite_number(data))
    if isinstance(data, str):
        return StringValue(data)
    if isinstance(data, (datetime, date, time)):
        return DateValue(datetime_to_serial(data))
    if isinstance(data, Mapping):
        items = {}
        for key, item in data.items():
            if not isinstance(key, str):
                raise TypeMismatchError(f'Mapping keys must be strings, got {key!r}')
            items[key] = ingest(item)
        return MappingValue(items)
    if isinstance(data, (list, tuple)):
        return SequenceValue(ingest(item) for item in data)

    raise TypeMismatchError(f'Cannot use a {type(data).__name__} as template data: {data!r}')


def ingest_environment(data: Optional[Mapping[str, Any]]) -> Dict[str, Value]:
    """Ingest the top-level names a run makes available as `$name`."""
    if data is None:
        return {}
    root = ingest(data)
    if not isinstance(root, MappingValue):
        raise TypeMismatchError(f'Template data must be a mapping of names, got a {root.KIND}')
    return dict(root.items)
