"""Receivers of the instruction stream.

A sink gets one call per instruction, in order, and never sees an instruction list that failed to compile."""
import csv
from abc import abstractmethod
from typing import Any, Dict, Optional, TextIO, Union
from warnings import warn

from xlsxwriter import Workbook

from .formats import FormatDict, KindDefaults
from .traits import Coords
from .utils import WorkbookPair, WorksheetTriplet, check_return_code
from .values import render_date, render_number


class Sink(object):
    """Base class for sinks. Usable as a context manager that closes the sink on exit."""

    @abstractmethod
    def new_sheet(self, name: str):
        raise NotImplementedError

    @abstractmethod
    def set_column_width(self, first: int, last: int, unit: str, size: float):
        raise NotImplementedError

    @abstractmethod
    def set_row_height(self, index: int, unit: str, size: float):
        raise NotImplementedError

    @abstractmethod
    def place_cell(
            self, row: int, col: int, kind: str, data: Any, style: Optional[FormatDict], colspan: int, rowspan: int
    ):
        raise NotImplementedError

    @abstractmethod
    def place_image(
            self, row: int, col: int, path: str, mode: str, style: Optional[FormatDict], colspan: int, rowspan: int
    ):
        raise NotImplementedError

    @abstractmethod
    def autofit(self):
        raise NotImplementedError

    def close(self):
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


class XlsxSink(Sink):
    """
    Writes instructions into an XlsxWriter :ref:`Workbook <workbook>`.

    Parameters:
        target:
            Either an existing Workbook, which is left open on :func:`close`, or a filename or binary stream for
            a new Workbook owned and closed by this sink.
        number_format: Number format every num cell starts from before its own style is merged over it.
        date_format: Number format every date cell starts from before its own style is merged over it.
        workbook_options: Options for a Workbook created by this sink.
    """

    def __init__(
            self,
            target: Union[Workbook, str, Any],
            number_format: str = KindDefaults.number['num_format'],
            date_format: str = KindDefaults.date['num_format'],
            workbook_options: Optional[Dict[str, Any]] = None,
    ):
        self.owns_workbook = not isinstance(target, Workbook)
        if self.owns_workbook:
            target = Workbook(target, workbook_options or {})

        self.target = WorkbookPair.from_wb(target)
        self.kind_defaults = {
            'str': KindDefaults.base,
            'num': KindDefaults.number | {'num_format': number_format},
            'date': KindDefaults.date | {'num_format': date_format},
            'img': KindDefaults.base,
        }
        self.sheet: Optional[WorksheetTriplet] = None

    @property
    def _sheet(self) -> WorksheetTriplet:
        if self.sheet is None:
            raise ValueError('No sheet has been started yet')
        return self.sheet

    def _format(self, kind: str, style: Optional[FormatDict]):
        return self.target.fmt.verify_format(self.kind_defaults[kind] | (style or {}))

    def _merge(self, row, col, colspan, rowspan, format_):
        if colspan > 1 or rowspan > 1:
            return_code = self._sheet.ws.merge_range(
                row, col, row + rowspan - 1, col + colspan - 1, None, format_
            )
            check_return_code(return_code, 'Merge')

    def new_sheet(self, name: str):
        self.sheet = self.target.add_worksheet(name)

    def set_column_width(self, first: int, last: int, unit: str, size: float):
        if unit == 'pixels':
            return_code = self._sheet.ws.set_column_pixels(first, last, size)
        else:
            return_code = self._sheet.ws.set_column(first, last, size)
        check_return_code(return_code, 'Setting column width')

    def set_row_height(self, index: int, unit: str, size: float):
        if unit == 'pixels':
            return_code = self._sheet.ws.set_row_pixels(index, size)
        else:
            return_code = self._sheet.ws.set_row(index, size)
        check_return_code(return_code, 'Setting row height')

    def place_cell(
            self, row: int, col: int, kind: str, data: Any, style: Optional[FormatDict], colspan: int, rowspan: int
    ):
        format_ = self._format(kind, style)
        ws = self._sheet.ws
        # A merged range is written blank first and then gets a typed write into its top left cell, as shown here:
        #   <https://xlsxwriter.readthedocs.io/example_merge_rich.html>
        self._merge(row, col, colspan, rowspan, format_)

        if data is None:
            return_code = ws.write_blank(row, col, None, format_)
        elif kind == 'str':
            return_code = ws.write_string(row, col, data, format_)
        else:
            # Dates are already Excel serials.
            return_code = ws.write_number(row, col, data, format_)
        check_return_code(return_code, 'Write')

    def place_image(
            self, row: int, col: int, path: str, mode: str, style: Optional[FormatDict], colspan: int, rowspan: int
    ):
        format_ = self._format('img', style)
        ws = self._sheet.ws
        self._merge(row, col, colspan, rowspan, format_)

        if mode == 'embed':
            return_code = ws.embed_image(row, col, path, {'cell_format': format_})
        else:
            return_code = ws.insert_image(row, col, path)
        check_return_code(return_code, f'Placing image {path!r}')

    def autofit(self):
        if self.target.wb.constant_memory:
            warn('Autofit has no effect on a workbook in constant_memory mode.')
        self._sheet.ws.autofit()

    def close(self):
        if self.owns_workbook:
            self.target.wb.close()


class CsvSink(Sink):
    """
    Flattens placed cells into CSV records written to the text `stream`, separated by `delimiter`.

    The cells of a sheet are collected into a grid, written out row by row once the next sheet starts or on
    :func:`close`. Gaps become empty fields and a merged cell only fills its top left field. Sizing and autofit have
    no CSV counterpart and are ignored, images are skipped with a warning.
    """

    def __init__(self, stream: TextIO, delimiter: str = ','):
        self.writer = csv.writer(stream, delimiter=delimiter)
        self.grid: Dict[Coords, str] = {}
        self.sheet_count = 0

    @staticmethod
    def render_field(kind: str, data: Any) -> str:
        if data is None:
            return ''
        if kind == 'num':
            return render_number(data)
        if kind == 'date':
            return render_date(data)
        return data

    def flush(self):
        if not self.grid:
            return

        max_row = max(row for row, _ in self.grid)
        max_col = max(col for _, col in self.grid)
        for row in range(max_row + 1):
            self.writer.writerow([self.grid.get((row, col), '') for col in range(max_col + 1)])
        self.grid.clear()

    def new_sheet(self, name: str):
        self.flush()
        if self.sheet_count:
            warn(f'CSV output holds a single table, sheet {name!r} is appended to the same stream.')
        self.sheet_count += 1

    def set_column_width(self, first: int, last: int, unit: str, size: float):
        pass

    def set_row_height(self, index: int, unit: str, size: float):
        pass

    def place_cell(
            self, row: int, col: int, kind: str, data: Any, style: Optional[FormatDict], colspan: int, rowspan: int
    ):
        self.grid[(row, col)] = self.render_field(kind, data)

    def place_image(
            self, row: int, col: int, path: str, mode: str, style: Optional[FormatDict], colspan: int, rowspan: int
    ):
        warn(f'Image {path!r} at ({row}, {col}) is skipped, CSV cannot hold images.')

    def autofit(self):
        pass

    def close(self):
        self.flush()
