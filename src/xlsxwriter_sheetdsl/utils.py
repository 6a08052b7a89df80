from typing import Optional

from attr import attrs
from xlsxwriter import Workbook
from xlsxwriter.worksheet import Worksheet

from .formats import FormatHandler

# Failure return codes of XlsxWriter worksheet methods.
RETURN_CODE_MESSAGES = {
    -1: 'the cell is outside the worksheet',
    -2: 'the string is longer than 32k characters',
    -3: 'the URL is longer than 2079 characters long',
    -4: 'there are more than 65530 URLs in the sheet',
}


def check_return_code(return_code: Optional[int], action: str):
    """Raise if an XlsxWriter call that performed `action` reported a failure through `return_code`."""
    if return_code is not None and return_code < 0:
        reason = RETURN_CODE_MESSAGES.get(return_code, f'XlsxWriter returned {return_code}')
        raise ValueError(f'{action} failed because {reason}')


@attrs(auto_attribs=True)
class WorkbookPair(object):
    """A pair used to bundle a :class:`FormatHandler` and a :ref:`Workbook <workbook>`"""
    wb: Workbook
    fmt: FormatHandler

    def add_worksheet(self, name):
        """Create a worksheet and bind it into a :class:`WorksheetTriplet`"""
        return WorksheetTriplet(self.wb, self.wb.add_worksheet(name), self.fmt)

    @classmethod
    def from_wb(cls, wb):
        """Bind a :class:`Workbook` into a :class:`WorkbookPair`"""
        return cls(wb, FormatHandler(wb))


@attrs(auto_attribs=True)
class WorksheetTriplet(object):
    """A triplet of the sheet currently being written, its workbook and the workbook's format handler."""
    wb: Workbook
    ws: Worksheet
    fmt: FormatHandler
