from io import BytesIO, StringIO

from pytest import fixture, raises, warns
from xlsxwriter import Workbook

from xlsxwriter_sheetdsl.errors import ExecutionError
from xlsxwriter_sheetdsl.formats import FormatDict, KindDefaults
from xlsxwriter_sheetdsl.instructions import (
    AutofitColumns, PlaceDate, PlaceImage, PlaceNumber, PlaceString, SetColumnWidth, SetRowHeight,
)
from xlsxwriter_sheetdsl.interpreter import render
from xlsxwriter_sheetdsl.sinks import CsvSink, Sink, XlsxSink

# 1x1 PNG
PNG = bytes([
    0x89, 0x50, 0x4e, 0x47, 0x0d, 0x0a, 0x1a, 0x0a, 0x00, 0x00, 0x00, 0x0d, 0x49, 0x48, 0x44, 0x52, 0x00,
    0x00, 0x00, 0x01, 0x00, 0x00, 0x00, 0x01, 0x08, 0x02, 0x00, 0x00, 0x00, 0x90, 0x77, 0x53, 0xde, 0x00,
    0x00, 0x00, 0x01, 0x73, 0x52, 0x47, 0x42, 0x00, 0xae, 0xce, 0x1c, 0xe9, 0x00, 0x00, 0x00, 0x04, 0x67,
    0x41, 0x4d, 0x41, 0x00, 0x00, 0xb1, 0x8f, 0x0b, 0xfc, 0x61, 0x05, 0x00, 0x00, 0x00, 0x09, 0x70, 0x00,
    0x48, 0x59, 0x73, 0x00, 0x00, 0x0e, 0xc3, 0x00, 0x00, 0x0e, 0xc3, 0x01, 0xc7, 0x6f, 0xa8, 0x64, 0x00,
    0x00, 0x0c, 0x49, 0x44, 0x41, 0x54, 0x18, 0x57, 0x63, 0xf8, 0xff, 0xff, 0x3f, 0x00, 0x05, 0xfe, 0x02,
    0xa7, 0x35, 0x81, 0x84, 0x00, 0x00, 0x00, 0x00, 0x49, 0x45, 0x4e, 0x44, 0xae, 0x42, 0x60, 0x82,
])


@fixture
def wb():
    wb = Workbook(BytesIO(), {'in_memory': True})

    yield wb

    wb.close()


@fixture
def sink(wb):
    sink = XlsxSink(wb)
    sink.new_sheet('TestSheet')
    return sink


@fixture
def png_path(tmp_path):
    path = tmp_path / 'pixel.png'
    path.write_bytes(PNG)
    return str(path)


def fmt(sink, format_):
    return sink.target.fmt.verify_format(FormatDict(format_))


class TestXlsxSink:
    def test_write_string(self, sink, mocker):
        spy = mocker.spy(sink.sheet.ws, 'write_string')

        PlaceString.with_data('Alpha').with_style({'bold': True}).at(0, 0).execute(sink)

        spy.assert_called_once_with(0, 0, 'Alpha', fmt(sink, {'bold': True}))

    def test_write_number_default_format(self, sink, mocker):
        spy = mocker.spy(sink.sheet.ws, 'write_number')

        PlaceNumber.with_data(12.5).at(2, 1).execute(sink)

        spy.assert_called_once_with(2, 1, 12.5, fmt(sink, KindDefaults.number))

    def test_style_merges_over_default(self, sink, mocker):
        spy = mocker.spy(sink.sheet.ws, 'write_number')

        PlaceNumber.with_data(0.5).with_style({'num_format': '0%', 'italic': True}).at(0, 0).execute(sink)

        spy.assert_called_once_with(0, 0, 0.5, fmt(sink, {'num_format': '0%', 'italic': True}))

    def test_write_date(self, sink, mocker):
        spy = mocker.spy(sink.sheet.ws, 'write_number')

        PlaceDate.with_data(43831.5).at(0, 0).execute(sink)

        spy.assert_called_once_with(0, 0, 43831.5, fmt(sink, {'num_format': 'dd/mm/yyyy hh:mm'}))

    def test_configured_defaults(self, wb, mocker):
        sink = XlsxSink(wb, number_format='0.000', date_format='yyyy-mm-dd')
        sink.new_sheet('TestSheet')
        spy = mocker.spy(sink.sheet.ws, 'write_number')

        PlaceNumber.with_data(1.0).at(0, 0).execute(sink)
        PlaceDate.with_data(43831.0).at(1, 0).execute(sink)

        spy.assert_any_call(0, 0, 1.0, fmt(sink, {'num_format': '0.000'}))
        spy.assert_any_call(1, 0, 43831.0, fmt(sink, {'num_format': 'yyyy-mm-dd'}))

    def test_write_blank(self, sink, mocker):
        spy = mocker.spy(sink.sheet.ws, 'write_blank')

        PlaceNumber.at(0, 0).execute(sink)

        spy.assert_called_once_with(0, 0, None, fmt(sink, KindDefaults.number))

    def test_merge_write(self, sink, mocker):
        spy_merge = mocker.spy(sink.sheet.ws, 'merge_range')
        spy_write = mocker.spy(sink.sheet.ws, 'write_string')

        PlaceString.with_data('Title').with_style({'align': 'center'}).spanning(3, 2).at(0, 1).execute(sink)

        format_ = fmt(sink, {'align': 'center'})
        spy_merge.assert_called_once_with(0, 1, 1, 3, None, format_)
        spy_write.assert_called_with(0, 1, 'Title', format_)

    def test_no_merge_for_single_cell(self, sink, mocker):
        spy = mocker.spy(sink.sheet.ws, 'merge_range')

        PlaceString.with_data('a').at(0, 0).execute(sink)

        spy.assert_not_called()

    def test_embed_image(self, sink, png_path, mocker):
        spy = mocker.spy(sink.sheet.ws, 'embed_image')

        PlaceImage.from_path(png_path).at(1, 1).execute(sink)

        spy.assert_called_once_with(1, 1, png_path, {'cell_format': fmt(sink, {})})

    def test_insert_image(self, sink, png_path, mocker):
        spy = mocker.spy(sink.sheet.ws, 'insert_image')

        PlaceImage.from_path(png_path, 'insert').at(3, 0).execute(sink)

        spy.assert_called_once_with(3, 0, png_path)

    def test_sizing(self, sink, mocker):
        spy_column = mocker.spy(sink.sheet.ws, 'set_column')
        spy_column_pixels = mocker.spy(sink.sheet.ws, 'set_column_pixels')
        spy_row = mocker.spy(sink.sheet.ws, 'set_row')
        spy_row_pixels = mocker.spy(sink.sheet.ws, 'set_row_pixels')

        SetColumnWidth.columns(0, 2).with_size(20).execute(sink)
        SetColumnWidth.columns(3, 3).with_size(100, 'pixels').execute(sink)
        SetRowHeight.row(4).with_size(15).execute(sink)
        SetRowHeight.row(5).with_size(40, 'pixels').execute(sink)

        spy_column.assert_any_call(0, 2, 20.0)
        spy_column_pixels.assert_called_once_with(3, 3, 100.0)
        spy_row.assert_any_call(4, 15.0)
        spy_row_pixels.assert_called_once_with(5, 40.0)

    def test_autofit(self, sink, mocker):
        spy = mocker.spy(sink.sheet.ws, 'autofit')

        AutofitColumns.execute(sink)

        spy.assert_called_once_with()

    def test_autofit_constant_memory(self):
        sink = XlsxSink(BytesIO(), workbook_options={'constant_memory': True})
        sink.new_sheet('TestSheet')

        with warns(UserWarning, match='constant_memory'):
            AutofitColumns.execute(sink)

        sink.close()

    def test_sheets(self, wb):
        sink = XlsxSink(wb)

        with raises(ValueError, match='No sheet'):
            PlaceString.with_data('a').at(0, 0).execute(sink)

        sink.new_sheet('One')
        sink.new_sheet('Two')

        assert [ws.name for ws in wb.worksheets()] == ['One', 'Two']

    def test_shared_workbook_left_open(self, wb):
        with XlsxSink(wb):
            pass

        assert not wb.fileclosed

    def test_owned_workbook_closed(self):
        output = BytesIO()

        with XlsxSink(output, workbook_options={'in_memory': True}) as sink:
            render('sheet("S") [ str("a"), num(1), date("2020-01-01") ]', sink)

        assert sink.target.wb.fileclosed
        assert output.getvalue().startswith(b'PK')

    def test_failure_is_wrapped(self, sink):
        with raises(ExecutionError, match='Uncaught exception') as exc:
            render('sheet("Dup") sheet("Dup")', sink)

        assert exc.value.instruction_num == 1


class TestCsvSink:
    def test_grid(self):
        stream = StringIO()

        with CsvSink(stream) as sink:
            render(
                'sheet("S") [ str("Name"), str("Score") ] cr [ str("Ada"), num(9.5) ] '
                'move(1, 1) [ date("2020-01-01"), num($nothing), num(2) ]',
                sink,
                {'nothing': None},
            )

        assert stream.getvalue() == (
            'Name,Score,,,,\r\n'
            'Ada,9.5,,,,\r\n'
            ',,,,,\r\n'
            ',,,2020-01-01,,2\r\n'
        )

    def test_merged_cells_fill_top_left(self):
        stream = StringIO()

        with CsvSink(stream) as sink:
            render('sheet("S") [ str("wide", colspan(2)), str("b") ] cr [ str("c") ]', sink)

        assert stream.getvalue() == 'wide,,b\r\nc,,\r\n'

    def test_delimiter_and_quoting(self):
        stream = StringIO()

        with CsvSink(stream, delimiter=';') as sink:
            render('sheet("S") [ str("a;b"), str("c") ]', sink)

        assert stream.getvalue() == '"a;b";c\r\n'

    def test_sizing_is_ignored(self):
        stream = StringIO()

        with CsvSink(stream) as sink:
            render('sheet("S") col(0, 0, chars(10)) row(0, pixels(5)) autofit [ str("a") ]', sink)

        assert stream.getvalue() == 'a\r\n'

    def test_images_are_skipped(self):
        stream = StringIO()

        with CsvSink(stream) as sink:
            with warns(UserWarning, match='skipped'):
                render('sheet("S") [ img("logo.png"), str("a") ]', sink)

        assert stream.getvalue() == ',a\r\n'

    def test_extra_sheets_are_appended(self):
        stream = StringIO()

        with CsvSink(stream) as sink:
            with warns(UserWarning, match="sheet 'Second' is appended"):
                render('sheet("First") [ str("1") ] sheet("Second") [ str("2") ]', sink)

        assert stream.getvalue() == '1\r\n2\r\n'

    def test_render_field(self):
        assert CsvSink.render_field('num', 2.0) == '2'
        assert CsvSink.render_field('date', 43831.25) == '2020-01-01T06:00:00'
        assert CsvSink.render_field('str', None) == ''


class TestSink:
    def test_protocol_methods_are_abstract(self):
        for name in ('new_sheet', 'set_column_width', 'set_row_height', 'place_cell', 'place_image', 'autofit'):
            assert getattr(Sink, name).__isabstractmethod__

        assert not getattr(Sink.close, '__isabstractmethod__', False)
