"""
Export of filtered dashboard collections as CSV, Excel or PDF.

Field extraction rules, shared by every format:
  - reference -> the item's id as text
  - crop      -> the related crop's name, or ''
  - amount    -> always two decimals, '0.00' when not a number
  - otherwise -> the item's property of the same name, or ''
"""

import csv
import io
import logging
from collections import namedtuple
from datetime import date
from xml.sax.saxutils import escape

import pandas as pd
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import cm
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle

logger = logging.getLogger(__name__)

BOM = '\ufeff'

EXPORT_FORMATS = {
    'csv': ('csv', 'text/csv; charset=utf-8'),
    'excel': ('xlsx', 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'),
    'pdf': ('pdf', 'application/pdf'),
}

EXPORT_DATASETS = {
    'expenses': {
        'fields': ['reference', 'expenseTitle', 'amount', 'category', 'expenseDate', 'description'],
        'filename': 'expenses',
    },
    'activities': {
        'fields': ['reference', 'type', 'date', 'crop', 'description'],
        'filename': 'activities',
    },
    'all': {
        'fields': ['reference', 'type', 'amount', 'category', 'date', 'description'],
        'filename': 'all_data',
    },
}

HEADER_GREEN = colors.Color(76 / 255, 175 / 255, 80 / 255)

ExportFile = namedtuple('ExportFile', ['filename', 'mimetype', 'data'])


class NoDataToExport(Exception):
    """The filtered collection is empty, nothing to write"""

    def __init__(self, message='No data available for download'):
        super().__init__(message)
        self.message = message


def _is_number(value):
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def extract_field(item, field):
    """Value of one output column for one item"""
    if field == 'reference':
        ident = item.get('id')
        return '' if ident is None else str(ident)
    if field == 'crop':
        crop = item.get('crop')
        return (crop.get('name') or '') if isinstance(crop, dict) else ''
    if field == 'amount':
        amount = item.get('amount')
        return f'{amount:.2f}' if _is_number(amount) else '0.00'
    value = item.get(field)
    return '' if value is None else value


def extract_rows(items, fields):
    return [[extract_field(item, field) for field in fields] for item in items]


def _require_rows(items):
    if not items:
        raise NoDataToExport()


def _number_text(value):
    if isinstance(value, float):
        if value != value:
            return 'NaN'
        if value in (float('inf'), float('-inf')):
            return 'Infinity' if value > 0 else '-Infinity'
        if value.is_integer() and abs(value) < 1e21:
            return str(int(value))
        return repr(value)
    return str(value)


def _encode_value(value):
    if value is None:
        return '""'
    if _is_number(value):
        return _number_text(value)
    if isinstance(value, bool):
        value = 'true' if value else 'false'
    text = str(value).replace('"', '""')
    return f'"{text}"'


def _export_file(filename, fmt, data):
    extension, mimetype = EXPORT_FORMATS[fmt]
    return ExportFile(f'{filename}.{extension}', mimetype, data)


def delimited_text(items, fields):
    """CSV text with a BOM so spreadsheet applications detect UTF-8"""
    _require_rows(items)
    lines = [','.join(fields)]
    for row in extract_rows(items, fields):
        lines.append(','.join(_encode_value(value) for value in row))
    return BOM + '\n'.join(lines)


def to_delimited_text(items, fields, filename):
    return _export_file(filename, 'csv', delimited_text(items, fields).encode('utf-8'))


def from_delimited_text(data):
    """Parse exported CSV back into items.

    Accepts the text or the encoded file body. Special columns are mapped
    back onto the shape extract_field reads, so re-exporting the parsed
    items reproduces the same text.
    """
    text = data.decode('utf-8') if isinstance(data, bytes) else data
    if text.startswith(BOM):
        text = text[len(BOM):]
    reader = csv.reader(io.StringIO(text))
    try:
        header = next(reader)
    except StopIteration:
        return []

    items = []
    for row in reader:
        item = {}
        for field, value in zip(header, row):
            if field == 'reference':
                item['id'] = value
            elif field == 'crop':
                item['crop'] = {'name': value} if value else None
            elif field == 'amount':
                try:
                    item['amount'] = float(value)
                except ValueError:
                    item['amount'] = value
            else:
                item[field] = value
        items.append(item)
    return items


def to_spreadsheet(items, fields, filename, sheet_name='Sheet1'):
    """Excel workbook with a single sheet"""
    _require_rows(items)
    frame = pd.DataFrame(extract_rows(items, fields), columns=fields)
    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine='openpyxl') as writer:
        frame.to_excel(writer, index=False, sheet_name=sheet_name)
    return _export_file(filename, 'excel', buffer.getvalue())


def to_document(items, fields, filename):
    """PDF holding a grid table of the items, titled after the filename"""
    _require_rows(items)
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=A4,
                            leftMargin=1.5 * cm, rightMargin=1.5 * cm,
                            topMargin=1.5 * cm, bottomMargin=2 * cm)
    styles = getSampleStyleSheet()
    cell_style = ParagraphStyle('cell', parent=styles['Normal'], fontSize=8, leading=10)
    head_style = ParagraphStyle('head', parent=cell_style, textColor=colors.white,
                                fontName='Helvetica-Bold')

    data = [[Paragraph(escape(field), head_style) for field in fields]]
    for row in extract_rows(items, fields):
        data.append([Paragraph(escape(str(value)), cell_style) for value in row])

    table = Table(data, repeatRows=1)
    table.setStyle(TableStyle([
        ('BACKGROUND', (0, 0), (-1, 0), HEADER_GREEN),
        ('GRID', (0, 0), (-1, -1), 0.5, colors.grey),
        ('VALIGN', (0, 0), (-1, -1), 'TOP'),
        ('FONTSIZE', (0, 0), (-1, -1), 8),
    ]))

    generated = f'Generated on: {date.today().strftime("%d/%m/%Y")}'

    def draw_footer(canvas, document):
        canvas.saveState()
        canvas.setFont('Helvetica', 8)
        canvas.drawString(document.leftMargin, 1 * cm, generated)
        canvas.restoreState()

    title = filename[:1].upper() + filename[1:]
    story = [Paragraph(escape(title), styles['Title']), Spacer(1, 0.4 * cm), table]
    doc.build(story, onFirstPage=draw_footer, onLaterPages=draw_footer)
    return _export_file(filename, 'pdf', buffer.getvalue())


FORMAT_WRITERS = {
    'csv': to_delimited_text,
    'excel': to_spreadsheet,
    'pdf': to_document,
}


def dataset_items(dataset, expenses, activities):
    """Items exported for a dataset; 'all' merges expenses then activities"""
    if dataset == 'expenses':
        return list(expenses)
    if dataset == 'activities':
        return list(activities)
    if dataset == 'all':
        items = [{
            'id': e.get('id'),
            'type': 'expense',
            'amount': e.get('amount'),
            'category': e.get('category') or '',
            'date': e.get('expenseDate') or '',
            'description': e.get('description') or '',
        } for e in expenses]
        items.extend({
            'id': a.get('id'),
            'type': a.get('type') or '',
            'amount': 0,
            'category': 'activity',
            'date': a.get('date') or '',
            'description': a.get('description') or '',
        } for a in activities)
        return items
    raise ValueError(f'Unknown export dataset: {dataset}')


def build_export(dataset, fmt, expenses, activities):
    """Render a dataset in the requested format.

    Raises NoDataToExport when the filtered collections leave nothing to
    write, and ValueError for an unknown dataset or format.
    """
    writer = FORMAT_WRITERS.get(fmt)
    if writer is None:
        raise ValueError(f'Unknown export format: {fmt}')
    definition = EXPORT_DATASETS.get(dataset)
    if definition is None:
        raise ValueError(f'Unknown export dataset: {dataset}')

    items = dataset_items(dataset, expenses, activities)
    export = writer(items, definition['fields'], definition['filename'])
    logger.info('Exported %d %s rows as %s', len(items), dataset, export.filename)
    return export
