# csv_export.py
"""CSV export in the layout spreadsheet imports already expect.

Quoting is deliberately narrower than RFC 4180: a string is wrapped in
double quotes only when it holds a comma or a double quote. Values with line
breaks or surrounding whitespace are written as they are.
"""
from datetime import date, datetime

from constants import CSV_DATE_FORMAT

BOM = '\ufeff'
LINE_END = '\r\n'

EXPORTS = {
    'students': {
        'filename': 'alumnos.csv',
        'fields': ['name', 'sede', 'plan', 'classes_remaining', 'membership_expires_at'],
        'headers': {
            'name': 'Nombre',
            'sede': 'Sede',
            'plan': 'Plan',
            'classes_remaining': 'Clases Restantes',
            'membership_expires_at': 'Vence',
        },
    },
    'attendance': {
        'filename': 'asistencia_alumnos.csv',
        'fields': ['timestamp', 'student_name', 'class_name', 'sede'],
        'headers': {'timestamp': 'Fecha', 'student_name': 'Alumno', 'class_name': 'Clase', 'sede': 'Sede'},
    },
    'professor_attendance': {
        'filename': 'asistencia_profesores.csv',
        'fields': ['timestamp', 'professor_name', 'class_name', 'sede', 'status'],
        'headers': {
            'timestamp': 'Fecha',
            'professor_name': 'Profesor',
            'class_name': 'Clase',
            'sede': 'Sede',
            'status': 'Estado',
        },
    },
    'payments': {
        'filename': 'pagos.csv',
        'fields': ['paid_at', 'student_name', 'plan', 'amount'],
        'headers': {'paid_at': 'Fecha', 'student_name': 'Alumno', 'plan': 'Plan', 'amount': 'Monto'},
    },
}


def encode_value(value, date_format=CSV_DATE_FORMAT):
    if value is None:
        return ''
    if isinstance(value, (datetime, date)):
        value = value.strftime(date_format)
    if isinstance(value, str):
        needs_quotes = ',' in value or '"' in value
        value = value.replace('"', '""')
        if needs_quotes:
            value = f'"{value}"'
        return value
    return str(value)


def _field(record, name):
    if isinstance(record, dict):
        return record.get(name)
    return getattr(record, name, None)


def to_csv(records, fields, header_mapping, date_format=CSV_DATE_FORMAT):
    lines = [','.join(encode_value(header_mapping.get(f, f)) for f in fields)]
    for record in records:
        lines.append(','.join(encode_value(_field(record, f), date_format) for f in fields))
    return LINE_END.join(lines) + LINE_END


def to_csv_bytes(records, fields, header_mapping, date_format=CSV_DATE_FORMAT):
    return (BOM + to_csv(records, fields, header_mapping, date_format)).encode('utf-8')
