"""
Spreadsheet import of ledger expenses.

Reads the first sheet of an ``.xlsx``/``.xls`` workbook or a ``.csv`` file
into a pandas DataFrame and inserts one expense per row.  Expected columns
(Portuguese or English headers, case and accents ignored)::

    data / date            DD/MM/YYYY, YYYY-MM-DD or an Excel date
    descricao / description
    valor / amount         dot or comma as decimal separator
    categoria / category   optional, matched by name
    pessoa / person        optional, matched by name

Rows that cannot be imported are counted and reported, they never abort
the whole file.
"""
import unicodedata
from datetime import date, datetime, timedelta
from pathlib import Path

import pandas as pd
from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from extensions import db
from models.categories import Category
from models.expenses import Expense
from models.people import Person
from services.activity_service import ActivityService
from services.errors import ValidationError
from utils.db_helpers import family_query, set_family_id
from utils.money import to_decimal


COLUMN_ALIASES = {
    'date': ('data', 'date', 'dia'),
    'description': ('descricao', 'description', 'desc', 'historico'),
    'amount': ('valor', 'amount', 'value', 'total'),
    'category': ('categoria', 'category'),
    'person': ('pessoa', 'person', 'responsavel', 'quem'),
}
REQUIRED_COLUMNS = ('date', 'description', 'amount')

# Day zero of the Excel 1900 date system (accounts for the 1900 leap-year bug)
EXCEL_EPOCH = date(1899, 12, 30)


def _normalize(text):
    text = unicodedata.normalize('NFKD', str(text)).encode('ascii', 'ignore').decode('ascii')
    return text.strip().lower()


def _from_serial(days):
    try:
        return EXCEL_EPOCH + timedelta(days=int(days))
    except OverflowError:
        raise ValueError(f"Date serial out of range: {days!r}")


def _is_blank(value):
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ''
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


class ExpenseImportService:

    @staticmethod
    def read_file(stream, filename):
        """Load the upload into a DataFrame with raw (unparsed) cell values."""
        ext = Path(filename or '').suffix.lower()
        allowed = current_app.config.get('IMPORT_ALLOWED_EXTENSIONS', {'.csv', '.xlsx', '.xls'})
        if ext not in allowed:
            raise ValidationError(f"Unsupported file type '{ext or filename}'. Use {', '.join(sorted(allowed))}.")
        try:
            if ext == '.csv':
                # sep=None sniffs ',' vs ';' exports
                return pd.read_csv(stream, sep=None, engine='python', dtype=str,
                                   keep_default_na=False, encoding='utf-8-sig')
            return pd.read_excel(stream, sheet_name=0)
        except (ValueError, UnicodeDecodeError, pd.errors.ParserError) as e:
            raise ValidationError(f'Could not read spreadsheet: {e}')

    @staticmethod
    def map_columns(columns):
        """Map canonical field name -> actual column header."""
        normalized = {_normalize(c): c for c in columns}
        mapping = {}
        for field, aliases in COLUMN_ALIASES.items():
            for alias in aliases:
                if alias in normalized:
                    mapping[field] = normalized[alias]
                    break
        missing = [f for f in REQUIRED_COLUMNS if f not in mapping]
        if missing:
            raise ValidationError(
                f"Missing column(s): {', '.join(missing)}. Expected: data, descricao, valor, categoria, pessoa"
            )
        return mapping

    @staticmethod
    def parse_date(value):
        """Accept DD/MM/YYYY, YYYY-MM-DD, datetimes and Excel serial numbers."""
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return _from_serial(value)

        text = str(value).strip()
        if '/' in text:
            day, month, year = text.split('/')
            return date(int(year), int(month), int(day))
        if text.replace('.', '', 1).isdigit():
            return _from_serial(float(text))
        return datetime.strptime(text[:10], '%Y-%m-%d').date()

    @staticmethod
    def import_file(stream, filename):
        """Import every row of the spreadsheet.

        Returns ``{'success': int, 'failed': int, 'errors': [{'row': n, 'error': str}]}``
        where ``row`` is the 1-based spreadsheet row (the header is row 1).
        """
        df = ExpenseImportService.read_file(stream, filename)
        max_rows = current_app.config.get('IMPORT_MAX_ROWS', 5000)
        if len(df) > max_rows:
            raise ValidationError(f'Spreadsheet has {len(df)} rows; the limit is {max_rows}')
        mapping = ExpenseImportService.map_columns(df.columns)

        categories = {c.name.strip().lower(): c for c in family_query(Category).all()}
        people = {p.name.strip().lower(): p for p in family_query(Person).all()}

        result = {'success': 0, 'failed': 0, 'errors': []}
        for index, record in enumerate(df.to_dict('records')):
            row_number = index + 2
            try:
                expense = ExpenseImportService._build_expense(record, mapping, categories, people)
            except (ValueError, TypeError) as e:
                result['failed'] += 1
                result['errors'].append({'row': row_number, 'error': str(e)})
                continue
            db.session.add(expense)
            db.session.add(ActivityService.build_activity(
                'create', 'Expense', expense.description, person_id=expense.person_id
            ))
            result['success'] += 1

        try:
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            current_app.logger.exception(f"Expense import of '{filename}' failed")
            raise
        current_app.logger.info(
            f"Expense import of '{filename}': {result['success']} imported, {result['failed']} failed"
        )
        return result

    @staticmethod
    def _build_expense(record, mapping, categories, people):
        raw_date = record.get(mapping['date'])
        raw_description = record.get(mapping['description'])
        raw_amount = record.get(mapping['amount'])
        if _is_blank(raw_date) or _is_blank(raw_description) or _is_blank(raw_amount):
            raise ValueError('date, description and amount are required')

        amount = to_decimal(raw_amount)
        if amount is None or amount <= 0:
            raise ValueError(f'Invalid amount: {raw_amount!r}')

        category = None
        if 'category' in mapping and not _is_blank(record.get(mapping['category'])):
            category = categories.get(str(record[mapping['category']]).strip().lower())
        person = None
        if 'person' in mapping and not _is_blank(record.get(mapping['person'])):
            person = people.get(str(record[mapping['person']]).strip().lower())

        return set_family_id(Expense(
            date=ExpenseImportService.parse_date(raw_date),
            description=str(raw_description).strip()[:255],
            amount=amount,
            category_id=category.id if category else None,
            person_id=person.id if person else None,
        ))
